"""Repository implementation for NotificationTemplate entity."""

from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notifier.modules.notification.domain.entities import NotificationTemplate
from notifier.modules.notification.domain.entities.notification_template import (
    normalize_event_key,
)
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.errors import (
    DuplicateTemplateError,
    TemplateNotFoundError,
)
from notifier.modules.notification.domain.interfaces.repositories import (
    INotificationTemplateRepository,
)
from notifier.modules.notification.infrastructure.models import (
    NotificationTemplateModel,
)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqlNotificationTemplateRepository(INotificationTemplateRepository):
    """Repository for managing notification template persistence."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory producing one session per operation
        """
        self.session_factory = session_factory
        self.model_class = NotificationTemplateModel

    async def add(self, template: NotificationTemplate) -> NotificationTemplate:
        async with self.session_factory() as session:
            session.add(self._to_model(template))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateTemplateError(
                    template.event_key, template.channel.value
                ) from e
        return template

    async def save(self, template: NotificationTemplate) -> NotificationTemplate:
        async with self.session_factory() as session:
            model = await self._get_model(session, template.event_key, template.channel)
            if model is None:
                raise TemplateNotFoundError(template.event_key, template.channel.value)

            model.title = template.title
            model.content = template.content
            model.is_active = template.is_active
            model.updated_at = template.updated_at
            await session.commit()
        return template

    async def get(
        self, event_key: str, channel: NotificationChannel
    ) -> NotificationTemplate | None:
        """Find template by event key and channel.

        Args:
            event_key: Event key, normalized before lookup
            channel: Delivery channel

        Returns:
            Template if found, None otherwise
        """
        async with self.session_factory() as session:
            model = await self._get_model(session, event_key, channel)
            return self._to_entity(model) if model else None

    async def find(
        self,
        event_key: str | None = None,
        channel: NotificationChannel | None = None,
        is_active: bool | None = None,
    ) -> list[NotificationTemplate]:
        stmt = select(self.model_class)

        if event_key is not None:
            stmt = stmt.where(self.model_class.event_key == normalize_event_key(event_key))
        if channel is not None:
            stmt = stmt.where(self.model_class.channel == channel)
        if is_active is not None:
            stmt = stmt.where(self.model_class.is_active == is_active)

        stmt = stmt.order_by(self.model_class.event_key.asc(), self.model_class.channel.asc())

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_entity(model) for model in result.scalars().all()]

    async def delete(self, event_key: str, channel: NotificationChannel) -> bool:
        stmt = delete(self.model_class).where(
            self.model_class.event_key == normalize_event_key(event_key),
            self.model_class.channel == channel,
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    async def delete_by_event_key(self, event_key: str) -> int:
        stmt = delete(self.model_class).where(
            self.model_class.event_key == normalize_event_key(event_key)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

    async def distinct_event_keys(self) -> list[str]:
        stmt = (
            select(self.model_class.event_key)
            .distinct()
            .order_by(self.model_class.event_key.asc())
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def _get_model(
        self, session: AsyncSession, event_key: str, channel: NotificationChannel
    ) -> NotificationTemplateModel | None:
        stmt = select(self.model_class).where(
            self.model_class.event_key == normalize_event_key(event_key),
            self.model_class.channel == channel,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    def _to_entity(self, model: NotificationTemplateModel) -> NotificationTemplate:
        """Convert database model to domain entity."""
        return NotificationTemplate(
            event_key=model.event_key,
            channel=model.channel,
            title=model.title,
            content=model.content,
            is_active=model.is_active,
            created_by=model.created_by,
            created_at=_aware(model.created_at),
            updated_at=_aware(model.updated_at),
            entity_id=model.id,
            validate=False,
        )

    def _to_model(self, template: NotificationTemplate) -> NotificationTemplateModel:
        """Convert domain entity to database model."""
        return NotificationTemplateModel(
            id=template.id,
            event_key=template.event_key,
            channel=template.channel,
            title=template.title,
            content=template.content,
            is_active=template.is_active,
            created_by=template.created_by,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )
