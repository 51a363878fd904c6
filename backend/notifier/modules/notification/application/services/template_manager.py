"""Template management service.

CRUD and lookup operations for event notification templates. Content is
validated against the event's variables before anything is written, and
every mutation is reported to the audit service.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from notifier.core.errors import ValidationError
from notifier.core.logging import get_logger
from notifier.modules.notification.application.contracts import (
    CreateTemplateRequest,
    TemplateFilters,
    UpdateTemplateRequest,
    field_errors_from,
)
from notifier.modules.notification.application.dto import TemplateValidationResult
from notifier.modules.notification.application.services.default_templates import (
    DEFAULT_TEMPLATES,
)
from notifier.modules.notification.application.services.template_validation_service import (
    TemplateValidationService,
)
from notifier.modules.notification.domain.entities import NotificationTemplate
from notifier.modules.notification.domain.entities.notification_template import (
    normalize_event_key,
)
from notifier.modules.notification.domain.enums import AuditAction, NotificationChannel
from notifier.modules.notification.domain.errors import (
    DuplicateTemplateError,
    InvalidTemplateError,
    TemplateNotFoundError,
)
from notifier.modules.notification.domain.interfaces import (
    AuditRecord,
    IAuditService,
    INotificationTemplateRepository,
)

logger = get_logger(__name__)

TEMPLATE_RESOURCE = "NotificationTemplate"


def _parse(model: type, request: Any) -> Any:
    if isinstance(request, model):
        return request
    try:
        return model.model_validate(request or {})
    except PydanticValidationError as e:
        raise ValidationError.from_fields(field_errors_from(e)) from e


class TemplateManager:
    """Application service for notification templates."""

    def __init__(
        self,
        repository: INotificationTemplateRepository,
        validation_service: TemplateValidationService,
        audit_service: IAuditService | None = None,
    ):
        self.repository = repository
        self.validation_service = validation_service
        self.audit_service = audit_service

    # Commands

    async def create_template(
        self, request: CreateTemplateRequest | dict[str, Any]
    ) -> NotificationTemplate:
        """Create a template for an (event key, channel) pair.

        Args:
            request: Template fields, as a contract or a plain mapping

        Returns:
            NotificationTemplate: The stored template

        Raises:
            ValidationError: If the request is malformed
            InvalidTemplateError: If the content fails validation
            DuplicateTemplateError: If the pair already has a template
        """
        request = _parse(CreateTemplateRequest, request)
        self._ensure_valid(request.content, request.event_key)

        if await self.repository.get(request.event_key, request.channel) is not None:
            raise DuplicateTemplateError(request.event_key, request.channel.value)

        template = NotificationTemplate(
            event_key=request.event_key,
            channel=request.channel,
            title=request.title,
            content=request.content,
            is_active=request.is_active,
            created_by=request.created_by,
        )
        await self.repository.add(template)

        logger.info(
            "Template created",
            event_key=template.event_key,
            channel=template.channel.value,
            template_id=template.id,
        )
        await self._audit(AuditAction.TEMPLATE_CREATED, template, user_id=request.created_by)
        return template

    async def update_template(
        self,
        event_key: str,
        channel: NotificationChannel,
        request: UpdateTemplateRequest | dict[str, Any],
        updated_by: str | None = None,
    ) -> NotificationTemplate:
        """Apply a partial update, re-validating changed content.

        Raises:
            TemplateNotFoundError: If the template does not exist
            InvalidTemplateError: If the new content fails validation
        """
        request = _parse(UpdateTemplateRequest, request)
        template = await self._require(event_key, channel)

        if request.content is not None and request.content != template.content:
            self._ensure_valid(request.content, template.event_key)

        template.update(
            title=request.title, content=request.content, is_active=request.is_active
        )
        await self.repository.save(template)

        logger.info(
            "Template updated", event_key=template.event_key, channel=channel.value
        )
        await self._audit(
            AuditAction.TEMPLATE_UPDATED,
            template,
            user_id=updated_by,
            changes=sorted(request.model_dump(exclude_none=True)),
        )
        return template

    async def delete_template(
        self, event_key: str, channel: NotificationChannel, deleted_by: str | None = None
    ) -> None:
        """Delete a single template.

        Raises:
            TemplateNotFoundError: If the template does not exist
        """
        template = await self._require(event_key, channel)
        await self.repository.delete(template.event_key, channel)

        logger.info("Template deleted", event_key=template.event_key, channel=channel.value)
        await self._audit(AuditAction.TEMPLATE_DELETED, template, user_id=deleted_by)

    async def delete_templates_by_event_key(
        self, event_key: str, deleted_by: str | None = None
    ) -> int:
        """Delete every template of an event.

        Returns:
            Number of templates deleted
        """
        event_key = normalize_event_key(event_key)
        deleted = await self.repository.delete_by_event_key(event_key)

        if deleted and self.audit_service is not None:
            await self._record(
                AuditRecord(
                    action=AuditAction.TEMPLATE_DELETED,
                    resource=TEMPLATE_RESOURCE,
                    resource_id=event_key,
                    user_id=deleted_by,
                    metadata={"event_key": event_key, "deleted_count": deleted},
                )
            )
        logger.info("Templates deleted for event", event_key=event_key, deleted=deleted)
        return deleted

    async def toggle_template_status(
        self, event_key: str, channel: NotificationChannel
    ) -> NotificationTemplate:
        template = await self._require(event_key, channel)
        template.toggle()
        await self.repository.save(template)

        logger.info(
            "Template status toggled",
            event_key=template.event_key,
            channel=channel.value,
            is_active=template.is_active,
        )
        return template

    async def seed_default_templates(self, created_by: str | None = None) -> int:
        """Store the built-in templates that are not present yet.

        Returns:
            Number of templates created
        """
        created = 0
        for definition in DEFAULT_TEMPLATES:
            if await self.repository.get(definition.event_key, definition.channel):
                continue
            await self.create_template(
                CreateTemplateRequest(
                    event_key=definition.event_key,
                    channel=definition.channel,
                    title=definition.title,
                    content=definition.content,
                    is_active=definition.is_active,
                    created_by=created_by,
                )
            )
            created += 1

        logger.info("Default templates seeded", created=created)
        return created

    # Queries

    async def find_template(
        self, event_key: str, channel: NotificationChannel
    ) -> NotificationTemplate | None:
        return await self.repository.get(event_key, channel)

    async def find_templates_by_event_key(self, event_key: str) -> list[NotificationTemplate]:
        """Active templates of an event, ordered by channel."""
        return await self.repository.find(event_key=event_key, is_active=True)

    async def find_templates(
        self, filters: TemplateFilters | dict[str, Any] | None = None
    ) -> list[NotificationTemplate]:
        filters = _parse(TemplateFilters, filters)
        return await self.repository.find(
            event_key=filters.event_key,
            channel=filters.channel,
            is_active=filters.is_active,
        )

    async def get_event_keys_with_templates(self) -> list[str]:
        return await self.repository.distinct_event_keys()

    async def get_template_count_by_channel(self) -> dict[NotificationChannel, int]:
        """Active template counts, with every channel present."""
        counts = {channel: 0 for channel in NotificationChannel}
        for template in await self.repository.find(is_active=True):
            counts[template.channel] += 1
        return counts

    async def has_templates_for_all_channels(self, event_key: str) -> bool:
        templates = await self.find_templates_by_event_key(event_key)
        return {template.channel for template in templates} == set(NotificationChannel)

    def validate_template(self, content: str, event_key: str) -> TemplateValidationResult:
        return self.validation_service.validate_template(content, event_key)

    def preview_template(
        self, content: str, event_key: str, sample_data: dict[str, Any] | None = None
    ) -> str:
        """Render content against sample data for the event."""
        return self.validation_service.renderer.create_preview(
            content, sample_data or self.validation_service.get_sample_data(event_key)
        )

    # Helpers

    def _ensure_valid(self, content: str, event_key: str) -> None:
        result = self.validation_service.validate_template(content, event_key)
        if not result.is_valid:
            logger.warning(
                "Template rejected", event_key=event_key, errors=result.errors
            )
            raise InvalidTemplateError(
                event_key, result.errors, used_variables=result.used_variables
            )
        if result.warnings:
            logger.info(
                "Template accepted with warnings",
                event_key=event_key,
                warnings=result.warnings,
            )

    async def _require(
        self, event_key: str, channel: NotificationChannel
    ) -> NotificationTemplate:
        template = await self.repository.get(event_key, channel)
        if template is None:
            raise TemplateNotFoundError(normalize_event_key(event_key), channel.value)
        return template

    async def _audit(
        self,
        action: AuditAction,
        template: NotificationTemplate,
        user_id: str | None = None,
        **metadata: Any,
    ) -> None:
        if self.audit_service is None:
            return
        await self._record(
            AuditRecord(
                action=action,
                resource=TEMPLATE_RESOURCE,
                resource_id=template.id,
                user_id=user_id,
                metadata={
                    "event_key": template.event_key,
                    "channel": template.channel.value,
                    **metadata,
                },
            )
        )

    async def _record(self, entry: AuditRecord) -> None:
        try:
            await self.audit_service.record(entry)
        except Exception as e:
            logger.error(
                "Audit record failed", action=entry.action.value, error=str(e)
            )
