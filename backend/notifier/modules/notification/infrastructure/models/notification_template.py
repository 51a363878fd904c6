"""SQLAlchemy model for NotificationTemplate entity."""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Index,
    String,
    Text,
    UniqueConstraint,
)

from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.infrastructure.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationTemplateModel(Base):
    """Database model for notification templates."""

    __tablename__ = "notification_templates"

    id = Column(String(36), primary_key=True)

    event_key = Column(String(100), nullable=False, index=True)
    channel = Column(Enum(NotificationChannel), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Audit fields
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("event_key", "channel", name="uq_templates_event_channel"),
        Index("idx_templates_event_active", "event_key", "is_active"),
    )

    def to_dict(self) -> dict:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "event_key": self.event_key,
            "channel": self.channel.value if self.channel else None,
            "title": self.title,
            "content": self.content,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
