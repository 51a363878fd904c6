"""Notification persistence models."""

from notifier.modules.notification.infrastructure.models.base import Base
from notifier.modules.notification.infrastructure.models.notification_template import (
    NotificationTemplateModel,
)

__all__ = ["Base", "NotificationTemplateModel"]
