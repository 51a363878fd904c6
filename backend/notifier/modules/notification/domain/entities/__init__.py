"""Notification domain entities."""

from notifier.modules.notification.domain.entities.notification_template import (
    NotificationTemplate,
)

__all__ = ["NotificationTemplate"]
