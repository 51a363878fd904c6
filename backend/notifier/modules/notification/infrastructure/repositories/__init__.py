"""Notification template repositories."""

from notifier.modules.notification.infrastructure.repositories.in_memory_template_repository import (
    InMemoryNotificationTemplateRepository,
)
from notifier.modules.notification.infrastructure.repositories.notification_template_repository import (
    SqlNotificationTemplateRepository,
)

__all__ = [
    "InMemoryNotificationTemplateRepository",
    "SqlNotificationTemplateRepository",
]
