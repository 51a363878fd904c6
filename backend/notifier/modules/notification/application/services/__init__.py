"""Notification application services."""

from notifier.modules.notification.application.services.event_notification_service import (
    EventNotificationService,
)
from notifier.modules.notification.application.services.notification_processor import (
    NotificationProcessor,
)
from notifier.modules.notification.application.services.template_manager import (
    TemplateManager,
)
from notifier.modules.notification.application.services.template_validation_service import (
    TemplateValidationService,
)

__all__ = [
    "EventNotificationService",
    "NotificationProcessor",
    "TemplateManager",
    "TemplateValidationService",
]
