from notifier.modules.notification.domain.interfaces.repositories.notification_template_repository import (
    INotificationTemplateRepository,
)

__all__ = ["INotificationTemplateRepository"]
