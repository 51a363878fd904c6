"""Contracts the notification domain expects from its collaborators."""

from notifier.modules.notification.domain.interfaces.repositories import (
    INotificationTemplateRepository,
)
from notifier.modules.notification.domain.interfaces.services import (
    AuditRecord,
    IAuditService,
)

__all__ = ["AuditRecord", "IAuditService", "INotificationTemplateRepository"]
