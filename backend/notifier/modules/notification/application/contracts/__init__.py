"""Notification request contracts."""

from notifier.modules.notification.application.contracts.notification_contract import (
    CreateTemplateRequest,
    EnqueueNotificationRequest,
    RecipientContract,
    TemplateFilters,
    UpdateTemplateRequest,
    field_errors_from,
)

__all__ = [
    "CreateTemplateRequest",
    "EnqueueNotificationRequest",
    "RecipientContract",
    "TemplateFilters",
    "UpdateTemplateRequest",
    "field_errors_from",
]
