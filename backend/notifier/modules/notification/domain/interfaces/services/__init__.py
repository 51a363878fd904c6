from notifier.modules.notification.domain.interfaces.services.audit_service import (
    AuditRecord,
    IAuditService,
)

__all__ = ["AuditRecord", "IAuditService"]
