"""Audit service that logs records and keeps the most recent ones in memory."""

from collections import deque

from notifier.core.logging import get_logger
from notifier.modules.notification.domain.enums import AuditAction
from notifier.modules.notification.domain.interfaces.services import (
    AuditRecord,
    IAuditService,
)

logger = get_logger(__name__)


class InMemoryAuditService(IAuditService):
    """Audit sink for deployments without an audit store."""

    def __init__(self, max_records: int = 1000):
        self._records: deque[AuditRecord] = deque(maxlen=max_records)

    async def record(self, entry: AuditRecord) -> None:
        self._records.append(entry)
        logger.info(
            "Audit record",
            action=entry.action.value,
            resource=entry.resource,
            resource_id=entry.resource_id,
            user_id=entry.user_id,
            **{f"meta_{key}": value for key, value in entry.metadata.items()},
        )

    @property
    def records(self) -> list[AuditRecord]:
        return list(self._records)

    def find(self, action: AuditAction | None = None) -> list[AuditRecord]:
        return [r for r in self._records if action is None or r.action == action]

    def clear(self) -> None:
        self._records.clear()
