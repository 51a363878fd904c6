"""Audit collaborator contract.

The notification engine reports one record per processed event and one per
template management operation. Storage is the collaborator's concern.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from notifier.modules.notification.domain.enums import AuditAction


@dataclass(frozen=True)
class AuditRecord:
    """A single structured audit entry."""

    action: AuditAction
    resource: str
    resource_id: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class IAuditService(ABC):
    """Receives audit records from the notification engine."""

    @abstractmethod
    async def record(self, entry: AuditRecord) -> None:
        """Store or forward an audit record."""
