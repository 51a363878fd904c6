"""Notification Template Repository Interface.

Domain contract for notification template data access operations.
"""

from abc import ABC, abstractmethod

from notifier.modules.notification.domain.entities import NotificationTemplate
from notifier.modules.notification.domain.enums import NotificationChannel


class INotificationTemplateRepository(ABC):
    """Repository interface for templates keyed by (event key, channel)."""

    @abstractmethod
    async def add(self, template: NotificationTemplate) -> NotificationTemplate:
        """Persist a new template.

        Raises:
            DuplicateTemplateError: If the (event key, channel) pair is taken
        """

    @abstractmethod
    async def save(self, template: NotificationTemplate) -> NotificationTemplate:
        """Persist changes to an existing template."""

    @abstractmethod
    async def get(
        self, event_key: str, channel: NotificationChannel
    ) -> NotificationTemplate | None:
        """Find template by its key."""

    @abstractmethod
    async def find(
        self,
        event_key: str | None = None,
        channel: NotificationChannel | None = None,
        is_active: bool | None = None,
    ) -> list[NotificationTemplate]:
        """Find templates matching every given filter, ordered by event key then channel."""

    @abstractmethod
    async def delete(self, event_key: str, channel: NotificationChannel) -> bool:
        """Delete a template; returns False when it did not exist."""

    @abstractmethod
    async def delete_by_event_key(self, event_key: str) -> int:
        """Delete every template of an event and return how many were removed."""

    @abstractmethod
    async def distinct_event_keys(self) -> list[str]:
        """Sorted event keys that have at least one template."""
