"""In-memory template repository."""

import asyncio

from notifier.modules.notification.domain.entities import NotificationTemplate
from notifier.modules.notification.domain.entities.notification_template import (
    normalize_event_key,
)
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.errors import DuplicateTemplateError
from notifier.modules.notification.domain.interfaces.repositories import (
    INotificationTemplateRepository,
)

_CHANNEL_ORDER = {channel: index for index, channel in enumerate(NotificationChannel)}


def _sort_key(template: NotificationTemplate) -> tuple[str, int]:
    return template.event_key, _CHANNEL_ORDER[template.channel]


class InMemoryNotificationTemplateRepository(INotificationTemplateRepository):
    """Templates held in a dict keyed by (event key, channel)."""

    def __init__(self, templates: list[NotificationTemplate] | None = None):
        self._templates: dict[tuple[str, NotificationChannel], NotificationTemplate] = {
            template.key: template for template in templates or []
        }
        self._lock = asyncio.Lock()

    async def add(self, template: NotificationTemplate) -> NotificationTemplate:
        async with self._lock:
            if template.key in self._templates:
                raise DuplicateTemplateError(template.event_key, template.channel.value)
            self._templates[template.key] = template
            return template

    async def save(self, template: NotificationTemplate) -> NotificationTemplate:
        async with self._lock:
            self._templates[template.key] = template
            return template

    async def get(
        self, event_key: str, channel: NotificationChannel
    ) -> NotificationTemplate | None:
        return self._templates.get((normalize_event_key(event_key), channel))

    async def find(
        self,
        event_key: str | None = None,
        channel: NotificationChannel | None = None,
        is_active: bool | None = None,
    ) -> list[NotificationTemplate]:
        if event_key is not None:
            event_key = normalize_event_key(event_key)
        matches = [
            template
            for template in self._templates.values()
            if (event_key is None or template.event_key == event_key)
            and (channel is None or template.channel == channel)
            and (is_active is None or template.is_active == is_active)
        ]
        return sorted(matches, key=_sort_key)

    async def delete(self, event_key: str, channel: NotificationChannel) -> bool:
        async with self._lock:
            return self._templates.pop((normalize_event_key(event_key), channel), None) is not None

    async def delete_by_event_key(self, event_key: str) -> int:
        event_key = normalize_event_key(event_key)
        async with self._lock:
            keys = [key for key in self._templates if key[0] == event_key]
            for key in keys:
                del self._templates[key]
            return len(keys)

    async def distinct_event_keys(self) -> list[str]:
        return sorted({template.event_key for template in self._templates.values()})
