"""Registry of channel dispatchers."""

import asyncio
from typing import Any

from notifier.core.config import Settings
from notifier.core.logging import get_logger
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.errors import UnsupportedChannelError
from notifier.modules.notification.infrastructure.adapters.base import (
    BaseChannelDispatcher,
)
from notifier.modules.notification.infrastructure.adapters.email_adapter import (
    EmailChannelDispatcher,
)
from notifier.modules.notification.infrastructure.adapters.push_adapter import (
    PushChannelDispatcher,
)
from notifier.modules.notification.infrastructure.adapters.realtime_adapter import (
    RealtimeChannelDispatcher,
)

logger = get_logger(__name__)


class DispatcherFactory:
    """Maps each channel to the dispatcher that delivers it.

    An unknown channel is a programming error and raises. A known but
    unconfigured channel still resolves; its dispatcher reports FAILED.
    """

    def __init__(self, dispatchers: dict[NotificationChannel, BaseChannelDispatcher] | None = None):
        self._dispatchers: dict[NotificationChannel, BaseChannelDispatcher] = dict(
            dispatchers or {}
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DispatcherFactory":
        return cls(
            {
                NotificationChannel.EMAIL: EmailChannelDispatcher(settings.email),
                NotificationChannel.PUSH: PushChannelDispatcher(settings.push),
                NotificationChannel.REALTIME: RealtimeChannelDispatcher(settings.realtime),
            }
        )

    def register(
        self, channel: NotificationChannel, dispatcher: BaseChannelDispatcher
    ) -> None:
        self._dispatchers[channel] = dispatcher
        logger.debug("Dispatcher registered", channel=channel.value, provider=dispatcher.provider)

    def get_dispatcher(self, channel: NotificationChannel | str) -> BaseChannelDispatcher:
        """Resolve the dispatcher for a channel.

        Raises:
            UnsupportedChannelError: If no dispatcher handles the channel
        """
        if isinstance(channel, str):
            try:
                channel = NotificationChannel.from_string(channel)
            except ValueError as e:
                raise UnsupportedChannelError(channel) from e

        dispatcher = self._dispatchers.get(channel)
        if dispatcher is None:
            raise UnsupportedChannelError(channel)
        return dispatcher

    def get_supported_channels(self) -> list[NotificationChannel]:
        return list(self._dispatchers)

    def is_channel_available(self, channel: NotificationChannel) -> bool:
        dispatcher = self._dispatchers.get(channel)
        return dispatcher is not None and dispatcher.is_configured()

    async def get_channels_status(self) -> dict[str, dict[str, Any]]:
        """Configuration and health of every registered channel."""
        channels = list(self._dispatchers.items())
        health = await asyncio.gather(
            *(dispatcher.is_healthy() for _, dispatcher in channels)
        )
        return {
            channel.value: {"config": dispatcher.get_config(), "healthy": healthy}
            for (channel, dispatcher), healthy in zip(channels, health, strict=True)
        }

    async def are_all_channels_healthy(self) -> bool:
        status = await self.get_channels_status()
        return all(entry["healthy"] for entry in status.values())

    async def aclose(self) -> None:
        for dispatcher in self._dispatchers.values():
            await dispatcher.aclose()
