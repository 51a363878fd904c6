"""Notification channel dispatchers.

This module contains dispatcher implementations for the delivery channels,
providing a unified interface for sending rendered notifications through
different providers.
"""

from notifier.modules.notification.infrastructure.adapters.base import (
    BaseChannelDispatcher,
    ChannelDispatchError,
)
from notifier.modules.notification.infrastructure.adapters.dispatcher_factory import (
    DispatcherFactory,
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

__all__ = [
    "BaseChannelDispatcher",
    "ChannelDispatchError",
    "DispatcherFactory",
    "EmailChannelDispatcher",
    "PushChannelDispatcher",
    "RealtimeChannelDispatcher",
]
