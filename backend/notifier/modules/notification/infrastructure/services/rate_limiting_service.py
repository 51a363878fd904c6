"""Rate limiting service for notification delivery.

Each (channel, recipient) pair owns a sliding window of accepted request
timestamps plus a burst counter that resets every minute. Checks for the same
key are serialized by a per-key lock so concurrent workers cannot admit more
requests than the configured limits.
"""

import asyncio
import time
from collections import Counter, deque
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from notifier.core.config import ChannelRateLimitConfig, RateLimitConfig
from notifier.core.logging import get_logger
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.value_objects import RateLimitDecision

logger = get_logger(__name__)

MINUTE_SECONDS = 60
HOUR_SECONDS = 60 * 60
DAY_SECONDS = 24 * 60 * 60
ACTIVE_WINDOW_SECONDS = 5 * 60
INACTIVITY_SECONDS = HOUR_SECONDS


@dataclass
class RateLimitContext:
    """Accepted request history for one (channel, recipient) key."""

    key: str
    channel: str
    last_burst_reset: float
    timestamps: deque[float] = field(default_factory=deque)
    burst_count: int = 0

    @property
    def last_request_at(self) -> float | None:
        return self.timestamps[-1] if self.timestamps else None

    def prune(self, now: float) -> None:
        horizon = now - DAY_SECONDS
        while self.timestamps and self.timestamps[0] < horizon:
            self.timestamps.popleft()

    def count_since(self, since: float) -> int:
        return sum(1 for ts in self.timestamps if ts > since)


class RateLimitStore:
    """Process-local state store for rate limit contexts and their locks."""

    def __init__(self):
        self._contexts: dict[str, RateLimitContext] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def get(self, key: str) -> RateLimitContext | None:
        return self._contexts.get(key)

    def get_or_create(self, key: str, channel: str, now: float) -> RateLimitContext:
        context = self._contexts.get(key)
        if context is None:
            context = RateLimitContext(key=key, channel=channel, last_burst_reset=now)
            self._contexts[key] = context
        return context

    async def record(self, context: RateLimitContext, now: float) -> None:
        """Store one admitted request for the context."""
        context.timestamps.append(now)
        context.burst_count += 1

    def remove(self, key: str) -> bool:
        lock = self._locks.get(key)
        if lock is not None and lock.locked():
            return False
        self._locks.pop(key, None)
        return self._contexts.pop(key, None) is not None

    def contexts(self) -> list[RateLimitContext]:
        return list(self._contexts.values())

    def clear(self) -> None:
        for key in list(self._contexts):
            self.remove(key)

    def __len__(self) -> int:
        return len(self._contexts)


class RateLimitingService:
    """Sliding window and burst limits per (channel, recipient)."""

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiting service.

        Args:
            config: Per-channel limits and sweep interval
            store: State store, injectable for tests
            clock: Time source in seconds
        """
        self.config = config or RateLimitConfig()
        self.store = store or RateLimitStore()
        self._clock = clock
        self._cleanup_task: asyncio.Task | None = None

    @staticmethod
    def _channel_name(channel: NotificationChannel | str) -> str:
        return channel.config_key if isinstance(channel, NotificationChannel) else channel.lower()

    @classmethod
    def build_key(cls, channel: NotificationChannel | str, recipient: str) -> str:
        return f"{cls._channel_name(channel)}:{recipient.strip().lower()}"

    def get_limits(self, channel: NotificationChannel | str) -> ChannelRateLimitConfig:
        return self.config.for_channel(self._channel_name(channel))

    async def check_rate_limit(
        self, channel: NotificationChannel | str, recipient: str
    ) -> RateLimitDecision:
        """Check and, when allowed, record a request for (channel, recipient).

        Limits are evaluated in precedence order: burst, per minute, per
        hour, per day. The first violated limit determines the rejection.

        Args:
            channel: Delivery channel
            recipient: Recipient identifier (case-insensitive)

        Returns:
            RateLimitDecision with the rejection reason and retry_after_ms
        """
        channel_name = self._channel_name(channel)
        key = self.build_key(channel_name, recipient)
        limits = self.get_limits(channel_name)

        async with self.store.lock_for(key):
            now = self._clock()
            context = self.store.get_or_create(key, channel_name, now)
            context.prune(now)

            if now - context.last_burst_reset >= MINUTE_SECONDS:
                context.burst_count = 0
                context.last_burst_reset = now

            checks = (
                (context.burst_count, limits.burst, "Burst limit exceeded", MINUTE_SECONDS),
                (
                    context.count_since(now - MINUTE_SECONDS),
                    limits.per_minute,
                    "Per-minute limit exceeded",
                    MINUTE_SECONDS,
                ),
                (
                    context.count_since(now - HOUR_SECONDS),
                    limits.per_hour,
                    "Per-hour limit exceeded",
                    HOUR_SECONDS,
                ),
                (len(context.timestamps), limits.per_day, "Per-day limit exceeded", DAY_SECONDS),
            )
            for current, limit, reason, window in checks:
                if current >= limit:
                    logger.warning(
                        "Rate limit exceeded",
                        key=key,
                        reason=reason,
                        current=current,
                        limit=limit,
                    )
                    return RateLimitDecision.reject(reason, window * 1000)

            await self.store.record(context, now)

        return RateLimitDecision.accept()

    def record_success(self, channel: NotificationChannel | str, recipient: str) -> None:
        context = self.store.get(self.build_key(channel, recipient))
        logger.debug(
            "Delivery recorded for rate limited key",
            key=self.build_key(channel, recipient),
            requests_last_day=len(context.timestamps) if context else 0,
        )

    def get_usage_statistics(self) -> dict[str, Any]:
        """Summarize tracked keys: total, recently active, and per channel."""
        now = self._clock()
        contexts = self.store.contexts()
        active = [
            c
            for c in contexts
            if c.last_request_at is not None
            and c.last_request_at > now - ACTIVE_WINDOW_SECONDS
        ]
        return {
            "total_contexts": len(contexts),
            "active_contexts": len(active),
            "by_channel": dict(Counter(c.channel for c in contexts)),
        }

    def clear_limit(self, channel: NotificationChannel | str, recipient: str) -> bool:
        key = self.build_key(channel, recipient)
        removed = self.store.remove(key)
        logger.info("Rate limit cleared", key=key, removed=removed)
        return removed

    def clear_all_limits(self) -> None:
        self.store.clear()
        logger.info("All rate limits cleared")

    def cleanup_inactive(self) -> int:
        """Remove contexts with no accepted request in the last hour.

        Returns:
            Number of contexts removed
        """
        threshold = self._clock() - INACTIVITY_SECONDS
        removed = 0
        for context in self.store.contexts():
            last = context.last_request_at
            if (last is None or last < threshold) and self.store.remove(context.key):
                removed += 1

        if removed:
            logger.debug(
                "Inactive rate limit contexts removed",
                removed=removed,
                remaining=len(self.store),
            )
        return removed

    async def _cleanup_loop(self) -> None:
        interval = self.config.cleanup_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            self.cleanup_inactive()

    def start(self) -> None:
        """Start the periodic sweep of inactive contexts."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(
                self._cleanup_loop(), name="rate-limit-cleanup"
            )

    async def stop(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None
