"""Retry tracking for failed notification dispatches.

Each failed notification gets a context that walks the state machine
pending -> retrying -> success | failed. The service owns no timer: a caller
polls `get_ready_for_retry` and reports the outcome of each attempt.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from notifier.core.config import RetryPolicyConfig
from notifier.core.logging import get_logger
from notifier.modules.notification.domain.enums import (
    DispatchStatus,
    NotificationChannel,
    RetryStatus,
)
from notifier.modules.notification.domain.errors import RetryContextNotFoundError
from notifier.modules.notification.domain.value_objects import DispatchResult

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RetryAttempt:
    """One entry of a context's attempt log."""

    number: int
    timestamp: datetime
    result: DispatchResult


@dataclass
class RetryContext:
    """Retry state for a single notification dispatch."""

    id: str
    channel: NotificationChannel
    recipient: str
    payload: Any
    created_at: datetime
    attempts: list[RetryAttempt] = field(default_factory=list)
    status: RetryStatus = RetryStatus.PENDING
    next_retry_at: datetime | None = None

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def last_error(self) -> str | None:
        return self.attempts[-1].result.error if self.attempts else None

    def transition(self, status: RetryStatus) -> None:
        if not self.status.can_transition_to(status):
            raise ValueError(
                f"Invalid retry transition {self.status.value} -> {status.value}"
            )
        self.status = status


class RetryService:
    """Exponential backoff bookkeeping for failed dispatches."""

    def __init__(
        self,
        policy: RetryPolicyConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize retry service.

        Args:
            policy: Attempt budget and backoff parameters
            clock: Time source, injectable for tests
        """
        self.policy = policy or RetryPolicyConfig()
        self._clock = clock
        self._contexts: dict[str, RetryContext] = {}

    def calculate_delay(self, attempt: int) -> int:
        """Delay in milliseconds before the retry that follows `attempt`."""
        delay = self.policy.initial_delay_ms * (
            self.policy.backoff_multiplier ** (attempt - 1)
        )
        return int(min(delay, self.policy.max_delay_ms))

    def _schedule_or_seal(self, context: RetryContext) -> None:
        if context.attempt_count < self.policy.max_attempts:
            delay_ms = self.calculate_delay(context.attempt_count)
            context.transition(RetryStatus.RETRYING)
            context.next_retry_at = self._clock() + timedelta(milliseconds=delay_ms)
            logger.info(
                "Retry scheduled",
                notification_id=context.id,
                channel=context.channel.value,
                attempt=context.attempt_count,
                delay_ms=delay_ms,
            )
        else:
            context.transition(RetryStatus.FAILED)
            context.next_retry_at = None
            logger.warning(
                "Retry attempts exhausted",
                notification_id=context.id,
                channel=context.channel.value,
                attempts=context.attempt_count,
                last_error=context.last_error,
            )

    def register_failure(
        self,
        notification_id: str,
        channel: NotificationChannel,
        recipient: str,
        payload: Any,
        result: DispatchResult,
    ) -> RetryContext:
        """Open a retry context for a notification that just failed.

        Args:
            notification_id: Identifier of the failed dispatch
            channel: Channel the dispatch went through
            recipient: Recipient identifier
            payload: Whatever the caller needs to replay the dispatch
            result: The failed dispatch result

        Returns:
            The new context, either retrying or already failed
        """
        now = self._clock()
        context = RetryContext(
            id=notification_id,
            channel=channel,
            recipient=recipient,
            payload=payload,
            created_at=now,
            attempts=[RetryAttempt(number=1, timestamp=now, result=result)],
        )
        self._contexts[notification_id] = context
        self._schedule_or_seal(context)
        return context

    def register_retry_attempt(
        self, notification_id: str, result: DispatchResult
    ) -> RetryContext:
        """Record the outcome of a retry attempt.

        A SENT result completes the context and discards it. A failure marked
        non-retryable seals the context as failed. Any other result schedules
        the next attempt or seals the context once the budget is spent.

        Raises:
            RetryContextNotFoundError: If no context exists for the id
        """
        context = self._contexts.get(notification_id)
        if context is None:
            raise RetryContextNotFoundError(notification_id)

        if context.status.is_terminal():
            logger.warning(
                "Retry attempt ignored for terminal context",
                notification_id=notification_id,
                status=context.status.value,
            )
            return context

        context.attempts.append(
            RetryAttempt(
                number=context.attempt_count + 1,
                timestamp=self._clock(),
                result=result,
            )
        )

        if result.status == DispatchStatus.SENT:
            context.transition(RetryStatus.SUCCESS)
            context.next_retry_at = None
            del self._contexts[notification_id]
            logger.info(
                "Retry succeeded",
                notification_id=notification_id,
                attempts=context.attempt_count,
            )
            return context

        if result.metadata.get("retryable") is False:
            context.transition(RetryStatus.FAILED)
            context.next_retry_at = None
            logger.warning(
                "Retry stopped on permanent failure",
                notification_id=notification_id,
                channel=context.channel.value,
                attempts=context.attempt_count,
                last_error=result.error,
            )
            return context

        self._schedule_or_seal(context)
        return context

    def get_ready_for_retry(self) -> list[RetryContext]:
        now = self._clock()
        return [
            context
            for context in self._contexts.values()
            if context.status == RetryStatus.RETRYING
            and context.next_retry_at is not None
            and context.next_retry_at <= now
        ]

    def get_retry_context(self, notification_id: str) -> RetryContext | None:
        return self._contexts.get(notification_id)

    def get_all_contexts(self) -> list[RetryContext]:
        return list(self._contexts.values())

    def remove_context(self, notification_id: str) -> bool:
        return self._contexts.pop(notification_id, None) is not None

    def get_statistics(self) -> dict[str, int]:
        stats = {status.value: 0 for status in RetryStatus}
        for context in self._contexts.values():
            stats[context.status.value] += 1
        stats["total"] = len(self._contexts)
        return stats

    def cleanup_old_contexts(self, older_than_hours: int = 24) -> int:
        """Purge terminal contexts created before the horizon.

        Returns:
            Number of contexts removed
        """
        cutoff = self._clock() - timedelta(hours=older_than_hours)
        stale = [
            context_id
            for context_id, context in self._contexts.items()
            if context.status.is_terminal() and context.created_at < cutoff
        ]
        for context_id in stale:
            del self._contexts[context_id]

        if stale:
            logger.info("Old retry contexts removed", removed=len(stale))
        return len(stale)
