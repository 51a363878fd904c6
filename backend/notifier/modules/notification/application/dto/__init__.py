"""Notification application DTOs.

This module contains Data Transfer Objects returned by the notification
application services.
"""

from dataclasses import dataclass, field
from typing import Any

from notifier.modules.notification.domain.enums import NotificationChannel


@dataclass(frozen=True)
class EnqueueResult:
    """DTO for an accepted event notification."""

    job_id: str
    event_key: str


@dataclass(frozen=True)
class ChannelResult:
    """DTO for the outcome of one channel of an event."""

    channel: NotificationChannel
    success: bool
    external_id: str | None = None
    error: str | None = None
    retry_after_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.value,
            "success": self.success,
            "external_id": self.external_id,
            "error": self.error,
            "retry_after_ms": self.retry_after_ms,
        }


@dataclass(frozen=True)
class JobResult:
    """DTO for a processed event, aggregated over its channels."""

    event_key: str
    total_channels: int
    success_count: int
    failure_count: int
    channel_results: list[ChannelResult] = field(default_factory=list)

    @property
    def any_success(self) -> bool:
        return self.success_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_key": self.event_key,
            "total_channels": self.total_channels,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "channel_results": [result.to_dict() for result in self.channel_results],
        }


@dataclass(frozen=True)
class QueueStatistics:
    """DTO for queue job counts."""

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0

    @classmethod
    def from_counts(cls, counts: dict[str, int]) -> "QueueStatistics":
        return cls(**{name: counts.get(name, 0) for name in cls.__dataclass_fields__})

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed + self.delayed


@dataclass(frozen=True)
class TemplateValidationResult:
    """DTO for template validation against an event's variables."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    used_variables: list[str] = field(default_factory=list)
    available_variables: list[str] = field(default_factory=list)


__all__ = [
    "ChannelResult",
    "EnqueueResult",
    "JobResult",
    "QueueStatistics",
    "TemplateValidationResult",
]
