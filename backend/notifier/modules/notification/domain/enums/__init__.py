"""Notification domain enums.

Type-safe constants for delivery channels, dispatch and retry statuses, queue
job states and audit actions.
"""

from enum import Enum


class NotificationChannel(Enum):
    """Available notification delivery channels."""

    EMAIL = "EMAIL"
    PUSH = "PUSH"
    REALTIME = "REALTIME"

    @classmethod
    def from_string(cls, value: str) -> "NotificationChannel":
        """Resolve a channel from its name, case-insensitively."""
        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError) as e:
            raise ValueError(f"Unknown notification channel: {value}") from e

    def is_external(self) -> bool:
        """Check if this channel requires a third-party provider."""
        return self in (NotificationChannel.EMAIL, NotificationChannel.PUSH)

    def default_timeout_seconds(self) -> float:
        """Get the default dispatch timeout for this channel."""
        timeouts = {
            NotificationChannel.EMAIL: 30.0,
            NotificationChannel.PUSH: 10.0,
            NotificationChannel.REALTIME: 5.0,
        }
        return timeouts[self]

    @property
    def config_key(self) -> str:
        """Lower-case key used in configuration and rate limit keys."""
        return self.value.lower()


class NotificationCategory(Enum):
    """Business category of a notification."""

    SYSTEM = "SYSTEM"
    AUTH = "AUTH"
    LEADS = "LEADS"
    MARKETING = "MARKETING"
    ADMIN = "ADMIN"
    EVENT = "EVENT"


class DispatchStatus(Enum):
    """Outcome status of a single dispatch."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SENT = "SENT"
    FAILED = "FAILED"
    RETRYING = "RETRYING"

    def is_final(self) -> bool:
        """Check if this is a final status (no further processing needed)."""
        return self in (DispatchStatus.SENT, DispatchStatus.FAILED)

    def is_successful(self) -> bool:
        return self == DispatchStatus.SENT

    def can_transition_to(self, new_status: "DispatchStatus") -> bool:
        """Check if transition to new status is valid."""
        valid_transitions: dict[DispatchStatus, list[DispatchStatus]] = {
            DispatchStatus.PENDING: [DispatchStatus.PROCESSING, DispatchStatus.FAILED],
            DispatchStatus.PROCESSING: [DispatchStatus.SENT, DispatchStatus.FAILED],
            DispatchStatus.FAILED: [DispatchStatus.RETRYING],
            DispatchStatus.RETRYING: [DispatchStatus.SENT, DispatchStatus.FAILED],
            DispatchStatus.SENT: [],
        }
        return new_status in valid_transitions.get(self, [])


class RetryStatus(Enum):
    """Lifecycle of a retry context: pending -> retrying -> success | failed."""

    PENDING = "pending"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (RetryStatus.SUCCESS, RetryStatus.FAILED)

    def can_transition_to(self, new_status: "RetryStatus") -> bool:
        """Transitions only move forward."""
        valid_transitions: dict[RetryStatus, list[RetryStatus]] = {
            RetryStatus.PENDING: [
                RetryStatus.RETRYING,
                RetryStatus.SUCCESS,
                RetryStatus.FAILED,
            ],
            RetryStatus.RETRYING: [
                RetryStatus.RETRYING,
                RetryStatus.SUCCESS,
                RetryStatus.FAILED,
            ],
            RetryStatus.SUCCESS: [],
            RetryStatus.FAILED: [],
        }
        return new_status in valid_transitions[self]


class JobStatus(Enum):
    """State of a job in the notification queue."""

    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"

    def is_finished(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class AuditAction(Enum):
    """Actions reported to the audit collaborator."""

    NOTIFICATION_SENT = "NOTIFICATION_SENT"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"
    TEMPLATE_CREATED = "TEMPLATE_CREATED"
    TEMPLATE_UPDATED = "TEMPLATE_UPDATED"
    TEMPLATE_DELETED = "TEMPLATE_DELETED"


__all__ = [
    "AuditAction",
    "DispatchStatus",
    "JobStatus",
    "NotificationCategory",
    "NotificationChannel",
    "RetryStatus",
]
