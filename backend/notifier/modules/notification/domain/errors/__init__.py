"""Notification domain errors.

Domain-specific exceptions for template management, rendering, dispatch and
retry tracking.
"""

from typing import Any

from notifier.core.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)


class NotificationError(DomainError):
    """Base error for notification domain."""

    default_code = "NOTIFICATION_ERROR"


class TemplateNotFoundError(NotFoundError):
    """Raised when no template exists for an (event key, channel) pair."""

    def __init__(self, event_key: str, channel: str, **kwargs):
        super().__init__(
            resource="NotificationTemplate",
            identifier=f"{event_key}/{channel}",
            **kwargs,
        )
        self.details.update({"event_key": event_key, "channel": channel})


class DuplicateTemplateError(ConflictError):
    """Raised when a template already exists for an (event key, channel) pair."""

    default_code = "DUPLICATE_TEMPLATE"

    def __init__(self, event_key: str, channel: str, **kwargs):
        super().__init__(
            f"Template already exists for event '{event_key}' on channel {channel}",
            resource="NotificationTemplate",
            details={"event_key": event_key, "channel": channel},
            **kwargs,
        )


class InvalidTemplateError(ValidationError):
    """Raised when template content fails validation."""

    default_code = "INVALID_TEMPLATE"

    def __init__(
        self,
        event_key: str,
        errors: list[str],
        used_variables: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(
            f"Invalid template: {', '.join(errors)}",
            field="content",
            details={
                "event_key": event_key,
                "errors": list(errors),
                "used_variables": list(used_variables or []),
            },
            **kwargs,
        )
        self.errors = list(errors)


class TemplateRenderingError(NotificationError):
    """Raised when a template cannot be rendered (syntax or runtime error)."""

    default_code = "TEMPLATE_RENDERING_FAILED"

    def __init__(self, reason: str, template_excerpt: str | None = None, **kwargs):
        super().__init__(
            f"Template rendering failed: {reason}",
            details={"reason": reason, "template_excerpt": template_excerpt},
            **kwargs,
        )
        self.reason = reason


class InvalidPayloadError(ValidationError):
    """Raised when an event payload is rejected before enqueueing."""

    default_code = "INVALID_NOTIFICATION_PAYLOAD"

    @classmethod
    def from_fields(
        cls, field_errors: dict[str, list[str]], **kwargs: Any
    ) -> "InvalidPayloadError":
        fields = ", ".join(sorted(field_errors))
        return cls(f"Invalid notification payload: {fields}", field_errors=field_errors, **kwargs)


class UnsupportedChannelError(NotificationError):
    """Raised when no dispatcher is registered for a channel."""

    default_code = "UNSUPPORTED_CHANNEL"

    def __init__(self, channel: Any, **kwargs):
        name = getattr(channel, "value", channel)
        super().__init__(
            f"Unsupported notification channel: {name}",
            details={"channel": str(name)},
            user_message=f"The {name} channel is not supported.",
            **kwargs,
        )


class RetryContextNotFoundError(NotFoundError):
    """Raised when a retry attempt is registered for an unknown notification."""

    def __init__(self, notification_id: str, **kwargs):
        super().__init__(resource="RetryContext", identifier=notification_id, **kwargs)


__all__ = [
    "DuplicateTemplateError",
    "InvalidPayloadError",
    "InvalidTemplateError",
    "NotificationError",
    "RetryContextNotFoundError",
    "TemplateNotFoundError",
    "TemplateRenderingError",
    "UnsupportedChannelError",
]
