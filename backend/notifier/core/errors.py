"""Error hierarchy shared by every notifier layer.

Errors are grouped by layer (domain, application, infrastructure). Each class
declares the HTTP-style status an outer surface would map it to, a severity
that selects the log level, and whether the failed operation may be retried.
"""

import logging
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

REDACTED = "***REDACTED***"
SENSITIVE_DETAIL_MARKERS = ("password", "token", "secret", "key", "credential", "authorization")


class ErrorSeverity(Enum):
    """Error severity levels, mapped onto standard log levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return {
            ErrorSeverity.LOW: logging.INFO,
            ErrorSeverity.MEDIUM: logging.WARNING,
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL,
        }[self]


def redact_details(details: dict[str, Any]) -> dict[str, Any]:
    """Copy error details with credential-like keys masked at any depth."""
    redacted = {}
    for key, value in details.items():
        if any(marker in key.lower() for marker in SENSITIVE_DETAIL_MARKERS):
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = redact_details(value)
        else:
            redacted[key] = value
    return redacted


class NotifierError(Exception):
    """
    Base exception for all notifier errors.

    `message` is the internal description; `user_message` is what an outer
    surface may show. Every instance is logged once, at the level its
    severity maps to, with its details redacted.
    """

    default_code: str = "ERROR"
    status_code: int = 500
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = dict(details or {})
        self.user_message = user_message or message
        self.recovery_hint = recovery_hint
        self.error_id = uuid.uuid4().hex
        self.occurred_at = datetime.now(UTC)

        logging.getLogger(f"notifier.errors.{type(self).__name__}").log(
            self.severity.log_level,
            "%s: %s",
            self.code,
            message,
            extra={"error_id": self.error_id, "details": redact_details(self.details)},
        )

    def to_dict(
        self, include_details: bool = True, include_internal: bool = False
    ) -> dict[str, Any]:
        """
        Serialize the error for an API response or an audit record.

        Args:
            include_details: Include redacted error details
            include_internal: Include error_id, severity and the internal message
        """
        data: dict[str, Any] = {
            "error": self.code,
            "message": self.user_message,
            "occurred_at": self.occurred_at.isoformat(),
        }
        if include_details and self.details:
            data["details"] = redact_details(self.details)
        if self.recovery_hint:
            data["recovery_hint"] = self.recovery_hint
        if self.retryable:
            data["retryable"] = True
        if include_internal:
            data["error_id"] = self.error_id
            data["severity"] = self.severity.value
            data["internal_message"] = self.message
        return data

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class DomainError(NotifierError):
    """Business rule violation inside a domain module."""

    default_code = "DOMAIN_ERROR"
    status_code = 400


class ApplicationError(NotifierError):
    """Rejected request at the application service boundary."""

    default_code = "APPLICATION_ERROR"
    status_code = 400


class InfrastructureError(NotifierError):
    """Failure of a provider, store or runtime resource."""

    default_code = "INFRASTRUCTURE_ERROR"
    severity = ErrorSeverity.HIGH
    retryable = True


class ValidationError(ApplicationError):
    """Input rejected, with the offending fields keyed by dotted path."""

    default_code = "VALIDATION_ERROR"
    status_code = 422
    severity = ErrorSeverity.LOW

    def __init__(
        self,
        message: str,
        field: str | None = None,
        field_errors: dict[str, list[str]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field_errors = dict(field_errors or {})
        if field:
            self.details["field"] = field
        if self.field_errors:
            self.details["field_errors"] = self.field_errors

    @classmethod
    def from_fields(cls, field_errors: dict[str, list[str]], **kwargs: Any) -> "ValidationError":
        total = sum(len(errors) for errors in field_errors.values())
        return cls(
            f"Validation failed for {len(field_errors)} field(s) with {total} error(s)",
            field_errors=field_errors,
            **kwargs,
        )


class NotFoundError(ApplicationError):
    """A referenced resource does not exist."""

    default_code = "NOT_FOUND"
    status_code = 404
    severity = ErrorSeverity.LOW

    def __init__(self, resource: str, identifier: Any, **kwargs: Any) -> None:
        kwargs.setdefault("user_message", f"The requested {resource.lower()} was not found")
        super().__init__(f"{resource} not found: {identifier}", **kwargs)
        self.details["resource"] = resource
        self.details["identifier"] = str(identifier)


class ConflictError(ApplicationError):
    """The request clashes with the current state of a resource."""

    default_code = "CONFLICT"
    status_code = 409

    def __init__(self, message: str, resource: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if resource:
            self.details["resource"] = resource


class ConfigurationError(InfrastructureError):
    """Missing or invalid setting; fixing it needs a redeploy, not a retry."""

    default_code = "CONFIGURATION_ERROR"
    severity = ErrorSeverity.CRITICAL
    retryable = False

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("user_message", "Service configuration issue")
        super().__init__(message, **kwargs)
        if config_key:
            self.details["config_key"] = config_key


class OperationTimeoutError(InfrastructureError):
    """An awaited operation exceeded its time budget."""

    default_code = "TIMEOUT"
    status_code = 504

    def __init__(self, operation: str, timeout_seconds: float, **kwargs: Any) -> None:
        kwargs.setdefault("user_message", "The operation took too long to complete")
        super().__init__(f"{operation} timed out after {timeout_seconds}s", **kwargs)
        self.details["operation"] = operation
        self.details["timeout_seconds"] = timeout_seconds


__all__ = [
    "ApplicationError",
    "ConfigurationError",
    "ConflictError",
    "DomainError",
    "ErrorSeverity",
    "InfrastructureError",
    "NotFoundError",
    "NotifierError",
    "OperationTimeoutError",
    "ValidationError",
    "redact_details",
]
