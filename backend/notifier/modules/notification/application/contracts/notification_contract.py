"""
Notification Module Public Contract

Request models accepted at the boundary of the notification module. Callers
submit plain dictionaries; these models validate and normalize them before
anything is queued or persisted.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from notifier.modules.notification.domain.entities.notification_template import (
    CONTENT_MAX_LENGTH,
    CONTENT_MIN_LENGTH,
    EVENT_KEY_MAX_LENGTH,
    EVENT_KEY_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
)
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.value_objects import (
    NotificationPayload,
    Recipient,
)


class ContractModel(BaseModel):
    """Base class for notification request models."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_default=True,
    )


def field_errors_from(error: ValidationError) -> dict[str, list[str]]:
    """Flatten a pydantic error into `{"dotted.path": [messages]}`."""
    errors: dict[str, list[str]] = {}
    for item in error.errors():
        path = ".".join(str(part) for part in item["loc"]) or "__root__"
        errors.setdefault(path, []).append(item["msg"])
    return errors


class RecipientContract(ContractModel):
    """Recipient of an event notification."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    external_id: str | None = Field(default=None, alias="externalId")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        local, _, domain = value.partition("@")
        if not local or not domain:
            raise ValueError("value is not a valid email address")
        return value

    def to_recipient(self) -> Recipient:
        return Recipient(
            id=self.id, name=self.name, email=self.email, external_id=self.external_id
        )


class EnqueueNotificationRequest(ContractModel):
    """Event payload submitted for delivery."""

    event_key: str = Field(alias="eventKey", min_length=1)
    timestamp: str = Field(min_length=1)
    recipient: RecipientContract
    data: dict[str, Any]
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("event_key")
    @classmethod
    def normalize_event_key(cls, value: str) -> str:
        return value.upper()

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def to_payload(self) -> NotificationPayload:
        return NotificationPayload(
            event=self.event_key,
            timestamp=self.timestamp,
            recipient=self.recipient.to_recipient(),
            data=dict(self.data),
            meta=dict(self.meta),
        )

    def to_job_data(self) -> dict[str, Any]:
        """JSON-friendly job data, shaped like the incoming payload."""
        return self.model_dump(by_alias=True)


class CreateTemplateRequest(ContractModel):
    """Request to create a channel template for an event."""

    event_key: str = Field(
        alias="eventKey",
        min_length=EVENT_KEY_MIN_LENGTH,
        max_length=EVENT_KEY_MAX_LENGTH,
    )
    channel: NotificationChannel
    title: str = Field(min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=CONTENT_MIN_LENGTH, max_length=CONTENT_MAX_LENGTH)
    is_active: bool = Field(default=True, alias="isActive")
    created_by: str | None = Field(default=None, alias="createdBy")

    @field_validator("event_key")
    @classmethod
    def normalize_event_key(cls, value: str) -> str:
        return value.upper()

    @field_validator("channel", mode="before")
    @classmethod
    def parse_channel(cls, value: Any) -> Any:
        if isinstance(value, str):
            return NotificationChannel.from_string(value)
        return value


class UpdateTemplateRequest(ContractModel):
    """Partial template update; omitted fields are left unchanged."""

    title: str | None = Field(
        default=None, min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH
    )
    content: str | None = Field(
        default=None, min_length=CONTENT_MIN_LENGTH, max_length=CONTENT_MAX_LENGTH
    )
    is_active: bool | None = Field(default=None, alias="isActive")


class TemplateFilters(ContractModel):
    """Filters for listing templates."""

    event_key: str | None = Field(default=None, alias="eventKey")
    channel: NotificationChannel | None = None
    is_active: bool | None = Field(default=None, alias="isActive")

    @field_validator("event_key")
    @classmethod
    def normalize_event_key(cls, value: str | None) -> str | None:
        return value.upper() if value else None

    @field_validator("channel", mode="before")
    @classmethod
    def parse_channel(cls, value: Any) -> Any:
        if isinstance(value, str):
            return NotificationChannel.from_string(value)
        return value
