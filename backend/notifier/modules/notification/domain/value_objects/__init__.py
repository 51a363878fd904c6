"""Notification domain value objects.

Immutable values passed between the pipeline stages: the recipient and event
payload, the decoded template header, the rendered message handed to a
dispatcher, and the normalized dispatch and rate limit outcomes.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from notifier.modules.notification.domain.enums import (
    DispatchStatus,
    NotificationCategory,
)

HEADER_SENTINEL = "---"
_DIRECTIVE_PATTERN = re.compile(r"^([A-Za-z][A-Za-z0-9_-]*)\s*:\s?(.*)$")


@dataclass(frozen=True)
class Recipient:
    """The person a notification is delivered to."""

    id: str
    name: str
    email: str
    external_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "externalId": self.external_id,
        }


@dataclass(frozen=True)
class NotificationPayload:
    """Everything a dispatcher needs to know about the event being delivered."""

    event: str
    timestamp: str
    recipient: Recipient
    data: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)
    category: NotificationCategory = NotificationCategory.EVENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "category": self.category.value,
            "timestamp": self.timestamp,
            "recipient": self.recipient.to_dict(),
            "data": self.data,
            "meta": self.meta,
        }


@dataclass(frozen=True)
class MessageHeader:
    """
    Provider directives carried at the top of a template.

    Keys are normalized to upper case. Channel specific accessors return
    None when the directive is absent so dispatchers can apply defaults.
    """

    directives: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        normalized = {key.upper(): value for key, value in self.directives.items()}
        object.__setattr__(self, "directives", MappingProxyType(normalized))

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self.directives.get(key.upper())
        return value if value else default

    # Email
    @property
    def subject(self) -> str | None:
        return self.get("SUBJECT")

    @property
    def sender(self) -> str | None:
        return self.get("FROM")

    @property
    def reply_to(self) -> str | None:
        return self.get("REPLY-TO")

    # Push
    @property
    def title(self) -> str | None:
        return self.get("TITLE")

    @property
    def icon(self) -> str | None:
        return self.get("ICON")

    @property
    def badge(self) -> str | None:
        return self.get("BADGE")

    @property
    def sound(self) -> str | None:
        return self.get("SOUND")

    @property
    def body(self) -> str | None:
        return self.get("BODY")

    # Realtime
    @property
    def channel(self) -> str | None:
        return self.get("CHANNEL")

    @property
    def event(self) -> str | None:
        return self.get("EVENT")

    def __bool__(self) -> bool:
        return bool(self.directives)


@dataclass(frozen=True)
class ParsedTemplate:
    """Template content split into its header directives and body template."""

    header: MessageHeader
    body: str

    @classmethod
    def parse(cls, content: str) -> "ParsedTemplate":
        """
        Split `KEY: value` lines above a `---` sentinel from the body.

        Content without a sentinel line has no header; all of it is body.
        Lines above the sentinel that are not directives are ignored.
        """
        lines = content.splitlines()
        sentinel_index = next(
            (i for i, line in enumerate(lines) if line.strip() == HEADER_SENTINEL),
            None,
        )
        if sentinel_index is None:
            return cls(header=MessageHeader(), body=content.strip())

        directives: dict[str, str] = {}
        for line in lines[:sentinel_index]:
            match = _DIRECTIVE_PATTERN.match(line.strip())
            if match:
                directives[match.group(1)] = match.group(2).strip()

        body = "\n".join(lines[sentinel_index + 1 :]).strip()
        return cls(header=MessageHeader(directives), body=body)


@dataclass(frozen=True)
class RenderedMessage:
    """A template after rendering: resolved header directives plus body text."""

    header: MessageHeader
    body: str

    @classmethod
    def from_text(cls, text: str) -> "RenderedMessage":
        parsed = ParsedTemplate.parse(text)
        return cls(header=parsed.header, body=parsed.body)


@dataclass(frozen=True)
class DispatchResult:
    """Normalized outcome of a dispatcher call."""

    status: DispatchStatus
    external_id: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    sent_at: datetime | None = None

    @classmethod
    def sent(
        cls, external_id: str | None = None, metadata: dict[str, Any] | None = None
    ) -> "DispatchResult":
        return cls(
            status=DispatchStatus.SENT,
            external_id=external_id,
            metadata=metadata or {},
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def failed(
        cls, error: str, metadata: dict[str, Any] | None = None
    ) -> "DispatchResult":
        return cls(status=DispatchStatus.FAILED, error=error, metadata=metadata or {})

    @property
    def is_success(self) -> bool:
        return self.status.is_successful()


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check."""

    allowed: bool
    reason: str | None = None
    retry_after_ms: int | None = None

    @classmethod
    def accept(cls) -> "RateLimitDecision":
        return cls(allowed=True)

    @classmethod
    def reject(cls, reason: str, retry_after_ms: int) -> "RateLimitDecision":
        return cls(allowed=False, reason=reason, retry_after_ms=retry_after_ms)


__all__ = [
    "HEADER_SENTINEL",
    "DispatchResult",
    "MessageHeader",
    "NotificationPayload",
    "ParsedTemplate",
    "RateLimitDecision",
    "Recipient",
    "RenderedMessage",
]
