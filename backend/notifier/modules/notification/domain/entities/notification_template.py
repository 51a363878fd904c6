"""NotificationTemplate entity.

A template is identified by its (event key, channel) pair. Its content is
decoded into header directives and a body template once, whenever the
content is set, so dispatch never has to re-parse the raw text.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from notifier.core.errors import ValidationError
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.value_objects import ParsedTemplate

EVENT_KEY_MIN_LENGTH = 3
EVENT_KEY_MAX_LENGTH = 100
TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
CONTENT_MIN_LENGTH = 10
CONTENT_MAX_LENGTH = 10000


def normalize_event_key(event_key: str) -> str:
    """Event keys are stored trimmed and upper-cased."""
    return event_key.strip().upper()


class NotificationTemplate:
    """Channel specific template for a business event."""

    def __init__(
        self,
        event_key: str,
        channel: NotificationChannel,
        title: str,
        content: str,
        is_active: bool = True,
        created_by: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        entity_id: str | None = None,
        validate: bool = True,
    ):
        """Initialize notification template.

        Args:
            event_key: Business event that triggers this template
            channel: Delivery channel the template is written for
            title: Human readable title
            content: Template markup, optionally prefixed by a header
            is_active: Inactive templates are ignored by the processor
            created_by: Id of the user that created the template
            created_at: Creation time, defaults to now
            updated_at: Last update time, defaults to created_at
            entity_id: Optional entity ID
            validate: Skip length checks for synthesized default templates
        """
        self.id = entity_id or str(uuid4())
        self.event_key = normalize_event_key(event_key)
        self.channel = channel
        self._validate = validate
        self.title = self._validate_title(title)
        self.content = content
        self.is_active = is_active
        self.created_by = created_by
        self.created_at = created_at or datetime.now(UTC)
        self.updated_at = updated_at or self.created_at

        if validate:
            self._validate_event_key(self.event_key)

    @property
    def key(self) -> tuple[str, NotificationChannel]:
        return self.event_key, self.channel

    @property
    def content(self) -> str:
        return self._content

    @content.setter
    def content(self, value: str) -> None:
        if self._validate:
            value = self._validate_content(value)
        self._content = value
        self.parsed = ParsedTemplate.parse(value)

    def update(
        self,
        title: str | None = None,
        content: str | None = None,
        is_active: bool | None = None,
    ) -> None:
        """Apply a partial update and bump updated_at."""
        if title is not None:
            self.title = self._validate_title(title)
        if content is not None:
            self.content = content
        if is_active is not None:
            self.is_active = is_active
        self.updated_at = datetime.now(UTC)

    def toggle(self) -> bool:
        self.is_active = not self.is_active
        self.updated_at = datetime.now(UTC)
        return self.is_active

    def _validate_event_key(self, event_key: str) -> None:
        if not EVENT_KEY_MIN_LENGTH <= len(event_key) <= EVENT_KEY_MAX_LENGTH:
            raise ValidationError(
                f"Event key must have between {EVENT_KEY_MIN_LENGTH} and "
                f"{EVENT_KEY_MAX_LENGTH} characters",
                field="event_key",
            )

    def _validate_title(self, title: str) -> str:
        title = (title or "").strip()
        if self._validate and not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Title must have between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters",
                field="title",
            )
        return title

    def _validate_content(self, content: str) -> str:
        if not CONTENT_MIN_LENGTH <= len((content or "").strip()) <= CONTENT_MAX_LENGTH:
            raise ValidationError(
                f"Content must have between {CONTENT_MIN_LENGTH} and "
                f"{CONTENT_MAX_LENGTH} characters",
                field="content",
            )
        return content

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_key": self.event_key,
            "channel": self.channel.value,
            "title": self.title,
            "content": self.content,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"NotificationTemplate(event_key={self.event_key!r}, "
            f"channel={self.channel.value}, is_active={self.is_active})"
        )
