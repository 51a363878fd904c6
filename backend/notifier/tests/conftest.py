"""Pytest configuration and fixtures shared by the notifier tests.

Provides:
- Controllable clocks for time based services
- Event payload test data
- In-memory collaborators and a scriptable channel dispatcher
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from notifier.core.config import QueueConfig, RateLimitConfig, RetryPolicyConfig
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.value_objects import (
    DispatchResult,
    NotificationPayload,
    Recipient,
    RenderedMessage,
)
from notifier.modules.notification.infrastructure.adapters import (
    BaseChannelDispatcher,
    DispatcherFactory,
)
from notifier.modules.notification.infrastructure.engines.jinja_engine import (
    JinjaTemplateRenderer,
)
from notifier.modules.notification.infrastructure.repositories import (
    InMemoryNotificationTemplateRepository,
)
from notifier.modules.notification.infrastructure.services.audit_service import (
    InMemoryAuditService,
)
from notifier.modules.notification.infrastructure.services.rate_limiting_service import (
    RateLimitingService,
)
from notifier.modules.notification.infrastructure.services.retry_service import (
    RetryService,
)

# ============================================================================
# Test Helpers
# ============================================================================


class FakeClock:
    """Epoch seconds clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDateTimeClock:
    """Aware datetime clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class ScriptedDispatcher(BaseChannelDispatcher):
    """Dispatcher returning queued results and recording every call."""

    not_configured_message = "Scripted provider not configured"

    def __init__(
        self,
        channel: NotificationChannel,
        results: list[DispatchResult] | None = None,
        configured: bool = True,
        delay_seconds: float = 0.0,
    ):
        self.channel = channel
        super().__init__(timeout_seconds=5.0)
        self.results = list(results or [])
        self.configured = configured
        self.delay_seconds = delay_seconds
        self.calls: list[tuple[RenderedMessage, NotificationPayload]] = []

    @property
    def provider(self) -> str:
        return "scripted"

    def is_configured(self) -> bool:
        return self.configured

    async def _deliver(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        self.calls.append((message, payload))
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.results:
            return self.results.pop(0)
        return DispatchResult.sent(
            external_id=f"{self.channel.value.lower()}-{len(self.calls)}",
            metadata={"provider": self.provider},
        )


# ============================================================================
# Clocks
# ============================================================================


@pytest.fixture
def clock():
    """Controllable epoch clock."""
    return FakeClock()


@pytest.fixture
def datetime_clock():
    """Controllable datetime clock."""
    return FakeDateTimeClock()


# ============================================================================
# Event Payload Data
# ============================================================================


@pytest.fixture
def recipient_data() -> dict[str, Any]:
    """Recipient as submitted by callers."""
    return {"id": "user-123", "name": "Jane Doe", "email": "jane.doe@example.com"}


@pytest.fixture
def event_payload(recipient_data) -> dict[str, Any]:
    """USER_REGISTERED payload without the event key."""
    return {
        "timestamp": "2025-01-15T12:00:00Z",
        "recipient": recipient_data,
        "data": {"userName": "Jane Doe", "loginUrl": "https://example.com/login"},
        "meta": {"source": "identity"},
    }


@pytest.fixture
def recipient() -> Recipient:
    return Recipient(id="user-123", name="Jane Doe", email="jane.doe@example.com")


@pytest.fixture
def notification_payload(recipient) -> NotificationPayload:
    return NotificationPayload(
        event="USER_REGISTERED",
        timestamp="2025-01-15T12:00:00Z",
        recipient=recipient,
        data={"userName": "Jane Doe"},
        meta={"origin": "event-notification", "requestId": "USER_REGISTERED-1"},
    )


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def renderer():
    return JinjaTemplateRenderer()


@pytest.fixture
def template_repository():
    return InMemoryNotificationTemplateRepository()


@pytest.fixture
def audit_service():
    return InMemoryAuditService()


@pytest.fixture
def rate_limiter(clock):
    return RateLimitingService(RateLimitConfig(), clock=clock)


@pytest.fixture
def retry_policy():
    return RetryPolicyConfig(
        max_attempts=3, initial_delay_ms=1000, max_delay_ms=60000, backoff_multiplier=2.0
    )


@pytest.fixture
def retry_service(retry_policy, datetime_clock):
    return RetryService(retry_policy, clock=datetime_clock)


@pytest.fixture
def fast_queue_config():
    """Queue settings with no backoff so retries happen immediately."""
    return QueueConfig(concurrency=2, job_attempts=3, backoff_delay_ms=0)


@pytest.fixture
def scripted_dispatchers():
    """One always-succeeding dispatcher per channel."""
    return {channel: ScriptedDispatcher(channel) for channel in NotificationChannel}


@pytest.fixture
def dispatcher_factory(scripted_dispatchers):
    return DispatcherFactory(scripted_dispatchers)


# ============================================================================
# Environment
# ============================================================================

SETTINGS_ENV_KEYS = (
    "APP_NAME",
    "ENVIRONMENT",
    "DEBUG",
    "LOG_LEVEL",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_SECURE",
    "RESEND_API_KEY",
    "RESEND_API_URL",
    "NOTIFICATION_DEFAULT_FROM",
    "NOTIFICATION_EMAIL_TIMEOUT",
    "ONESIGNAL_APP_ID",
    "ONESIGNAL_API_KEY",
    "ONESIGNAL_API_URL",
    "NOTIFICATION_PUSH_TIMEOUT",
    "REALTIME_PROVIDER",
    "PUSHER_APP_ID",
    "PUSHER_KEY",
    "PUSHER_SECRET",
    "PUSHER_CLUSTER",
    "SOKETI_HOST",
    "SOKETI_PORT",
    "SOKETI_USE_TLS",
    "NOTIFICATION_REALTIME_TIMEOUT",
    "NOTIFICATION_RATE_LIMIT_CLEANUP_INTERVAL",
    "NOTIFICATION_MAX_RETRY_ATTEMPTS",
    "NOTIFICATION_INITIAL_RETRY_DELAY",
    "NOTIFICATION_MAX_RETRY_DELAY",
    "NOTIFICATION_RETRY_BACKOFF_MULTIPLIER",
    "NOTIFICATION_QUEUE_CONCURRENCY",
    "NOTIFICATION_JOB_ATTEMPTS",
    "NOTIFICATION_JOB_BACKOFF_DELAY",
    *(
        f"NOTIFICATION_{channel}_{suffix}"
        for channel in ("EMAIL", "PUSH", "REALTIME")
        for suffix in ("LIMIT_PER_MINUTE", "LIMIT_PER_HOUR", "LIMIT_PER_DAY", "BURST_LIMIT")
    ),
)


@pytest.fixture
def isolated_env(monkeypatch):
    """Remove every settings variable; anything written later is undone too."""
    for key in SETTINGS_ENV_KEYS:
        # setenv first so monkeypatch restores the original state on teardown
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch
