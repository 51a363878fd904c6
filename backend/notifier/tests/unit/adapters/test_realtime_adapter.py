"""Tests for the Pusher compatible realtime dispatcher."""

import hashlib
import hmac
import json

import httpx
import pytest

from notifier.core.config import RealtimeProvider, RealtimeProviderConfig
from notifier.modules.notification.domain.value_objects import RenderedMessage
from notifier.modules.notification.infrastructure.adapters.realtime_adapter import (
    RealtimeChannelDispatcher,
    sign_request,
)

PUSHER_CONFIG = RealtimeProviderConfig(
    app_id="app-1", key="pusher-key", secret="pusher-secret", cluster="eu"
)


class RecordingTransport:
    """Mock transport handler that remembers requests."""

    def __init__(self, status: int = 200):
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json={})


def dispatcher_for(transport, config=PUSHER_CONFIG, clock=lambda: 1700000000.0):
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return RealtimeChannelDispatcher(config, http_client=client, clock=clock)


class TestSignature:
    """Test suite for the HTTP API auth signature."""

    def test_signature_covers_sorted_params(self):
        params = {"auth_version": "1.0", "auth_key": "k", "auth_timestamp": "1"}
        expected = hmac.new(
            b"secret",
            b"POST\n/apps/1/events\nauth_key=k&auth_timestamp=1&auth_version=1.0",
            hashlib.sha256,
        ).hexdigest()

        assert sign_request("secret", "POST", "/apps/1/events", params) == expected


class TestRealtimeDelivery:
    """Test suite for triggering events."""

    @pytest.mark.asyncio
    async def test_signed_event_is_posted(self, notification_payload):
        """Test the events endpoint, auth query and event body."""
        transport = RecordingTransport()
        dispatcher = dispatcher_for(transport)
        message = RenderedMessage.from_text(
            'CHANNEL: private-user-123\nEVENT: account.updated\n---\n{"field": "email"}'
        )

        result = await dispatcher.send(message, notification_payload)

        request = transport.requests[0]
        params = dict(request.url.params)
        signature = params.pop("auth_signature")
        body = json.loads(request.content)
        assert result.is_success
        assert result.external_id == "private-user-123:account.updated"
        assert request.url.host == "api-eu.pusher.com"
        assert request.url.path == "/apps/app-1/events"
        assert params["auth_key"] == "pusher-key"
        assert params["auth_timestamp"] == "1700000000"
        assert params["body_md5"] == hashlib.md5(request.content).hexdigest()
        assert signature == sign_request("pusher-secret", "POST", "/apps/app-1/events", params)
        assert body["name"] == "account.updated"
        assert body["channels"] == ["private-user-123"]
        assert json.loads(body["data"]) == {"field": "email"}

    @pytest.mark.asyncio
    async def test_defaults_and_plain_text_fallback(self, notification_payload):
        transport = RecordingTransport()
        dispatcher = dispatcher_for(transport)

        result = await dispatcher.send(
            RenderedMessage.from_text("Your export is ready"), notification_payload
        )

        body = json.loads(transport.requests[0].content)
        assert result.external_id == "default:notification"
        assert json.loads(body["data"]) == {"message": "Your export is ready"}

    @pytest.mark.asyncio
    async def test_soketi_uses_configured_host(self, notification_payload):
        transport = RecordingTransport()
        config = RealtimeProviderConfig(
            provider=RealtimeProvider.SOKETI,
            app_id="app-1",
            key="k",
            secret="s",
            host="soketi.local",
            port=6001,
        )
        dispatcher = dispatcher_for(transport, config=config)

        result = await dispatcher.send(RenderedMessage.from_text("{}"), notification_payload)

        url = str(transport.requests[0].url)
        assert url.startswith("http://soketi.local:6001/apps/app-1/events?")
        assert result.metadata["provider"] == "soketi"

    @pytest.mark.asyncio
    async def test_rejected_event(self, notification_payload):
        dispatcher = dispatcher_for(RecordingTransport(status=401))

        result = await dispatcher.send(RenderedMessage.from_text("{}"), notification_payload)

        assert result.error == "pusher API error: HTTP 401"
        assert result.metadata["retryable"] is False


class TestRealtimeHealth:
    """Test suite for health checks and configuration."""

    @pytest.mark.asyncio
    async def test_healthy_when_ping_succeeds(self):
        transport = RecordingTransport()

        assert await dispatcher_for(transport).is_healthy() is True

        body = json.loads(transport.requests[0].content)
        assert body["channels"] == ["health-check"]
        assert body["name"] == "ping"

    @pytest.mark.asyncio
    async def test_unhealthy_when_ping_fails(self):
        assert await dispatcher_for(RecordingTransport(status=500)).is_healthy() is False

    @pytest.mark.asyncio
    async def test_unconfigured_is_unhealthy_without_requests(self):
        transport = RecordingTransport()

        healthy = await dispatcher_for(transport, config=RealtimeProviderConfig()).is_healthy()

        assert healthy is False
        assert transport.requests == []

    def test_config_masks_key(self):
        config = dispatcher_for(RecordingTransport()).get_config()

        assert config["key"] == "push******"
        assert config["base_url"] == "https://api-eu.pusher.com"
