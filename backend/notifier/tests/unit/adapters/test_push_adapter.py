"""Tests for the OneSignal push dispatcher."""

import json

import httpx
import pytest

from notifier.core.config import PushProviderConfig
from notifier.modules.notification.domain.enums import DispatchStatus
from notifier.modules.notification.domain.value_objects import RenderedMessage
from notifier.modules.notification.infrastructure.adapters.push_adapter import (
    PushChannelDispatcher,
)

PUSH_CONFIG = PushProviderConfig(app_id="onesignal-app-id", api_key="os-rest-key")


def dispatcher_for(handler) -> PushChannelDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PushChannelDispatcher(PUSH_CONFIG, http_client=client)


class TestPushRequest:
    """Test suite for the OneSignal request body."""

    def test_header_and_json_body(self, notification_payload):
        """Test that directives drive the text and a JSON body adds data."""
        dispatcher = PushChannelDispatcher(PUSH_CONFIG)
        message = RenderedMessage.from_text(
            'TITLE: Welcome\nBODY: Your account is ready\nSOUND: ping.wav\n---\n'
            '{"url": "https://example.com/login", "type": "user_registered"}'
        )

        request = dispatcher.build_request(message, notification_payload)

        assert request["app_id"] == "onesignal-app-id"
        assert request["include_external_user_ids"] == ["user-123"]
        assert request["headings"] == {"en": "Welcome"}
        assert request["contents"] == {"en": "Your account is ready"}
        assert request["ios_sound"] == "ping.wav"
        assert request["data"]["url"] == "https://example.com/login"
        assert request["data"]["event"] == "USER_REGISTERED"
        assert request["data"]["requestId"] == "USER_REGISTERED-1"

    def test_html_body_becomes_text(self, notification_payload):
        dispatcher = PushChannelDispatcher(PUSH_CONFIG)
        message = RenderedMessage.from_text("<p>Your <b>password</b> was changed</p>")

        request = dispatcher.build_request(message, notification_payload)

        assert request["headings"] == {"en": "Notification"}
        assert request["contents"] == {"en": "Your password was changed"}

    def test_json_body_without_text_uses_default_body(self, notification_payload):
        dispatcher = PushChannelDispatcher(PUSH_CONFIG)
        message = RenderedMessage.from_text('TITLE: Hi\n---\n{"type": "ping"}')

        request = dispatcher.build_request(message, notification_payload)

        assert request["contents"] == {"en": "You have a new notification"}
        assert request["data"]["type"] == "ping"

    def test_badge_directive(self, notification_payload):
        dispatcher = PushChannelDispatcher(PUSH_CONFIG)
        message = RenderedMessage.from_text("BADGE: 3\nICON: https://cdn/icon.png\n---\nhello")

        request = dispatcher.build_request(message, notification_payload)

        assert request["ios_badgeCount"] == 3
        assert request["small_icon"] == "https://cdn/icon.png"

    def test_config_masks_app_id(self):
        config = PushChannelDispatcher(PUSH_CONFIG).get_config()

        assert config["app_id"].startswith("ones")
        assert "onesignal-app-id" not in config["app_id"]
        assert config["provider"] == "onesignal"


class TestPushDelivery:
    """Test suite for sending through OneSignal."""

    @pytest.mark.asyncio
    async def test_successful_send(self, notification_payload):
        captured = {}

        def handler(request):
            captured["request"] = request
            return httpx.Response(200, json={"id": "os-notification-1", "recipients": 1})

        dispatcher = dispatcher_for(handler)

        result = await dispatcher.send(
            RenderedMessage.from_text("TITLE: Hi\nBODY: There\n---\n{}"), notification_payload
        )

        request = captured["request"]
        assert result.is_success
        assert result.external_id == "os-notification-1"
        assert result.metadata["recipients"] == 1
        assert str(request.url) == "https://onesignal.com/api/v1/notifications"
        assert request.headers["Authorization"] == "Basic os-rest-key"
        assert json.loads(request.content)["contents"] == {"en": "There"}

    @pytest.mark.asyncio
    async def test_response_without_id_is_permanent_failure(self, notification_payload):
        dispatcher = dispatcher_for(
            lambda request: httpx.Response(
                200, json={"id": "", "errors": ["All included players are not subscribed"]}
            )
        )

        result = await dispatcher.send(RenderedMessage.from_text("hello"), notification_payload)

        assert result.status == DispatchStatus.FAILED
        assert "not subscribed" in result.error
        assert result.metadata["retryable"] is False

    @pytest.mark.asyncio
    async def test_non_json_success_is_retryable_failure(self, notification_payload):
        dispatcher = dispatcher_for(lambda request: httpx.Response(200, text="<html>ok</html>"))

        result = await dispatcher.send(RenderedMessage.from_text("hello"), notification_payload)

        assert result.status == DispatchStatus.FAILED
        assert result.error.startswith("onesignal delivery failed")
        assert result.metadata["retryable"] is True

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self, notification_payload):
        dispatcher = dispatcher_for(lambda request: httpx.Response(502, text="bad gateway"))

        result = await dispatcher.send(RenderedMessage.from_text("hello"), notification_payload)

        assert result.error == "OneSignal API error: HTTP 502"
        assert result.metadata["retryable"] is True
        assert result.metadata["response"] == {"text": "bad gateway"}

    @pytest.mark.asyncio
    async def test_not_configured(self, notification_payload):
        dispatcher = PushChannelDispatcher(PushProviderConfig())

        result = await dispatcher.send(RenderedMessage.from_text("hello"), notification_payload)

        assert result.error == "Push provider not configured"
        assert result.metadata["retryable"] is False
