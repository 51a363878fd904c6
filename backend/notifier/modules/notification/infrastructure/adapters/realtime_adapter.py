"""Realtime channel dispatcher for Pusher compatible servers (Pusher, Soketi)."""

import hashlib
import hmac
import json
import time
from typing import Any
from urllib.parse import urlencode

import httpx

from notifier.core.config import RealtimeProviderConfig
from notifier.core.logging import get_logger
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.value_objects import (
    DispatchResult,
    NotificationPayload,
    RenderedMessage,
)
from notifier.modules.notification.infrastructure.adapters.base import (
    BaseChannelDispatcher,
    ChannelDispatchError,
    http_error_from_response,
)

logger = get_logger(__name__)

DEFAULT_CHANNEL = "default"
DEFAULT_EVENT = "notification"
HEALTH_CHECK_CHANNEL = "health-check"
HEALTH_CHECK_EVENT = "ping"


def sign_request(
    secret: str, method: str, path: str, params: dict[str, str]
) -> str:
    """Compute the Pusher HTTP API auth signature.

    Args:
        secret: Application secret
        method: HTTP method
        path: Request path, e.g. /apps/123/events
        params: Query parameters excluding the signature

    Returns:
        Hex encoded HMAC-SHA256 signature
    """
    query = "&".join(f"{key}={params[key]}" for key in sorted(params))
    to_sign = f"{method}\n{path}\n{query}"
    return hmac.new(secret.encode(), to_sign.encode(), hashlib.sha256).hexdigest()


class RealtimeChannelDispatcher(BaseChannelDispatcher):
    """Triggers events over the Pusher HTTP events API."""

    channel = NotificationChannel.REALTIME
    not_configured_message = "Realtime provider not configured"

    def __init__(
        self,
        config: RealtimeProviderConfig,
        http_client: httpx.AsyncClient | None = None,
        clock=time.time,
    ):
        super().__init__(timeout_seconds=config.timeout_seconds, http_client=http_client)
        self.config = config
        self._clock = clock

    @property
    def provider(self) -> str:
        return self.config.provider.value

    def is_configured(self) -> bool:
        return self.config.is_configured

    def get_config(self) -> dict[str, Any]:
        config = super().get_config()
        config.update(
            {
                "app_id": self.config.app_id,
                "key": self._mask(self.config.key),
                "base_url": self.config.base_url,
            }
        )
        return config

    @staticmethod
    def decode_body(body: str) -> Any:
        """Parse the rendered body as JSON, wrapping plain text."""
        try:
            return json.loads(body)
        except ValueError:
            return {"message": body}

    async def trigger(self, channel: str, event_name: str, data: Any) -> httpx.Response:
        """POST a signed event to the events endpoint.

        Raises:
            ChannelDispatchError: On a non-2xx response
        """
        path = f"/apps/{self.config.app_id}/events"
        body = json.dumps(
            {"name": event_name, "channels": [channel], "data": json.dumps(data, default=str)}
        )
        params = {
            "auth_key": self.config.key,
            "auth_timestamp": str(int(self._clock())),
            "auth_version": "1.0",
            "body_md5": hashlib.md5(body.encode()).hexdigest(),
        }
        params["auth_signature"] = sign_request(self.config.secret, "POST", path, params)

        response = await self.http_client.post(
            f"{self.config.base_url}{path}?{urlencode(params)}",
            content=body,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout_seconds,
        )
        if response.is_error:
            raise http_error_from_response(self.provider, response)
        return response

    async def _deliver(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        channel = message.header.channel or DEFAULT_CHANNEL
        event_name = message.header.event or DEFAULT_EVENT

        await self.trigger(channel, event_name, self.decode_body(message.body))
        return DispatchResult.sent(
            external_id=f"{channel}:{event_name}",
            metadata={"provider": self.provider, "channel": channel, "event": event_name},
        )

    async def is_healthy(self) -> bool:
        if not self.is_configured():
            return False
        try:
            await self.trigger(
                HEALTH_CHECK_CHANNEL, HEALTH_CHECK_EVENT, {"timestamp": int(self._clock())}
            )
        except (ChannelDispatchError, httpx.HTTPError) as e:
            logger.warning(
                "Realtime health check failed", provider=self.provider, error=str(e)
            )
            return False
        return True
