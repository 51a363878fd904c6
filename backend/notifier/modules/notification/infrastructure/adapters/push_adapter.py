"""Push channel dispatcher backed by the OneSignal REST API."""

import json
from typing import Any

import httpx

from notifier.core.config import PushProviderConfig
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
from notifier.modules.notification.infrastructure.engines.jinja_engine import (
    ContentFormatter,
)

DEFAULT_TITLE = "Notification"
DEFAULT_BODY = "You have a new notification"


class PushChannelDispatcher(BaseChannelDispatcher):
    """Push dispatcher targeting the recipient's external user id."""

    channel = NotificationChannel.PUSH
    not_configured_message = "Push provider not configured"

    def __init__(
        self,
        config: PushProviderConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(timeout_seconds=config.timeout_seconds, http_client=http_client)
        self.config = config

    @property
    def provider(self) -> str:
        return "onesignal"

    def is_configured(self) -> bool:
        return self.config.is_configured

    def get_config(self) -> dict[str, Any]:
        config = super().get_config()
        config["app_id"] = self._mask(self.config.app_id)
        config["api_url"] = self.config.api_url
        return config

    def build_request(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> dict[str, Any]:
        """Build the OneSignal notification body."""
        header = message.header
        extra = self._decode_data(message.body)
        body_text = header.body
        if not body_text and not extra:
            body_text = ContentFormatter.html_to_text(message.body)
        title, body_text = ContentFormatter.format_for_push(
            header.title or DEFAULT_TITLE, body_text or DEFAULT_BODY
        )

        request: dict[str, Any] = {
            "app_id": self.config.app_id,
            "include_external_user_ids": [payload.recipient.id],
            "headings": {"en": title},
            "contents": {"en": body_text},
            "data": {
                "event": payload.event,
                "category": payload.category.value,
                "timestamp": payload.timestamp,
                **payload.meta,
            },
        }
        if extra:
            request["data"].update(extra)
        if header.icon:
            request["small_icon"] = header.icon
            request["chrome_web_icon"] = header.icon
        if header.badge:
            request["ios_badgeType"] = "SetTo"
            request["ios_badgeCount"] = int(header.badge) if header.badge.isdigit() else 1
        if header.sound:
            request["ios_sound"] = header.sound
            request["android_sound"] = header.sound
        return request

    @staticmethod
    def _decode_data(body: str) -> dict[str, Any]:
        """Templates may carry a JSON object body with extra notification data."""
        try:
            decoded = json.loads(body)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}

    async def _deliver(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        response = await self.http_client.post(
            f"{self.config.api_url.rstrip('/')}/notifications",
            json=self.build_request(message, payload),
            headers={"Authorization": f"Basic {self.config.api_key}"},
            timeout=self.timeout_seconds,
        )
        if response.is_error:
            raise http_error_from_response("OneSignal", response)

        data = response.json()
        if not data.get("id"):
            # OneSignal answers 200 with an errors list when nobody is subscribed
            raise ChannelDispatchError(
                f"OneSignal rejected notification: {data.get('errors')}",
                is_retryable=False,
                provider_response=data,
            )

        return DispatchResult.sent(
            external_id=data["id"],
            metadata={"provider": "onesignal", "recipients": data.get("recipients", 0)},
        )
