"""Email channel dispatcher supporting SMTP and Resend."""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any

import aiosmtplib
import httpx

from notifier.core.config import EmailProviderConfig
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

DEFAULT_SUBJECT = "Notification"
# Permanent SMTP failures
PERMANENT_SMTP_CODES = frozenset({550, 551, 552, 553, 554})


class EmailChannelDispatcher(BaseChannelDispatcher):
    """Email dispatcher.

    Resend is used when its API key is set, SMTP otherwise. The rendered body
    is sent as HTML with a plain text alternative.
    """

    channel = NotificationChannel.EMAIL
    not_configured_message = "Email provider not configured"

    def __init__(
        self,
        config: EmailProviderConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(timeout_seconds=config.timeout_seconds, http_client=http_client)
        self.config = config

    @property
    def available_providers(self) -> list[str]:
        providers = []
        if self.config.resend_configured:
            providers.append("resend")
        if self.config.smtp_configured:
            providers.append("smtp")
        return providers

    @property
    def provider(self) -> str:
        available = self.available_providers
        return available[0] if available else "none"

    def is_configured(self) -> bool:
        return bool(self.available_providers)

    def get_config(self) -> dict[str, Any]:
        config = super().get_config()
        config.update(
            {
                "available_providers": self.available_providers,
                "selected_provider": self.provider,
                "default_from": self.config.default_from,
            }
        )
        if self.config.smtp_configured:
            config["smtp_host"] = self.config.smtp_host
            config["smtp_port"] = self.config.smtp_port
        return config

    async def _deliver(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        if self.provider == "resend":
            return await self._send_resend(message, payload)
        return await self._send_smtp(message, payload)

    def _envelope(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> dict[str, Any]:
        return {
            "subject": message.header.subject or DEFAULT_SUBJECT,
            "from": message.header.sender or self.config.default_from,
            "reply_to": message.header.reply_to,
            "to": payload.recipient.email,
            "html": message.body,
            "text": ContentFormatter.html_to_text(message.body),
        }

    async def _send_resend(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        """Send email via the Resend HTTP API."""
        envelope = self._envelope(message, payload)
        body = {
            "from": envelope["from"],
            "to": [envelope["to"]],
            "subject": envelope["subject"],
            "html": envelope["html"],
            "text": envelope["text"],
        }
        if envelope["reply_to"]:
            body["reply_to"] = envelope["reply_to"]

        response = await self.http_client.post(
            f"{self.config.resend_api_url.rstrip('/')}/emails",
            json=body,
            headers={"Authorization": f"Bearer {self.config.resend_api_key}"},
            timeout=self.timeout_seconds,
        )
        if response.is_error:
            raise http_error_from_response("Resend", response)

        data = response.json()
        return DispatchResult.sent(
            external_id=data.get("id"),
            metadata={"provider": "resend", "to": envelope["to"]},
        )

    async def _send_smtp(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        """Send email via SMTP."""
        envelope = self._envelope(message, payload)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = envelope["subject"]
        msg["From"] = envelope["from"]
        msg["To"] = f"{payload.recipient.name} <{envelope['to']}>"
        if envelope["reply_to"]:
            msg["Reply-To"] = envelope["reply_to"]
        message_id = make_msgid()
        msg["Message-ID"] = message_id

        msg.attach(MIMEText(envelope["text"], "plain"))
        msg.attach(MIMEText(envelope["html"], "html"))

        try:
            async with aiosmtplib.SMTP(
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                use_tls=self.config.smtp_secure,
                timeout=self.timeout_seconds,
            ) as smtp:
                await smtp.login(self.config.smtp_user, self.config.smtp_password)
                _, response = await smtp.send_message(msg)
        except aiosmtplib.SMTPException as e:
            error_code = getattr(e, "code", None)
            raise ChannelDispatchError(
                f"SMTP error: {e!s}",
                error_code=str(error_code) if error_code else None,
                is_retryable=error_code not in PERMANENT_SMTP_CODES,
            ) from e
        except OSError as e:
            raise ChannelDispatchError(f"SMTP connection failed: {e!s}") from e

        return DispatchResult.sent(
            external_id=message_id,
            metadata={"provider": "smtp", "to": envelope["to"], "smtp_response": response},
        )
