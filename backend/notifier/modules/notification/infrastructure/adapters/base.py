"""Base channel dispatcher interface and utilities."""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from notifier.core.logging import get_logger
from notifier.modules.notification.domain.enums import NotificationChannel
from notifier.modules.notification.domain.value_objects import (
    DispatchResult,
    NotificationPayload,
    RenderedMessage,
)

logger = get_logger(__name__)


class ChannelDispatchError(Exception):
    """Raised by provider calls inside a dispatcher; never escapes `send`."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        is_retryable: bool = True,
        provider_response: dict[str, Any] | None = None,
    ):
        """Initialize channel dispatch error.

        Args:
            message: Error message
            error_code: Provider-specific error code
            is_retryable: Whether the error is retryable
            provider_response: Raw provider response
        """
        super().__init__(message)
        self.error_code = error_code
        self.is_retryable = is_retryable
        self.provider_response = provider_response


class BaseChannelDispatcher(ABC):
    """Base class for notification channel dispatchers.

    Subclasses implement `_deliver`, which may raise `ChannelDispatchError`
    or any provider exception. `send` turns every outcome into a
    `DispatchResult` so callers never see a provider exception.
    """

    channel: NotificationChannel
    not_configured_message = "Provider not configured"

    def __init__(
        self,
        timeout_seconds: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._timeout_seconds = timeout_seconds or self.channel.default_timeout_seconds()
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def provider(self) -> str:
        return "none"

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazily created client shared by every request of this dispatcher."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http_client

    @abstractmethod
    def is_configured(self) -> bool:
        """Check whether provider credentials are present."""

    @abstractmethod
    async def _deliver(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        """Deliver a rendered message through the provider.

        Raises:
            ChannelDispatchError: If the provider rejects the message
        """

    async def send(
        self, message: RenderedMessage, payload: NotificationPayload
    ) -> DispatchResult:
        """Send a rendered message.

        Args:
            message: Rendered header and body
            payload: Event payload, including the recipient

        Returns:
            DispatchResult: SENT with the provider id, or FAILED with the reason
        """
        if not self.is_configured():
            return self._not_configured_result()

        try:
            result = await self._deliver(message, payload)
        except ChannelDispatchError as e:
            result = DispatchResult.failed(
                str(e),
                metadata={
                    "provider": self.provider,
                    "error_code": e.error_code,
                    "retryable": e.is_retryable,
                    "response": self._sanitize_error_response(e.provider_response or {}),
                },
            )
        except httpx.TimeoutException as e:
            result = DispatchResult.failed(
                f"{self.provider} request timed out: {e!s}",
                metadata={"provider": self.provider, "retryable": True},
            )
        except httpx.HTTPError as e:
            result = DispatchResult.failed(
                f"{self.provider} request failed: {e!s}",
                metadata={"provider": self.provider, "retryable": True},
            )
        except Exception as e:
            result = DispatchResult.failed(
                f"{self.provider} delivery failed: {e!s}",
                metadata={"provider": self.provider, "retryable": True},
            )

        self._log_delivery_attempt(payload, result)
        return result

    def _not_configured_result(self) -> DispatchResult:
        return DispatchResult.failed(
            self.not_configured_message,
            metadata={"provider": self.provider, "retryable": False},
        )

    async def is_healthy(self) -> bool:
        return self.is_configured()

    def get_config(self) -> dict[str, Any]:
        """Describe the dispatcher without exposing credentials."""
        return {
            "channel": self.channel.value,
            "provider": self.provider,
            "timeout": self.timeout_seconds,
            "is_configured": self.is_configured(),
        }

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    @staticmethod
    def _mask(value: str | None, visible: int = 4) -> str | None:
        if not value:
            return value
        if len(value) <= visible:
            return "*" * len(value)
        return value[:visible] + "*" * (len(value) - visible)

    def _sanitize_error_response(self, response: dict[str, Any]) -> dict[str, Any]:
        """Sanitize provider response to remove sensitive data.

        Args:
            response: Raw provider response

        Returns:
            Sanitized response
        """
        sensitive_fields = {
            "api_key",
            "secret",
            "token",
            "password",
            "authorization",
            "x-api-key",
            "bearer",
        }

        sanitized = {}
        for key, value in response.items():
            if key.lower() in sensitive_fields:
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_error_response(value)
            else:
                sanitized[key] = value
        return sanitized

    def _log_delivery_attempt(
        self, payload: NotificationPayload, result: DispatchResult
    ) -> None:
        log = logger.info if result.is_success else logger.warning
        log(
            "Dispatch attempt finished",
            channel=self.channel.value,
            provider=self.provider,
            event_key=payload.event,
            recipient_id=payload.recipient.id,
            status=result.status.value,
            external_id=result.external_id,
            error=result.error,
        )


def http_error_from_response(
    provider: str, response: httpx.Response
) -> ChannelDispatchError:
    """Build a dispatch error from a non-2xx provider response.

    4xx responses other than 408 and 429 are permanent.
    """
    try:
        body = response.json()
    except ValueError:
        body = {"text": response.text[:500]}
    if not isinstance(body, dict):
        body = {"body": body}

    status = response.status_code
    retryable = status >= 500 or status in (408, 429)
    return ChannelDispatchError(
        f"{provider} API error: HTTP {status}",
        error_code=str(status),
        is_retryable=retryable,
        provider_response=body,
    )
