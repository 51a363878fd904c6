"""Event notification processor.

Turns one queued event into one dispatch per channel template:

1. resolve the event's active templates, or synthesize generic ones
2. per channel, concurrently: rate limit, render, dispatch under a timeout
3. register retryable failures with the retry service
4. aggregate the channel outcomes and emit a single audit record
"""

import asyncio
import time
import uuid
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, replace
from typing import Any

from notifier.core.errors import OperationTimeoutError
from notifier.core.logging import get_logger
from notifier.modules.notification.application.contracts import (
    EnqueueNotificationRequest,
)
from notifier.modules.notification.application.dto import ChannelResult, JobResult
from notifier.modules.notification.application.services.default_templates import (
    build_generic_templates,
)
from notifier.modules.notification.domain.entities import NotificationTemplate
from notifier.modules.notification.domain.enums import (
    AuditAction,
    NotificationCategory,
    NotificationChannel,
)
from notifier.modules.notification.domain.errors import (
    TemplateRenderingError,
    UnsupportedChannelError,
)
from notifier.modules.notification.domain.interfaces import (
    AuditRecord,
    IAuditService,
    INotificationTemplateRepository,
)
from notifier.modules.notification.domain.value_objects import (
    DispatchResult,
    NotificationPayload,
    RenderedMessage,
)
from notifier.modules.notification.infrastructure.adapters import DispatcherFactory
from notifier.modules.notification.infrastructure.engines.jinja_engine import (
    JinjaTemplateRenderer,
)
from notifier.modules.notification.infrastructure.services.queue_service import Job
from notifier.modules.notification.infrastructure.services.rate_limiting_service import (
    RateLimitingService,
)
from notifier.modules.notification.infrastructure.services.retry_service import (
    RetryContext,
    RetryService,
)

logger = get_logger(__name__)

NOTIFICATION_ORIGIN = "event-notification"
AUDIT_RESOURCE = "EventNotification"


@dataclass(frozen=True)
class PendingDispatch:
    """What a retry needs to replay a dispatch without re-rendering."""

    message: RenderedMessage
    payload: NotificationPayload


class NotificationProcessor:
    """Processes queued event notifications across all channels."""

    def __init__(
        self,
        repository: INotificationTemplateRepository,
        renderer: JinjaTemplateRenderer,
        dispatcher_factory: DispatcherFactory,
        rate_limiter: RateLimitingService,
        retry_service: RetryService,
        audit_service: IAuditService | None = None,
        channel_timeouts: dict[str, float] | None = None,
        retry_sweep_interval_seconds: float = 1.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize notification processor.

        Args:
            repository: Template storage
            renderer: Template renderer
            dispatcher_factory: Channel to dispatcher registry
            rate_limiter: Per recipient rate limiter
            retry_service: Retry bookkeeping for failed dispatches
            audit_service: Receives one record per processed event
            channel_timeouts: Dispatch timeout per lower-case channel name
            retry_sweep_interval_seconds: Pause between retry sweeps
            clock: Time source in seconds
        """
        self.repository = repository
        self.renderer = renderer
        self.dispatcher_factory = dispatcher_factory
        self.rate_limiter = rate_limiter
        self.retry_service = retry_service
        self.audit_service = audit_service
        self.channel_timeouts = channel_timeouts or {}
        self.retry_sweep_interval_seconds = retry_sweep_interval_seconds
        self._clock = clock
        self._retry_task: asyncio.Task | None = None

    async def process(self, job: Job | dict[str, Any]) -> JobResult:
        """Deliver one event notification on every channel it has a template for.

        Args:
            job: Queue job, or its raw data, holding the event payload

        Returns:
            JobResult: Per channel outcomes and totals
        """
        data = job.data if isinstance(job, Job) else job
        request = EnqueueNotificationRequest.model_validate(data)
        event_key = request.event_key
        request_id = f"{event_key}-{int(self._clock() * 1000)}-{uuid.uuid4().hex[:8]}"

        logger.info(
            "Processing event notification",
            event_key=event_key,
            job_id=getattr(job, "id", None),
            recipient_id=request.recipient.id,
        )

        templates = await self._resolve_templates(event_key)
        payload = replace(
            request.to_payload(),
            meta={**request.meta, "origin": NOTIFICATION_ORIGIN, "requestId": request_id},
            category=NotificationCategory.EVENT,
        )
        render_data = {
            "eventKey": event_key,
            "timestamp": request.timestamp,
            "data": payload.data,
            "user": payload.recipient.to_dict(),
            "meta": dict(request.meta),
        }

        channel_results = await asyncio.gather(
            *(
                self._process_channel(template, render_data, payload, request_id)
                for template in templates
            )
        )

        success_count = sum(1 for result in channel_results if result.success)
        result = JobResult(
            event_key=event_key,
            total_channels=len(channel_results),
            success_count=success_count,
            failure_count=len(channel_results) - success_count,
            channel_results=list(channel_results),
        )

        await self._audit(result, payload, request_id)

        logger.info(
            "Event notification processed",
            event_key=event_key,
            total_channels=result.total_channels,
            success_count=result.success_count,
            failure_count=result.failure_count,
        )
        return result

    async def _resolve_templates(self, event_key: str) -> list[NotificationTemplate]:
        templates = await self.repository.find(event_key=event_key, is_active=True)
        if templates:
            return templates

        logger.info("No active templates, using generic defaults", event_key=event_key)
        return build_generic_templates(event_key)

    def _timeout_for(self, channel: NotificationChannel, default: float) -> float:
        return self.channel_timeouts.get(channel.config_key, default)

    async def _process_channel(
        self,
        template: NotificationTemplate,
        render_data: dict[str, Any],
        payload: NotificationPayload,
        request_id: str,
    ) -> ChannelResult:
        channel = template.channel
        try:
            return await self._deliver_channel(template, render_data, payload, request_id)
        except Exception as e:
            logger.exception(
                "Channel processing crashed",
                event_key=payload.event,
                channel=channel.value,
                error=str(e),
            )
            return ChannelResult(channel=channel, success=False, error=str(e))

    async def _deliver_channel(
        self,
        template: NotificationTemplate,
        render_data: dict[str, Any],
        payload: NotificationPayload,
        request_id: str,
    ) -> ChannelResult:
        channel = template.channel
        recipient_id = payload.recipient.id

        decision = await self.rate_limiter.check_rate_limit(channel, recipient_id)
        if not decision.allowed:
            logger.warning(
                "Dispatch blocked by rate limit",
                event_key=payload.event,
                channel=channel.value,
                reason=decision.reason,
                retry_after_ms=decision.retry_after_ms,
            )
            return ChannelResult(
                channel=channel,
                success=False,
                error=decision.reason,
                retry_after_ms=decision.retry_after_ms,
            )

        try:
            message = self.renderer.render_message(template.parsed, render_data)
        except TemplateRenderingError as e:
            return ChannelResult(channel=channel, success=False, error=e.message)

        try:
            dispatcher = self.dispatcher_factory.get_dispatcher(channel)
        except UnsupportedChannelError as e:
            return ChannelResult(channel=channel, success=False, error=e.message)

        result = await self._dispatch(dispatcher, message, payload, channel)

        if result.is_success:
            self.rate_limiter.record_success(channel, recipient_id)
            return ChannelResult(channel=channel, success=True, external_id=result.external_id)

        if result.metadata.get("retryable", True):
            self.retry_service.register_failure(
                notification_id=f"{request_id}:{channel.value}",
                channel=channel,
                recipient=recipient_id,
                payload=PendingDispatch(message=message, payload=payload),
                result=result,
            )
        return ChannelResult(channel=channel, success=False, error=result.error)

    async def _dispatch(
        self,
        dispatcher,
        message: RenderedMessage,
        payload: NotificationPayload,
        channel: NotificationChannel,
    ) -> DispatchResult:
        timeout = self._timeout_for(channel, dispatcher.timeout_seconds)
        try:
            return await asyncio.wait_for(dispatcher.send(message, payload), timeout)
        except TimeoutError:
            error = OperationTimeoutError(f"{channel.value} dispatch", timeout)
            return DispatchResult.failed(
                error.message, metadata={"provider": dispatcher.provider, "retryable": True}
            )

    async def _audit(
        self, result: JobResult, payload: NotificationPayload, request_id: str
    ) -> None:
        if self.audit_service is None:
            return

        entry = AuditRecord(
            action=(
                AuditAction.NOTIFICATION_SENT
                if result.any_success
                else AuditAction.NOTIFICATION_FAILED
            ),
            resource=AUDIT_RESOURCE,
            resource_id=result.event_key,
            user_id=payload.recipient.id,
            metadata={
                "request_id": request_id,
                "total_channels": result.total_channels,
                "success_count": result.success_count,
                "failure_count": result.failure_count,
                "channels": [r.to_dict() for r in result.channel_results],
            },
        )
        try:
            await self.audit_service.record(entry)
        except Exception as e:
            logger.warning(
                "Audit record failed", event_key=result.event_key, error=str(e)
            )

    # Retries

    async def process_retries(self) -> int:
        """Re-dispatch every retry context that is due.

        Returns:
            Number of retry attempts made
        """
        attempted = 0
        for context in self.retry_service.get_ready_for_retry():
            result = await self._retry_dispatch(context)
            self.retry_service.register_retry_attempt(context.id, result)
            attempted += 1

        if attempted:
            logger.info("Retry sweep finished", attempted=attempted)
        return attempted

    async def _retry_dispatch(self, context: RetryContext) -> DispatchResult:
        pending: PendingDispatch = context.payload
        try:
            dispatcher = self.dispatcher_factory.get_dispatcher(context.channel)
        except UnsupportedChannelError as e:
            return DispatchResult.failed(e.message, metadata={"retryable": False})

        try:
            return await self._dispatch(
                dispatcher, pending.message, pending.payload, context.channel
            )
        except Exception as e:
            logger.exception(
                "Retry dispatch crashed",
                notification_id=context.id,
                channel=context.channel.value,
                error=str(e),
            )
            return DispatchResult.failed(
                f"Retry dispatch failed: {e!s}",
                metadata={"provider": dispatcher.provider, "retryable": True},
            )

    async def _retry_loop(self) -> None:
        while True:
            await asyncio.sleep(self.retry_sweep_interval_seconds)
            try:
                await self.process_retries()
            except Exception as e:
                logger.exception("Retry sweep failed", error=str(e))

    def start(self) -> None:
        """Start the periodic retry sweep."""
        if self._retry_task is None or self._retry_task.done():
            self._retry_task = asyncio.create_task(self._retry_loop(), name="retry-sweep")

    async def stop(self) -> None:
        if self._retry_task is None:
            return
        self._retry_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._retry_task
        self._retry_task = None
