"""Event notification submission service.

The entry point other modules call: validates an event payload, queues it
for the processor, and owns the lifecycle of the background machinery.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from notifier.core.logging import get_logger
from notifier.modules.notification.application.contracts import (
    EnqueueNotificationRequest,
    field_errors_from,
)
from notifier.modules.notification.application.dto import EnqueueResult, QueueStatistics
from notifier.modules.notification.application.services.notification_processor import (
    NotificationProcessor,
)
from notifier.modules.notification.domain.enums import JobStatus
from notifier.modules.notification.domain.errors import InvalidPayloadError
from notifier.modules.notification.infrastructure.adapters import DispatcherFactory
from notifier.modules.notification.infrastructure.services.queue_service import (
    NotificationJobQueue,
)
from notifier.modules.notification.infrastructure.services.rate_limiting_service import (
    RateLimitingService,
)

logger = get_logger(__name__)

JOB_NAME = "send-event-notification"
DEFAULT_CLEAN_GRACE_MS = 24 * 60 * 60 * 1000


class EventNotificationService:
    """Queues event notifications for asynchronous delivery."""

    def __init__(
        self,
        queue: NotificationJobQueue,
        processor: NotificationProcessor,
        rate_limiter: RateLimitingService | None = None,
        dispatcher_factory: DispatcherFactory | None = None,
    ):
        self.queue = queue
        self.processor = processor
        self.rate_limiter = rate_limiter
        self.dispatcher_factory = dispatcher_factory
        self.queue.set_handler(self.processor.process)

    async def enqueue_notification(
        self, event_key: str, payload: dict[str, Any]
    ) -> EnqueueResult:
        """Validate an event payload and queue it.

        Args:
            event_key: Business event, e.g. USER_REGISTERED
            payload: timestamp, recipient {id, name, email}, data and optional meta

        Returns:
            EnqueueResult: Id of the queued job

        Raises:
            InvalidPayloadError: If the payload is malformed; nothing is queued
        """
        if payload is not None and not isinstance(payload, Mapping):
            logger.warning(
                "Event notification rejected",
                event_key=event_key,
                payload_type=type(payload).__name__,
            )
            raise InvalidPayloadError.from_fields({"payload": ["Payload must be an object"]})

        try:
            request = EnqueueNotificationRequest.model_validate(
                {**(payload or {}), "eventKey": event_key}
            )
        except PydanticValidationError as e:
            field_errors = field_errors_from(e)
            logger.warning(
                "Event notification rejected",
                event_key=event_key,
                fields=sorted(field_errors),
            )
            raise InvalidPayloadError.from_fields(field_errors) from e

        job = await self.queue.add(
            JOB_NAME,
            request.to_job_data(),
            attempts=self.queue.config.job_attempts,
            backoff_delay_ms=self.queue.config.backoff_delay_ms,
        )

        logger.info(
            "Event notification queued",
            event_key=request.event_key,
            job_id=job.id,
            recipient_id=request.recipient.id,
        )
        return EnqueueResult(job_id=job.id, event_key=request.event_key)

    def get_queue_statistics(self) -> QueueStatistics:
        return QueueStatistics.from_counts(self.queue.get_statistics())

    def clean_queue(self, grace_ms: int = DEFAULT_CLEAN_GRACE_MS) -> int:
        """Drop completed and failed jobs older than the grace period.

        Returns:
            Number of jobs removed
        """
        removed = len(self.queue.clean(grace_ms, JobStatus.COMPLETED))
        removed += len(self.queue.clean(grace_ms, JobStatus.FAILED))
        logger.info("Queue cleaned", grace_ms=grace_ms, removed=removed)
        return removed

    async def start(self) -> None:
        """Start workers, the retry sweep and the rate limit sweep."""
        self.queue.start()
        self.processor.start()
        if self.rate_limiter is not None:
            self.rate_limiter.start()
        logger.info("Event notification service started")

    async def stop(self) -> None:
        """Stop background tasks and close provider clients."""
        await self.queue.stop()
        await self.processor.stop()
        if self.rate_limiter is not None:
            await self.rate_limiter.stop()
        if self.dispatcher_factory is not None:
            await self.dispatcher_factory.aclose()
        logger.info("Event notification service stopped")
