"""In-process job queue for asynchronous notification processing.

Jobs are handled by a fixed pool of asyncio workers. A job whose handler
raises is delayed with exponential backoff and re-queued until its attempt
budget is exhausted, so delivery is at least once.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from notifier.core.config import QueueConfig
from notifier.core.logging import get_logger
from notifier.modules.notification.domain.enums import JobStatus

logger = get_logger(__name__)

JobHandler = Callable[["Job"], Awaitable[Any]]


@dataclass
class Job:
    """A queued unit of work and its processing history."""

    name: str
    data: Any
    max_attempts: int
    backoff_delay_ms: int
    id: str = field(default_factory=lambda: str(uuid4()))
    status: JobStatus = JobStatus.WAITING
    attempts_made: int = 0
    result: Any = None
    error: str | None = None
    created_at: float = field(default_factory=time.time)
    processed_at: float | None = None
    finished_at: float | None = None

    def next_delay_ms(self) -> int:
        """Exponential backoff before the next attempt."""
        return self.backoff_delay_ms * (2 ** (self.attempts_made - 1))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "attempts_made": self.attempts_made,
            "max_attempts": self.max_attempts,
            "error": self.error,
            "created_at": self.created_at,
            "processed_at": self.processed_at,
            "finished_at": self.finished_at,
        }


class NotificationJobQueue:
    """Asyncio worker pool over an in-memory job table."""

    def __init__(
        self,
        config: QueueConfig | None = None,
        handler: JobHandler | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize job queue.

        Args:
            config: Concurrency and job retry settings
            handler: Coroutine called with each job
            clock: Time source in seconds, injectable for tests
        """
        self.config = config or QueueConfig()
        self._handler = handler
        self._clock = clock

        self._jobs: dict[str, Job] = {}
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []
        self._delayed: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    def set_handler(self, handler: JobHandler) -> None:
        self._handler = handler

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    # Producers

    async def add(
        self,
        name: str,
        data: Any,
        attempts: int | None = None,
        backoff_delay_ms: int | None = None,
    ) -> Job:
        """Enqueue a job.

        Args:
            name: Job name
            data: Job payload handed to the handler
            attempts: Attempt budget, defaults to the queue setting
            backoff_delay_ms: Base backoff delay, defaults to the queue setting

        Returns:
            Job: The waiting job
        """
        job = Job(
            name=name,
            data=data,
            max_attempts=attempts or self.config.job_attempts,
            backoff_delay_ms=(
                self.config.backoff_delay_ms if backoff_delay_ms is None else backoff_delay_ms
            ),
            created_at=self._clock(),
        )
        self._jobs[job.id] = job
        self._idle.clear()
        await self._queue.put(job.id)

        logger.debug("Job added", job_id=job.id, job_name=name)
        return job

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    # Lifecycle

    def start(self) -> None:
        """Spawn the worker pool; calling it twice is a no-op."""
        if self._workers:
            return
        if self._handler is None:
            raise RuntimeError("Job handler must be set before starting the queue")

        self._workers = [
            asyncio.create_task(self._worker(index), name=f"notification-worker-{index}")
            for index in range(self.config.concurrency)
        ]
        logger.info("Job queue started", concurrency=self.config.concurrency)

    async def stop(self) -> None:
        """Cancel workers and pending backoff timers."""
        tasks = [*self._workers, *self._delayed]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workers = []
        self._delayed.clear()
        logger.info("Job queue stopped")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until no job is waiting, active or delayed."""
        await asyncio.wait_for(self._idle.wait(), timeout)

    # Workers

    async def _worker(self, index: int) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                job = self._jobs.get(job_id)
                if job is not None:
                    await self._process(job, index)
            finally:
                self._queue.task_done()
                self._update_idle()

    async def _process(self, job: Job, worker: int) -> None:
        job.status = JobStatus.ACTIVE
        job.attempts_made += 1
        job.processed_at = self._clock()

        try:
            job.result = await self._handler(job)
        except Exception as e:
            job.error = str(e)
            if job.attempts_made < job.max_attempts:
                delay_ms = job.next_delay_ms()
                job.status = JobStatus.DELAYED
                logger.warning(
                    "Job failed, retrying",
                    job_id=job.id,
                    job_name=job.name,
                    attempt=job.attempts_made,
                    delay_ms=delay_ms,
                    error=str(e),
                )
                task = asyncio.create_task(self._requeue_after(job, delay_ms))
                self._delayed.add(task)
                task.add_done_callback(self._delayed.discard)
            else:
                job.status = JobStatus.FAILED
                job.finished_at = self._clock()
                logger.error(
                    "Job failed permanently",
                    job_id=job.id,
                    job_name=job.name,
                    attempts=job.attempts_made,
                    error=str(e),
                )
            return

        job.status = JobStatus.COMPLETED
        job.error = None
        job.finished_at = self._clock()
        logger.debug("Job completed", job_id=job.id, job_name=job.name, worker=worker)

    async def _requeue_after(self, job: Job, delay_ms: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
        job.status = JobStatus.WAITING
        await self._queue.put(job.id)

    def _update_idle(self) -> None:
        busy = any(not job.status.is_finished() for job in self._jobs.values())
        if busy:
            self._idle.clear()
        else:
            self._idle.set()

    # Maintenance

    def get_statistics(self) -> dict[str, int]:
        """Job counts per status."""
        stats = {status.value: 0 for status in JobStatus}
        for job in self._jobs.values():
            stats[job.status.value] += 1
        return stats

    def clean(self, grace_ms: int, status: JobStatus) -> list[str]:
        """Remove finished jobs older than the grace period.

        Args:
            grace_ms: Minimum age, measured from the finish time
            status: COMPLETED or FAILED

        Returns:
            Ids of the removed jobs
        """
        if not status.is_finished():
            raise ValueError(f"Only finished jobs can be cleaned, got {status.value}")

        cutoff = self._clock() - grace_ms / 1000
        removed = [
            job.id
            for job in self._jobs.values()
            if job.status == status
            and job.finished_at is not None
            and job.finished_at <= cutoff
        ]
        for job_id in removed:
            del self._jobs[job_id]

        if removed:
            logger.info("Jobs cleaned", status=status.value, removed=len(removed))
        return removed
