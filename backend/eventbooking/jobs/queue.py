"""
In-process background job queue.

DELIVERY MODEL: Best-effort, FIFO, single consumer
==================================================

Request handlers call `enqueue()`, which appends to an asyncio.Queue and
returns at once. One worker task (the drain loop) pops jobs in enqueue order
and executes them through the notification dispatcher.

  - enqueue never waits on execution; a slow job only delays later jobs
  - at most one drain loop exists per queue, started lazily on first enqueue
    or explicitly from the application lifespan
  - a failing job is marked failed and logged; it is not retried and the
    error never reaches the request that enqueued it
  - nothing is persisted: jobs still pending at shutdown are dropped

The queue is owned by the application's composition root (FastAPI lifespan)
and handed to services that need it; there is no module-level instance.
"""

import asyncio
import enum
import time
import uuid
from collections import deque
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from eventbooking.core.exceptions import UnknownJobKind
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import record_job_enqueued, record_job_processed
from eventbooking.db.base import utcnow
from eventbooking.services.notification_service import NotificationDispatcher

logger = get_logger(__name__)

JobHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class JobKind(str, enum.Enum):
    BOOKING_CONFIRMATION = "booking-confirmation"
    EVENT_UPDATE_NOTIFICATION = "event-update-notification"


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Job:
    kind: str
    payload: dict[str, Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=utcnow)
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    finished_at: Optional[datetime] = None


class JobQueue:
    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        processing_delay: float = 0.0,
        history_size: int = 1000,
    ):
        self.dispatcher = dispatcher
        self.processing_delay = processing_delay
        self.history: deque[Job] = deque(maxlen=history_size)
        self._queue: asyncio.Queue[Job] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._stopped = False
        self._handlers: dict[str, JobHandler] = {
            JobKind.BOOKING_CONFIRMATION.value: dispatcher.send_booking_confirmation,
            JobKind.EVENT_UPDATE_NOTIFICATION.value: dispatcher.send_event_update_notification,
        }

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the drain loop unless one is already running. Reopens a stopped queue."""
        self._stopped = False
        self._ensure_worker()

    def _ensure_worker(self) -> None:
        if self.is_running:
            return
        self._worker = asyncio.get_running_loop().create_task(self._drain(), name="job-queue-drain")
        logger.info("job_queue_started", pending=self.pending)

    async def stop(self) -> None:
        """Stop the drain loop. Pending jobs and later enqueues are dropped."""
        self._stopped = True
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            with suppress(asyncio.CancelledError):
                await worker
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        logger.info("job_queue_stopped", dropped=dropped)

    async def join(self) -> None:
        """Wait until every job enqueued so far has been executed."""
        await self._queue.join()

    def enqueue(self, kind: Union[JobKind, str], payload: dict[str, Any]) -> Job:
        """Append a job and make sure the drain loop is running. Never blocks."""
        job = Job(kind=kind.value if isinstance(kind, JobKind) else str(kind), payload=payload)
        if self._stopped:
            # no drain loop is started after stop()
            job.status = JobStatus.FAILED
            job.error = "Job queue is stopped"
            job.finished_at = utcnow()
            logger.warning("job_dropped_after_stop", job_id=job.id, job_kind=job.kind)
            return job

        self._queue.put_nowait(job)
        self.history.append(job)
        record_job_enqueued(job.kind, self.pending)
        logger.info("job_enqueued", job_id=job.id, job_kind=job.kind, pending=self.pending)
        self._ensure_worker()
        return job

    def jobs_of_kind(self, kind: Union[JobKind, str]) -> list[Job]:
        wanted = kind.value if isinstance(kind, JobKind) else kind
        return [job for job in self.history if job.kind == wanted]

    async def _drain(self) -> None:
        # the task copied the context of whichever request started it
        structlog.contextvars.clear_contextvars()
        while True:
            job = await self._queue.get()
            try:
                await self._process(job)
            finally:
                self._queue.task_done()

    async def _process(self, job: Job) -> None:
        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(job_id=job.id, job_kind=job.kind):
            logger.info("job_processing")
            try:
                if self.processing_delay > 0:
                    await asyncio.sleep(self.processing_delay)
                await self._execute(job)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                job.status = JobStatus.FAILED
                job.error = str(exc)
                logger.error("job_failed", error=str(exc), error_type=type(exc).__name__)
            else:
                job.status = JobStatus.COMPLETED
                logger.info("job_completed")
            finally:
                if job.status is not JobStatus.PENDING:
                    job.finished_at = utcnow()
                    record_job_processed(
                        job.kind, job.status.value, time.perf_counter() - started, self.pending
                    )

    async def _execute(self, job: Job) -> None:
        handler = self._handlers.get(job.kind)
        if handler is None:
            raise UnknownJobKind(f"Unknown job type: {job.kind}")
        await handler(job.payload)
