"""
Dev Job Queue Adapter (JobQueuePort implementation).

In-process FIFO queue and worker for development, tests and single-process
deployments. A broker-backed queue can replace it behind JobQueuePort.

Key behaviors:
- FIFO claim of due jobs per queue name
- Pending jobs are deduplicated by key (one queued job per asset)
- Bounded attempts with a fixed retry-after delay
- Errors whose ``retryable`` attribute is False fail the job immediately
- Finished jobs leave the active list; only the latest few are kept for get()
- Configurable poll interval for background mode
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal, Protocol
from uuid import uuid4

from assetdock.core.ports.jobs import BatchResult, JobResult, JobStatus

if TYPE_CHECKING:
    from assetdock.core.ports.clock import ClockPort

logger = logging.getLogger(__name__)

QueuedJobStatus = Literal["queued", "running", "retry_wait", "succeeded", "failed"]
JobHandler = Callable[[dict[str, Any]], Any]

DEFAULT_HISTORY_SIZE = 100
FINISHED_STATUSES = ("succeeded", "failed")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class QueuedJob:
    """
    Queued job record.

    State machine:
    - queued -> running -> succeeded
    - running -> retry_wait -> running
    - running -> failed (fatal error or attempts exhausted)
    """

    queue: str
    handler: str
    payload: dict[str, Any]
    id: str = field(default_factory=lambda: uuid4().hex)
    dedup_key: str | None = None
    status: QueuedJobStatus = "queued"
    attempts: int = 0
    available_at: datetime = field(default_factory=_utcnow)
    last_error: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None


class DevJobQueue:
    """In-memory FIFO queue implementing JobQueuePort."""

    def __init__(
        self, clock: ClockPort | None = None, *, history_size: int = DEFAULT_HISTORY_SIZE
    ) -> None:
        self._clock = clock
        self._jobs: list[QueuedJob] = []  # queued, running, retry_wait
        self._history: deque[QueuedJob] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def _now(self) -> datetime:
        return self._clock.now_utc() if self._clock else _utcnow()

    def enqueue(
        self,
        queue: str,
        handler: str,
        payload: dict[str, Any],
        *,
        dedup_key: str | None = None,
    ) -> str:
        with self._lock:
            if dedup_key is not None:
                for job in self._jobs:
                    if (
                        job.dedup_key == dedup_key
                        and job.queue == queue
                        and job.status in ("queued", "retry_wait")
                    ):
                        logger.debug("Job %s already queued for %s", job.id, dedup_key)
                        return job.id

            now = self._now()
            job = QueuedJob(
                queue=queue,
                handler=handler,
                payload=dict(payload),
                dedup_key=dedup_key,
                available_at=now,
                created_at=now,
            )
            self._jobs.append(job)

        logger.info("Enqueued job %s (%s/%s)", job.id, queue, handler)
        return job.id

    def claim_next(self, queue: str, now_utc: datetime) -> QueuedJob | None:
        """Claim the oldest due job on a queue."""
        with self._lock:
            for job in self._jobs:
                if (
                    job.queue == queue
                    and job.status in ("queued", "retry_wait")
                    and job.available_at <= now_utc
                ):
                    job.status = "running"
                    return job
        return None

    def get(self, job_id: str) -> QueuedJob | None:
        with self._lock:
            return next((j for j in (*self._jobs, *self._history) if j.id == job_id), None)

    def jobs(self, queue: str | None = None) -> list[QueuedJob]:
        """Active jobs, then the retained finished ones."""
        with self._lock:
            return [
                j for j in (*self._jobs, *self._history) if queue is None or j.queue == queue
            ]

    def save(self, job: QueuedJob) -> None:
        """Jobs are held by reference; a finished job moves to the bounded history."""
        if job.status not in FINISHED_STATUSES:
            return
        with self._lock:
            if job in self._jobs:
                self._jobs.remove(job)
                self._history.append(job)

    def active_count(self) -> int:
        with self._lock:
            return len(self._jobs)

    def pending_count(self, queue: str) -> int:
        return sum(1 for j in self.jobs(queue) if j.status in ("queued", "retry_wait"))


class ClaimableJobQueue(Protocol):
    """What a worker needs from a queue backend."""

    def claim_next(self, queue: str, now_utc: datetime) -> QueuedJob | None: ...

    def save(self, job: QueuedJob) -> None: ...


class DevJobWorker:
    """
    Dev job worker.

    Pulls due jobs from a DevJobQueue and dispatches them to registered
    handlers by name.
    """

    def __init__(
        self,
        queue: ClaimableJobQueue,
        queue_name: str,
        *,
        max_attempts: int = 2,
        retry_after_seconds: int = 60,
        clock: ClockPort | None = None,
    ) -> None:
        """
        Initialize worker.

        Args:
            queue: Queue backend to claim from
            queue_name: Queue name this worker consumes
            max_attempts: Maximum execution attempts before marking failed
            retry_after_seconds: Fixed delay before a retry becomes due
            clock: Time source (defaults to system UTC)
        """
        self._queue = queue
        self._queue_name = queue_name
        self._max_attempts = max_attempts
        self._retry_after_seconds = retry_after_seconds
        self._clock = clock
        self._handlers: dict[str, JobHandler] = {}

    def register(self, handler_name: str, handler: JobHandler) -> None:
        self._handlers[handler_name] = handler

    def run_due_jobs(
        self,
        now_utc: datetime | None = None,
        max_jobs: int = 10,
    ) -> BatchResult:
        """
        Process jobs due at or before now_utc.

        Args:
            now_utc: Current time (defaults to clock)
            max_jobs: Maximum jobs to process

        Returns:
            BatchResult with all outcomes
        """
        if now_utc is None:
            now_utc = self._clock.now_utc() if self._clock else _utcnow()

        results: list[JobResult] = []
        for _ in range(max_jobs):
            job = self._queue.claim_next(self._queue_name, now_utc)
            if job is None:
                break
            results.append(self._execute(job, now_utc))

        if not results:
            return BatchResult(
                total_processed=0,
                succeeded=0,
                failed=0,
                retried=0,
                results=[JobResult(status=JobStatus.NO_JOBS, message="No jobs to process")],
            )

        return BatchResult(
            total_processed=len(results),
            succeeded=sum(1 for r in results if r.status == JobStatus.SUCCESS),
            failed=sum(1 for r in results if r.status == JobStatus.FAILURE),
            retried=sum(1 for r in results if r.status == JobStatus.RETRY),
            results=results,
        )

    def _execute(self, job: QueuedJob, now_utc: datetime) -> JobResult:
        job.attempts += 1
        start_time = time.monotonic()

        handler = self._handlers.get(job.handler)
        if handler is None:
            job.status = "failed"
            job.last_error = f"No handler registered for {job.handler}"
            job.completed_at = now_utc
            logger.error("Job %s failed: %s", job.id, job.last_error)
            self._queue.save(job)
            return JobResult(
                status=JobStatus.FAILURE,
                job_id=job.id,
                message="Unknown handler",
                error=job.last_error,
            )

        try:
            handler(job.payload)
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            return self._mark_failure(job, e, now_utc, elapsed_ms)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        job.status = "succeeded"
        job.completed_at = now_utc
        self._queue.save(job)
        return JobResult(
            status=JobStatus.SUCCESS,
            job_id=job.id,
            message=f"Job {job.handler} succeeded",
            execution_time_ms=elapsed_ms,
        )

    def _mark_failure(
        self, job: QueuedJob, error: Exception, now_utc: datetime, elapsed_ms: int
    ) -> JobResult:
        job.last_error = str(error)
        retryable = getattr(error, "retryable", True)

        if retryable and job.attempts < self._max_attempts:
            job.status = "retry_wait"
            job.available_at = now_utc + timedelta(seconds=self._retry_after_seconds)
            logger.warning(
                "Job %s attempt %d failed, retrying after %ds: %s",
                job.id,
                job.attempts,
                self._retry_after_seconds,
                error,
            )
            status = JobStatus.RETRY
        else:
            job.status = "failed"
            job.completed_at = now_utc
            if retryable:
                logger.error("Job %s failed after %d attempts: %s", job.id, job.attempts, error)
            else:
                logger.warning("Job %s failed permanently: %s", job.id, error)
            status = JobStatus.FAILURE

        self._queue.save(job)
        return JobResult(
            status=status,
            job_id=job.id,
            message=f"Job {job.handler} failed",
            error=str(error),
            execution_time_ms=elapsed_ms,
        )


class DevJobScheduler:
    """
    Dev job scheduler with background polling.

    Runs a background thread that polls for due jobs
    at a configurable interval.
    """

    def __init__(
        self,
        worker: DevJobWorker,
        poll_interval_seconds: float = 5.0,
    ) -> None:
        self._worker = worker
        self._poll_interval = poll_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Start the background scheduler."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, daemon=True)
        self._thread.start()
        self._running = True
        logger.info("Dev scheduler started (poll interval: %.1fs)", self._poll_interval)

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("Dev scheduler stopped")

    def trigger_now(self) -> BatchResult:
        """Trigger immediate job processing."""
        return self._worker.run_due_jobs()

    @property
    def is_running(self) -> bool:
        return self._running

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._poll_interval):
            try:
                result = self._worker.run_due_jobs()
                if result.total_processed > 0:
                    logger.info(
                        "Scheduler processed %d jobs: %d succeeded, %d failed, %d retrying",
                        result.total_processed,
                        result.succeeded,
                        result.failed,
                        result.retried,
                    )
            except Exception:
                logger.exception("Error in scheduler poll loop")
