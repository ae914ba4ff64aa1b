"""
Job queue port.

Variant processing is dispatched as queued jobs. The queue delivers at least
once, with a bounded attempt count and a fixed backoff between attempts.

Key requirements:
- Jobs are plain dict payloads, routed by (queue, handler) names
- A handler error whose ``retryable`` attribute is False is never retried
- At most one pending job per dedup key should be kept by the queue
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class JobStatus(Enum):
    """Job execution result status."""

    SUCCESS = "success"
    FAILURE = "failure"
    RETRY = "retry"  # Failed, scheduled for another attempt
    NO_JOBS = "no_jobs"


@dataclass
class JobResult:
    """Result of a job execution attempt."""

    status: JobStatus
    job_id: str | None = None
    message: str = ""
    error: str | None = None
    execution_time_ms: int = 0


@dataclass
class BatchResult:
    """Result of processing a batch of jobs."""

    total_processed: int
    succeeded: int
    failed: int
    retried: int
    results: list[JobResult] = field(default_factory=list)


class JobQueuePort(Protocol):
    def enqueue(
        self,
        queue: str,
        handler: str,
        payload: dict[str, Any],
        *,
        dedup_key: str | None = None,
    ) -> str:
        """Enqueue a job. Returns the job id (existing id when deduplicated)."""
        ...
