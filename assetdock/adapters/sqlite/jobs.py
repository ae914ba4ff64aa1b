"""
SQLite job queue.

Durable counterpart of DevJobQueue so a separate worker process can consume
jobs enqueued by the application. Claims run inside BEGIN IMMEDIATE so two
workers never claim the same job.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from assetdock.adapters.dev_jobs import QueuedJob
from assetdock.adapters.sqlite.repos import dict_factory, format_dt, parse_dt

if TYPE_CHECKING:
    from assetdock.core.ports.clock import ClockPort

logger = logging.getLogger(__name__)


class SQLiteJobQueue:
    def __init__(self, db_path: str, clock: ClockPort | None = None):
        self.db_path = db_path
        self._clock = clock

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = dict_factory
        return conn

    def _now(self) -> datetime:
        return self._clock.now_utc() if self._clock else datetime.now(UTC)

    def _row_to_job(self, row: dict[str, Any]) -> QueuedJob:
        return QueuedJob(
            id=row["id"],
            queue=row["queue"],
            handler=row["handler"],
            payload=json.loads(row["payload"]),
            dedup_key=row["dedup_key"],
            status=row["status"],
            attempts=row["attempts"],
            available_at=parse_dt(row["available_at"]) or self._now(),
            last_error=row["last_error"],
            created_at=parse_dt(row["created_at"]) or self._now(),
            completed_at=parse_dt(row["completed_at"]),
        )

    def enqueue(
        self,
        queue: str,
        handler: str,
        payload: dict[str, Any],
        *,
        dedup_key: str | None = None,
    ) -> str:
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            if dedup_key is not None:
                row = conn.execute(
                    "SELECT id FROM jobs WHERE queue = ? AND dedup_key = ? "
                    "AND status IN ('queued', 'retry_wait')",
                    (queue, dedup_key),
                ).fetchone()
                if row:
                    conn.execute("COMMIT")
                    return str(row["id"])

            now = self._now()
            job = QueuedJob(
                queue=queue,
                handler=handler,
                payload=dict(payload),
                dedup_key=dedup_key,
                available_at=now,
                created_at=now,
            )
            conn.execute(
                "INSERT INTO jobs (id, queue, handler, payload, dedup_key, status, attempts, "
                "available_at, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    job.id,
                    job.queue,
                    job.handler,
                    json.dumps(job.payload),
                    job.dedup_key,
                    job.status,
                    job.attempts,
                    format_dt(job.available_at),
                    format_dt(job.created_at),
                ),
            )
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

        logger.info("Enqueued job %s (%s/%s)", job.id, queue, handler)
        return job.id

    def claim_next(self, queue: str, now_utc: datetime) -> QueuedJob | None:
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT * FROM jobs WHERE queue = ? AND status IN ('queued', 'retry_wait') "
                "AND available_at <= ? ORDER BY created_at ASC, rowid ASC LIMIT 1",
                (queue, format_dt(now_utc)),
            ).fetchone()
            if not row:
                conn.execute("COMMIT")
                return None
            conn.execute("UPDATE jobs SET status = 'running' WHERE id = ?", (row["id"],))
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

        job = self._row_to_job(row)
        job.status = "running"
        return job

    def save(self, job: QueuedJob) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE jobs SET status = ?, attempts = ?, available_at = ?, last_error = ?, "
                "completed_at = ? WHERE id = ?",
                (
                    job.status,
                    job.attempts,
                    format_dt(job.available_at),
                    job.last_error,
                    format_dt(job.completed_at),
                    job.id,
                ),
            )
        finally:
            conn.close()

    def get(self, job_id: str) -> QueuedJob | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
            return self._row_to_job(row) if row else None
        finally:
            conn.close()
