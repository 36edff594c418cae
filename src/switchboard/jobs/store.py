"""SQLite job store — persistence for deferred work."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from switchboard.jobs.models import JobRecord

logger = structlog.get_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    data TEXT NOT NULL DEFAULT '{}',
    status TEXT NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    attempts_made INTEGER NOT NULL DEFAULT 0,
    max_attempts INTEGER NOT NULL DEFAULT 3,
    backoff_type TEXT NOT NULL DEFAULT 'exponential',
    backoff_delay_ms INTEGER NOT NULL DEFAULT 5000,
    run_at_ms INTEGER NOT NULL DEFAULT 0,
    result TEXT,
    error TEXT,
    created_at_ms INTEGER NOT NULL,
    started_at_ms INTEGER,
    finished_at_ms INTEGER
);

CREATE INDEX IF NOT EXISTS idx_jobs_ready ON jobs(status, priority, run_at_ms, created_at_ms);
"""

_UPDATABLE = {
    "status",
    "priority",
    "attempts_made",
    "run_at_ms",
    "result",
    "error",
    "started_at_ms",
    "finished_at_ms",
}


class JobStore:
    """Async SQLite storage for job records."""

    def __init__(
        self,
        data_dir: str,
        journal_mode: str = "WAL",
        busy_timeout_ms: int = 5000,
        filename: str = "jobs.db",
    ) -> None:
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / filename
        self.journal_mode = journal_mode.upper()
        if self.journal_mode not in {"WAL", "DELETE"}:
            raise ValueError(f"Unsupported SQLite journal mode: {journal_mode}")
        self.busy_timeout_ms = int(busy_timeout_ms)
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Create the database and tables."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        self._conn.row_factory = aiosqlite.Row

        # WAL may fail on network filesystems; fall back to DELETE mode
        try:
            await self._conn.execute(f"PRAGMA journal_mode={self.journal_mode}")
        except Exception as exc:
            if self.journal_mode == "WAL":
                logger.warning(
                    "jobs.store.wal_unavailable_fallback",
                    path=str(self.db_path),
                    error=str(exc),
                )
                await self._conn.execute("PRAGMA journal_mode=DELETE")
            else:
                raise

        await self._conn.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms}")
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()

        logger.info("jobs.store.initialized", path=str(self.db_path))

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("jobs.store.closed")

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        assert self._conn, "Job store not initialized"
        cursor = await self._conn.execute(sql, params)
        await self._conn.commit()
        return cursor

    async def fetch_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        assert self._conn, "Job store not initialized"
        cursor = await self._conn.execute(sql, params)
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def fetch_all(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        assert self._conn, "Job store not initialized"
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # ── Jobs ────────────────────────────────────────────────────────

    async def insert(self, job: JobRecord) -> None:
        await self.execute(
            (
                "INSERT INTO jobs (id, name, data, status, priority, attempts_made, "
                "max_attempts, backoff_type, backoff_delay_ms, run_at_ms, created_at_ms) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
            ),
            (
                job.id,
                job.name,
                json.dumps(job.data, default=str),
                job.status,
                job.priority,
                job.attempts_made,
                job.max_attempts,
                job.backoff_type,
                job.backoff_delay_ms,
                job.run_at_ms,
                job.created_at_ms,
            ),
        )

    async def get(self, job_id: str) -> JobRecord | None:
        row = await self.fetch_one("SELECT * FROM jobs WHERE id = ?", (job_id,))
        return JobRecord.from_row(row) if row else None

    async def update(self, job_id: str, **fields: Any) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update job fields: {sorted(unknown)}")
        if "result" in fields:
            fields["result"] = json.dumps(fields["result"], default=str)
        assignments = ", ".join(f"{name} = ?" for name in fields)
        cursor = await self.execute(
            f"UPDATE jobs SET {assignments} WHERE id = ?",
            (*fields.values(), job_id),
        )
        return cursor.rowcount > 0

    async def delete(self, job_id: str) -> bool:
        cursor = await self.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
        return cursor.rowcount > 0

    async def list_by_status(self, statuses: list[str], limit: int = 100) -> list[JobRecord]:
        placeholders = ", ".join("?" for _ in statuses)
        rows = await self.fetch_all(
            (
                f"SELECT * FROM jobs WHERE status IN ({placeholders}) "
                "ORDER BY priority, created_at_ms LIMIT ?"
            ),
            (*statuses, limit),
        )
        return [JobRecord.from_row(row) for row in rows]

    async def claim_next(self, now_ms: int) -> JobRecord | None:
        """Move the highest-priority runnable job to ``active`` and return it."""
        row = await self.fetch_one(
            (
                "SELECT * FROM jobs WHERE status IN ('waiting', 'delayed') AND run_at_ms <= ? "
                "ORDER BY priority, run_at_ms, created_at_ms LIMIT 1"
            ),
            (now_ms,),
        )
        if row is None:
            return None
        cursor = await self.execute(
            (
                "UPDATE jobs SET status = 'active', started_at_ms = ?, "
                "attempts_made = attempts_made + 1 "
                "WHERE id = ? AND status IN ('waiting', 'delayed')"
            ),
            (now_ms, row["id"]),
        )
        if cursor.rowcount == 0:
            return None
        return await self.get(row["id"])

    async def requeue_active(self) -> int:
        """Return jobs left ``active`` by a previous process to ``waiting``."""
        cursor = await self.execute(
            "UPDATE jobs SET status = 'waiting', attempts_made = MAX(attempts_made - 1, 0) "
            "WHERE status = 'active'"
        )
        return cursor.rowcount
