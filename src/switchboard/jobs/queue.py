"""Deferred work queue backed by the SQLite job store."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from switchboard.capabilities import CapabilityRegistry
from switchboard.errors import CapabilityNotFound, InvalidOperation, JobNotFound
from switchboard.jobs.models import (
    BackoffOptions,
    JobOptions,
    JobRecord,
    JobResult,
    JobStatus,
)
from switchboard.jobs.store import JobStore

logger = structlog.get_logger()

FinishedCallback = Callable[[JobResult], Awaitable[None]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class JobQueue:
    """Priority queue of named jobs with retries, run by a pool of worker tasks.

    A job runs a capability: either the one named in ``data["function_name"]``
    when ``data["use_capability"]`` is set, or the capability sharing the
    job's name with ``data`` as params. Anything else fails.
    """

    def __init__(
        self,
        store: JobStore,
        capabilities: CapabilityRegistry,
        *,
        concurrency: int = 5,
        default_attempts: int = 3,
        default_backoff_ms: int = 5000,
        poll_interval_s: float = 0.5,
        on_finished: FinishedCallback | None = None,
    ) -> None:
        self.store = store
        self.capabilities = capabilities
        self.concurrency = max(1, int(concurrency))
        self.default_attempts = default_attempts
        self.default_backoff_ms = default_backoff_ms
        self.poll_interval_s = poll_interval_s
        self.on_finished = on_finished
        self._running = False
        self._paused = False
        self._workers: list[asyncio.Task[None]] = []

    async def initialize(self) -> None:
        await self.store.initialize()
        recovered = await self.store.requeue_active()
        if recovered:
            logger.info("job.queue.recovered", count=recovered)

    # ── Lifecycle ───────────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"switchboard-job-worker-{index}")
            for index in range(self.concurrency)
        ]
        logger.info("job.queue.started", workers=self.concurrency)

    async def stop(self) -> None:
        self._running = False
        for task in self._workers:
            if not task.done():
                task.cancel()
        for task in self._workers:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._workers = []

    async def close(self) -> None:
        await self.stop()
        await self.store.close()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        """Stop claiming new jobs; active jobs run to completion."""
        self._paused = True
        logger.info("job.queue.paused")

    def resume(self) -> None:
        self._paused = False
        logger.info("job.queue.resumed")

    # ── Submission ──────────────────────────────────────────────────

    async def submit(
        self,
        name: str,
        data: dict[str, Any] | None = None,
        options: JobOptions | dict[str, Any] | None = None,
    ) -> str:
        """Queue a job and return its id."""
        if not isinstance(options, JobOptions):
            options = JobOptions.model_validate(options or {})
        backoff = options.backoff or BackoffOptions(delay=self.default_backoff_ms)
        now = _now_ms()

        job = JobRecord(
            id=options.job_id or f"{name}-{uuid.uuid4()}",
            name=name,
            data=dict(data or {}),
            status="delayed" if options.delay > 0 else "waiting",
            priority=options.priority,
            max_attempts=options.attempts or self.default_attempts,
            backoff_type=backoff.type,
            backoff_delay_ms=backoff.delay,
            run_at_ms=now + options.delay,
            created_at_ms=now,
        )
        await self.store.insert(job)
        logger.info("job.submitted", job_id=job.id, name=name, status=job.status)
        return job.id

    async def schedule_capability_job(
        self,
        name: str,
        params: dict[str, Any] | None = None,
        options: JobOptions | dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
    ) -> str:
        """Queue a run of an existing capability."""
        self.capabilities.resolve(name)
        return await self.submit(
            f"execute-function-{name}",
            {
                "function_name": name,
                "params": dict(params or {}),
                "context": dict(context or {}),
                "use_capability": True,
            },
            options,
        )

    # ── Queries ─────────────────────────────────────────────────────

    async def get(self, job_id: str) -> JobRecord | None:
        return await self.store.get(job_id)

    async def status(self, job_id: str) -> JobStatus | None:
        job = await self.store.get(job_id)
        if job is None:
            return None
        if self._paused and job.status == "waiting":
            return "paused"
        return job.status

    async def result(self, job_id: str) -> JobResult:
        job = await self.store.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return JobResult.from_record(job)

    async def list_by_status(self, status: JobStatus, limit: int = 100) -> list[JobRecord]:
        if status == "paused":
            return await self.store.list_by_status(["waiting"], limit) if self._paused else []
        return await self.store.list_by_status([status], limit)

    async def counts(self) -> dict[str, int]:
        rows = await self.store.fetch_all("SELECT status, COUNT(*) AS n FROM jobs GROUP BY status")
        return {row["status"]: row["n"] for row in rows}

    # ── Management ──────────────────────────────────────────────────

    async def remove(self, job_id: str) -> bool:
        job = await self.store.get(job_id)
        if job is None:
            return False
        if job.status == "active":
            raise InvalidOperation(f"Job {job_id} is active and cannot be removed")
        await self.store.delete(job_id)
        logger.info("job.removed", job_id=job_id)
        return True

    async def promote(self, job_id: str) -> None:
        """Make a delayed job runnable now."""
        job = await self._require(job_id)
        if job.status != "delayed":
            raise InvalidOperation(f"Job {job_id} is {job.status}, not delayed")
        await self.store.update(job_id, status="waiting", run_at_ms=_now_ms())
        logger.info("job.promoted", job_id=job_id)

    async def change_priority(self, job_id: str, priority: int) -> None:
        job = await self._require(job_id)
        if priority < 0:
            raise InvalidOperation("Priority must be >= 0")
        if job.status in ("completed", "failed"):
            raise InvalidOperation(f"Job {job_id} already finished")
        await self.store.update(job_id, priority=priority)

    async def _require(self, job_id: str) -> JobRecord:
        job = await self.store.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    # ── Execution ───────────────────────────────────────────────────

    async def _worker(self, index: int) -> None:
        while self._running:
            try:
                ran = None if self._paused else await self.process_next()
            except Exception as exc:
                logger.warning("job.worker.error", worker=index, error=str(exc))
                ran = None
            if ran is None:
                await asyncio.sleep(self.poll_interval_s)

    async def process_next(self) -> JobRecord | None:
        """Claim and run one ready job. Returns the finished record, if any ran."""
        job = await self.store.claim_next(_now_ms())
        if job is None:
            return None
        await self._execute(job)
        return await self.store.get(job.id)

    async def _execute(self, job: JobRecord) -> None:
        logger.info("job.active", job_id=job.id, name=job.name, attempt=job.attempts_made)
        try:
            result = await self.run(job)
        except Exception as exc:
            await self._handle_failure(job, exc)
            return

        await self.store.update(
            job.id,
            status="completed",
            result=result,
            error=None,
            finished_at_ms=_now_ms(),
        )
        logger.info("job.completed", job_id=job.id, name=job.name)
        await self._notify(job.id)

    async def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        error = f"{type(exc).__name__}: {exc}"
        if job.attempts_made < job.max_attempts:
            delay = job.backoff.delay_for(job.attempts_made)
            await self.store.update(
                job.id,
                status="delayed" if delay > 0 else "waiting",
                error=error,
                run_at_ms=_now_ms() + delay,
            )
            logger.warning(
                "job.retry",
                job_id=job.id,
                attempt=job.attempts_made,
                max_attempts=job.max_attempts,
                delay_ms=delay,
                error=error,
            )
            return

        await self.store.update(job.id, status="failed", error=error, finished_at_ms=_now_ms())
        logger.error("job.failed", job_id=job.id, name=job.name, error=error)
        await self._notify(job.id)

    async def run(self, job: JobRecord) -> Any:
        """Run the capability a job refers to."""
        data = job.data
        if data.get("use_capability"):
            name = data.get("function_name")
            if not name:
                raise CapabilityNotFound("<missing function_name>")
            context = {**(data.get("context") or {}), "job_id": job.id}
            return await self.capabilities.invoke(name, data.get("params") or {}, context)

        if self.capabilities.get(job.name) is not None:
            return await self.capabilities.invoke(job.name, data, {"job_id": job.id})

        raise CapabilityNotFound(job.name)

    async def _notify(self, job_id: str) -> None:
        if self.on_finished is None:
            return
        job = await self.store.get(job_id)
        if job is None:
            return
        try:
            await self.on_finished(JobResult.from_record(job))
        except Exception as exc:
            logger.warning("job.notify.error", job_id=job_id, error=str(exc))
