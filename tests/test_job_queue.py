from __future__ import annotations

import pytest

from switchboard.capabilities import Capability, CapabilityRegistry
from switchboard.errors import CapabilityNotFound, InvalidOperation, JobNotFound
from switchboard.jobs import JobQueue, JobResult, JobStore


def _capabilities() -> CapabilityRegistry:
    registry = CapabilityRegistry()
    registry.register(Capability("double", "Doubles x", lambda p, c: p["x"] * 2))
    return registry


async def _queue(tmp_path, **kwargs) -> JobQueue:
    queue = JobQueue(
        JobStore(str(tmp_path), journal_mode="DELETE"),
        kwargs.pop("capabilities", None) or _capabilities(),
        **kwargs,
    )
    await queue.initialize()
    return queue


@pytest.mark.asyncio
async def test_submit_assigns_prefixed_id_and_waits(tmp_path) -> None:
    queue = await _queue(tmp_path)

    job_id = await queue.submit("double", {"x": 2})

    assert job_id.startswith("double-")
    assert await queue.status(job_id) == "waiting"
    await queue.close()


@pytest.mark.asyncio
async def test_job_named_after_capability_runs_it(tmp_path) -> None:
    finished: list[JobResult] = []

    async def on_finished(result: JobResult) -> None:
        finished.append(result)

    queue = await _queue(tmp_path, on_finished=on_finished)
    job_id = await queue.submit("double", {"x": 21})

    record = await queue.process_next()

    assert record is not None and record.status == "completed"
    result = await queue.result(job_id)
    assert result.result == 42
    assert result.duration is not None
    assert [(r.id, r.status) for r in finished] == [(job_id, "completed")]
    await queue.close()


@pytest.mark.asyncio
async def test_schedule_capability_job(tmp_path) -> None:
    queue = await _queue(tmp_path)

    job_id = await queue.schedule_capability_job("double", {"x": 5}, context={"origin": "test"})
    await queue.process_next()

    assert job_id.startswith("execute-function-double-")
    assert (await queue.result(job_id)).result == 10
    with pytest.raises(CapabilityNotFound):
        await queue.schedule_capability_job("missing")
    await queue.close()


@pytest.mark.asyncio
async def test_priority_lower_runs_first(tmp_path) -> None:
    queue = await _queue(tmp_path)
    low = await queue.submit("double", {"x": 1}, {"priority": 5})
    high = await queue.submit("double", {"x": 2}, {"priority": 1})

    first = await queue.process_next()

    assert first.id == high
    assert await queue.status(low) == "waiting"
    await queue.close()


@pytest.mark.asyncio
async def test_failures_retry_then_fail(tmp_path) -> None:
    finished: list[JobResult] = []

    async def on_finished(result: JobResult) -> None:
        finished.append(result)

    queue = await _queue(tmp_path, on_finished=on_finished, default_backoff_ms=0)
    job_id = await queue.submit("unknown-job", {}, {"attempts": 2})

    await queue.process_next()
    assert await queue.status(job_id) == "waiting"
    await queue.process_next()

    result = await queue.result(job_id)
    assert result.status == "failed"
    assert "unknown-job" in result.error
    assert [r.status for r in finished] == ["failed"]
    await queue.close()


@pytest.mark.asyncio
async def test_delayed_jobs_wait_until_promoted(tmp_path) -> None:
    queue = await _queue(tmp_path)
    job_id = await queue.submit("double", {"x": 3}, {"delay": 60_000})

    assert await queue.status(job_id) == "delayed"
    assert await queue.process_next() is None

    await queue.promote(job_id)
    assert (await queue.process_next()).id == job_id
    with pytest.raises(InvalidOperation):
        await queue.promote(job_id)
    await queue.close()


@pytest.mark.asyncio
async def test_pause_reports_waiting_jobs_as_paused(tmp_path) -> None:
    queue = await _queue(tmp_path)
    job_id = await queue.submit("double", {"x": 3})

    queue.pause()
    assert await queue.status(job_id) == "paused"
    assert [job.id for job in await queue.list_by_status("paused")] == [job_id]
    queue.resume()
    assert await queue.status(job_id) == "waiting"
    await queue.close()


@pytest.mark.asyncio
async def test_unknown_job_lookups(tmp_path) -> None:
    queue = await _queue(tmp_path)

    assert await queue.status("nope") is None
    assert await queue.remove("nope") is False
    with pytest.raises(JobNotFound):
        await queue.result("nope")
    with pytest.raises(JobNotFound):
        await queue.change_priority("nope", 1)
    await queue.close()


@pytest.mark.asyncio
async def test_remove_and_change_priority(tmp_path) -> None:
    queue = await _queue(tmp_path)
    job_id = await queue.submit("double", {"x": 1})

    await queue.change_priority(job_id, 7)
    assert (await queue.get(job_id)).priority == 7
    assert await queue.remove(job_id) is True
    assert await queue.get(job_id) is None
    await queue.close()


@pytest.mark.asyncio
async def test_active_jobs_are_requeued_on_restart(tmp_path) -> None:
    queue = await _queue(tmp_path)
    job_id = await queue.submit("double", {"x": 1})
    await queue.store.claim_next(now_ms=10**15)
    await queue.store.close()

    restarted = await _queue(tmp_path)

    assert await restarted.status(job_id) == "waiting"
    await restarted.close()
