"""Deferred work endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from switchboard.api.middleware.auth import verify_api_key
from switchboard.errors import ComponentUnavailable, JobNotFound
from switchboard.jobs import JobOptions, JobQueue

router = APIRouter()


class JobRequest(BaseModel):
    name: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    options: JobOptions = Field(default_factory=JobOptions)
    capability: bool = Field(
        default=False,
        description="Treat name as a capability and data as its params",
    )


def _jobs(request: Request) -> JobQueue:
    jobs = request.app.state.runtime.jobs
    if jobs is None:
        raise ComponentUnavailable("Job queue")
    return jobs


@router.post("/v1/jobs", status_code=201)
async def submit_job(
    request: Request,
    body: JobRequest,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    jobs = _jobs(request)
    if body.capability:
        job_id = await jobs.schedule_capability_job(body.name, body.data, body.options)
    else:
        job_id = await jobs.submit(body.name, body.data, body.options)
    return {"job_id": job_id}


@router.get("/v1/jobs/{job_id}")
async def get_job(
    request: Request,
    job_id: str,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    jobs = _jobs(request)
    job = await jobs.get(job_id)
    if job is None:
        raise JobNotFound(job_id)
    return {**job.to_dict(), "status": await jobs.status(job_id)}


@router.get("/v1/jobs/{job_id}/result")
async def get_job_result(
    request: Request,
    job_id: str,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    result = await _jobs(request).result(job_id)
    return result.to_dict()
