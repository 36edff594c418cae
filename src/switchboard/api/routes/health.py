"""Health check endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

router = APIRouter()

_start_time = time.time()


@router.get("/health")
async def health(request: Request) -> dict:
    """Health check — returns status, uptime, component presence and LLM stats."""
    runtime = request.app.state.runtime
    config = runtime.config

    jobs: dict | None = None
    if runtime.jobs is not None:
        jobs = {
            "running": runtime.jobs.running,
            "paused": runtime.jobs.paused,
            "counts": await runtime.jobs.counts(),
        }

    return {
        "status": "ok",
        "name": config.name,
        "version": config.version,
        "uptime_seconds": round(time.time() - _start_time, 1),
        "components": {
            "capabilities": True,
            "models": runtime.models is not None,
            "jobs": runtime.jobs is not None,
            "gateway": type(runtime.gateway).__name__,
        },
        "capabilities": runtime.capabilities.names(),
        "plugins": runtime.plugins,
        "master_model": bool(runtime.models and runtime.models.has_master()),
        "llm_stats": runtime.models.stats if runtime.models else None,
        "jobs": jobs,
        "in_flight_events": runtime.dispatcher.in_flight,
    }
