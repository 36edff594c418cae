"""Switchboard — FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from switchboard import __version__
from switchboard.api.errors import install_error_handlers
from switchboard.config import get_config
from switchboard.logging import setup_logging
from switchboard.runtime import Runtime, build_runtime

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    runtime: Runtime | None = getattr(app.state, "runtime", None)
    if runtime is None:
        config = get_config()
        setup_logging(level=config.log_level, fmt=config.log_format)
        logger.info("switchboard.starting", version=__version__, model=config.llm.model)
        runtime = await build_runtime(config)
        app.state.runtime = runtime

    await runtime.start()
    logger.info(
        "switchboard.ready",
        capabilities=runtime.capabilities.names(),
        capability_count=len(runtime.capabilities.names()),
    )

    yield

    # Shutdown
    logger.info("switchboard.shutting_down")
    await runtime.close()
    logger.info("switchboard.stopped")


def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Create the FastAPI application. A prebuilt runtime skips the build step."""
    app = FastAPI(
        title="Switchboard",
        version=__version__,
        description="Event-driven agent core: capabilities, models and deferred work.",
        lifespan=lifespan,
    )
    if runtime is not None:
        app.state.runtime = runtime

    install_error_handlers(app)

    # Register routes
    from switchboard.api.routes.capabilities import router as capabilities_router
    from switchboard.api.routes.events import router as events_router
    from switchboard.api.routes.generate import router as generate_router
    from switchboard.api.routes.health import router as health_router
    from switchboard.api.routes.jobs import router as jobs_router
    from switchboard.api.routes.models import router as models_router

    app.include_router(health_router, tags=["health"])
    app.include_router(events_router, tags=["events"])
    app.include_router(capabilities_router, tags=["capabilities"])
    app.include_router(models_router, tags=["models"])
    app.include_router(jobs_router, tags=["jobs"])
    app.include_router(generate_router, tags=["generate"])

    return app


def main() -> None:
    """Run the server directly."""
    config = get_config()
    setup_logging(level=config.log_level, fmt=config.log_format)
    uvicorn.run(
        "switchboard.main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        log_level="warning",
    )


if __name__ == "__main__":
    main()
