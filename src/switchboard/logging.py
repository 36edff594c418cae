"""Structured logging configuration.

Everything logs through structlog; stdlib loggers (uvicorn, httpx, LiteLLM,
aiosqlite) are routed through the same formatter so one event stream comes
out in either JSON or console form.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "litellm", "LiteLLM", "aiosqlite")

_EVENT_KEYS = ("event_id", "event_type")


def _renderer(fmt: str) -> list[structlog.types.Processor]:
    if fmt == "console":
        return [structlog.dev.ConsoleRenderer(colors=True)]
    # JSON lines need tracebacks as data, not preformatted text
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def setup_logging(level: str = "INFO", fmt: str = "json", stream: TextIO | None = None) -> None:
    """Configure structlog and the stdlib root logger for Switchboard."""
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *_renderer(fmt)],
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_event_context(event_id: str, event_type: str) -> None:
    """Attach event identity to every log line emitted by the current task.

    Each dispatch runs in its own asyncio task, which owns a copy of the
    context, so bindings never leak between concurrent events.
    """
    structlog.contextvars.bind_contextvars(event_id=event_id, event_type=event_type)


def clear_event_context() -> None:
    structlog.contextvars.unbind_contextvars(*_EVENT_KEYS)
