"""Map Switchboard errors onto HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from switchboard.errors import (
    ComponentUnavailable,
    CredentialMissing,
    DuplicateCapability,
    InvalidConversation,
    InvalidDirective,
    InvalidModelConfig,
    InvalidOperation,
    NotFound,
    ProviderUnavailable,
    SwitchboardError,
    UnsupportedProvider,
)

logger = structlog.get_logger()

STATUS_CODES: list[tuple[type[SwitchboardError], int]] = [
    (NotFound, 404),
    (DuplicateCapability, 409),
    (InvalidOperation, 409),
    (InvalidDirective, 400),
    (InvalidConversation, 400),
    (InvalidModelConfig, 400),
    (UnsupportedProvider, 400),
    (CredentialMissing, 503),
    (ProviderUnavailable, 503),
    (ComponentUnavailable, 503),
]


def status_for(exc: SwitchboardError) -> int:
    for error_type, status in STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


async def switchboard_error_handler(request: Request, exc: SwitchboardError) -> JSONResponse:
    status = status_for(exc)
    logger.warning("api.error", path=request.url.path, status=status, code=exc.code, error=str(exc))
    return JSONResponse(status_code=status, content=exc.to_dict())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SwitchboardError, switchboard_error_handler)  # type: ignore[arg-type]
