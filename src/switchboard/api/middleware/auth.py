"""API key guard for the admin and ingress routes."""

from __future__ import annotations

import secrets

import structlog
from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

logger = structlog.get_logger()

API_KEY_HEADER = "X-API-Key"

_api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def _configured_key(request: Request) -> str:
    return request.app.state.runtime.config.api_key or ""


async def verify_api_key(
    request: Request,
    api_key: str | None = Security(_api_key_header),
) -> str | None:
    """Reject the request unless it carries the configured key.

    An empty ``api_key`` setting disables the check.
    """
    expected = _configured_key(request)
    if not expected:
        return None

    if not api_key:
        logger.warning("auth.missing_key", path=request.url.path)
        raise HTTPException(status_code=401, detail=f"Missing API key. Provide {API_KEY_HEADER} header.")

    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        logger.warning("auth.invalid_key", path=request.url.path, client=request.client.host if request.client else None)
        raise HTTPException(status_code=403, detail="Invalid API key.")

    return api_key
