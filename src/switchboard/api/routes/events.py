"""Event ingress endpoint."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from switchboard.api.middleware.auth import verify_api_key
from switchboard.gateway import Event

logger = structlog.get_logger()

router = APIRouter()


class EventRequest(BaseModel):
    id: str | None = None
    type: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] | None = None
    reply_to: str | None = None
    wait: bool = Field(default=True, description="Return the dispatch outcome instead of 202")


@router.post("/v1/events", response_model=None)
async def post_event(
    request: Request,
    body: EventRequest,
    _api_key: str | None = Depends(verify_api_key),
) -> dict | JSONResponse:
    dispatcher = request.app.state.runtime.dispatcher
    event = Event.create(
        body.type,
        body.payload,
        id=body.id,
        metadata=body.metadata,
        reply_to=body.reply_to,
    )

    if not body.wait:
        dispatcher.submit(event)
        return JSONResponse(status_code=202, content={"event_id": event.id, "accepted": True})

    outcome = await dispatcher.handle_event(event)
    return outcome.to_dict()
