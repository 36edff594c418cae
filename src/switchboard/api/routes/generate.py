"""Single-shot completion endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from switchboard.api.middleware.auth import verify_api_key
from switchboard.errors import ComponentUnavailable

router = APIRouter()


class GenerateRequest(BaseModel):
    prompt: str = Field(min_length=1)
    model_id: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = {"protected_namespaces": ()}


@router.post("/v1/generate")
async def generate(
    request: Request,
    body: GenerateRequest,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    models = request.app.state.runtime.models
    if models is None:
        raise ComponentUnavailable("Model registry")
    content = await models.generate_completion(body.prompt, body.options, body.model_id)
    return {"content": content, "model_id": body.model_id}
