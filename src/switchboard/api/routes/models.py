"""Model registry administration."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from switchboard.api.middleware.auth import verify_api_key
from switchboard.errors import ComponentUnavailable, ModelNotFound
from switchboard.llm import MASTER_MODEL_ID, ModelRegistry

router = APIRouter()


class ModelPatch(BaseModel):
    provider: str | None = None
    model: str | None = None
    credential_name: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    system_prompt: str | None = None
    response_format: Literal["text", "json_object"] | None = None

    model_config = {"protected_namespaces": ()}

    def fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def _models(request: Request) -> ModelRegistry:
    models = request.app.state.runtime.models
    if models is None:
        raise ComponentUnavailable("Model registry")
    return models


@router.get("/v1/models")
async def list_models(request: Request, _api_key: str | None = Depends(verify_api_key)) -> dict:
    return {"models": _models(request).list_models()}


@router.get("/v1/models/{model_id}")
async def get_model(
    request: Request,
    model_id: str,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    config = _models(request).get(model_id)
    if config is None:
        raise ModelNotFound(model_id)
    return {"model_id": model_id, "config": config.model_dump()}


@router.put("/v1/models/{model_id}")
async def put_model(
    request: Request,
    model_id: str,
    body: ModelPatch,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    config = _models(request).register(model_id, body.fields())
    return {"model_id": model_id, "config": config.model_dump()}


@router.patch("/v1/models/{model_id}")
async def patch_model(
    request: Request,
    model_id: str,
    body: ModelPatch,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    config = _models(request).update(model_id, **body.fields())
    return {"model_id": model_id, "config": config.model_dump()}


@router.delete("/v1/models/{model_id}")
async def delete_model(
    request: Request,
    model_id: str,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    if not _models(request).unregister(model_id):
        raise ModelNotFound(model_id)
    return {"status": "deleted", "model_id": model_id}


@router.patch("/v1/master-model")
async def patch_master_model(
    request: Request,
    body: ModelPatch,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    config = _models(request).update_master_model(**body.fields())
    return {"model_id": MASTER_MODEL_ID, "config": config.model_dump()}
