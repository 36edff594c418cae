"""Capability endpoints: direct invocation, listing and removal."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from switchboard.api.middleware.auth import verify_api_key
from switchboard.errors import CapabilityNotFound

router = APIRouter()


class FunctionRequest(BaseModel):
    name: str
    params: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)


@router.post("/v1/functions")
async def invoke_function(
    request: Request,
    body: FunctionRequest,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    capabilities = request.app.state.runtime.capabilities
    result = await capabilities.invoke(body.name, body.params, body.context)
    return {"name": body.name, "result": result}


@router.get("/v1/capabilities")
async def list_capabilities(
    request: Request,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    capabilities = request.app.state.runtime.capabilities
    return {"capabilities": capabilities.list_capabilities()}


@router.get("/v1/capabilities/{name}")
async def get_capability(
    request: Request,
    name: str,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    return request.app.state.runtime.capabilities.to_model_schema(name)


@router.delete("/v1/capabilities/{name}")
async def delete_capability(
    request: Request,
    name: str,
    _api_key: str | None = Depends(verify_api_key),
) -> dict:
    if not request.app.state.runtime.unregister_capability(name):
        raise CapabilityNotFound(name)
    return {"status": "deleted", "name": name}
