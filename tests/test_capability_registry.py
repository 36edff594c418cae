from __future__ import annotations

import json

import pytest

from switchboard.capabilities import Capability, CapabilityRegistry
from switchboard.credentials import CredentialPool
from switchboard.errors import CapabilityNotFound, CredentialMissing, DuplicateCapability


async def _double(params: dict, context: dict) -> int:
    return params["x"] * 2


def _echo_context(params: dict, context: dict) -> dict:
    return dict(context)


def test_register_rejects_duplicate_names() -> None:
    registry = CapabilityRegistry()
    registry.register(Capability("double", "Doubles x", _double))

    with pytest.raises(DuplicateCapability):
        registry.register(Capability("double", "Another", _double))

    assert registry.names() == ["double"]


def test_unregister_reports_whether_removed() -> None:
    registry = CapabilityRegistry()
    registry.register(Capability("double", "Doubles x", _double))

    assert registry.unregister("double") is True
    assert registry.unregister("double") is False


@pytest.mark.asyncio
async def test_invoke_unknown_capability_raises_not_found() -> None:
    registry = CapabilityRegistry()

    with pytest.raises(CapabilityNotFound):
        await registry.invoke("missing", {}, {})


@pytest.mark.asyncio
async def test_invoke_supports_async_and_sync_handlers() -> None:
    registry = CapabilityRegistry()
    registry.register(Capability("double", "Doubles x", _double))
    registry.register(Capability("echo", "Echo context", _echo_context))

    assert await registry.invoke("double", {"x": 4}, {}) == 8
    assert await registry.invoke("echo", {}, {"event_id": "e1"}) == {"event_id": "e1"}


@pytest.mark.asyncio
async def test_credential_injected_from_pool() -> None:
    registry = CapabilityRegistry(CredentialPool({"weather": ["key-1"]}))
    registry.register(Capability("echo", "Echo context", _echo_context, credential_name="weather"))

    context = await registry.invoke("echo", {}, {})

    assert context["credential"] == "key-1"


@pytest.mark.asyncio
async def test_missing_credential_fails_before_handler_runs() -> None:
    calls: list[dict] = []

    def handler(params: dict, context: dict) -> str:
        calls.append(params)
        return "ran"

    registry = CapabilityRegistry()
    registry.register(Capability("needs_key", "Needs a key", handler, credential_name="weather"))

    with pytest.raises(CredentialMissing):
        await registry.invoke("needs_key", {"city": "Oslo"}, {})

    assert calls == []


@pytest.mark.asyncio
async def test_handler_errors_propagate() -> None:
    def boom(params: dict, context: dict) -> None:
        raise RuntimeError("kaput")

    registry = CapabilityRegistry()
    registry.register(Capability("boom", "Always fails", boom))

    with pytest.raises(RuntimeError, match="kaput"):
        await registry.invoke("boom", {}, {})


@pytest.mark.asyncio
async def test_execute_tool_call_serializes_results_and_errors() -> None:
    registry = CapabilityRegistry()
    registry.register(Capability("double", "Doubles x", _double))

    assert await registry.execute_tool_call("double", '{"x": 21}') == "42"
    error = json.loads(await registry.execute_tool_call("missing", {}))
    assert "not found" in error["error"]
    bad_json = json.loads(await registry.execute_tool_call("double", "{nope"))
    assert bad_json["error"].startswith("Invalid JSON arguments")


def test_model_schemas_and_openai_tools() -> None:
    registry = CapabilityRegistry()
    params = {"type": "object", "properties": {"x": {"type": "number"}}, "required": ["x"]}
    registry.register(Capability("double", "Doubles x", _double, parameters=params))

    assert registry.to_model_schema("double") == {
        "name": "double",
        "description": "Doubles x",
        "parameters": params,
    }
    assert registry.to_openai_tools() == [
        {"type": "function", "function": registry.to_model_schema("double")}
    ]
