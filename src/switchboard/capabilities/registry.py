"""Capability registry — named, schema-described callables the agent can run."""

from __future__ import annotations

import inspect
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from switchboard.credentials import CredentialPool
from switchboard.errors import CapabilityNotFound, CredentialMissing, DuplicateCapability

logger = structlog.get_logger()

CapabilityHandler = Callable[[dict[str, Any], dict[str, Any]], Awaitable[Any] | Any]


@dataclass
class Capability:
    """A callable unit exposed to events, jobs and models."""

    name: str
    description: str
    handler: CapabilityHandler
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    credential_name: str | None = None
    preferred_model_id: str | None = None

    def to_model_schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def to_openai_tool(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {"type": "function", "function": self.to_model_schema()}


class CapabilityRegistry:
    """Owns every registered capability and injects credentials on invoke."""

    def __init__(self, credentials: CredentialPool | None = None) -> None:
        self.capabilities: dict[str, Capability] = {}
        self.credentials = credentials or CredentialPool()

    def register(self, capability: Capability) -> None:
        """Register a capability. Existing names are never overwritten."""
        if capability.name in self.capabilities:
            logger.warning("capability.duplicate", name=capability.name, action="rejected")
            raise DuplicateCapability(capability.name)
        self.capabilities[capability.name] = capability
        logger.info("capability.registered", name=capability.name)

    def register_many(self, capabilities: list[Capability]) -> None:
        for capability in capabilities:
            self.register(capability)

    def unregister(self, name: str) -> bool:
        """Remove a capability."""
        if name in self.capabilities:
            del self.capabilities[name]
            logger.info("capability.unregistered", name=name)
            return True
        return False

    def get(self, name: str) -> Capability | None:
        return self.capabilities.get(name)

    def resolve(self, name: str) -> Capability:
        capability = self.capabilities.get(name)
        if capability is None:
            raise CapabilityNotFound(name)
        return capability

    def names(self) -> list[str]:
        return list(self.capabilities)

    async def invoke(
        self,
        name: str,
        params: dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
    ) -> Any:
        """Run a capability handler and return its raw result.

        Credentials are resolved before the handler is touched, so a missing
        key never leaves a half-executed side effect behind.
        """
        capability = self.resolve(name)
        call_context = dict(context or {})

        if capability.credential_name and not call_context.get("credential"):
            credential = self.credentials.get(capability.credential_name)
            if not credential:
                logger.warning(
                    "capability.credential_missing",
                    name=name,
                    credential=capability.credential_name,
                )
                raise CredentialMissing(capability.credential_name)
            call_context["credential"] = credential

        try:
            result = capability.handler(dict(params or {}), call_context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error("capability.error", name=name, error=f"{type(e).__name__}: {e}")
            raise

        logger.info("capability.invoked", name=name)
        return result

    async def execute_tool_call(
        self,
        name: str,
        arguments: str | dict[str, Any] | None,
        context: dict[str, Any] | None = None,
    ) -> str:
        """Run a model-issued tool call and serialize the outcome for a tool turn.

        Failures become ``{"error": ...}`` payloads so the model can still
        produce a final answer.
        """
        if isinstance(arguments, str):
            try:
                params = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError:
                return json.dumps({"error": f"Invalid JSON arguments: {arguments}"})
        else:
            params = arguments or {}

        try:
            result = await self.invoke(name, params, context)
        except Exception as e:
            return json.dumps({"error": f"{type(e).__name__}: {e}"})
        return serialize_result(result)

    def to_model_schema(self, name: str) -> dict[str, Any]:
        return self.resolve(name).to_model_schema()

    def to_model_schemas(self) -> list[dict[str, Any]]:
        return [c.to_model_schema() for c in self.capabilities.values()]

    def to_openai_tools(self) -> list[dict[str, Any]]:
        """Get all capabilities in OpenAI function calling format."""
        return [c.to_openai_tool() for c in self.capabilities.values()]

    def list_capabilities(self) -> list[dict[str, Any]]:
        """List all capabilities with names and descriptions."""
        return [
            {
                "name": c.name,
                "description": c.description,
                "credential_name": c.credential_name,
                "preferred_model_id": c.preferred_model_id,
            }
            for c in self.capabilities.values()
        ]


def serialize_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)
