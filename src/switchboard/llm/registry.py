"""Model registry — named model configs routed to provider adapters."""

from __future__ import annotations

import time
from typing import Any

import structlog

from switchboard.capabilities import CapabilityRegistry
from switchboard.errors import (
    InvalidOperation,
    ModelNotFound,
    UnsupportedProvider,
)
from switchboard.llm.adapters import ProviderAdapter
from switchboard.llm.types import (
    ChatResult,
    ConversationTurn,
    ModelConfig,
    ModelResponse,
    ToolCall,
    coerce_turns,
    with_system_prompt,
)

logger = structlog.get_logger()

MASTER_MODEL_ID = "masterModel"


def build_master_system_prompt(capability_names: list[str]) -> str:
    """Auto-generated Master Model prompt listing the registered capabilities."""
    names = ", ".join(capability_names) if capability_names else "None"
    return (
        "You are the Master Model that controls this AI agent system.\n"
        "You can analyze incoming messages and decide what actions to take.\n"
        f"Available functions: {names}\n"
        "You can execute functions, schedule jobs, or send response messages as needed."
    )


class ModelRegistry:
    """Maps model ids to configs and sends conversations to the right adapter."""

    def __init__(
        self,
        default_config: ModelConfig,
        adapters: dict[str, ProviderAdapter],
        capabilities: CapabilityRegistry | None = None,
    ) -> None:
        self.default_config = default_config
        self.adapters = adapters
        self.capabilities = capabilities
        self.models: dict[str, ModelConfig] = {}
        self._master_prompt_customized = False

        self.total_tokens_used = 0
        self.total_cost = 0.0
        self.request_count = 0

    # -- Registration ------------------------------------------------------

    def register(self, model_id: str, config: ModelConfig | dict[str, Any]) -> ModelConfig:
        """Register (or replace) a model. Partial dicts are merged over the defaults."""
        if isinstance(config, dict):
            config = self.default_config.merged(config)
        self.models[model_id] = config
        if model_id == MASTER_MODEL_ID:
            self._master_prompt_customized = True
        logger.info("llm.model.registered", model_id=model_id, provider=config.provider)
        return config

    def get(self, model_id: str) -> ModelConfig | None:
        config = self.models.get(model_id)
        return config.model_copy() if config else None

    def update(self, model_id: str, **partial: Any) -> ModelConfig:
        current = self.models.get(model_id)
        if current is None:
            raise ModelNotFound(model_id)
        data = current.model_dump()
        data.update(partial)
        updated = ModelConfig.from_fields(data)
        self.models[model_id] = updated
        if model_id == MASTER_MODEL_ID and "system_prompt" in partial:
            self._master_prompt_customized = True
        logger.info("llm.model.updated", model_id=model_id, fields=sorted(partial))
        return updated

    def unregister(self, model_id: str) -> bool:
        if model_id == MASTER_MODEL_ID:
            raise InvalidOperation("The master model cannot be unregistered")
        if self.models.pop(model_id, None) is None:
            return False
        logger.info("llm.model.unregistered", model_id=model_id)
        return True

    def list_models(self) -> dict[str, dict[str, Any]]:
        return {model_id: config.model_dump() for model_id, config in self.models.items()}

    # -- Master model ------------------------------------------------------

    def has_master(self) -> bool:
        return MASTER_MODEL_ID in self.models

    def master_model(self) -> ModelConfig | None:
        return self.get(MASTER_MODEL_ID)

    def get_or_create_master(self) -> ModelConfig:
        """Return the master config, defaulting it from the base config on first use."""
        if MASTER_MODEL_ID not in self.models:
            self.models[MASTER_MODEL_ID] = self.default_config.merged(
                {"system_prompt": self._auto_master_prompt()}
            )
            self._master_prompt_customized = False
            logger.info("llm.master.created", model=self.default_config.model)
        return self.models[MASTER_MODEL_ID].model_copy()

    def refresh_master_prompt(self) -> bool:
        """Regenerate the auto prompt after capability changes.

        A prompt set by hand is left alone.
        """
        if MASTER_MODEL_ID not in self.models or self._master_prompt_customized:
            return False
        current = self.models[MASTER_MODEL_ID]
        self.models[MASTER_MODEL_ID] = current.model_copy(
            update={"system_prompt": self._auto_master_prompt()}
        )
        logger.debug("llm.master.prompt_refreshed")
        return True

    def update_master_model(self, **partial: Any) -> ModelConfig:
        self.get_or_create_master()
        return self.update(MASTER_MODEL_ID, **partial)

    def _auto_master_prompt(self) -> str:
        names = self.capabilities.names() if self.capabilities else []
        return build_master_system_prompt(names)

    # -- Sending -----------------------------------------------------------

    def resolve_config(
        self,
        model_id: str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> ModelConfig:
        base = self.default_config
        if model_id:
            registered = self.models.get(model_id)
            if registered is None:
                logger.warning("llm.model.unknown", model_id=model_id, fallback="default")
            else:
                base = registered
        return base.merged(overrides)

    async def send(
        self,
        turns: list[ConversationTurn | dict[str, Any]],
        overrides: dict[str, Any] | None = None,
        model_id: str | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse:
        """Send a conversation to the adapter selected by the effective config."""
        config = self.resolve_config(model_id, overrides)
        adapter = self.adapters.get(config.provider)
        if adapter is None:
            raise UnsupportedProvider(config.provider)

        messages = with_system_prompt(coerce_turns(turns), config.system_prompt)

        start = time.monotonic()
        self.request_count += 1
        request_id = self.request_count
        logger.info(
            "llm.request",
            request_id=request_id,
            model_id=model_id,
            provider=config.provider,
            model=config.model,
            message_count=len(messages),
            has_tools=bool(tools),
        )

        response = await adapter.complete(messages, config, tools)

        if response.usage:
            self.total_tokens_used += response.usage.get("total_tokens", 0)
        self.total_cost += response.cost
        logger.info(
            "llm.response",
            request_id=request_id,
            tokens=(response.usage or {}).get("total_tokens", 0),
            cost=f"${response.cost:.6f}",
            duration=f"{time.monotonic() - start:.2f}s",
        )
        return response

    async def generate_completion(
        self,
        prompt: str,
        overrides: dict[str, Any] | None = None,
        model_id: str | None = None,
    ) -> str:
        response = await self.send(
            [ConversationTurn(role="user", content=prompt)],
            overrides=overrides,
            model_id=model_id,
        )
        return response.content

    async def chat(
        self,
        message: str,
        history: list[ConversationTurn | dict[str, Any]] | None = None,
        overrides: dict[str, Any] | None = None,
        model_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> ChatResult:
        """One chat exchange, resolving at most one tool call."""
        turns = [*coerce_turns(history or []), ConversationTurn(role="user", content=message)]
        response, turns = await self.send_with_tools(
            turns, overrides=overrides, model_id=model_id, context=context
        )
        turns.append(ConversationTurn(role="assistant", content=response.content))
        return ChatResult(response=response, history=turns)

    async def send_with_tools(
        self,
        turns: list[ConversationTurn | dict[str, Any]],
        overrides: dict[str, Any] | None = None,
        model_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> tuple[ModelResponse, list[ConversationTurn]]:
        """Send with capability tools attached and resolve one round of tool calling.

        Capability failures are fed back to the model as ``{"error": ...}``.
        Returns the final response and the turns that produced it.
        """
        conversation = coerce_turns(turns)
        tools = self.capabilities.to_openai_tools() if self.capabilities else []
        response = await self.send(
            conversation, overrides=overrides, model_id=model_id, tools=tools or None
        )

        tool_call = response.tool_call
        if tool_call is None or self.capabilities is None:
            return response, conversation

        logger.info("llm.tool_call", tool=tool_call.name, call_id=tool_call.id)
        result_text = await self.capabilities.execute_tool_call(
            tool_call.name, tool_call.arguments, context
        )
        return await self.follow_up(
            conversation,
            response,
            tool_call,
            result_text,
            overrides=overrides,
            model_id=model_id,
        )

    async def follow_up(
        self,
        turns: list[ConversationTurn],
        response: ModelResponse,
        tool_call: ToolCall,
        result_text: str,
        *,
        overrides: dict[str, Any] | None = None,
        model_id: str | None = None,
    ) -> tuple[ModelResponse, list[ConversationTurn]]:
        """Append the tool call and its result, then ask the model once more without tools."""
        conversation = [
            *turns,
            ConversationTurn(role="assistant", content=response.content, tool_call=tool_call),
            ConversationTurn(role="tool", content=result_text, tool_call_id=tool_call.id),
        ]
        final = await self.send(conversation, overrides=overrides, model_id=model_id)
        return final, conversation

    @property
    def stats(self) -> dict[str, Any]:
        """Return usage statistics."""
        return {
            "total_tokens": self.total_tokens_used,
            "total_cost": f"${self.total_cost:.6f}",
            "request_count": self.request_count,
            "model": self.default_config.model,
            "models": sorted(self.models),
        }
