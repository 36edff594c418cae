"""Provider adapters — one per LLM provider, all behind ``complete()``.

Each adapter owns its request marshaling and normalizes the native
response into a :class:`ModelResponse`. Only the first tool call of a
response is extracted; parallel tool calls are not acted upon.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from typing import Any

import litellm
import structlog

from switchboard.credentials import CredentialPool
from switchboard.errors import ProviderUnavailable
from switchboard.llm.types import (
    ConversationTurn,
    ModelConfig,
    ModelResponse,
    ToolCall,
    new_call_id,
)

logger = structlog.get_logger()

# Suppress litellm's noisy logging
litellm.suppress_debug_info = True
litellm.drop_params = True


class ProviderAdapter(ABC):
    """Interface implemented by every provider adapter."""

    provider: str = ""

    @abstractmethod
    async def complete(
        self,
        turns: list[ConversationTurn],
        config: ModelConfig,
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse:
        ...


class LiteLLMAdapter(ProviderAdapter):
    """Shared LiteLLM transport; subclasses decide how turns are marshaled."""

    default_max_tokens: int | None = None

    def __init__(
        self,
        credentials: CredentialPool,
        *,
        api_base: str | None = None,
        timeout_s: float = 60.0,
    ) -> None:
        self.credentials = credentials
        self.api_base = api_base
        self.timeout_s = timeout_s

    def model_name(self, config: ModelConfig) -> str:
        if "/" in config.model:
            return config.model
        return f"{self.provider}/{config.model}"

    @abstractmethod
    def marshal_turns(
        self,
        turns: list[ConversationTurn],
        config: ModelConfig,
    ) -> list[dict[str, Any]]:
        ...

    def build_request(
        self,
        turns: list[ConversationTurn],
        config: ModelConfig,
        tools: list[dict[str, Any]] | None,
        api_key: str,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model_name(config),
            "messages": self.marshal_turns(turns, config),
            "temperature": config.temperature,
            "max_tokens": config.max_tokens or self.default_max_tokens,
            "api_key": api_key,
            "timeout": self.timeout_s,
        }
        if config.top_p is not None:
            kwargs["top_p"] = config.top_p
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        return kwargs

    async def complete(
        self,
        turns: list[ConversationTurn],
        config: ModelConfig,
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse:
        api_key = self.credentials.get(config.credential_name)
        if not api_key:
            raise ProviderUnavailable(
                f"No API key found for '{config.credential_name}' ({self.provider})"
            )

        kwargs = self.build_request(turns, config, tools, api_key)
        start = time.monotonic()
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            logger.error(
                "llm.adapter.error",
                provider=self.provider,
                model=kwargs["model"],
                error=str(e),
            )
            raise ProviderUnavailable(f"{self.provider} request failed: {e}") from e

        normalized = self.normalize(response, config)
        try:
            normalized.cost = litellm.completion_cost(completion_response=response)
        except Exception:
            normalized.cost = 0.0  # Unpriced or self-hosted models
        logger.info(
            "llm.adapter.response",
            provider=self.provider,
            model=normalized.model,
            has_tool_call=bool(normalized.tool_calls),
            duration=f"{time.monotonic() - start:.2f}s",
        )
        return normalized

    def normalize(self, response: Any, config: ModelConfig) -> ModelResponse:
        choice = response.choices[0]
        message = choice.message

        tool_calls: list[ToolCall] = []
        raw_calls = getattr(message, "tool_calls", None) or []
        if raw_calls:
            first = raw_calls[0]
            if len(raw_calls) > 1:
                logger.warning(
                    "llm.adapter.extra_tool_calls_ignored",
                    provider=self.provider,
                    count=len(raw_calls),
                )
            tool_calls.append(
                ToolCall(
                    id=getattr(first, "id", None) or new_call_id(),
                    name=first.function.name,
                    arguments=_parse_arguments(first.function.arguments),
                )
            )

        usage = None
        raw_usage = getattr(response, "usage", None)
        if raw_usage:
            usage = {
                "prompt_tokens": getattr(raw_usage, "prompt_tokens", 0) or 0,
                "completion_tokens": getattr(raw_usage, "completion_tokens", 0) or 0,
                "total_tokens": getattr(raw_usage, "total_tokens", 0) or 0,
            }

        return ModelResponse(
            content=message.content or "",
            model=getattr(response, "model", None) or config.model,
            usage=usage,
            tool_calls=tool_calls,
            finish_reason=getattr(choice, "finish_reason", None) or "stop",
        )


class OpenAIAdapter(LiteLLMAdapter):
    provider = "openai"

    def marshal_turns(
        self,
        turns: list[ConversationTurn],
        config: ModelConfig,
    ) -> list[dict[str, Any]]:
        return [turn.to_dict() for turn in turns]

    def build_request(
        self,
        turns: list[ConversationTurn],
        config: ModelConfig,
        tools: list[dict[str, Any]] | None,
        api_key: str,
    ) -> dict[str, Any]:
        kwargs = super().build_request(turns, config, tools, api_key)
        if config.response_format == "json_object":
            kwargs["response_format"] = {"type": "json_object"}
        return kwargs


class AnthropicAdapter(LiteLLMAdapter):
    """Anthropic messages: system prompt first, tool results only after a tool call."""

    provider = "anthropic"
    default_max_tokens = 1024

    def marshal_turns(
        self,
        turns: list[ConversationTurn],
        config: ModelConfig,
    ) -> list[dict[str, Any]]:
        system_parts = [t.content for t in turns if t.role == "system" and t.content]
        messages: list[dict[str, Any]] = []
        if system_parts:
            messages.append({"role": "system", "content": "\n\n".join(system_parts)})

        pending_call_ids: set[str] = set()
        for turn in turns:
            if turn.role == "system":
                continue
            if turn.role == "assistant" and turn.tool_call:
                pending_call_ids.add(turn.tool_call.id)
                messages.append(turn.to_dict())
                continue
            if turn.role == "tool":
                if turn.tool_call_id in pending_call_ids:
                    messages.append(turn.to_dict())
                else:
                    # Anthropic rejects tool results without a matching tool_use block
                    messages.append({"role": "user", "content": f"Tool result:\n{turn.content}"})
                continue
            messages.append({"role": turn.role, "content": turn.content})
        return messages


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {"_raw": raw}
    return parsed if isinstance(parsed, dict) else {"value": parsed}


ADAPTER_TYPES: dict[str, type[LiteLLMAdapter]] = {
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
}


def build_adapters(
    credentials: CredentialPool,
    *,
    api_base: str | None = None,
    timeout_s: float = 60.0,
) -> dict[str, ProviderAdapter]:
    """Instantiate one adapter per supported provider."""
    return {
        name: adapter_type(credentials, api_base=api_base, timeout_s=timeout_s)
        for name, adapter_type in ADAPTER_TYPES.items()
    }
