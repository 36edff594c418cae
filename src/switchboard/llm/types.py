"""Provider-agnostic model configuration, conversation turns and responses."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from switchboard.errors import InvalidConversation, InvalidModelConfig

Role = Literal["system", "user", "assistant", "tool"]


def new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:12]}"


class ModelConfig(BaseModel):
    """Everything needed to call one model on one provider."""

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    credential_name: str = "openai"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, gt=0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    system_prompt: str | None = None
    response_format: Literal["text", "json_object"] | None = None

    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> ModelConfig:
        """Validate ``data`` into a config, raising ``InvalidModelConfig`` on bad values."""
        try:
            return cls(**data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidModelConfig(f"Invalid model config: {problems}") from e

    def merged(self, overrides: dict[str, Any] | None) -> ModelConfig:
        """Return a copy with the non-None override fields applied (shallow)."""
        if not overrides:
            return self.model_copy()
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if k in data and v is not None})
        return ModelConfig.from_fields(data)


@dataclass
class ToolCall:
    """A model-issued request to run one capability."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_call_id)

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


@dataclass
class ConversationTurn:
    """A single turn in a model conversation."""

    role: Role
    content: str
    tool_call: ToolCall | None = None
    tool_call_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to OpenAI message format."""
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call:
            msg["tool_calls"] = [self.tool_call.to_openai()]
        if self.tool_call_id:
            msg["tool_call_id"] = self.tool_call_id
        return msg

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ConversationTurn:
        """Build a turn from an API/event payload.

        Legacy ``function`` turns are read as ``tool`` turns.
        """
        role = str(raw.get("role") or "user")
        if role == "function":
            role = "tool"
        if role not in ("system", "user", "assistant", "tool"):
            raise InvalidConversation(f"Unsupported role: {role}")

        tool_call = None
        raw_calls = raw.get("tool_calls")
        raw_call = raw.get("tool_call") or raw.get("function_call")
        if isinstance(raw_calls, list) and raw_calls:
            raw_call = raw_calls[0].get("function", raw_calls[0])
        if isinstance(raw_call, dict) and raw_call.get("name"):
            arguments = raw_call.get("arguments") or {}
            if isinstance(arguments, str):
                arguments = json.loads(arguments) if arguments.strip() else {}
            tool_call = ToolCall(name=raw_call["name"], arguments=arguments)

        content = raw.get("content")
        return cls(
            role=role,  # type: ignore[arg-type]
            content=content if isinstance(content, str) else json.dumps(content or ""),
            tool_call=tool_call,
            tool_call_id=raw.get("tool_call_id"),
        )


def coerce_turns(turns: list[ConversationTurn | dict[str, Any]]) -> list[ConversationTurn]:
    return [t if isinstance(t, ConversationTurn) else ConversationTurn.from_dict(t) for t in turns]


def with_system_prompt(
    turns: list[ConversationTurn],
    system_prompt: str | None,
) -> list[ConversationTurn]:
    """Prepend the system prompt unless the conversation already starts with one.

    A conversation may carry at most one system turn, and it must come first.
    """
    system_positions = [i for i, turn in enumerate(turns) if turn.role == "system"]
    if len(system_positions) > 1 or (system_positions and system_positions[0] != 0):
        raise InvalidConversation("Only one system turn is permitted and it must be first")

    if system_positions or not system_prompt:
        return list(turns)
    return [ConversationTurn(role="system", content=system_prompt), *turns]


@dataclass
class ModelResponse:
    """Normalized result of one provider call."""

    content: str
    model: str
    usage: dict[str, int] | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str = "stop"
    cost: float = 0.0

    @property
    def tool_call(self) -> ToolCall | None:
        """The first tool call; additional simultaneous calls are not acted upon."""
        return self.tool_calls[0] if self.tool_calls else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "usage": self.usage,
            "tool_calls": [{"name": tc.name, "arguments": tc.arguments} for tc in self.tool_calls],
            "finish_reason": self.finish_reason,
        }


@dataclass
class ChatResult:
    """Response plus the updated history of a chat call."""

    response: ModelResponse
    history: list[ConversationTurn]

    def to_dict(self) -> dict[str, Any]:
        return {
            "response": self.response.to_dict(),
            "history": [turn.to_dict() for turn in self.history],
        }
