"""Model registry, provider adapters and conversation types."""

from switchboard.llm.adapters import (
    ADAPTER_TYPES,
    AnthropicAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    build_adapters,
)
from switchboard.llm.registry import MASTER_MODEL_ID, ModelRegistry
from switchboard.llm.types import (
    ChatResult,
    ConversationTurn,
    ModelConfig,
    ModelResponse,
    ToolCall,
)

__all__ = [
    "ADAPTER_TYPES",
    "AnthropicAdapter",
    "ChatResult",
    "ConversationTurn",
    "MASTER_MODEL_ID",
    "ModelConfig",
    "ModelRegistry",
    "ModelResponse",
    "OpenAIAdapter",
    "ProviderAdapter",
    "ToolCall",
    "build_adapters",
]
