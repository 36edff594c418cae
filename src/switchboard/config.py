"""Switchboard configuration — loads from switchboard.yaml + environment."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_RESERVED_PREFIXES = ["function:", "job:", "llm:"]


def _load_yaml_config() -> dict[str, Any]:
    """Load switchboard.yaml from SWITCHBOARD_CONFIG_PATH or default locations."""
    config_path = os.getenv("SWITCHBOARD_CONFIG_PATH")
    search_paths = (
        [Path(config_path)]
        if config_path
        else [
            Path("/etc/switchboard/switchboard.yaml"),
            Path("switchboard.yaml"),
        ]
    )
    for path in search_paths:
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}
    return {}


def _parse_string_list(value: Any) -> list[str]:
    """Accept a JSON list, a comma separated string, or a real sequence."""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        return [item.strip() for item in text.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value).strip()] if str(value).strip() else []


class LLMConfig(BaseSettings):
    """Default model configuration plus extra named models."""

    enabled: bool = True
    provider: str = Field(default="openai", description="Provider adapter key")
    model: str = Field(default="gpt-4o-mini", description="Provider model identifier")
    credential_name: str = Field(default="openai", description="Credential pool used for API keys")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, gt=0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    system_prompt: str | None = "You are a helpful AI assistant."
    response_format: Literal["text", "json_object"] | None = None
    api_base: str | None = Field(default=None, description="Custom API base URL")
    timeout_s: float = Field(default=60.0, gt=0)
    models: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Additional model configs keyed by model id",
    )

    model_config = SettingsConfigDict(env_prefix="SWITCHBOARD_LLM_")

    def base_model_fields(self) -> dict[str, Any]:
        """Fields that make up the default ModelConfig."""
        return {
            "provider": self.provider,
            "model": self.model,
            "credential_name": self.credential_name,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "system_prompt": self.system_prompt,
            "response_format": self.response_format,
        }


class DispatchConfig(BaseSettings):
    """Decision engine behavior."""

    master_model_enabled: bool = True
    reserved_prefixes: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_RESERVED_PREFIXES),
        description="Event type prefixes that always bypass the Master Model",
    )
    max_concurrent_decisions: int = Field(
        default=16,
        ge=0,
        description="Cap on simultaneous Master Model calls. 0 = unbounded",
    )

    @field_validator("reserved_prefixes", mode="before")
    @classmethod
    def _parse_reserved_prefixes(cls, value: Any) -> list[str]:
        return _parse_string_list(value)

    model_config = SettingsConfigDict(env_prefix="SWITCHBOARD_DISPATCH_")


class JobsConfig(BaseSettings):
    """Deferred work queue configuration."""

    enabled: bool = True
    concurrency: int = Field(default=5, gt=0)
    retry_attempts: int = Field(default=3, gt=0)
    retry_delay_ms: int = Field(default=5000, ge=0)
    poll_interval_s: float = Field(default=0.5, gt=0)
    data_dir: str = Field(default="data")
    journal_mode: Literal["WAL", "DELETE"] = "WAL"
    notify_events: bool = Field(
        default=True,
        description="Publish job:completed / job:failed messages through the gateway",
    )

    model_config = SettingsConfigDict(env_prefix="SWITCHBOARD_JOBS_")


class GatewayConfig(BaseSettings):
    """Outbound delivery of responses and acknowledgments."""

    response_url: str | None = None
    ack_url: str | None = None
    timeout_s: int = Field(default=10, ge=1, le=300)

    model_config = SettingsConfigDict(env_prefix="SWITCHBOARD_GATEWAY_")


class SwitchboardConfig(BaseSettings):
    """Root Switchboard configuration."""

    name: str = Field(default="switchboard-agent")
    version: str = Field(default="1.0.0")

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8000, description="Server bind port")

    # Auth
    api_key: str = Field(default="", description="API key for the admin API. Empty = no auth")

    # Sub-configs
    llm: LLMConfig = Field(default_factory=LLMConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' or 'console'")

    model_config = SettingsConfigDict(
        env_prefix="SWITCHBOARD_",
        env_nested_delimiter="__",
    )

    @classmethod
    def load(cls) -> SwitchboardConfig:
        """Load config from YAML + env vars (env takes precedence)."""
        yaml_cfg = _load_yaml_config()

        sections: dict[str, type[BaseModel]] = {
            "llm": LLMConfig,
            "dispatch": DispatchConfig,
            "jobs": JobsConfig,
            "gateway": GatewayConfig,
        }

        # Only pass YAML sub-configs if they have data;
        # otherwise let pydantic-settings pick up env vars
        kwargs: dict[str, Any] = {}
        for key, value in yaml_cfg.items():
            section = sections.get(key)
            if section is None:
                kwargs[key] = value
            elif value:
                kwargs[key] = section(**value)

        return cls(**kwargs)


# Singleton
_config: SwitchboardConfig | None = None


def get_config() -> SwitchboardConfig:
    """Get or create the global config."""
    global _config
    if _config is None:
        _config = SwitchboardConfig.load()
    return _config
