from __future__ import annotations

import json

import httpx
import pytest

from switchboard.capabilities import CapabilityRegistry
from switchboard.credentials import CredentialPool
from switchboard.errors import CredentialMissing, DuplicateCapability
from switchboard.extensions import register_plugins
from switchboard.llm import ModelConfig, ModelRegistry, ModelResponse
from switchboard.plugins import BUILTIN_PLUGINS, DataAnalysisPlugin, WeatherPlugin
from switchboard.plugins import weather as weather_module
from switchboard.plugins.text_analysis import PREFERRED_MODEL_ID


@pytest.mark.asyncio
async def test_builtin_plugins_register_their_capabilities() -> None:
    registry = CapabilityRegistry()

    loaded = await register_plugins(registry, BUILTIN_PLUGINS)

    assert loaded == ["weather", "data_analysis", "text_analysis", "webhook"]
    assert registry.names() == ["getWeather", "analyzeData", "analyzeText", "sendWebhook"]
    assert registry.get("getWeather").credential_name == "weather"
    assert registry.get("analyzeText").preferred_model_id == PREFERRED_MODEL_ID


@pytest.mark.asyncio
async def test_duplicate_plugin_is_skipped() -> None:
    registry = CapabilityRegistry()

    loaded = await register_plugins(registry, [DataAnalysisPlugin(), DataAnalysisPlugin()])

    assert loaded == ["data_analysis"]
    with pytest.raises(DuplicateCapability):
        await DataAnalysisPlugin().on_load(registry)


@pytest.mark.asyncio
async def test_analyze_data_computes_statistics() -> None:
    registry = CapabilityRegistry()
    await register_plugins(registry, [DataAnalysisPlugin()])

    result = await registry.invoke(
        "analyzeData",
        {"dataset": "scores", "values": [1, 2, 2, 5], "metrics": ["count", "mean", "median", "mode", "max"]},
    )

    assert result["results"] == {"count": 4, "mean": 2.5, "median": 2.0, "mode": 2.0, "max": 5.0}


@pytest.mark.asyncio
async def test_weather_requires_credential() -> None:
    registry = CapabilityRegistry()
    await register_plugins(registry, [WeatherPlugin()])

    with pytest.raises(CredentialMissing):
        await registry.invoke("getWeather", {"city": "Oslo"})


@pytest.mark.asyncio
async def test_weather_calls_openweathermap(monkeypatch) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "name": "Oslo",
                "sys": {"country": "NO"},
                "main": {"temp": 3.5, "feels_like": 1.0, "humidity": 80},
                "wind": {"speed": 4.2},
                "weather": [{"description": "light snow", "icon": "13d"}],
            },
        )

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        weather_module.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )
    registry = CapabilityRegistry(CredentialPool({"weather": ["wk-1"]}))
    await register_plugins(registry, [WeatherPlugin()])

    result = await registry.invoke("getWeather", {"city": "Oslo"})

    assert result["temperature"] == 3.5
    assert result["description"] == "light snow"
    assert requests[0].url.params["appid"] == "wk-1"
    assert requests[0].url.params["units"] == "metric"


@pytest.mark.asyncio
async def test_analyze_text_uses_model_from_context() -> None:
    class JsonAdapter:
        def __init__(self) -> None:
            self.configs: list[ModelConfig] = []

        async def complete(self, turns, config, tools=None) -> ModelResponse:
            self.configs.append(config)
            return ModelResponse(content=json.dumps({"sentiment": "positive"}), model=config.model)

    adapter = JsonAdapter()
    models = ModelRegistry(ModelConfig(), {"openai": adapter})
    models.register(PREFERRED_MODEL_ID, {"model": "gpt-4o"})
    registry = CapabilityRegistry()
    await register_plugins(registry, BUILTIN_PLUGINS)

    result = await registry.invoke(
        "analyzeText",
        {"text": "I love this."},
        {"llm": {"registry": models, "model_id": PREFERRED_MODEL_ID}},
    )

    assert result["analysis"] == {"sentiment": "positive"}
    assert adapter.configs[0].model == "gpt-4o"
    assert adapter.configs[0].response_format == "json_object"


@pytest.mark.asyncio
async def test_analyze_text_without_model_summarizes_locally() -> None:
    registry = CapabilityRegistry()
    await register_plugins(registry, BUILTIN_PLUGINS)

    result = await registry.invoke("analyzeText", {"text": "Tea is great. Tea is warm!"})

    assert result["model"] is None
    assert result["analysis"]["sentence_count"] == 2
    assert result["analysis"]["keywords"][0] == "tea"
