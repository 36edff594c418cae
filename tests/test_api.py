from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from switchboard.capabilities import Capability, CapabilityRegistry
from switchboard.config import DispatchConfig, JobsConfig, SwitchboardConfig
from switchboard.credentials import CredentialPool
from switchboard.dispatch import Dispatcher
from switchboard.gateway import InMemoryEventGateway
from switchboard.llm import MASTER_MODEL_ID, ModelConfig, ModelRegistry, ModelResponse
from switchboard.main import create_app
from switchboard.runtime import Runtime


class EchoAdapter:
    async def complete(self, turns, config, tools=None) -> ModelResponse:
        return ModelResponse(content=f"echo: {turns[-1].content}", model=config.model)


def _runtime(api_key: str = "") -> Runtime:
    config = SwitchboardConfig(
        api_key=api_key,
        jobs=JobsConfig(enabled=False),
        dispatch=DispatchConfig(master_model_enabled=False),
    )
    capabilities = CapabilityRegistry(CredentialPool())
    capabilities.register(Capability("double", "Doubles x", lambda p, c: p["x"] * 2))
    capabilities.register(Capability("triple", "Triples x", lambda p, c: p["x"] * 3))
    models = ModelRegistry(ModelConfig(), {"openai": EchoAdapter()}, capabilities)
    models.get_or_create_master()
    gateway = InMemoryEventGateway()
    dispatcher = Dispatcher(capabilities, models, None, gateway, config=config.dispatch)
    return Runtime(
        config=config,
        credentials=capabilities.credentials,
        capabilities=capabilities,
        gateway=gateway,
        dispatcher=dispatcher,
        models=models,
    )


@pytest.fixture
def runtime() -> Runtime:
    return _runtime()


@pytest.fixture
def client(runtime: Runtime):
    with TestClient(create_app(runtime)) as test_client:
        yield test_client


def test_health_reports_components(client: TestClient) -> None:
    data = client.get("/health").json()

    assert data["status"] == "ok"
    assert data["components"]["jobs"] is False
    assert data["master_model"] is True
    assert data["capabilities"] == ["double", "triple"]


def test_post_event_returns_outcome(client: TestClient, runtime: Runtime) -> None:
    resp = client.post(
        "/v1/events",
        json={"type": "function:execute", "payload": {"name": "double", "params": {"x": 4}}},
    )

    data = resp.json()
    assert resp.status_code == 200
    assert data["result"] == 8
    assert data["ack_status"] == "success"
    assert len(runtime.gateway.acknowledgments) == 1


def test_unknown_event_type_gets_placeholder(client: TestClient) -> None:
    data = client.post("/v1/events", json={"type": "chat:ask"}).json()

    assert data["result"] == {"received": True, "processed": False}


def test_invoke_function_and_not_found(client: TestClient) -> None:
    ok = client.post("/v1/functions", json={"name": "triple", "params": {"x": 2}})
    missing = client.post("/v1/functions", json={"name": "nope"})

    assert ok.json() == {"name": "triple", "result": 6}
    assert missing.status_code == 404
    assert missing.json()["code"] == "capability_not_found"


def test_capability_listing_and_removal(client: TestClient) -> None:
    names = [c["name"] for c in client.get("/v1/capabilities").json()["capabilities"]]
    deleted = client.delete("/v1/capabilities/triple")
    again = client.delete("/v1/capabilities/triple")

    assert names == ["double", "triple"]
    assert deleted.status_code == 200
    assert again.status_code == 404


def test_removing_capability_refreshes_auto_master_prompt(client: TestClient, runtime: Runtime) -> None:
    client.delete("/v1/capabilities/triple")

    prompt = runtime.models.master_model().system_prompt
    assert "double" in prompt
    assert "triple" not in prompt


def test_model_admin_routes(client: TestClient) -> None:
    put = client.put("/v1/models/fast", json={"model": "gpt-4o-mini", "temperature": 0.1})
    patch = client.patch("/v1/models/fast", json={"max_tokens": 256})
    missing = client.patch("/v1/models/ghost", json={"max_tokens": 1})
    master_delete = client.delete(f"/v1/models/{MASTER_MODEL_ID}")

    assert put.json()["config"]["temperature"] == 0.1
    assert patch.json()["config"]["max_tokens"] == 256
    assert missing.status_code == 404
    assert master_delete.status_code == 409
    assert "fast" in client.get("/v1/models").json()["models"]


def test_patch_master_model_prompt(client: TestClient, runtime: Runtime) -> None:
    resp = client.patch("/v1/master-model", json={"system_prompt": "Route carefully."})

    assert resp.json()["config"]["system_prompt"] == "Route carefully."
    runtime.models.refresh_master_prompt()
    assert runtime.models.master_model().system_prompt == "Route carefully."


def test_generate(client: TestClient) -> None:
    data = client.post("/v1/generate", json={"prompt": "hello"}).json()

    assert data["content"] == "echo: hello"


def test_jobs_unavailable_without_queue(client: TestClient) -> None:
    resp = client.post("/v1/jobs", json={"name": "double", "data": {"x": 1}})

    assert resp.status_code == 503
    assert resp.json()["code"] == "component_unavailable"


def test_api_key_required_when_configured() -> None:
    with TestClient(create_app(_runtime(api_key="secret"))) as client:
        missing = client.get("/v1/capabilities")
        wrong = client.get("/v1/capabilities", headers={"X-API-Key": "nope"})
        ok = client.get("/v1/capabilities", headers={"X-API-Key": "secret"})
        health = client.get("/health")

    assert missing.status_code == 401
    assert wrong.status_code == 403
    assert ok.status_code == 200
    assert health.status_code == 200


def test_invalid_model_values_are_rejected_with_400(client: TestClient) -> None:
    client.put("/v1/models/fast", json={"model": "gpt-4o-mini"})

    patch = client.patch("/v1/models/fast", json={"temperature": 5})
    put = client.put("/v1/models/slow", json={"max_tokens": 0})
    master = client.patch("/v1/master-model", json={"top_p": 3})

    assert patch.status_code == 400
    assert patch.json()["code"] == "invalid_model_config"
    assert put.status_code == 400
    assert master.status_code == 400
    assert client.get("/v1/models/fast").json()["config"]["temperature"] == 0.7
