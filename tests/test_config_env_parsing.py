from __future__ import annotations

from switchboard.config import SwitchboardConfig


def test_defaults_reserve_internal_prefixes(monkeypatch) -> None:
    monkeypatch.setenv("SWITCHBOARD_CONFIG_PATH", "/nonexistent/switchboard.yaml")

    config = SwitchboardConfig.load()

    assert config.dispatch.reserved_prefixes == ["function:", "job:", "llm:"]
    assert config.dispatch.max_concurrent_decisions == 16
    assert config.jobs.retry_attempts == 3
    assert config.jobs.retry_delay_ms == 5000


def test_reserved_prefixes_accept_comma_lists(monkeypatch) -> None:
    monkeypatch.setenv("SWITCHBOARD_CONFIG_PATH", "/nonexistent/switchboard.yaml")
    monkeypatch.setenv("SWITCHBOARD_DISPATCH_RESERVED_PREFIXES", "function:,job:,llm:,admin:")

    config = SwitchboardConfig.load()

    assert config.dispatch.reserved_prefixes == ["function:", "job:", "llm:", "admin:"]


def test_section_env_vars_override_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SWITCHBOARD_CONFIG_PATH", "/nonexistent/switchboard.yaml")
    monkeypatch.setenv("SWITCHBOARD_LLM_PROVIDER", "anthropic")
    monkeypatch.setenv("SWITCHBOARD_LLM_MODEL", "claude-3-haiku")
    monkeypatch.setenv("SWITCHBOARD_JOBS_CONCURRENCY", "2")

    config = SwitchboardConfig.load()

    assert config.llm.base_model_fields()["provider"] == "anthropic"
    assert config.llm.model == "claude-3-haiku"
    assert config.jobs.concurrency == 2


def test_yaml_sections_are_loaded(monkeypatch, tmp_path) -> None:
    path = tmp_path / "switchboard.yaml"
    path.write_text(
        "name: yaml-agent\n"
        "dispatch:\n"
        "  master_model_enabled: false\n"
        "llm:\n"
        "  models:\n"
        "    textAnalysisModel:\n"
        "      model: gpt-4o\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SWITCHBOARD_CONFIG_PATH", str(path))

    config = SwitchboardConfig.load()

    assert config.name == "yaml-agent"
    assert config.dispatch.master_model_enabled is False
    assert config.llm.models == {"textAnalysisModel": {"model": "gpt-4o"}}
