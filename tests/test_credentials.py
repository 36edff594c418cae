from __future__ import annotations

from switchboard.credentials import CredentialPool


def test_round_robin_wraps_modulo_pool_size() -> None:
    pool = CredentialPool({"weather": ["k1", "k2", "k3"]})

    picks = [pool.get("weather") for _ in range(5)]

    assert picks == ["k1", "k2", "k3", "k1", "k2"]


def test_names_are_normalized() -> None:
    pool = CredentialPool({" OpenAI ": ["sk-1"]})

    assert pool.has("openai")
    assert pool.get("OPENAI") == "sk-1"


def test_explicit_index_does_not_advance_rotation() -> None:
    pool = CredentialPool({"svc": ["a", "b"]})

    assert pool.get("svc", index=3) == "b"
    assert pool.get("svc") == "a"


def test_missing_pool_returns_none() -> None:
    assert CredentialPool().get("nothing") is None


def test_from_env_reads_json_and_comma_lists() -> None:
    pool = CredentialPool.from_env(
        {
            "OPENAI_API_KEYS": '["sk-a", "sk-b"]',
            "WEATHER_API_KEYS": "w1, w2",
            "UNRELATED": "x",
        }
    )

    assert pool.names() == ["openai", "weather"]
    assert pool.keys("openai") == ["sk-a", "sk-b"]
    assert pool.keys("weather") == ["w1", "w2"]


def test_from_env_skips_malformed_json() -> None:
    pool = CredentialPool.from_env({"BROKEN_API_KEYS": '["unterminated'})

    assert not pool.has("broken")


def test_from_env_single_key_used_when_no_pool() -> None:
    pool = CredentialPool.from_env(
        {
            "ANTHROPIC_API_KEY": "ak-1",
            "OPENAI_API_KEY": "ignored",
            "OPENAI_API_KEYS": "sk-a,sk-b",
        }
    )

    assert pool.keys("anthropic") == ["ak-1"]
    assert pool.keys("openai") == ["sk-a", "sk-b"]


def test_from_env_ignores_switchboard_settings() -> None:
    pool = CredentialPool.from_env(
        {
            "SWITCHBOARD_API_KEY": "admin-secret",
            "SWITCHBOARD_API_KEYS": "a,b",
            "WEATHER_API_KEY": "wk",
        }
    )

    assert pool.names() == ["weather"]
    assert pool.get("switchboard") is None
