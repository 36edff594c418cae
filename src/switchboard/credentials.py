"""Credential pools — round-robin API key selection per service."""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping

import structlog

logger = structlog.get_logger()

_POOL_SUFFIX = "_API_KEYS"
_SINGLE_SUFFIX = "_API_KEY"
# Switchboard's own settings, e.g. the admin SWITCHBOARD_API_KEY
_RESERVED_PREFIX = "SWITCHBOARD_"


def normalize_credential_name(name: str) -> str:
    return (name or "").strip().lower()


def _parse_keys(raw: str) -> list[str]:
    text = raw.strip()
    if not text:
        return []
    if text.startswith("["):
        parsed = json.loads(text)
        if not isinstance(parsed, list):
            raise ValueError("expected a JSON list")
        return [str(item).strip() for item in parsed if str(item).strip()]
    return [item.strip() for item in text.split(",") if item.strip()]


class CredentialPool:
    """Rotates through the keys configured for each credential name.

    Spreading calls over several keys keeps each one under its provider's
    rate limit. The rotation index wraps modulo the pool size.
    """

    def __init__(self, pools: Mapping[str, Iterable[str]] | None = None) -> None:
        self._pools: dict[str, list[str]] = {}
        self._cursors: dict[str, int] = {}
        for name, keys in (pools or {}).items():
            self.set_keys(name, keys)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CredentialPool:
        """Build pools from ``<NAME>_API_KEYS`` variables (JSON list or comma separated).

        A lone ``<NAME>_API_KEY`` seeds a one-key pool unless ``<NAME>_API_KEYS`` is set.
        """
        env = os.environ if environ is None else environ
        pool = cls()
        for key, value in env.items():
            if not key.endswith(_POOL_SUFFIX) or not value or key.startswith(_RESERVED_PREFIX):
                continue
            name = key[: -len(_POOL_SUFFIX)]
            try:
                pool.set_keys(name, _parse_keys(value))
            except (json.JSONDecodeError, ValueError) as e:
                logger.error("credentials.parse_failed", variable=key, error=str(e))
        for key, value in env.items():
            if key.startswith(_RESERVED_PREFIX):
                continue
            if key.endswith(_SINGLE_SUFFIX) and value.strip():
                name = key[: -len(_SINGLE_SUFFIX)]
                if not pool.has(name):
                    pool.set_keys(name, [value.strip()])
        logger.info("credentials.loaded", pools=pool.names())
        return pool

    def set_keys(self, name: str, keys: Iterable[str]) -> None:
        normalized = normalize_credential_name(name)
        cleaned = [key for key in keys if key]
        if not cleaned:
            self._pools.pop(normalized, None)
            self._cursors.pop(normalized, None)
            return
        self._pools[normalized] = cleaned
        self._cursors[normalized] = 0

    def keys(self, name: str) -> list[str]:
        return list(self._pools.get(normalize_credential_name(name), []))

    def names(self) -> list[str]:
        return sorted(self._pools)

    def has(self, name: str) -> bool:
        return normalize_credential_name(name) in self._pools

    def get(self, name: str, index: int | None = None) -> str | None:
        """Return a key for ``name``; rotates when no explicit index is given."""
        normalized = normalize_credential_name(name)
        keys = self._pools.get(normalized)
        if not keys:
            return None
        if index is not None:
            return keys[index % len(keys)]
        cursor = self._cursors.get(normalized, 0)
        self._cursors[normalized] = (cursor + 1) % len(keys)
        return keys[cursor % len(keys)]
