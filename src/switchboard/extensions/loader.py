"""Plugin loader — registers an explicit list of plugins."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from switchboard.capabilities import CapabilityRegistry
from switchboard.extensions.base import CapabilityPlugin

logger = structlog.get_logger()


async def register_plugins(
    registry: CapabilityRegistry,
    plugins: Iterable[CapabilityPlugin],
) -> list[str]:
    """Load each plugin into the registry.

    A plugin that fails to load is logged and skipped. Returns the names of
    the plugins that loaded.
    """
    loaded: list[str] = []
    for plugin in plugins:
        try:
            capabilities = await plugin.on_load(registry)
        except Exception as e:
            logger.error("plugins.load_failed", name=plugin.name, error=str(e))
            continue
        loaded.append(plugin.name)
        logger.info(
            "plugins.loaded",
            name=plugin.name,
            version=plugin.version,
            capabilities=[c.name for c in capabilities],
        )
    return loaded
