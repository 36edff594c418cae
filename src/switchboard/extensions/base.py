"""Plugin base class — the contract for capability bundles."""

from __future__ import annotations

from abc import ABC, abstractmethod

from switchboard.capabilities import Capability, CapabilityRegistry


class CapabilityPlugin(ABC):
    """Base class for all Switchboard plugins.

    To create a plugin:
    1. Subclass CapabilityPlugin in a module under ``switchboard.plugins``
    2. Return its capabilities from ``capabilities()``
    3. Add an instance to ``BUILTIN_PLUGINS`` (or pass it to ``register_plugins``)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique plugin name."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    def version(self) -> str:
        return "0.1.0"

    @abstractmethod
    def capabilities(self) -> list[Capability]:
        ...

    async def on_load(self, registry: CapabilityRegistry) -> list[Capability]:
        """Register this plugin's capabilities and return them."""
        capabilities = self.capabilities()
        registry.register_many(capabilities)
        return capabilities

    async def on_unload(self, registry: CapabilityRegistry) -> None:
        for capability in self.capabilities():
            registry.unregister(capability.name)

    def __repr__(self) -> str:
        return f"<Plugin: {self.name} v{self.version}>"
