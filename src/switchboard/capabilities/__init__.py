"""Capability registry and its value types."""

from switchboard.capabilities.registry import (
    Capability,
    CapabilityHandler,
    CapabilityRegistry,
    serialize_result,
)

__all__ = [
    "Capability",
    "CapabilityHandler",
    "CapabilityRegistry",
    "serialize_result",
]
