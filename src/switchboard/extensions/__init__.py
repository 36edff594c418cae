from switchboard.extensions.base import CapabilityPlugin
from switchboard.extensions.loader import register_plugins

__all__ = ["CapabilityPlugin", "register_plugins"]
