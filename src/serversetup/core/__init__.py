"""serversetup core library package."""

from . import exceptions  # noqa: F401
from .instance import InstanceRegistry, InstanceState, ServerInstance, process_registry

__all__ = [
    "exceptions",
    "InstanceRegistry",
    "InstanceState",
    "ServerInstance",
    "process_registry",
]
