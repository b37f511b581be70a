"""Modules package.

Defines the module contract and the registry that loads modules in their
declared order:
 - capability protocols (Identifiable, Configurable, Initializable, Startable)
 - ModuleDescriptor (immutable, one per loaded module)
 - LoadedModule (runtime slot holding the interface returned by init)
 - load_all(sources) -> (descriptors by id, order)
"""
from __future__ import annotations

from .descriptor import (  # noqa: F401
    Configurable,
    Identifiable,
    Initializable,
    LoadedModule,
    ModuleDescriptor,
    Startable,
    interface_start,
)
from .registry import CONFIG_MODULE_ID, describe, load_all  # noqa: F401

__all__ = [
    "Configurable",
    "Identifiable",
    "Initializable",
    "LoadedModule",
    "ModuleDescriptor",
    "Startable",
    "interface_start",
    "CONFIG_MODULE_ID",
    "describe",
    "load_all",
]
