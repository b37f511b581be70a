"""Module contract: capability protocols, descriptor and runtime slot.

A module is any object (normally a Python module) exposing::

    id: str
    version: str
    config_spec: dict[str, {default, type, description}]   # optional
    init(context) -> interface                              # optional*
    setup(option_slice) -> None                             # optional

(*) a module without ``init`` is loaded and has its options resolved, but is
never initialized and never gets a task.

The interface returned by ``init`` may be a mapping or an object; its
optional ``start`` entry is a generator function run as a task.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

from kernel.config.schemas.options import OptionSpec


@runtime_checkable
class Identifiable(Protocol):
    id: str
    version: str


@runtime_checkable
class Configurable(Protocol):
    config_spec: Mapping[str, Any]


@runtime_checkable
class Initializable(Protocol):
    def init(self, context: Any) -> Any:
        ...


@runtime_checkable
class Startable(Protocol):
    def start(self, event: Any) -> Any:
        ...


def interface_start(interface: Any) -> Optional[Callable[..., Any]]:
    """Return the ``start`` entry of an interface, if any."""
    if interface is None:
        return None
    if isinstance(interface, Mapping):
        start = interface.get("start")
    else:
        start = getattr(interface, "start", None)
    return start if callable(start) else None


@dataclass(frozen=True)
class ModuleDescriptor:
    id: str
    version: str
    source: str
    config_spec: Dict[str, OptionSpec] = field(default_factory=dict)
    init: Optional[Callable[[Any], Any]] = None
    setup: Optional[Callable[[Any], None]] = None


class LoadedModule:
    __slots__ = ("descriptor", "interface", "initialized")

    def __init__(self, descriptor: ModuleDescriptor, interface: Any = None):
        self.descriptor = descriptor
        self.interface: Any | None = interface
        self.initialized = interface is not None

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def version(self) -> str:
        return self.descriptor.version

    def __repr__(self) -> str:
        return (
            f"LoadedModule(id={self.id!r}, version={self.version!r}, "
            f"initialized={self.initialized})"
        )
