"""Config subsystem public API.

Two layers:
    get_settings() -> KernelSettings (kernel's own YAML + env settings)
    ConfigStore     -> per-module typed options (resolve / set / save)
"""

from .loader import (  # noqa: F401
    get_settings,
    as_dict,
    clear_settings_cache,
)
from .prompt import (  # noqa: F401
    InputPort,
    ConsoleInputPort,
    ScriptedInputPort,
)
from .store import ConfigStore, ModuleOptions, load_persisted  # noqa: F401
from .schemas.options import (  # noqa: F401
    OptionSpec,
    ResolvedOption,
    type_matches,
)
from kernel.errors import ConfigError  # noqa: F401

__all__ = [
    "get_settings",
    "as_dict",
    "clear_settings_cache",
    "ConfigError",
    "InputPort",
    "ConsoleInputPort",
    "ScriptedInputPort",
    "ConfigStore",
    "ModuleOptions",
    "load_persisted",
    "OptionSpec",
    "ResolvedOption",
    "type_matches",
]
