"""Module registry: turns ordered module sources into descriptors.

Responsibilities:
 - Import each source (dotted path) or accept a prebuilt module object
 - Validate the identity fields and option specs
 - Keep declaration order; it is the only ordering guarantee modules get
 - Load errors → log, emit ModuleLoadFailed, skip (bootstrap continues)

No dependency graph or cycle detection: declaring sources in a working order
is the caller's responsibility.
"""
from __future__ import annotations

import importlib
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from kernel.config.schemas.options import OptionSpec
from kernel.errors import ModuleLoadError
from kernel.events import emit, ModuleLoaded, ModuleLoadFailed

from .descriptor import ModuleDescriptor

# Id of the synthetic module exposing the option store to other modules.
CONFIG_MODULE_ID = "config"


def _source_name(source: Any) -> str:
    if isinstance(source, str):
        return source
    return getattr(source, "__name__", None) or repr(source)


def _import_source(source: Any) -> Any:
    if not isinstance(source, str):
        return source
    try:
        return importlib.import_module(source)
    except Exception as e:  # noqa: BLE001
        raise ModuleLoadError(f"cannot import {source}: {e}") from e


def _option_specs(module_id: str, raw: Any) -> Dict[str, OptionSpec]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ModuleLoadError(
            f"{module_id}: config_spec must be a mapping",
            code="module-invalid-spec",
        )
    specs: Dict[str, OptionSpec] = {}
    for name, spec in raw.items():
        try:
            specs[str(name)] = (
                spec if isinstance(spec, OptionSpec)
                else OptionSpec.model_validate(spec)
            )
        except Exception as e:  # noqa: BLE001
            raise ModuleLoadError(
                f"{module_id}.{name}: invalid option spec: {e}",
                code="module-invalid-spec",
            ) from e
    return specs


def describe(source: Any) -> ModuleDescriptor:
    """Load one source and build its descriptor (raises ModuleLoadError)."""
    name = _source_name(source)
    mod = _import_source(source)
    module_id = getattr(mod, "id", None)
    version = getattr(mod, "version", None)
    if not isinstance(module_id, str) or not module_id:
        raise ModuleLoadError(f"{name}: missing module id")
    if version is None:
        raise ModuleLoadError(f"{name}: missing version")
    if module_id == CONFIG_MODULE_ID:
        raise ModuleLoadError(
            f"{name}: id '{CONFIG_MODULE_ID}' is reserved",
            code="module-reserved-id",
        )
    init = getattr(mod, "init", None)
    setup = getattr(mod, "setup", None)
    return ModuleDescriptor(
        id=module_id,
        version=str(version),
        source=name,
        config_spec=_option_specs(
            module_id, getattr(mod, "config_spec", None)
        ),
        init=init if callable(init) else None,
        setup=setup if callable(setup) else None,
    )


def load_all(
    sources: Iterable[Any],
) -> Tuple[Dict[str, ModuleDescriptor], List[str]]:
    loaded: Dict[str, ModuleDescriptor] = {}
    order: List[str] = []
    for source in sources:
        name = _source_name(source)
        try:
            desc = describe(source)
            if desc.id in loaded:
                raise ModuleLoadError(
                    f"{name}: duplicate module id {desc.id}",
                    code="module-duplicate",
                )
        except ModuleLoadError as e:
            print(
                f"[module-load] skipped source={name} code={e.code} error={e}"
            )  # noqa: T201
            emit(
                ModuleLoadFailed(
                    source=name, error_type=e.code, message=str(e)
                )
            )
            continue
        loaded[desc.id] = desc
        order.append(desc.id)
        print(f"Loaded {desc.id} v{desc.version}")  # noqa: T201
        emit(
            ModuleLoaded(
                module_id=desc.id,
                version=desc.version,
                source=name,
                has_init=desc.init is not None,
            )
        )
    return loaded, order


__all__ = ["load_all", "describe", "CONFIG_MODULE_ID"]
