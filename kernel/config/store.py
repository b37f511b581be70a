"""Per-module option store: resolution, repair, typed setter, persistence.

Resolution (per module in registry order, per option in declared order):
  1. candidate = persisted[module][option]["value"] if present (and not
     null), else the declared default. Falsy values (0, "", [], {}) count as
     present.
  2. candidate of the declared type → accepted.
  3. otherwise, if the module has ``setup``: call it once with the module's
     option slice; every mismatched option must be fixed afterwards or the
     boot aborts with SetupContractError.
  4. otherwise ask the InputPort for a typed value (blocks until valid).

Persisted layout (YAML): {module: {option: {value, default, type,
description}}}. Rewritten after every resolution pass and every successful
``set``.
"""
from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict, Iterable, Iterator, List, Mapping

import yaml
from yaml import YAMLError

from kernel.errors import ConfigError, SetupContractError, validate_error_type
from kernel.events import (
    emit,
    ConfigRepaired,
    ConfigSaved,
    ConfigSaveFailed,
)

from .literal import parse_number, parse_table
from .prompt import InputPort
from .schemas.options import ResolvedOption, type_matches


def _protected_index(data: Any, *keys: str) -> Any:
    cur = data
    for key in keys:
        if not isinstance(cur, Mapping) or key not in cur:
            return None
        cur = cur[key]
    return cur


def load_persisted(path: str | pathlib.Path) -> Dict[str, Any]:
    """Read the persisted option file; absent or unreadable → empty."""
    p = pathlib.Path(path)
    if not p.exists():
        return {}
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except (OSError, YAMLError) as e:
        print(
            f"[config-load] unreadable path={p} error={e} -> empty"
        )  # noqa: T201
        return {}
    if not isinstance(data, dict):
        print(
            f"[config-load] not a mapping path={p} -> empty"
        )  # noqa: T201
        return {}
    return data


class ModuleOptions(Mapping[str, ResolvedOption]):
    """One module's slice of the store (what ``setup`` receives)."""

    def __init__(self, module_id: str) -> None:
        self.module_id = module_id
        self._options: Dict[str, ResolvedOption] = {}

    def __getitem__(self, name: str) -> ResolvedOption:
        return self._options[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def _put(self, option: ResolvedOption) -> None:
        self._options[option.name] = option


class ConfigStore:
    def __init__(
        self,
        path: str | pathlib.Path,
        input_port: InputPort,
    ) -> None:
        self.path = pathlib.Path(path)
        self._input = input_port
        self._modules: Dict[str, ModuleOptions] = {}

    # --- Read access ---------------------------------------------------------
    def __getitem__(self, module_id: str) -> ModuleOptions:
        return self._modules[module_id]

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def modules(self) -> List[str]:
        return list(self._modules)

    def value(self, module_id: str, name: str) -> Any:
        return self._modules[module_id][name].value

    def as_dict(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            mid: {name: opt.persisted() for name, opt in opts.items()}
            for mid, opts in self._modules.items()
        }

    # --- Resolution ----------------------------------------------------------
    def resolve(
        self,
        descriptors: Iterable[Any],
        persisted: Mapping[str, Any] | None = None,
    ) -> "ConfigStore":
        """Resolve every module's options; see module docstring."""
        if persisted is None:
            persisted = load_persisted(self.path)
        self._modules = {}
        for desc in descriptors:
            opts = ModuleOptions(desc.id)
            for name, spec in desc.config_spec.items():
                candidate = _protected_index(persisted, desc.id, name, "value")
                opts._put(
                    ResolvedOption(
                        default=spec.default,
                        type=spec.type,
                        description=spec.description,
                        value=(
                            copy.deepcopy(spec.default)
                            if candidate is None
                            else candidate
                        ),
                        owner_id=desc.id,
                        name=name,
                    )
                )
            self._modules[desc.id] = opts
            self._repair(desc, opts)
        return self

    def _repair(self, desc: Any, opts: ModuleOptions) -> None:
        mismatched = [name for name in opts if not opts[name].matches()]
        if not mismatched:
            return
        if desc.setup is not None:
            desc.setup(opts)
            # setup may touch any option, not only the mismatched ones
            for name in opts:
                if not opts[name].matches():
                    validate_error_type("setup-contract")
                    raise SetupContractError(desc.id, name)
            for name in mismatched:
                emit(
                    ConfigRepaired(
                        module_id=desc.id, option=name, strategy="setup"
                    )
                )
            return
        for name in mismatched:
            option = opts[name]
            print(f"Config option {desc.id}.{name} is invalid")  # noqa: T201
            value = self._input.prompt_typed(option.type, option.description)
            if not type_matches(value, option.type):
                raise ConfigError(
                    f"input port returned a non-{option.type} value "
                    f"for {desc.id}.{name}"
                )
            option.value = value
            emit(
                ConfigRepaired(
                    module_id=desc.id, option=name, strategy="prompt"
                )
            )

    # --- Mutation ------------------------------------------------------------
    def set(self, setting: ResolvedOption, value: Any) -> bool:
        """Attempt to set ``setting`` to ``value`` (coercing text input).

        Returns False and leaves the setting unchanged when the value cannot
        be made to match the declared type.
        """
        if type_matches(value, setting.type):
            new_value = value
        elif setting.type == "number" and parse_number(value) is not None:
            new_value = parse_number(value)
        elif setting.type == "table" and parse_table(value) is not None:
            new_value = parse_table(value)
        else:
            return False
        setting.value = new_value
        self.save()
        return True

    # --- Persistence ---------------------------------------------------------
    def save(self) -> bool:
        data = self.as_dict()
        try:
            text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")
        except (OSError, YAMLError) as e:
            code = validate_error_type("persist-io")
            print(
                f"[config-save] failed path={self.path} error={e}"
            )  # noqa: T201
            emit(
                ConfigSaveFailed(
                    path=str(self.path), error_type=code, message=str(e)
                )
            )
            return False
        emit(ConfigSaved(path=str(self.path), modules=len(data)))
        return True


__all__ = ["ConfigStore", "ModuleOptions", "load_persisted"]
