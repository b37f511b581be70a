"""Kernel settings loading & validation.

Precedence (last wins): base.yaml → overrides.local.yaml → ENV (DEPOT__*).

These are the kernel's own settings (which modules to load, where to persist
module options and crash reports, scheduler knobs). Per-module options live
in ``kernel.config.store.ConfigStore``.
"""
from __future__ import annotations

import os
import pathlib
import threading
from functools import lru_cache
from typing import Any, Dict

import yaml
from kernel import metrics
from kernel.errors import ConfigError, validate_error_type

from .schemas.kernel import KernelSettings

DEFAULT_CONFIG_DIR = "configs"
ENV_PREFIX = "DEPOT__"


def _load_yaml_if_exists(path: pathlib.Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: top level must be a mapping")
    return data


def _merge_dict(
    base: Dict[str, Any], override: Dict[str, Any]
) -> Dict[str, Any]:
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = _merge_dict(base[k], v)
        else:
            base[k] = v
    return base


def _cast_env(value: str) -> Any:
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    if "," in value:
        # list-valued settings (modules.sources)
        return [part.strip() for part in value.split(",") if part.strip()]
    try:
        return int(value)
    except ValueError:
        try:
            return float(value)
        except ValueError:
            return value


def _apply_env(cfg: Dict[str, Any]) -> None:
    prefix_len = len(ENV_PREFIX)
    for env_key, value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue
        path_parts = env_key[prefix_len:].lower().split("__")
        target = cfg
        for part in path_parts[:-1]:
            if part not in target or not isinstance(target[part], dict):
                target[part] = {}
            target = target[part]
        target[path_parts[-1]] = _cast_env(value)
        dotted_path = ".".join(path_parts)
        metrics.inc("env_override_total", {"path": dotted_path})
        print(
            f"[config-env-override] path={dotted_path} source=env"
        )  # noqa: T201


_lock = threading.Lock()


def _resolve_config_dir() -> pathlib.Path:
    """Resolve config directory each call honoring env var changes."""
    return pathlib.Path(os.getenv("DEPOT_CONFIG_DIR", DEFAULT_CONFIG_DIR))


def _validate(raw: Dict[str, Any]) -> KernelSettings:
    try:
        return KernelSettings.model_validate(raw)
    except Exception as e:  # noqa: BLE001
        msg = str(e)
        code = "config-out-of-range" if "greater than" in msg else (
            "config-invalid"
        )
        metrics.inc(
            "config_validation_errors_total",
            {"code": validate_error_type(code)},
        )
        raise ConfigError(f"kernel settings validation failed: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> KernelSettings:  # noqa: D401
    with _lock:
        cfg_dir = _resolve_config_dir()
        base_cfg = _load_yaml_if_exists(cfg_dir / "base.yaml")
        overrides_cfg = _load_yaml_if_exists(cfg_dir / "overrides.local.yaml")
        merged = _merge_dict(base_cfg, overrides_cfg)
        _apply_env(merged)
        if "schema_version" not in merged:
            merged["schema_version"] = 1
        return _validate(merged)


def clear_settings_cache() -> None:
    """Clear cached settings (primarily for tests)."""
    get_settings.cache_clear()


def as_dict() -> Dict[str, Any]:
    return get_settings().model_dump()
