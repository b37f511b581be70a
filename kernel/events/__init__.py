"""Kernel lifecycle events + any-subscriber dispatch.

These are *observability* events about the kernel itself (a module loaded,
an option repaired, a task failed). They are unrelated to the environment
events the scheduler pulls and hands to tasks (see
``kernel.scheduler.task.Event``).

Handlers registered with ``on(handler)`` receive ``handler(name, payload)``
for every event. A failing handler never breaks the emitter; the failure is
counted in ``handler_exceptions_total{event}``.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from time import time
from typing import Any, Callable, Dict, List, Protocol

from kernel import metrics as _metrics

EventHandler = Callable[[str, Dict[str, Any]], None]


class SupportsEvent(Protocol):  # pragma: no cover
    def to_event(self) -> Dict[str, Any]:  # noqa: D401
        ...


@dataclass(slots=True)
class BaseEvent:
    def to_event(self) -> Dict[str, Any]:  # noqa: D401
        data = asdict(self)
        data["ts"] = data.get("ts") or time()
        return data


@dataclass(slots=True)
class ModuleLoaded(BaseEvent):
    module_id: str
    version: str
    source: str
    has_init: bool


@dataclass(slots=True)
class ModuleLoadFailed(BaseEvent):
    source: str
    error_type: str
    message: str | None = None


@dataclass(slots=True)
class ModuleInitialized(BaseEvent):
    module_id: str
    init_ms: int
    has_start: bool


@dataclass(slots=True)
class ConfigRepaired(BaseEvent):
    """A mistyped option was fixed.

    strategy: setup | prompt
    """
    module_id: str
    option: str
    strategy: str


@dataclass(slots=True)
class ConfigSaved(BaseEvent):
    path: str
    modules: int


@dataclass(slots=True)
class ConfigSaveFailed(BaseEvent):
    path: str
    error_type: str
    message: str | None = None


@dataclass(slots=True)
class TaskFailed(BaseEvent):
    module_id: str
    error_type: str
    message: str | None = None


@dataclass(slots=True)
class CrashReportWritten(BaseEvent):
    """status: ok | failed (artifact could not be written)."""
    path: str
    culprit_id: str
    status: str


@dataclass(slots=True)
class SchedulerStopped(BaseEvent):
    """reason: terminate | task-failed | max-cycles"""
    reason: str
    cycles: int


_ANY_SUBS: List[EventHandler] = []


def _metrics_collector(
    name: str, payload: Dict[str, Any]
) -> None:  # noqa: D401
    if name == "ModuleLoaded":
        _metrics.inc("modules_loaded_total")
    elif name == "ModuleLoadFailed":
        _metrics.inc(
            "module_load_errors_total",
            {"reason": payload.get("error_type", "unknown")},
        )
    elif name == "ModuleInitialized":
        _metrics.observe(
            "module_init_ms",
            payload.get("init_ms", 0),
            {"module": payload.get("module_id")},
        )
    elif name == "ConfigRepaired":
        _metrics.inc(
            "config_repairs_total",
            {"strategy": payload.get("strategy", "unknown")},
        )
    elif name == "ConfigSaved":
        _metrics.inc("config_saves_total", {"status": "ok"})
    elif name == "ConfigSaveFailed":
        _metrics.inc("config_saves_total", {"status": "failed"})
    elif name == "TaskFailed":
        _metrics.inc(
            "task_failures_total", {"module": payload.get("module_id")}
        )
    elif name == "CrashReportWritten":
        _metrics.inc(
            "crash_reports_total",
            {"status": payload.get("status", "unknown")},
        )


_ANY_SUBS.append(_metrics_collector)


def emit(ev: BaseEvent | SupportsEvent) -> None:
    name = ev.__class__.__name__
    payload = ev.to_event()
    for h in list(_ANY_SUBS):  # copy for isolation
        try:
            h(name, dict(payload))
        except Exception:  # noqa: BLE001
            _metrics.inc("handler_exceptions_total", {"event": name})


def on(handler: EventHandler) -> None:
    _ANY_SUBS.append(handler)


def subscribe(handler: EventHandler):
    on(handler)

    def _unsub() -> None:  # noqa: D401
        try:
            _ANY_SUBS.remove(handler)
        except ValueError:
            pass
    return _unsub


def reset_listeners_for_tests() -> None:  # pragma: no cover
    _ANY_SUBS.clear()
    _ANY_SUBS.append(_metrics_collector)


__all__ = [
    "emit",
    "on",
    "subscribe",
    "BaseEvent",
    "ModuleLoaded",
    "ModuleLoadFailed",
    "ModuleInitialized",
    "ConfigRepaired",
    "ConfigSaved",
    "ConfigSaveFailed",
    "TaskFailed",
    "CrashReportWritten",
    "SchedulerStopped",
    "reset_listeners_for_tests",
]
