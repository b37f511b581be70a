"""Environment events, resumable tasks and explicit resume results.

A task wraps a module's ``start`` generator function::

    def start(event):
        while True:
            event = yield "redstone"     # sleep until a redstone event
            ...

The first resume calls ``start(event)`` and runs to the first ``yield``;
later resumes ``send`` the event in. Each ``yield`` hands back the next
filter: ``None``/``""`` means any event, anything else must be a string.
"""
from __future__ import annotations

import enum
import inspect
import traceback
from dataclasses import dataclass
from typing import Any, Callable, Generator, Optional, Tuple, Union


TERMINATE = "terminate"
# wakes the loop to run submitted host calls; never dispatched to tasks
HOST_CALL = "host_call"


@dataclass(frozen=True, slots=True)
class Event:
    kind: str
    payload: Tuple[Any, ...] = ()

    @classmethod
    def of(cls, kind: str, *payload: Any) -> "Event":
        return cls(kind, tuple(payload))


@dataclass(frozen=True, slots=True)
class Suspended:
    filter: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Finished:
    pass


@dataclass(frozen=True, slots=True)
class Failed:
    error: BaseException
    trace: str


ResumeResult = Union[Suspended, Finished, Failed]


class TaskState(str, enum.Enum):
    IDLE = "idle"
    WAITING = "waiting"
    FINISHED = "finished"
    FAILED = "failed"


class Task:
    __slots__ = ("module_id", "_start", "_gen", "filter", "state", "resumes")

    def __init__(self, module_id: str, start: Callable[[Event], Any]):
        self.module_id = module_id
        self._start = start
        self._gen: Generator[Any, Event, Any] | None = None
        self.filter: Optional[str] = None
        self.state = TaskState.IDLE
        self.resumes = 0

    def wants(self, event: Event) -> bool:
        if self.state in (TaskState.FINISHED, TaskState.FAILED):
            return False
        return not self.filter or self.filter == event.kind

    def resume(self, event: Event) -> ResumeResult:
        self.resumes += 1
        try:
            if self._gen is None:
                produced = self._start(event)
                if not inspect.isgenerator(produced):
                    return self._finish()
                self._gen = produced
                yielded = next(self._gen)
            else:
                yielded = self._gen.send(event)
        except StopIteration:
            return self._finish()
        except Exception as e:  # noqa: BLE001
            return self._fail(e, traceback.format_exc())
        if yielded is not None and not isinstance(yielded, str):
            err = TypeError(
                f"task {self.module_id} yielded a non-string filter: "
                f"{yielded!r}"
            )
            return self._fail(err, "".join(traceback.format_stack()))
        self.filter = yielded or None
        self.state = TaskState.WAITING
        return Suspended(self.filter)

    def _finish(self) -> Finished:
        self.state = TaskState.FINISHED
        self.filter = None
        return Finished()

    def _fail(self, error: BaseException, trace: str) -> Failed:
        self.state = TaskState.FAILED
        return Failed(error, trace)

    def __repr__(self) -> str:
        return (
            f"Task(module_id={self.module_id!r}, state={self.state.value}, "
            f"filter={self.filter!r})"
        )


__all__ = [
    "TERMINATE",
    "HOST_CALL",
    "Event",
    "Suspended",
    "Finished",
    "Failed",
    "ResumeResult",
    "TaskState",
    "Task",
]
