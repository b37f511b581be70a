"""Cooperative scheduler: tasks, event sources, run loop."""
from __future__ import annotations

from .loop import Scheduler  # noqa: F401
from .sources import (  # noqa: F401
    EventSource,
    QueueEventSource,
    ScriptedEventSource,
)
from .task import (  # noqa: F401
    HOST_CALL,
    TERMINATE,
    Event,
    Failed,
    Finished,
    ResumeResult,
    Suspended,
    Task,
    TaskState,
)

__all__ = [
    "Scheduler",
    "EventSource",
    "QueueEventSource",
    "ScriptedEventSource",
    "HOST_CALL",
    "TERMINATE",
    "Event",
    "Failed",
    "Finished",
    "ResumeResult",
    "Suspended",
    "Task",
    "TaskState",
]
