"""Cooperative run loop.

One cycle = arm watchdog, pull exactly one event, cancel watchdog, then
resume every interested task in registration order. A ``terminate`` event
(or Ctrl+C at any point) stops the loop cleanly. The first failed resume
stops the loop immediately (no later task sees the event) and surfaces as
TaskFailedError; isolating or restarting single tasks is not supported.

Other threads never touch kernel state directly: ``submit`` queues a call
that the loop runs between dispatches, woken by a ``host_call`` event that
tasks never see. While the loop is not running, calls run inline.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, List, Optional, Tuple

from kernel import metrics
from kernel.errors import TaskFailedError, validate_error_type
from kernel.events import emit, SchedulerStopped, TaskFailed

from .sources import EventSource
from .task import HOST_CALL, TERMINATE, Event, Failed, Task

_Call = Tuple[Future, Callable[..., Any], Tuple[Any, ...]]


def _invoke(
    fut: Future, fn: Callable[..., Any], args: Tuple[Any, ...]
) -> None:
    if not fut.set_running_or_notify_cancel():
        return
    try:
        fut.set_result(fn(*args))
    except Exception as e:  # noqa: BLE001
        fut.set_exception(e)


class Scheduler:
    def __init__(
        self,
        source: EventSource,
        watchdog_s: float = 0.0,
    ) -> None:
        self._source = source
        self._watchdog_s = watchdog_s
        self._tasks: List[Task] = []
        self._calls: List[_Call] = []
        self._calls_lock = threading.Lock()
        self._running = False
        self.cycles = 0

    @property
    def source(self) -> EventSource:
        return self._source

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    @property
    def running(self) -> bool:
        return self._running

    def add(self, module_id: str, start: Callable[[Event], Any]) -> Task:
        task = Task(module_id, start)
        self._tasks.append(task)
        return task

    def task(self, module_id: str) -> Optional[Task]:
        for t in self._tasks:
            if t.module_id == module_id:
                return t
        return None

    # --- Host calls ----------------------------------------------------------
    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        """Run ``fn(*args)`` on the scheduling thread; returns a Future."""
        fut: Future = Future()
        with self._calls_lock:
            if self._running:
                self._calls.append((fut, fn, args))
                self._source.queue(HOST_CALL)
                return fut
        _invoke(fut, fn, args)
        return fut

    def _drain_calls(self) -> None:
        with self._calls_lock:
            calls, self._calls = self._calls, []
        for fut, fn, args in calls:
            _invoke(fut, fn, args)
            metrics.inc("host_calls_total")

    # --- Loop ----------------------------------------------------------------
    def _pull(self) -> Event:
        timer_id = self._source.start_timer(self._watchdog_s)
        try:
            return self._source.pull()
        finally:
            self._source.cancel_timer(timer_id)

    def dispatch(self, event: Event) -> List[Tuple[str, Any]]:
        """Resume every task interested in ``event``; return (id, result)."""
        results: List[Tuple[str, Any]] = []
        for task in self._tasks:
            if not task.wants(event):
                continue
            t0 = time.perf_counter()
            result = task.resume(event)
            metrics.inc("task_resumes_total", {"module": task.module_id})
            metrics.observe(
                "task_resume_ms",
                (time.perf_counter() - t0) * 1000,
                {"module": task.module_id},
            )
            results.append((task.module_id, result))
            if isinstance(result, Failed):
                emit(
                    TaskFailed(
                        module_id=task.module_id,
                        error_type=validate_error_type("task-failed"),
                        message=str(result.error),
                    )
                )
                emit(
                    SchedulerStopped(reason="task-failed", cycles=self.cycles)
                )
                raise TaskFailedError(
                    task.module_id, result.error, result.trace
                )
        return results

    def run(self, max_cycles: Optional[int] = None) -> int:
        """Run until terminate (returns cycles run) or a task fails.

        ``max_cycles`` bounds the loop for embedding hosts and tests.
        """
        reason = "max-cycles"
        with self._calls_lock:
            self._running = True
        try:
            while max_cycles is None or self.cycles < max_cycles:
                self._drain_calls()
                event = self._pull()
                metrics.inc("events_pulled_total", {"kind": event.kind})
                if event.kind == TERMINATE:
                    reason = "terminate"
                    break
                if event.kind == HOST_CALL:
                    continue
                self.cycles += 1
                metrics.inc("scheduler_cycles_total")
                self.dispatch(event)
        except KeyboardInterrupt:
            # Ctrl+C during a resume, not only while blocked in pull
            reason = "terminate"
        finally:
            with self._calls_lock:
                self._running = False
            self._drain_calls()
        emit(SchedulerStopped(reason=reason, cycles=self.cycles))
        return self.cycles


__all__ = ["Scheduler"]
