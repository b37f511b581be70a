"""Event sources: the host port the run loop pulls environment events from.

``QueueEventSource`` is the live host: modules (through
``KernelContext.events``) and their I/O threads ``queue`` events, timers
fire ``timer`` events, Ctrl+C turns into ``terminate``.
``ScriptedEventSource`` replays a fixed list and then terminates.
"""
from __future__ import annotations

import itertools
import queue
import threading
from typing import Any, Dict, Iterable, Protocol, Set, runtime_checkable

from .task import TERMINATE, Event


@runtime_checkable
class EventSource(Protocol):
    def queue(self, kind: str, *payload: Any) -> None:
        ...

    def pull(self) -> Event:
        ...

    def start_timer(self, seconds: float) -> int:
        ...

    def cancel_timer(self, timer_id: int) -> None:
        ...


class QueueEventSource:
    def __init__(self, tick_s: float = 0.05) -> None:
        self._tick_s = tick_s
        self._queue: "queue.Queue[Event]" = queue.Queue()
        self._ids = itertools.count(1)
        self._timers: Dict[int, threading.Timer] = {}
        self._pending: Set[int] = set()
        self._cancelled: Set[int] = set()
        self._lock = threading.Lock()

    def queue(self, kind: str, *payload: Any) -> None:
        self._queue.put(Event.of(kind, *payload))

    def start_timer(self, seconds: float) -> int:
        timer_id = next(self._ids)
        # Zero-length timers still fire one tick later, never inline.
        delay = max(float(seconds), self._tick_s)
        t = threading.Timer(delay, self._fire, args=(timer_id,))
        t.daemon = True
        with self._lock:
            self._timers[timer_id] = t
        t.start()
        return timer_id

    def _fire(self, timer_id: int) -> None:
        with self._lock:
            if self._timers.pop(timer_id, None) is None:
                return
            self._pending.add(timer_id)
        self._queue.put(Event.of("timer", timer_id))

    def cancel_timer(self, timer_id: int) -> None:
        with self._lock:
            t = self._timers.pop(timer_id, None)
            if t is not None:
                t.cancel()
            elif timer_id in self._pending:
                # fired but still queued; dropped on pull
                self._cancelled.add(timer_id)

    def _is_cancelled(self, event: Event) -> bool:
        if event.kind != "timer" or not event.payload:
            return False
        timer_id = event.payload[0]
        with self._lock:
            self._pending.discard(timer_id)
            if timer_id in self._cancelled:
                self._cancelled.discard(timer_id)
                return True
        return False

    def pull(self) -> Event:
        while True:
            try:
                event = self._queue.get()
            except KeyboardInterrupt:
                return Event.of(TERMINATE)
            if not self._is_cancelled(event):
                return event


class ScriptedEventSource:
    """Deterministic source for tests and replays.

    Watchdog timers are tracked but never fire.
    """

    def __init__(self, events: Iterable[Event | str]) -> None:
        self._events = [
            e if isinstance(e, Event) else Event.of(e) for e in events
        ]
        self._ids = itertools.count(1)
        self.pulled: list[Event] = []
        self.armed: list[float] = []
        self.cancelled: list[int] = []

    def queue(self, kind: str, *payload: Any) -> None:
        self._events.append(Event.of(kind, *payload))

    def start_timer(self, seconds: float) -> int:
        self.armed.append(seconds)
        return next(self._ids)

    def cancel_timer(self, timer_id: int) -> None:
        self.cancelled.append(timer_id)

    def pull(self) -> Event:
        event = self._events.pop(0) if self._events else Event.of(TERMINATE)
        self.pulled.append(event)
        return event


__all__ = ["EventSource", "QueueEventSource", "ScriptedEventSource"]
