"""Crash reporter: last words of the process after a fatal task failure.

Report layout (plain text)::

    === depot crash report ===
    Generated: 2026-10-18T12:00:00+00:00
    Modules: 3

    [ ] inventory v1.4.0
    [X] crafting v0.9.2
    [ ] tui v2.0.0

    --- Error ---
    <error text>

    --- Trace ---
    <traceback>

Writing is best-effort: on failure a notice is printed and there is no
fallback location. ``report`` always ends the process.
"""
from __future__ import annotations

import datetime as _dt
import pathlib
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, List, NoReturn, Tuple

from kernel.errors import validate_error_type
from kernel.events import emit, CrashReportWritten


@dataclass(frozen=True, slots=True)
class CrashEntry:
    id: str
    version: str
    is_culprit: bool


@dataclass(frozen=True, slots=True)
class CrashReport:
    timestamp: str
    entries: Tuple[CrashEntry, ...]
    error_text: str
    trace: str

    @property
    def module_count(self) -> int:
        return len(self.entries)

    def render(self) -> str:
        lines: List[str] = [
            "=== depot crash report ===",
            f"Generated: {self.timestamp}",
            f"Modules: {self.module_count}",
            "",
        ]
        for e in self.entries:
            mark = "X" if e.is_culprit else " "
            lines.append(f"[{mark}] {e.id} v{e.version}")
        lines += ["", "--- Error ---", self.error_text, "", "--- Trace ---"]
        lines.append(self.trace.rstrip("\n"))
        return "\n".join(lines) + "\n"


def build_report(
    modules: Iterable[Tuple[str, str]],
    culprit_id: str,
    trace: str,
    error_text: str,
) -> CrashReport:
    entries = tuple(
        CrashEntry(id=mid, version=ver, is_culprit=(mid == culprit_id))
        for mid, ver in modules
    )
    if sum(e.is_culprit for e in entries) != 1:
        raise ValueError(f"culprit {culprit_id!r} is not a loaded module")
    return CrashReport(
        timestamp=_dt.datetime.now(_dt.timezone.utc).isoformat(
            timespec="seconds"
        ),
        entries=entries,
        error_text=error_text,
        trace=trace,
    )


class CrashReporter:
    def __init__(
        self,
        path: str | pathlib.Path,
        modules: Callable[[], Iterable[Tuple[str, str]]],
        exit: Callable[[int], NoReturn] = sys.exit,
    ) -> None:
        self.path = pathlib.Path(path)
        # (id, version) of every loaded module, config pseudo-module excluded
        self._modules = modules
        self._exit = exit

    def write(self, culprit_id: str, trace: str, error_text: str) -> bool:
        report = build_report(self._modules(), culprit_id, trace, error_text)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(report.render(), encoding="utf-8")
        except OSError as e:
            validate_error_type("persist-io")
            print(
                f"[crash-report] write failed path={self.path} error={e}"
            )  # noqa: T201
            emit(
                CrashReportWritten(
                    path=str(self.path), culprit_id=culprit_id, status="failed"
                )
            )
            return False
        print(f"[crash-report] written path={self.path}")  # noqa: T201
        emit(
            CrashReportWritten(
                path=str(self.path), culprit_id=culprit_id, status="ok"
            )
        )
        return True

    def report(self, culprit_id: str, trace: str, error_text: str) -> NoReturn:
        try:
            self.write(culprit_id, trace, error_text)
        finally:
            self._exit(1)
        raise SystemExit(1)  # exit hook returned; never continue


__all__ = ["CrashEntry", "CrashReport", "CrashReporter", "build_report"]
