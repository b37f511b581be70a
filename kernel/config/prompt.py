"""InputPort: where interactive option repair reads its answers from.

The console port blocks on ``input()`` until a correctly typed value is
entered; it is only used during boot, before any task exists. Tests and
unattended installs use ``ScriptedInputPort``.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Protocol, runtime_checkable

from kernel.errors import ConfigError

from .literal import parse_typed


@runtime_checkable
class InputPort(Protocol):
    def prompt_typed(self, type_: str, description: str) -> Any:
        ...


class ConsoleInputPort:
    def __init__(
        self,
        read: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
    ) -> None:
        self._read = read
        self._write = write

    def prompt_typed(self, type_: str, description: str) -> Any:
        if description:
            self._write(description)
        while True:
            value = parse_typed(type_, self._read(f"Please input a {type_}: "))
            if value is not None:
                return value


class ScriptedInputPort:
    """Feeds pre-recorded answers; invalid answers are skipped like typos."""

    def __init__(self, answers: Iterable[Any]) -> None:
        self._answers = list(answers)
        self.prompts: list[tuple[str, str]] = []

    def prompt_typed(self, type_: str, description: str) -> Any:
        self.prompts.append((type_, description))
        while self._answers:
            value = parse_typed(type_, self._answers.pop(0))
            if value is not None:
                return value
        raise ConfigError(f"no scripted answer left for a {type_} option")


__all__ = ["InputPort", "ConsoleInputPort", "ScriptedInputPort"]
