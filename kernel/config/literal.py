"""Typed parsing of operator-supplied text.

Tables use YAML flow syntax (``{slots: 27}``, ``[north, south]``), the same
format the option store persists in. Each parser returns ``None`` when the
text does not yield a value of the requested type.
"""
from __future__ import annotations

import math
from typing import Any

import yaml
from yaml import YAMLError


def parse_number(text: Any) -> int | float | None:
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return text if math.isfinite(text) else None
    if not isinstance(text, str):
        return None
    raw = text.strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        val = float(raw)
    except ValueError:
        return None
    return val if math.isfinite(val) else None


def parse_table(text: Any) -> dict | list | None:
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        val = yaml.safe_load(text)
    except YAMLError:
        return None
    if isinstance(val, (dict, list)):
        return val
    return None


def parse_string(text: Any) -> str | None:
    if isinstance(text, str) and text != "":
        return text
    return None


_PARSERS = {
    "string": parse_string,
    "number": parse_number,
    "table": parse_table,
}


def parse_typed(type_: str, text: Any) -> Any:
    try:
        parser = _PARSERS[type_]
    except KeyError:
        raise ValueError(f"Invalid type {type_}") from None
    return parser(text)


__all__ = ["parse_number", "parse_table", "parse_string", "parse_typed"]
