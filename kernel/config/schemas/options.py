"""Per-module option schemas (declared spec + resolved setting)."""
from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

OptionType = Literal["string", "number", "table"]


def type_matches(value: Any, type_: str) -> bool:
    """Return True when ``value`` is of the declared option type.

    ``bool`` is an ``int`` subclass in Python but never counts as a number.
    """
    if type_ == "string":
        return isinstance(value, str)
    if type_ == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return not (isinstance(value, float) and not math.isfinite(value))
    if type_ == "table":
        return isinstance(value, (dict, list))
    raise ValueError(f"Invalid type {type_}")


class OptionSpec(BaseModel):
    default: Any = None
    type: OptionType
    description: str = ""

    model_config = ConfigDict(extra="forbid")


class ResolvedOption(OptionSpec):
    """OptionSpec extended with the runtime value and its owner."""
    value: Any = None
    owner_id: str
    name: str

    def matches(self) -> bool:
        return type_matches(self.value, self.type)

    def persisted(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "default": self.default,
            "type": self.type,
            "description": self.description,
        }
