"""
Runtime values that have no direct Python builtin counterpart.

Pair and Entity are the values synthesised for Pair[A, B] and for
uninterpreted (external) types by the model factory. Generated drivers
import Pair from here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple


class Pair(NamedTuple):
    """An ordered pair; also the element type of an enumerated Map."""

    first: Any
    second: Any

    @property
    def key(self) -> Any:
        return self.first

    @property
    def value(self) -> Any:
        return self.second


@dataclass(frozen=True)
class Entity:
    """Model value of an uninterpreted type, identified by name."""

    name: str

    def __str__(self) -> str:
        return self.name


def format_literal(value: Any) -> str:
    """
    Render a synthesised value in model literal syntax.

    This is the inverse of AbstractFactory.create_value() for primitive
    values. Set members are written in sorted order where they compare.

    Examples:
        format_literal(True) == "true"
        format_literal([1, 2]) == "[1, 2]"
        format_literal({"a": 1}) == "{a=1}"
        format_literal(Pair("a", 1)) == "a=1"
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, Pair):
        return f"{format_literal(value.first)}={format_literal(value.second)}"
    if isinstance(value, dict):
        entries = ", ".join(
            f"{format_literal(key)}={format_literal(item)}" for key, item in value.items()
        )
        return "{" + entries + "}"
    if isinstance(value, (set, frozenset)):
        try:
            members = sorted(value)
        except TypeError:
            members = list(value)
        return "[" + ", ".join(format_literal(member) for member in members) + "]"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_literal(member) for member in value) + "]"
    return str(value)
