"""Runtime value model for JSON document leaves."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .canonical_json import compact_dumps


class _Missing:
    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_INT_MIN, _INT_MAX = -(2**31), 2**31 - 1
_LONG_MIN, _LONG_MAX = -(2**63), 2**63 - 1


class ValueKind(enum.Enum):
    NULL = "null"
    TEXT = "text"
    BOOL = "bool"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    OPAQUE = "opaque"


_NUMERIC_KINDS = frozenset({ValueKind.INT, ValueKind.LONG, ValueKind.FLOAT})


@dataclass(frozen=True)
class DynamicValue:
    """One scalar leaf, or the serialized text of a composite node.

    ``raw`` holds ``None`` for NULL, ``str`` for TEXT and OPAQUE, ``bool``,
    ``int`` or ``float`` for the remaining kinds.
    """

    kind: ValueKind
    raw: Any = None

    @classmethod
    def null(cls) -> "DynamicValue":
        return cls(ValueKind.NULL, None)

    @classmethod
    def text(cls, value: str) -> "DynamicValue":
        return cls(ValueKind.TEXT, value)

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    @property
    def is_numeric(self) -> bool:
        return self.kind in _NUMERIC_KINDS

    def to_text(self) -> str:
        if self.kind is ValueKind.NULL:
            return "null"
        if self.kind is ValueKind.BOOL:
            return "true" if self.raw else "false"
        if self.kind is ValueKind.FLOAT:
            return repr(self.raw)
        if self.kind in (ValueKind.INT, ValueKind.LONG):
            return str(self.raw)
        return self.raw

    def __str__(self) -> str:
        return self.to_text()


def _from_int(value: int) -> DynamicValue:
    if _INT_MIN <= value <= _INT_MAX:
        return DynamicValue(ValueKind.INT, value)
    if _LONG_MIN <= value <= _LONG_MAX:
        return DynamicValue(ValueKind.LONG, value)
    return DynamicValue(ValueKind.OPAQUE, str(value))


def to_value(node: Any) -> DynamicValue:
    """Convert a decoded JSON node into a DynamicValue. Never raises."""
    if isinstance(node, DynamicValue):
        return node
    if node is None or node is MISSING:
        return DynamicValue.null()
    if isinstance(node, str):
        return DynamicValue.text(node)
    if isinstance(node, bool):
        return DynamicValue(ValueKind.BOOL, node)
    if isinstance(node, int):
        return _from_int(node)
    if isinstance(node, float):
        return DynamicValue(ValueKind.FLOAT, node)
    if isinstance(node, Decimal):
        return DynamicValue(ValueKind.OPAQUE, str(node))
    if isinstance(node, (dict, list, tuple)):
        return DynamicValue(ValueKind.OPAQUE, compact_dumps(node))
    return DynamicValue(ValueKind.OPAQUE, str(node))
