"""Compact order-preserving JSON serialization."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any


def _scalar(obj: Any) -> str:
    if isinstance(obj, Decimal) and obj.is_finite():
        # Exact number text, so 1.10 stays 1.10.
        return str(obj)
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return json.dumps(obj, ensure_ascii=False)
    return json.dumps(str(obj), ensure_ascii=False)


def compact_dumps(obj: Any) -> str:
    """Serialize a decoded JSON tree to compact JSON text.

    Rules:
    - Keep dict keys in insertion order.
    - Preserve list order.
    - UTF-8 with non-ASCII preserved.
    - No extra whitespace.
    - Decimals keep their exact text.
    - Values JSON cannot carry are written as their string form.
    """
    if isinstance(obj, dict):
        items = (f"{_scalar(str(key))}:{compact_dumps(value)}" for key, value in obj.items())
        return "{" + ",".join(items) + "}"
    if isinstance(obj, (list, tuple)):
        return "[" + ",".join(compact_dumps(item) for item in obj) + "]"
    return _scalar(obj)
