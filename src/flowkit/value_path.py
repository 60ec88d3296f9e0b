"""Dot-separated path lookups over decoded JSON trees."""

from __future__ import annotations

import json
import logging
from typing import Any

from .dynamic_value import MISSING, DynamicValue, to_value

logger = logging.getLogger("flowkit.paths")


def parse_json(text: str | None) -> Any:
    """Decode JSON text, returning MISSING for blank or invalid input."""
    if text is None or not text.strip():
        logger.debug("json_blank returning=missing")
        return MISSING
    try:
        return json.loads(text)
    except ValueError as exc:
        logger.error("json_parse_failed error=%s", exc)
        return MISSING


def get_node_by_path(root: Any, path: str | None) -> Any:
    """Walk ``path`` (``a.b.c``) through nested objects.

    Returns the node found, ``None`` for an explicit JSON null, or MISSING when
    the root is absent, the path is blank, or any segment does not resolve.
    A ``str`` root is parsed as JSON text first.
    """
    if root is None or root is MISSING or path is None or not path.strip():
        return MISSING
    if isinstance(root, str):
        root = parse_json(root)
        if root is MISSING:
            return MISSING

    current: Any = root
    for raw_segment in path.split("."):
        segment = raw_segment.strip()
        if not isinstance(current, dict) or segment not in current:
            return MISSING
        current = current[segment]
    return current


def get_value_by_path(root: Any, path: str | None) -> DynamicValue | None:
    node = get_node_by_path(root, path)
    if node is MISSING:
        return None
    return to_value(node)


def get_text_by_path(root: Any, path: str | None) -> str | None:
    node = get_node_by_path(root, path)
    if node is MISSING or node is None:
        return None
    return to_value(node).to_text()
