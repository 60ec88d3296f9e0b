"""Redirection field lookup across the nested and the legacy flat document shape."""

from __future__ import annotations

from typing import Any

from flowkit.dynamic_value import MISSING, to_value
from flowkit.value_path import parse_json

DEFAULT_REDIRECTION_NAME = "Unknown"


def _as_document(doc: Any) -> dict | None:
    if isinstance(doc, str):
        doc = parse_json(doc)
    return doc if isinstance(doc, dict) else None


def _lookup(doc: Any, key: str) -> Any:
    # parameters.<key> first, then <key> on the document itself.
    document = _as_document(doc)
    if document is None:
        return MISSING
    params = document.get("parameters")
    if isinstance(params, dict) and key in params:
        return params[key]
    if key in document:
        return document[key]
    return MISSING


def _text(value: Any) -> str:
    return value if isinstance(value, str) else to_value(value).to_text()


def redirection_name(doc: Any) -> str:
    value = _lookup(doc, "name")
    return DEFAULT_REDIRECTION_NAME if value is MISSING else _text(value)


def redirection_target_step(doc: Any) -> str | None:
    value = _lookup(doc, "targetStep")
    return None if value is MISSING else _text(value)


def redirection_conditions(doc: Any) -> Any:
    value = _lookup(doc, "conditions")
    return None if value is MISSING else value
