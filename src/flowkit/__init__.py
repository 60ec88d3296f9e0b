"""flowkit kernel utilities."""

from .canonical_json import compact_dumps
from .dynamic_value import DynamicValue, ValueKind, to_value
from .value_path import MISSING, get_node_by_path, get_text_by_path, get_value_by_path, parse_json

__all__ = [
    "MISSING",
    "DynamicValue",
    "ValueKind",
    "compact_dumps",
    "get_node_by_path",
    "get_text_by_path",
    "get_value_by_path",
    "parse_json",
    "to_value",
]
