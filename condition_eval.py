"""Condition list evaluator: typed comparison, operators, implicit AND."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Protocol

from flowkit.dynamic_value import DynamicValue, to_value
from flowkit.value_path import parse_json

logger = logging.getLogger("flowkit.conditions")


@dataclass
class ConditionEvalError(Exception):
    code: str
    message: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base


class ComparisonError(ConditionEvalError, ValueError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("CONDITION_COMPARE_ERROR", message, path)


class ValueResolver(Protocol):
    def __call__(self, field_ref: str, step_ref: str) -> str | None:
        ...


def _ref_text(node: Any) -> str | None:
    if node is None or isinstance(node, (dict, list)):
        return None
    if isinstance(node, str):
        return node
    return to_value(node).to_text()


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class Condition:
    step_ref: str | None
    field_ref: str | None
    operator: str | None
    expected: DynamicValue

    @classmethod
    def from_node(cls, node: dict) -> "Condition":
        return cls(
            step_ref=_ref_text(node.get("stepRef")),
            field_ref=_ref_text(node.get("fieldRef")),
            operator=_ref_text(node.get("operator")),
            expected=to_value(node.get("value")),
        )

    def is_evaluable(self) -> bool:
        return not (_is_blank(self.step_ref) or _is_blank(self.field_ref) or _is_blank(self.operator))


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _order(left: Any, right: Any) -> int:
    return _sign((left > right) - (left < right))


def _number_order(left: float, right: float) -> int:
    # NaN sorts above every number and equals itself.
    left_nan, right_nan = math.isnan(left), math.isnan(right)
    if left_nan or right_nan:
        return int(left_nan) - int(right_nan)
    return _order(left, right)


def compare_values(actual: Any, expected: Any) -> int:
    """Order two values: -1, 0 or 1.

    Numbers of any kind compare as floats, matching kinds use their natural
    order, and anything else falls back to comparing the textual forms.
    """
    actual = to_value(actual)
    expected = to_value(expected)
    if actual.is_null:
        raise ComparisonError("Actual value cannot be null", "actual")
    if expected.is_null:
        raise ComparisonError("Expected value cannot be null", "expected")

    if actual.is_numeric and expected.is_numeric:
        return _number_order(float(actual.raw), float(expected.raw))
    if actual.kind is expected.kind:
        return _order(actual.raw, expected.raw)
    return _order(actual.to_text(), expected.to_text())


def _equals(current: DynamicValue, expected: DynamicValue) -> bool:
    if current.is_null or expected.is_null:
        return current.is_null and expected.is_null
    if current.is_numeric and expected.is_numeric:
        return _number_order(float(current.raw), float(expected.raw)) == 0
    return current.kind is expected.kind and current.raw == expected.raw


def _contains(current: DynamicValue, expected: DynamicValue) -> bool:
    if current.is_null:
        return False
    needle = "" if expected.is_null else expected.to_text()
    return needle in current.to_text()


def _is_empty(current: DynamicValue, expected: DynamicValue) -> bool:
    return current.is_null or not current.to_text().strip()


def _comparison(check: Callable[[int], bool]) -> Callable[[DynamicValue, DynamicValue], bool]:
    def _evaluate(current: DynamicValue, expected: DynamicValue) -> bool:
        try:
            return check(compare_values(current, expected))
        except ConditionEvalError as exc:
            logger.debug("comparison_failed error=%s", exc)
            return False

    return _evaluate


_Predicate = Callable[[DynamicValue, DynamicValue], bool]

OPERATORS: Dict[str, _Predicate] = {
    "equals": _equals,
    "==": _equals,
    "notequals": lambda current, expected: not _equals(current, expected),
    "!=": lambda current, expected: not _equals(current, expected),
    "contains": _contains,
    "greaterthan": _comparison(lambda result: result > 0),
    ">": _comparison(lambda result: result > 0),
    "lessthan": _comparison(lambda result: result < 0),
    "<": _comparison(lambda result: result < 0),
    "greaterorequal": _comparison(lambda result: result >= 0),
    ">=": _comparison(lambda result: result >= 0),
    "lessorequal": _comparison(lambda result: result <= 0),
    "<=": _comparison(lambda result: result <= 0),
    "is_empty": _is_empty,
    "is_not_empty": lambda current, expected: not _is_empty(current, expected),
}


def evaluate_condition(current: Any, operator: str | None, expected: Any) -> bool:
    if not isinstance(operator, str):
        logger.warning("operator_missing result=false")
        return False
    predicate = OPERATORS.get(operator.lower())
    if predicate is None:
        logger.warning("operator_unknown operator=%s result=false", operator)
        return False
    try:
        return bool(predicate(to_value(current), to_value(expected)))
    except Exception as exc:
        logger.warning("operator_failed operator=%s error=%s", operator, exc)
        return False


def _evaluate_single(node: Any, resolver: ValueResolver, path: str) -> bool:
    if not isinstance(node, dict):
        logger.error("condition_invalid path=%s reason=not_object", path)
        return False
    cond = Condition.from_node(node)
    logger.debug(
        "condition_eval path=%s step_ref=%s field_ref=%s operator=%s",
        path,
        cond.step_ref,
        cond.field_ref,
        cond.operator,
    )
    if not cond.is_evaluable():
        logger.error(
            "condition_invalid path=%s step_ref=%s field_ref=%s operator=%s",
            path,
            cond.step_ref,
            cond.field_ref,
            cond.operator,
        )
        return False

    try:
        raw = resolver(cond.field_ref, cond.step_ref)
    except Exception as exc:
        logger.error(
            "condition_resolve_failed field_ref=%s step_ref=%s error=%s",
            cond.field_ref,
            cond.step_ref,
            exc,
        )
        return False
    if raw is None:
        logger.warning("condition_value_missing field_ref=%s step_ref=%s", cond.field_ref, cond.step_ref)
        return False

    current = DynamicValue.text(raw if isinstance(raw, str) else str(raw))
    met = evaluate_condition(current, cond.operator, cond.expected)
    logger.info(
        "condition field_ref=%s current=%r operator=%s expected=%r result=%s",
        cond.field_ref,
        current.to_text(),
        cond.operator,
        cond.expected.to_text(),
        "passed" if met else "failed",
    )
    return met


def evaluate_all_conditions(conditions: Any, resolver: ValueResolver | None) -> bool:
    """Return True only when every condition holds.

    An absent or empty list passes. Anything that prevents a decision (no
    resolver, a malformed condition, a resolver error or missing value) fails.
    Evaluation stops at the first failing condition.
    """
    if isinstance(conditions, str):
        conditions = parse_json(conditions)
    if not isinstance(conditions, list) or not conditions:
        logger.debug("conditions_empty result=true")
        return True
    if resolver is None:
        logger.error("conditions_resolver_missing result=false")
        return False
    return all(
        _evaluate_single(node, resolver, f"$[{idx}]")
        for idx, node in enumerate(conditions)
    )
