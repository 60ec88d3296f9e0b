"""Redirection planning (conditions -> target step) without execution."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import condition_eval
from redirection import redirection_conditions, redirection_name, redirection_target_step

logger = logging.getLogger("flowkit.redirections")

Issue = Dict[str, Any]
RedirectionPlan = Dict[str, Any]


def _issue(code: str, message: str, path: str | None = None, detail: dict | None = None) -> Issue:
    return {"code": code, "message": message, "path": path, "detail": detail}


def _validate_redirections(redirections: list, errors: List[Issue]) -> None:
    for idx, item in enumerate(redirections):
        if not isinstance(item, dict):
            errors.append(_issue("REDIRECTION_INVALID", "redirection must be object", f"$[{idx}]"))
            continue
        target = redirection_target_step(item)
        if target is None or not target.strip():
            errors.append(_issue("REDIRECTION_INVALID", "targetStep must be non-empty string", f"$[{idx}].targetStep"))
        conditions = redirection_conditions(item)
        if conditions is not None and not isinstance(conditions, list):
            errors.append(_issue("REDIRECTION_INVALID", "conditions must be list", f"$[{idx}].conditions"))


def plan_redirection(redirections: Any, resolver: condition_eval.ValueResolver | None) -> dict:
    errors: List[Issue] = []
    warnings: List[Issue] = []

    if not isinstance(redirections, list):
        errors.append(_issue("REDIRECTION_INVALID", "redirections must be list", "$"))
        return {"ok": False, "errors": errors, "warnings": warnings, "plan": None}

    _validate_redirections(redirections, errors)
    if errors:
        return {"ok": False, "errors": errors, "warnings": warnings, "plan": None}

    matched: List[int] = []
    for idx, item in enumerate(redirections):
        if condition_eval.evaluate_all_conditions(redirection_conditions(item), resolver):
            matched.append(idx)

    if not matched:
        logger.info("redirection_none count=%s", len(redirections))
        return {"ok": True, "errors": errors, "warnings": warnings, "plan": None}

    if len(matched) > 1:
        warnings.append(
            _issue(
                "REDIRECTION_MULTIPLE_MATCHES",
                "Multiple redirections matched; choosing the first in order",
                "$",
                {"matched": matched},
            )
        )

    chosen_idx = matched[0]
    chosen = redirections[chosen_idx]
    plan: RedirectionPlan = {
        "index": chosen_idx,
        "name": redirection_name(chosen),
        "target_step": redirection_target_step(chosen),
    }
    logger.info("redirection_chosen index=%s target_step=%s", chosen_idx, plan["target_step"])
    return {"ok": True, "errors": errors, "warnings": warnings, "plan": plan}
