"""Creation and modification stamps for stored records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("flowkit.audit")


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def stamp_audit(record: dict | None, actor: dict, record_id: Any = None, now: str | None = None) -> dict:
    stamp = now or _now()
    if record is None:
        logger.info("audit_create actor_id=%s", actor.get("id"))
        return {
            "creation_date": stamp,
            "creator_id": actor.get("id"),
            "creator_name": actor.get("full_name"),
        }
    logger.info("audit_update record_id=%s actor_id=%s", record_id, actor.get("id"))
    updated = dict(record)
    updated["modification_date"] = stamp
    updated["modifier_id"] = actor.get("id")
    updated["modifier_name"] = actor.get("full_name")
    return updated
