from __future__ import annotations


def normalize_title_case(value: str | None) -> str | None:
    if not value:
        return value
    return value[0].upper() + value[1:].lower()
