from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Mapping

from sheetwatch.extract.columns import letter_to_index


def normalize_text(value: Any) -> str:
    """Canonical text form of a cell value, shared by record building and comparison."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.replace(microsecond=0, tzinfo=None).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.replace(microsecond=0).isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_map(data: Mapping[str, Any]) -> dict[str, str]:
    return {key: normalize_text(value).strip() for key, value in data.items()}


def is_unchanged(stored: Mapping[str, Any], candidate: Mapping[str, Any]) -> bool:
    """
    True when both column maps carry the same text. A key missing on one side
    counts as empty, so trailing empty columns never register as a change.
    """
    left = normalize_map(stored or {})
    right = normalize_map(candidate or {})
    keys = sorted(set(left) | set(right), key=letter_to_index)

    last_populated = -1
    for pos, key in enumerate(keys):
        if left.get(key, "") or right.get(key, ""):
            last_populated = pos

    for key in keys[: last_populated + 1]:
        if left.get(key, "") != right.get(key, ""):
            return False
    return True
