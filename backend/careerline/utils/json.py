"""JSON column parsing for SQLite TEXT fields."""

import json
from typing import Any


def parse_json_field(raw: str | dict | None) -> dict[str, Any] | None:
    """Parse a JSON object column, returning None on failure or empty.

    For node meta. Returns None for: None, empty string, empty dict,
    invalid JSON, non-dict JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, dict):
        return raw if raw else None
    if isinstance(raw, str):
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, dict) and parsed:
                return parsed
        except (ValueError, TypeError):
            pass
    return None


def parse_json_list(raw: str | list | None) -> list[Any]:
    """Parse a JSON array column (insight resources). Empty list on failure."""
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str) and raw:
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            return []
        if isinstance(parsed, list):
            return parsed
    return []
