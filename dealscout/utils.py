"""JSON column helpers for the saved-session table."""
from __future__ import annotations

import json
from typing import Any

_MISSING = object()


def json_parse(value: str | None, default: Any = _MISSING) -> Any:
    """Parse a JSON text column, returning *default* (``None`` if omitted) when empty or invalid."""
    if value is None or value == "":
        return None if default is _MISSING else default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None if default is _MISSING else default


def json_dump(value: Any) -> str | None:
    """Serialize for a nullable JSON text column; ``None`` stays ``None``."""
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def isoformat(value) -> str:
    return value.isoformat() if value is not None else ""
