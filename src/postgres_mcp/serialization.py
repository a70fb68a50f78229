from __future__ import annotations

import json
import math
from datetime import date, datetime, time
from typing import Any, Iterable, Mapping

import asyncpg


def _range_text(value: asyncpg.Range) -> str:
    if value.isempty:
        return "empty"
    lower = "" if value.lower is None else _default(value.lower)
    upper = "" if value.upper is None else _default(value.upper)
    return f"{'[' if value.lower_inc else '('}{lower},{upper}{']' if value.upper_inc else ')'}"


def _default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "\\x" + bytes(value).hex()
    if isinstance(value, asyncpg.Record):
        return _finite(dict(value.items()))
    if isinstance(value, asyncpg.Range):
        return _range_text(value)
    # Decimal, UUID, timedelta and network types
    return str(value)


def _finite(value: Any) -> Any:
    """Replace NaN and infinities with ``None`` so the output stays valid JSON."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {key: _finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(item) for item in value]
    return value


def rows_to_dicts(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [dict(row) for row in rows]


def to_json_text(rows: Iterable[Mapping[str, Any]]) -> str:
    """Serialize rows as indented JSON, keeping column order."""
    return json.dumps(
        _finite(rows_to_dicts(rows)),
        indent=2,
        default=_default,
        ensure_ascii=False,
        allow_nan=False,
    )
