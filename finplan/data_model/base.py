from __future__ import annotations

import math
from typing import Any, Mapping


def extract_value(row: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-null value among ``keys`` (camelCase or snake_case)."""
    for key in keys:
        if key in row and row[key] is not None:
            value = row[key]
            if isinstance(value, float) and math.isnan(value):
                continue
            return value
    return default


def as_float(value: Any, default: float = 0.0) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    number = float(value)
    if math.isnan(number):
        return default
    return number


def optional_year(value: Any) -> int | None:
    """Blank/None/0 means "unbounded"."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, float) and math.isnan(value):
        return None
    year = int(float(value))
    return year or None


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)
