from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def optional_id(value: Optional[str]) -> Optional[str]:
    """Normalize an optional identifier: blank means absent."""
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def require_month(year: int, month: int) -> tuple[int, int]:
    try:
        y, m = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("Year and month must be integers")
    if not 1 <= m <= 12:
        raise ValidationError(f"Invalid month: {month}")
    if y < 1:
        raise ValidationError(f"Invalid year: {year}")
    return y, m


def require_positive_int(value, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if v <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return v
