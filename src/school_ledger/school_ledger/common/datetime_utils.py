from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Iterator, Optional

from ..core.constants import MONTH_ABBREVIATIONS


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def sunday_based_weekday(value: date) -> int:
    """Day of week with 0=Sunday ... 6=Saturday (timetable convention)."""
    return (value.weekday() + 1) % 7


def truncate_to_minute(value: time) -> time:
    return value.replace(second=0, microsecond=0)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of (year, month)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def day_in_month(year: int, month: int, day: int) -> date:
    """``date(year, month, day)`` clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(int(day), 1), last_day))


def month_index(year: int, month: int) -> int:
    return int(year) * 12 + (int(month) - 1)


def quarter_of(month: int) -> int:
    return (int(month) - 1) // 3 + 1


def iter_months(start_year: int, start_month: int, end_year: int, end_month: int) -> Iterator[tuple[int, int]]:
    """Yield (year, month) pairs from start to end inclusive (empty if end < start)."""
    for idx in range(month_index(start_year, start_month), month_index(end_year, end_month) + 1):
        yield idx // 12, idx % 12 + 1


def month_label(year: int, month: int) -> str:
    return f"{MONTH_ABBREVIATIONS[int(month) - 1]} {int(year)}"


def optional_iso_date(value: Optional[str]) -> Optional[date]:
    v = (value or "").strip()
    return parse_iso_date(v) if v else None
