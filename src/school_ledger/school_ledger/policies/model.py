from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet

from ..common.datetime_utils import day_in_month, sunday_based_weekday
from ..core.constants import DEFAULT_FEE_DUE_DAY, DEFAULT_WEEKLY_OFF_DAYS, WEEKDAY_NAMES


@dataclass(frozen=True)
class CalendarPolicy:
    """Which weekdays are non-teaching days (0=Sunday ... 6=Saturday)."""

    weekly_off_days: FrozenSet[int] = field(default_factory=lambda: DEFAULT_WEEKLY_OFF_DAYS)

    def weekly_off_reason(self, on_date: date) -> str | None:
        dow = sunday_based_weekday(on_date)
        if dow in self.weekly_off_days:
            return WEEKDAY_NAMES[dow]
        return None


@dataclass(frozen=True)
class BillingPolicy:
    due_day: int = DEFAULT_FEE_DUE_DAY

    def due_date(self, year: int, month: int) -> date:
        return day_in_month(year, month, self.due_day)


@dataclass(frozen=True)
class SchoolPolicy:
    school_id: str
    calendar: CalendarPolicy
    billing: BillingPolicy
