from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Holiday:
    school_id: str
    holiday_date: date
    name: str


@dataclass(frozen=True)
class HolidayCheck:
    is_holiday: bool
    reason: Optional[str] = None
