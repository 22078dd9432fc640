from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import Holiday


class HolidayRepository(Protocol):
    def get_for_school_and_date(self, *, school_id: str, holiday_date: date) -> Optional[Holiday]:
        raise NotImplementedError
