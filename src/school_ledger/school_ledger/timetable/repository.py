from __future__ import annotations

from typing import Protocol, Sequence

from .model import TimetablePeriod


class TimetableRepository(Protocol):
    def list_for_teacher_day(self, *, teacher_id: str, day_of_week: int, academic_year: int) -> Sequence[TimetablePeriod]:
        """Active periods for the teacher on that weekday, ordered by period_number."""

        raise NotImplementedError
