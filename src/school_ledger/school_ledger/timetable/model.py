from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional


@dataclass(frozen=True)
class TimetablePeriod:
    """One scheduled period of a teacher's weekly timetable (read-only reference data)."""

    teacher_id: str
    day_of_week: int
    academic_year: int
    period_number: int
    start_time: time
    class_group_id: str
    section_id: Optional[str]
    subject_id: Optional[str]
    is_active: bool = True
    subject_name: str = "N/A"
    class_name: str = "N/A"

    def teaches(self, class_group_id: str, section_id: Optional[str]) -> bool:
        return self.class_group_id == class_group_id and self.section_id == (section_id or None)
