from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Student:
    student_id: str
    school_id: str
    class_group_id: Optional[str]
    section_id: Optional[str]
    admission_date: Optional[date]
    status: str = "active"
    roll_number: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"
