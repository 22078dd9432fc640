from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import AttendanceStatus
from ..timetable.model import TimetablePeriod


@dataclass(frozen=True)
class AttendanceLock:
    """Which teacher claimed a class/section's attendance for a date. Never updated or deleted."""

    school_id: str
    class_group_id: str
    section_id: Optional[str]
    teacher_id: str
    attendance_date: date

    def covers(self, class_group_id: str, section_id: Optional[str]) -> bool:
        return self.class_group_id == class_group_id and self.section_id == (section_id or None)


@dataclass(frozen=True)
class StudentAttendanceRecord:
    student_id: str
    class_group_id: Optional[str]
    section_id: Optional[str]
    school_id: str
    attendance_date: date
    status: AttendanceStatus
    marked_by: Optional[str]
    is_locked: bool
    record_id: Optional[str] = None


@dataclass(frozen=True)
class AttendanceEntry:
    """One student's status as submitted by a teacher."""

    student_id: str
    status: AttendanceStatus


@dataclass(frozen=True)
class MarkDecision:
    allowed: bool
    reason: Optional[str] = None
    first_class: Optional[TimetablePeriod] = None


@dataclass(frozen=True)
class RosterEntry:
    """Read-model for the marking screen: student pre-filled with today's status."""

    student_id: str
    roll_number: str
    full_name: str
    status: AttendanceStatus
    existing_record_id: Optional[str] = None
    is_locked: bool = False


ANOTHER_CLASS_REASON = "You have already marked attendance for another class today"
ANOTHER_TEACHER_REASON = "This class attendance has already been marked by another teacher"
NO_CLASSES_REASON = "No classes scheduled for you today"


def lock_denial_reason(
    *,
    teacher_lock: Optional[AttendanceLock],
    class_lock: Optional[AttendanceLock],
    teacher_id: str,
    class_group_id: str,
    section_id: Optional[str],
) -> Optional[str]:
    """Reason the existing locks forbid ``teacher_id`` from marking the class, or None."""

    if teacher_lock and not teacher_lock.covers(class_group_id, section_id):
        return ANOTHER_CLASS_REASON
    if class_lock and class_lock.teacher_id != teacher_id:
        return ANOTHER_TEACHER_REASON
    return None


def first_class_reason(first_class: TimetablePeriod) -> str:
    return (
        "You can only mark attendance for your first class today "
        f"({first_class.class_name}, Period {first_class.period_number})"
    )
