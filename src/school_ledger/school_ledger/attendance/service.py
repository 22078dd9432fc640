from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import now_local, sunday_based_weekday, truncate_to_minute
from ..common.validators import optional_id, require_non_empty
from ..core.enums import AttendanceStatus
from ..core.exceptions import AttendanceDeniedError, StoreError, ValidationError
from ..holidays.model import HolidayCheck
from ..holidays.repository import HolidayRepository
from ..policies.service import PolicyService
from ..students.repository import StudentRepository
from ..timetable.model import TimetablePeriod
from ..timetable.repository import TimetableRepository
from .model import (
    NO_CLASSES_REASON,
    AttendanceEntry,
    AttendanceLock,
    MarkDecision,
    RosterEntry,
    StudentAttendanceRecord,
    first_class_reason,
    lock_denial_reason,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceLockService:
    """Gate student-attendance submission.

    Exactly one teacher records attendance for one class/section on one date,
    and only for that teacher's first scheduled period of the day. A class
    moves UNLOCKED -> LOCKED(teacher) on the first successful save and never
    goes back.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        timetable: TimetableRepository,
        holidays: HolidayRepository,
        students: StudentRepository,
        *,
        policies: Optional[PolicyService] = None,
    ):
        self._attendance = attendance
        self._timetable = timetable
        self._holidays = holidays
        self._students = students
        self._policies = policies or PolicyService()

    def get_first_class_of_day(
        self,
        teacher_id: str,
        on_date: date,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[TimetablePeriod]:
        """The class that is canonically the teacher's first on ``on_date``.

        The earliest period that has not started yet (relative to ``now``'s
        wall-clock time) wins; once every period has started it falls back to
        the first period of the day.
        """

        now = now or now_local()
        periods = list(
            self._timetable.list_for_teacher_day(
                teacher_id=teacher_id,
                day_of_week=sunday_based_weekday(on_date),
                academic_year=on_date.year,
            )
        )
        if not periods:
            return None

        current = truncate_to_minute(now.time())
        upcoming = [p for p in periods if p.start_time >= current]
        return upcoming[0] if upcoming else periods[0]

    def is_holiday(self, on_date: date, school_id: str) -> HolidayCheck:
        """Weekly off-day or declared holiday. Store errors fail open (not a holiday)."""

        try:
            off_reason = self._policies.calendar_for(school_id).weekly_off_reason(on_date)
            if off_reason:
                return HolidayCheck(is_holiday=True, reason=off_reason)
            holiday = self._holidays.get_for_school_and_date(school_id=school_id, holiday_date=on_date)
        except StoreError as e:
            logger.warning("Holiday check failed for school=%s date=%s, treating as working day: %s", school_id, on_date, e)
            return HolidayCheck(is_holiday=False)

        if holiday:
            return HolidayCheck(is_holiday=True, reason=holiday.name)
        return HolidayCheck(is_holiday=False)

    def can_mark(
        self,
        teacher_id: str,
        class_group_id: str,
        section_id: Optional[str],
        on_date: date,
        *,
        now: Optional[datetime] = None,
    ) -> MarkDecision:
        section_id = optional_id(section_id)

        reason = lock_denial_reason(
            teacher_lock=self._attendance.find_lock_for_teacher(teacher_id=teacher_id, attendance_date=on_date),
            class_lock=self._attendance.find_lock_for_class(
                class_group_id=class_group_id, section_id=section_id, attendance_date=on_date
            ),
            teacher_id=teacher_id,
            class_group_id=class_group_id,
            section_id=section_id,
        )
        if reason:
            return MarkDecision(allowed=False, reason=reason)

        first_class = self.get_first_class_of_day(teacher_id, on_date, now=now)
        if not first_class:
            return MarkDecision(allowed=False, reason=NO_CLASSES_REASON)

        if not first_class.teaches(class_group_id, section_id):
            return MarkDecision(allowed=False, reason=first_class_reason(first_class), first_class=first_class)

        return MarkDecision(allowed=True, first_class=first_class)

    def save_attendance(
        self,
        teacher_id: str,
        class_group_id: str,
        section_id: Optional[str],
        school_id: str,
        on_date: date,
        records: Iterable[AttendanceEntry],
        *,
        now: Optional[datetime] = None,
    ) -> int:
        """Record and lock a class's attendance. Returns the number of records saved.

        Raises ValidationError on a holiday and AttendanceDeniedError (or its
        LockConflictError subclass when the store's constraint catches a
        concurrent claim) when marking is not allowed. The lock and all
        records are written in one transaction.
        """

        teacher_id = require_non_empty(teacher_id, "Teacher")
        class_group_id = require_non_empty(class_group_id, "Class")
        school_id = require_non_empty(school_id, "School")
        section_id = optional_id(section_id)
        entries = self._validate_entries(records)

        holiday = self.is_holiday(on_date, school_id)
        if holiday.is_holiday:
            raise ValidationError(f"Cannot mark attendance. Today is {holiday.reason}.")

        decision = self.can_mark(teacher_id, class_group_id, section_id, on_date, now=now)
        if not decision.allowed:
            raise AttendanceDeniedError(decision.reason or "Not allowed to mark attendance")

        lock = AttendanceLock(
            school_id=school_id,
            class_group_id=class_group_id,
            section_id=section_id,
            teacher_id=teacher_id,
            attendance_date=on_date,
        )
        rows = [
            StudentAttendanceRecord(
                student_id=e.student_id,
                class_group_id=class_group_id,
                section_id=section_id,
                school_id=school_id,
                attendance_date=on_date,
                status=e.status,
                marked_by=teacher_id,
                is_locked=True,
            )
            for e in entries
        ]

        try:
            self._attendance.save_locked_attendance(lock=lock, records=rows)
        except StoreError:
            logger.error(
                "Saving attendance failed teacher=%s class=%s section=%s date=%s",
                teacher_id, class_group_id, section_id, on_date,
            )
            raise

        logger.info(
            "Attendance saved teacher=%s class=%s section=%s date=%s records=%d",
            teacher_id, class_group_id, section_id, on_date, len(rows),
        )
        return len(rows)

    def apply_holiday_attendance(self, school_id: str, on_date: date) -> int:
        """Mark every active student 'holiday' on a non-teaching day.

        Insert-only: a record already present for a student on that date
        (e.g. marked manually) is preserved. Returns rows inserted.
        """

        check = self.is_holiday(on_date, school_id)
        if not check.is_holiday:
            return 0

        students = self._students.list_active(school_id=school_id)
        rows = [
            StudentAttendanceRecord(
                student_id=s.student_id,
                class_group_id=s.class_group_id,
                section_id=s.section_id,
                school_id=school_id,
                attendance_date=on_date,
                status=AttendanceStatus.HOLIDAY,
                marked_by=None,
                is_locked=True,
            )
            for s in students
        ]
        if not rows:
            return 0

        inserted = self._attendance.insert_missing_records(records=rows)
        logger.info(
            "Holiday attendance applied school=%s date=%s reason=%s inserted=%d preserved=%d",
            school_id, on_date, check.reason, inserted, len(rows) - inserted,
        )
        return inserted

    def get_students_for_attendance(
        self,
        class_group_id: str,
        section_id: Optional[str],
        school_id: str,
        on_date: date,
    ) -> list[RosterEntry]:
        students = self._students.list_active_for_class(
            class_group_id=class_group_id,
            section_id=optional_id(section_id),
            school_id=school_id,
        )
        existing = {
            r.student_id: r
            for r in self._attendance.list_records_for_date(
                student_ids=[s.student_id for s in students],
                attendance_date=on_date,
            )
        }

        out: list[RosterEntry] = []
        for s in students:
            rec = existing.get(s.student_id)
            out.append(
                RosterEntry(
                    student_id=s.student_id,
                    roll_number=s.roll_number or "N/A",
                    full_name=s.full_name or "N/A",
                    status=rec.status if rec else AttendanceStatus.PRESENT,
                    existing_record_id=rec.record_id if rec else None,
                    is_locked=rec.is_locked if rec else False,
                )
            )
        return out

    @staticmethod
    def _validate_entries(records: Iterable[AttendanceEntry]) -> Sequence[AttendanceEntry]:
        entries = list(records or [])
        if not entries:
            raise ValidationError("No attendance records supplied")

        seen: set[str] = set()
        for e in entries:
            sid = require_non_empty(e.student_id, "Student")
            if sid in seen:
                raise ValidationError(f"Duplicate attendance record for student {sid}")
            seen.add(sid)
            if e.status == AttendanceStatus.HOLIDAY:
                raise ValidationError("Holiday status is assigned by the system only")
        return entries

    @staticmethod
    def parse_entries(raw: Iterable[dict]) -> list[AttendanceEntry]:
        """Build entries from request payload items ``{"student_id", "status"}``."""

        out: list[AttendanceEntry] = []
        for item in raw or []:
            status_value = str((item or {}).get("status") or "").strip().lower()
            try:
                status = AttendanceStatus(status_value)
            except ValueError:
                raise ValidationError(f"Invalid attendance status: {status_value or '-'}")
            out.append(AttendanceEntry(student_id=str(item.get("student_id") or "").strip(), status=status))
        return out
