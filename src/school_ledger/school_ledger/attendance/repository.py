from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceLock, StudentAttendanceRecord


class AttendanceRepository(Protocol):
    def find_lock_for_teacher(self, *, teacher_id: str, attendance_date: date) -> Optional[AttendanceLock]:
        raise NotImplementedError

    def find_lock_for_class(
        self,
        *,
        class_group_id: str,
        section_id: Optional[str],
        attendance_date: date,
    ) -> Optional[AttendanceLock]:
        """``section_id=None`` matches only locks without a section."""

        raise NotImplementedError

    def list_records_for_date(self, *, student_ids: Sequence[str], attendance_date: date) -> Sequence[StudentAttendanceRecord]:
        raise NotImplementedError

    def save_locked_attendance(self, *, lock: AttendanceLock, records: Sequence[StudentAttendanceRecord]) -> None:
        """Claim ``lock`` and upsert ``records`` atomically.

        The lock is inserted against the store's uniqueness constraints. An
        identical existing lock is accepted; a conflicting one raises
        ``LockConflictError`` and nothing is written. Records are upserted on
        (student_id, attendance_date).
        """

        raise NotImplementedError

    def insert_missing_records(self, *, records: Sequence[StudentAttendanceRecord]) -> int:
        """Insert records whose (student_id, attendance_date) has no row yet.

        Existing rows are left untouched. Returns the number inserted.
        """

        raise NotImplementedError
