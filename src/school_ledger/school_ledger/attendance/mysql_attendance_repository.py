from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import AttendanceStatus
from ..core.exceptions import LockConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceLock, StudentAttendanceRecord, lock_denial_reason
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _row_to_lock(r: dict) -> AttendanceLock:
    return AttendanceLock(
        school_id=str(r["school_id"]),
        class_group_id=str(r["class_group_id"]),
        section_id=r.get("section_id") or None,
        teacher_id=str(r["teacher_id"]),
        attendance_date=r["attendance_date"],
    )


def _select_teacher_lock(cur, teacher_id: str, attendance_date: date) -> Optional[AttendanceLock]:
    cur.execute(
        """
        SELECT school_id, class_group_id, section_id, teacher_id, attendance_date
        FROM class_attendance_lock
        WHERE teacher_id=%s AND attendance_date=%s
        """,
        (teacher_id, attendance_date),
    )
    r = fetchone(cur)
    return _row_to_lock(r) if r else None


def _select_class_lock(cur, class_group_id: str, section_id: Optional[str], attendance_date: date) -> Optional[AttendanceLock]:
    # section_key is COALESCE(section_id, ''), so "no section" only matches "no section".
    cur.execute(
        """
        SELECT school_id, class_group_id, section_id, teacher_id, attendance_date
        FROM class_attendance_lock
        WHERE class_group_id=%s AND section_key=%s AND attendance_date=%s
        """,
        (class_group_id, section_id or "", attendance_date),
    )
    r = fetchone(cur)
    return _row_to_lock(r) if r else None


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_lock_for_teacher(self, *, teacher_id: str, attendance_date: date) -> Optional[AttendanceLock]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _select_teacher_lock(cur, teacher_id, attendance_date)

    def find_lock_for_class(
        self,
        *,
        class_group_id: str,
        section_id: Optional[str],
        attendance_date: date,
    ) -> Optional[AttendanceLock]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _select_class_lock(cur, class_group_id, section_id, attendance_date)

    def list_records_for_date(self, *, student_ids: Sequence[str], attendance_date: date) -> Sequence[StudentAttendanceRecord]:
        if not student_ids:
            return []

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, student_id, class_group_id, section_id, school_id,
                       attendance_date, status, marked_by, is_locked
                FROM student_attendance
                WHERE attendance_date=%s AND student_id IN ({in_clause(student_ids)})
                """,
                (attendance_date, *student_ids),
            )
            rows = fetchall(cur)
            return [
                StudentAttendanceRecord(
                    record_id=str(r["id"]),
                    student_id=str(r["student_id"]),
                    class_group_id=r.get("class_group_id"),
                    section_id=r.get("section_id") or None,
                    school_id=str(r["school_id"]),
                    attendance_date=r["attendance_date"],
                    status=AttendanceStatus(r["status"]),
                    marked_by=r.get("marked_by"),
                    is_locked=bool(r["is_locked"]),
                )
                for r in rows
            ]

    def save_locked_attendance(self, *, lock: AttendanceLock, records: Sequence[StudentAttendanceRecord]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO class_attendance_lock(school_id, class_group_id, section_id, teacher_id, attendance_date)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (lock.school_id, lock.class_group_id, lock.section_id, lock.teacher_id, lock.attendance_date),
                )
            except mysql.connector.IntegrityError as e:
                if e.errno != errorcode.ER_DUP_ENTRY:
                    raise
                reason = lock_denial_reason(
                    teacher_lock=_select_teacher_lock(cur, lock.teacher_id, lock.attendance_date),
                    class_lock=_select_class_lock(cur, lock.class_group_id, lock.section_id, lock.attendance_date),
                    teacher_id=lock.teacher_id,
                    class_group_id=lock.class_group_id,
                    section_id=lock.section_id,
                )
                if reason:
                    logger.info(
                        "Lock claim rejected teacher=%s class=%s section=%s date=%s",
                        lock.teacher_id, lock.class_group_id, lock.section_id, lock.attendance_date,
                    )
                    raise LockConflictError(reason) from e
                # Same teacher re-saving the class it already holds.

            for rec in records:
                cur.execute(
                    """
                    INSERT INTO student_attendance(
                        student_id, class_group_id, section_id, school_id,
                        attendance_date, status, marked_by, is_locked
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE
                        class_group_id=VALUES(class_group_id),
                        section_id=VALUES(section_id),
                        school_id=VALUES(school_id),
                        status=VALUES(status),
                        marked_by=VALUES(marked_by),
                        is_locked=VALUES(is_locked)
                    """,
                    (
                        rec.student_id,
                        rec.class_group_id,
                        rec.section_id,
                        rec.school_id,
                        rec.attendance_date,
                        rec.status.value,
                        rec.marked_by,
                        int(rec.is_locked),
                    ),
                )

    def insert_missing_records(self, *, records: Sequence[StudentAttendanceRecord]) -> int:
        if not records:
            return 0

        by_date: dict[date, list[StudentAttendanceRecord]] = {}
        for rec in records:
            by_date.setdefault(rec.attendance_date, []).append(rec)

        inserted = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for attendance_date, recs in by_date.items():
                student_ids = [r.student_id for r in recs]
                cur.execute(
                    f"""
                    SELECT student_id FROM student_attendance
                    WHERE attendance_date=%s AND student_id IN ({in_clause(student_ids)})
                    FOR UPDATE
                    """,
                    (attendance_date, *student_ids),
                )
                existing = {str(r["student_id"]) for r in fetchall(cur)}

                for rec in recs:
                    if rec.student_id in existing:
                        continue
                    cur.execute(
                        """
                        INSERT INTO student_attendance(
                            student_id, class_group_id, section_id, school_id,
                            attendance_date, status, marked_by, is_locked
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (
                            rec.student_id,
                            rec.class_group_id,
                            rec.section_id,
                            rec.school_id,
                            rec.attendance_date,
                            rec.status.value,
                            rec.marked_by,
                            int(rec.is_locked),
                        ),
                    )
                    inserted += 1
        return inserted
