from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, normalize_mysql_time
from .model import TimetablePeriod
from .repository import TimetableRepository


class MySQLTimetableRepository(TimetableRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_teacher_day(self, *, teacher_id: str, day_of_week: int, academic_year: int) -> Sequence[TimetablePeriod]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    t.teacher_id, t.day_of_week, t.academic_year, t.period_number, t.start_time,
                    t.class_group_id, t.section_id, t.subject_id, t.is_active,
                    cg.name AS class_name,
                    s.name AS subject_name
                FROM timetable t
                LEFT JOIN class_groups cg ON cg.id = t.class_group_id
                LEFT JOIN subjects s ON s.id = t.subject_id
                WHERE t.teacher_id=%s AND t.day_of_week=%s AND t.academic_year=%s AND t.is_active=1
                ORDER BY t.period_number ASC
                """,
                (teacher_id, int(day_of_week), int(academic_year)),
            )
            rows = fetchall(cur)
            return [
                TimetablePeriod(
                    teacher_id=str(r["teacher_id"]),
                    day_of_week=int(r["day_of_week"]),
                    academic_year=int(r["academic_year"]),
                    period_number=int(r["period_number"]),
                    start_time=normalize_mysql_time(r["start_time"]),
                    class_group_id=str(r["class_group_id"]),
                    section_id=r.get("section_id") or None,
                    subject_id=r.get("subject_id"),
                    is_active=bool(r["is_active"]),
                    subject_name=r.get("subject_name") or "N/A",
                    class_name=r.get("class_name") or "N/A",
                )
                for r in rows
            ]
