from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student
from .repository import StudentRepository

_COLUMNS = """
    s.id, s.school_id, s.class_group_id, s.section_id, s.admission_date,
    s.status, s.roll_number, s.full_name
"""


def _row_to_student(r: dict) -> Student:
    return Student(
        student_id=str(r["id"]),
        school_id=str(r["school_id"]),
        class_group_id=r.get("class_group_id") or None,
        section_id=r.get("section_id") or None,
        admission_date=r.get("admission_date"),
        status=r.get("status") or "active",
        roll_number=r.get("roll_number"),
        full_name=r.get("full_name"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, *, student_id: str, school_id: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students s WHERE s.id=%s AND s.school_id=%s",
                (student_id, school_id),
            )
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def list_active(self, *, school_id: Optional[str] = None) -> Sequence[Student]:
        clauses = ["s.status='active'"]
        params: list[object] = []
        if school_id is not None:
            clauses.append("s.school_id=%s")
            params.append(school_id)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students s WHERE {where} ORDER BY s.school_id, s.id", tuple(params))
            return [_row_to_student(r) for r in fetchall(cur)]

    def list_active_for_class(
        self,
        *,
        class_group_id: str,
        section_id: Optional[str],
        school_id: str,
    ) -> Sequence[Student]:
        clauses = ["s.status='active'", "s.class_group_id=%s", "s.school_id=%s"]
        params: list[object] = [class_group_id, school_id]
        if section_id:
            clauses.append("s.section_id=%s")
            params.append(section_id)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students s WHERE {where} ORDER BY s.roll_number ASC", tuple(params))
            return [_row_to_student(r) for r in fetchall(cur)]
