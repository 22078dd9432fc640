from __future__ import annotations

from datetime import date
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Holiday
from .repository import HolidayRepository


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_school_and_date(self, *, school_id: str, holiday_date: date) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT school_id, holiday_date, holiday_name
                FROM school_holidays
                WHERE school_id=%s AND holiday_date=%s
                LIMIT 1
                """,
                (school_id, holiday_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Holiday(school_id=str(r["school_id"]), holiday_date=r["holiday_date"], name=r["holiday_name"])
