from __future__ import annotations

from typing import Optional

from ..core.constants import DEFAULT_FEE_DUE_DAY
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import BillingPolicy, CalendarPolicy, SchoolPolicy
from .repository import PolicyRepository


def _parse_off_days(value) -> frozenset[int]:
    # Stored as a comma separated list of Sunday-based day numbers, e.g. "0" or "0,6".
    if value is None:
        return frozenset()
    return frozenset(int(p) for p in str(value).split(",") if p.strip())


class MySQLPolicyRepository(PolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_school(self, school_id: str) -> Optional[SchoolPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT school_id, weekly_off_days, fee_due_day
                FROM school_policies
                WHERE school_id=%s
                """,
                (school_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return SchoolPolicy(
                school_id=str(r["school_id"]),
                calendar=CalendarPolicy(weekly_off_days=_parse_off_days(r.get("weekly_off_days"))),
                billing=BillingPolicy(due_day=int(r.get("fee_due_day") or DEFAULT_FEE_DUE_DAY)),
            )
