from __future__ import annotations

from typing import Sequence

from ..core.enums import ComponentStatus, FeeCycle, FeeType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_decimal
from .model import MonthlyFeeComponent
from .repository import FeeComponentRepository

_COLUMNS = """
    id, student_id, school_id, fee_category_id, fee_type, fee_name,
    period_year, period_month, period_start, period_end,
    fee_amount, fee_cycle, paid_amount, pending_amount, status,
    due_date, effective_from, transport_route_id, transport_route_name
"""


def _row_to_component(r: dict) -> MonthlyFeeComponent:
    return MonthlyFeeComponent(
        component_id=str(r["id"]),
        student_id=str(r["student_id"]),
        school_id=str(r["school_id"]),
        fee_category_id=r.get("fee_category_id") or None,
        fee_type=FeeType(r["fee_type"]),
        fee_name=r.get("fee_name") or "",
        period_year=int(r["period_year"]),
        period_month=int(r["period_month"]),
        period_start=r["period_start"],
        period_end=r["period_end"],
        fee_amount=to_decimal(r.get("fee_amount")),
        fee_cycle=FeeCycle.parse(r.get("fee_cycle")),
        paid_amount=to_decimal(r.get("paid_amount")),
        pending_amount=to_decimal(r.get("pending_amount")),
        status=ComponentStatus(r["status"]),
        due_date=r.get("due_date"),
        effective_from=r.get("effective_from"),
        transport_route_id=r.get("transport_route_id"),
        transport_route_name=r.get("transport_route_name"),
    )


class MySQLFeeComponentRepository(FeeComponentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert_components(self, *, components: Sequence[MonthlyFeeComponent]) -> tuple[int, int]:
        if not components:
            return 0, 0

        student_ids = sorted({c.student_id for c in components})
        inserted = 0
        updated = 0
        with db_cursor(self._conn_factory) as (_, cur):
            # Only used to report inserted vs updated; the unique key on
            # (student, year, month, fee_type, category_key) decides the write.
            cur.execute(
                f"""
                SELECT student_id, period_year, period_month, fee_type, category_key
                FROM monthly_fee_components
                WHERE student_id IN ({in_clause(student_ids)})
                """,
                tuple(student_ids),
            )
            existing = {
                (str(r["student_id"]), int(r["period_year"]), int(r["period_month"]), r["fee_type"], r["category_key"])
                for r in fetchall(cur)
            }

            for c in components:
                key = c.natural_key
                cur.execute(
                    """
                    INSERT INTO monthly_fee_components(
                        student_id, school_id, fee_category_id, fee_type, fee_name,
                        period_year, period_month, period_start, period_end,
                        fee_amount, fee_cycle, paid_amount, pending_amount, status,
                        due_date, effective_from, transport_route_id, transport_route_name
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE
                        fee_amount=VALUES(fee_amount),
                        pending_amount=GREATEST(0, VALUES(fee_amount) - paid_amount),
                        fee_name=VALUES(fee_name),
                        transport_route_id=VALUES(transport_route_id),
                        transport_route_name=VALUES(transport_route_name),
                        due_date=VALUES(due_date),
                        updated_at=CURRENT_TIMESTAMP
                    """,
                    (
                        c.student_id,
                        c.school_id,
                        key.fee_category_id,
                        c.fee_type.value,
                        c.fee_name,
                        c.period_year,
                        c.period_month,
                        c.period_start,
                        c.period_end,
                        c.fee_amount,
                        c.fee_cycle.value if c.fee_cycle else None,
                        c.paid_amount,
                        c.pending_amount,
                        c.status.value,
                        c.due_date,
                        c.effective_from,
                        c.transport_route_id,
                        c.transport_route_name,
                    ),
                )
                row_key = (key.student_id, key.period_year, key.period_month, key.fee_type.value, key.fee_category_id or "")
                if row_key in existing:
                    updated += 1
                else:
                    existing.add(row_key)
                    inserted += 1
        return inserted, updated

    def list_component_months(
        self,
        *,
        student_id: str,
        school_id: str,
        start_year: int,
        end_year: int,
    ) -> Sequence[tuple[int, int]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT period_year, period_month
                FROM monthly_fee_components
                WHERE student_id=%s AND school_id=%s AND period_year BETWEEN %s AND %s
                """,
                (student_id, school_id, int(start_year), int(end_year)),
            )
            return [(int(r["period_year"]), int(r["period_month"])) for r in fetchall(cur)]

    def list_components_for_months(
        self,
        *,
        student_id: str,
        school_id: str,
        months: Sequence[tuple[int, int]],
    ) -> Sequence[MonthlyFeeComponent]:
        if not months:
            return []

        month_clauses = " OR ".join(["(period_year=%s AND period_month=%s)"] * len(months))
        params: list[object] = [student_id, school_id]
        for year, month in months:
            params.extend([int(year), int(month)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM monthly_fee_components
                WHERE student_id=%s AND school_id=%s AND ({month_clauses})
                ORDER BY period_year DESC, period_month DESC, fee_type ASC
                """,
                tuple(params),
            )
            return [_row_to_component(r) for r in fetchall(cur)]

    def has_components_for_month(self, *, student_id: str, school_id: str, year: int, month: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id FROM monthly_fee_components
                WHERE student_id=%s AND school_id=%s AND period_year=%s AND period_month=%s
                LIMIT 1
                """,
                (student_id, school_id, int(year), int(month)),
            )
            return fetchone(cur) is not None
