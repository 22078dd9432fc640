from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import FeeCycle
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal, to_optional_decimal
from .model import ClassFeeDefault, CustomFeeDefinition, FeeOverride, TransportAssignment, TransportFeeConfig
from .repository import FeeDefinitionRepository


class MySQLFeeDefinitionRepository(FeeDefinitionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active_class_fee_default(self, *, class_group_id: str, school_id: str) -> Optional[ClassFeeDefault]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT d.fee_category_id, d.amount, d.fee_cycle, fc.name AS category_name
                FROM class_fee_defaults d
                LEFT JOIN fee_categories fc ON fc.id = d.fee_category_id
                WHERE d.class_group_id=%s AND d.school_id=%s AND d.is_active=1
                LIMIT 1
                """,
                (class_group_id, school_id),
            )
            r = fetchone(cur)
            if not r:
                return None
            return ClassFeeDefault(
                fee_category_id=str(r["fee_category_id"]),
                category_name=r.get("category_name") or "Class Fee",
                amount=to_decimal(r.get("amount")),
                fee_cycle=FeeCycle.parse(r.get("fee_cycle")),
            )

    def get_effective_override(self, *, student_id: str, fee_category_id: str, on_date: date) -> Optional[FeeOverride]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, fee_category_id, effective_from, effective_to,
                       is_full_free, custom_fee_amount, discount_amount
                FROM student_fee_overrides
                WHERE student_id=%s AND fee_category_id=%s AND is_active=1
                  AND effective_from <= %s
                  AND (effective_to IS NULL OR effective_to >= %s)
                ORDER BY effective_from DESC
                LIMIT 1
                """,
                (student_id, fee_category_id, on_date, on_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return FeeOverride(
                student_id=str(r["student_id"]),
                fee_category_id=str(r["fee_category_id"]),
                effective_from=r["effective_from"],
                effective_to=r.get("effective_to"),
                is_full_free=bool(r.get("is_full_free")),
                custom_fee_amount=to_optional_decimal(r.get("custom_fee_amount")),
                discount_amount=to_optional_decimal(r.get("discount_amount")),
            )

    def get_active_transport_assignment(self, *, student_id: str, school_id: str) -> Optional[TransportAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT st.route_id, tr.route_name
                FROM student_transport st
                LEFT JOIN transport_routes tr ON tr.id = st.route_id
                WHERE st.student_id=%s AND st.school_id=%s AND st.is_active=1
                ORDER BY st.created_at DESC
                LIMIT 1
                """,
                (student_id, school_id),
            )
            r = fetchone(cur)
            if not r or not r.get("route_id"):
                return None
            return TransportAssignment(route_id=str(r["route_id"]), route_name=r.get("route_name") or "Transport")

    def get_active_transport_fee(self, *, route_id: str, school_id: str) -> Optional[TransportFeeConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT route_id, base_fee, escort_fee, fuel_surcharge, fee_cycle, fee_category_id
                FROM transport_fees
                WHERE route_id=%s AND school_id=%s AND is_active=1
                LIMIT 1
                """,
                (route_id, school_id),
            )
            r = fetchone(cur)
            if not r:
                return None
            return TransportFeeConfig(
                route_id=str(r["route_id"]),
                base_fee=to_decimal(r.get("base_fee")),
                escort_fee=to_decimal(r.get("escort_fee")),
                fuel_surcharge=to_decimal(r.get("fuel_surcharge")),
                fee_cycle=FeeCycle.parse(r.get("fee_cycle")),
                fee_category_id=r.get("fee_category_id") or None,
            )

    def list_custom_fee_definitions(self, *, school_id: str, class_group_id: Optional[str]) -> Sequence[CustomFeeDefinition]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT d.fee_category_id, d.amount, d.fee_cycle, d.class_group_id, fc.name AS category_name
                FROM optional_fee_definitions d
                JOIN fee_categories fc ON fc.id = d.fee_category_id
                WHERE d.school_id=%s AND d.is_active=1
                  AND fc.school_id=%s AND fc.fee_type='custom' AND fc.is_active=1
                  AND (d.class_group_id IS NULL OR d.class_group_id=%s)
                ORDER BY fc.name ASC
                """,
                (school_id, school_id, class_group_id),
            )
            return [
                CustomFeeDefinition(
                    fee_category_id=str(r["fee_category_id"]),
                    category_name=r.get("category_name") or "Custom Fee",
                    amount=to_decimal(r.get("amount")),
                    fee_cycle=FeeCycle.parse(r.get("fee_cycle")),
                    class_group_id=r.get("class_group_id"),
                )
                for r in fetchall(cur)
            ]
