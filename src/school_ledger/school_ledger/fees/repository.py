from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import (
    ClassFeeDefault,
    CustomFeeDefinition,
    FeeOverride,
    MonthlyFeeComponent,
    TransportAssignment,
    TransportFeeConfig,
)


class FeeDefinitionRepository(Protocol):
    """Read-only fee configuration owned by the administration screens."""

    def get_active_class_fee_default(self, *, class_group_id: str, school_id: str) -> Optional[ClassFeeDefault]:
        raise NotImplementedError

    def get_effective_override(self, *, student_id: str, fee_category_id: str, on_date: date) -> Optional[FeeOverride]:
        """Active override whose window contains ``on_date``; latest effective_from wins."""

        raise NotImplementedError

    def get_active_transport_assignment(self, *, student_id: str, school_id: str) -> Optional[TransportAssignment]:
        raise NotImplementedError

    def get_active_transport_fee(self, *, route_id: str, school_id: str) -> Optional[TransportFeeConfig]:
        raise NotImplementedError

    def list_custom_fee_definitions(self, *, school_id: str, class_group_id: Optional[str]) -> Sequence[CustomFeeDefinition]:
        """Active definitions of active 'custom' categories, scoped to the class group or global."""

        raise NotImplementedError


class FeeComponentRepository(Protocol):
    def upsert_components(self, *, components: Sequence[MonthlyFeeComponent]) -> tuple[int, int]:
        """Insert or refresh components on their natural key, atomically.

        Existing rows keep paid_amount/status; fee_amount, pending_amount
        (max(0, fee - paid)), fee_name, route fields and due_date are refreshed.
        Returns (inserted, updated).
        """

        raise NotImplementedError

    def list_component_months(
        self,
        *,
        student_id: str,
        school_id: str,
        start_year: int,
        end_year: int,
    ) -> Sequence[tuple[int, int]]:
        """Distinct (year, month) pairs that have components, in any order."""

        raise NotImplementedError

    def list_components_for_months(
        self,
        *,
        student_id: str,
        school_id: str,
        months: Sequence[tuple[int, int]],
    ) -> Sequence[MonthlyFeeComponent]:
        raise NotImplementedError

    def has_components_for_month(self, *, student_id: str, school_id: str, year: int, month: int) -> bool:
        raise NotImplementedError
