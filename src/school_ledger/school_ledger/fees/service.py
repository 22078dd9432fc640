from __future__ import annotations

import logging
import math
from datetime import date
from decimal import Decimal
from typing import Optional

from ..common.datetime_utils import iter_months, month_bounds, month_label, now_local
from ..common.validators import require_month, require_positive_int
from ..core.constants import DEFAULT_LEDGER_PAGE_SIZE
from ..core.enums import ComponentStatus
from ..core.exceptions import NotFoundError, StoreError
from ..policies.service import PolicyService
from ..students.model import Student
from ..students.repository import StudentRepository
from .factory import BillingCycleFactory, should_bill_this_month
from .model import (
    ClassFeeLine,
    CustomFeeLine,
    FeeLine,
    FeeStructure,
    GenerationResult,
    LedgerComponent,
    LedgerMonth,
    LedgerPage,
    MonthlyFeeComponent,
    Pagination,
    TransportFeeLine,
    money,
)
from .repository import FeeComponentRepository, FeeDefinitionRepository

logger = logging.getLogger(__name__)


class FeeLedgerService:
    """Resolve what a student owes and materialize it into monthly ledger rows.

    Generation is re-runnable: rows are matched on their natural key
    (student, year, month, fee type, category) and payment fields recorded by
    the collection desk are never overwritten.
    """

    def __init__(
        self,
        students: StudentRepository,
        definitions: FeeDefinitionRepository,
        components: FeeComponentRepository,
        *,
        policies: Optional[PolicyService] = None,
        cycle_factory: Optional[BillingCycleFactory] = None,
        ledger_page_size: int = DEFAULT_LEDGER_PAGE_SIZE,
    ):
        self._students = students
        self._definitions = definitions
        self._components = components
        self._policies = policies or PolicyService()
        self._factory = cycle_factory or BillingCycleFactory()
        self._ledger_page_size = int(ledger_page_size)

    # ---- fee structure ----

    def load_assigned_fee_structure(self, student_id: str, school_id: str, *, today: Optional[date] = None) -> FeeStructure:
        today = today or now_local().date()
        student = self._get_student(student_id, school_id)
        return self._build_structure(student, today)

    def _get_student(self, student_id: str, school_id: str) -> Student:
        student = self._students.get_by_id(student_id=student_id, school_id=school_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    def _build_structure(self, student: Student, today: date) -> FeeStructure:
        start = student.admission_date or today

        class_fee = None
        if student.class_group_id:
            default = self._definitions.get_active_class_fee_default(
                class_group_id=student.class_group_id, school_id=student.school_id
            )
            if default:
                class_fee = ClassFeeLine(
                    amount=self._resolve_amount(student.student_id, default.fee_category_id, default.amount, today),
                    fee_cycle=default.fee_cycle,
                    start_date=start,
                    category_id=default.fee_category_id,
                    category_name=default.category_name,
                )

        transport_fee = None
        assignment = self._definitions.get_active_transport_assignment(
            student_id=student.student_id, school_id=student.school_id
        )
        if assignment:
            config = self._definitions.get_active_transport_fee(route_id=assignment.route_id, school_id=student.school_id)
            if config:
                transport_fee = TransportFeeLine(
                    amount=self._resolve_amount(student.student_id, config.fee_category_id, config.total, today),
                    fee_cycle=config.fee_cycle,
                    start_date=start,
                    route_id=assignment.route_id,
                    route_name=assignment.route_name,
                )

        custom_fees = tuple(
            CustomFeeLine(
                amount=self._resolve_amount(student.student_id, d.fee_category_id, d.amount, today),
                fee_cycle=d.fee_cycle,
                start_date=start,
                category_id=d.fee_category_id,
                category_name=d.category_name,
            )
            for d in self._definitions.list_custom_fee_definitions(
                school_id=student.school_id, class_group_id=student.class_group_id
            )
        )

        return FeeStructure(class_fee=class_fee, transport_fee=transport_fee, custom_fees=custom_fees)

    def _resolve_amount(self, student_id: str, fee_category_id: Optional[str], amount: Decimal, today: date) -> Decimal:
        if not fee_category_id:
            return money(amount)
        override = self._definitions.get_effective_override(
            student_id=student_id, fee_category_id=fee_category_id, on_date=today
        )
        return override.apply(amount) if override else money(amount)

    # ---- billing ----

    def should_bill_this_month(self, fee_cycle, start_date: date, target_year: int, target_month: int) -> bool:
        return should_bill_this_month(fee_cycle, start_date, target_year, target_month, factory=self._factory)

    def generate_monthly_fee_components(
        self,
        student_id: str,
        school_id: str,
        year: int,
        month: int,
        fee_structure: FeeStructure,
    ) -> list[MonthlyFeeComponent]:
        """Components (not yet persisted) billed for one month; pure apart from the policy lookup."""

        year, month = require_month(year, month)
        period_start, period_end = month_bounds(year, month)
        due_date = self._policies.billing_for(school_id).due_date(year, month)

        out: list[MonthlyFeeComponent] = []
        for line in fee_structure.lines():
            rule = self._factory.for_cycle(line.fee_cycle)
            if rule is None:
                logger.warning("Skipping %s for student=%s: unknown fee cycle %r", line.fee_type.value, student_id, line.fee_cycle)
                continue
            if not rule.should_bill(start=line.start_date, year=year, month=month):
                continue

            amount = rule.period_amount(line.amount)
            out.append(
                MonthlyFeeComponent(
                    student_id=student_id,
                    school_id=school_id,
                    fee_category_id=line.fee_category_id,
                    fee_type=line.fee_type,
                    fee_name=line.fee_name,
                    period_year=year,
                    period_month=month,
                    period_start=period_start,
                    period_end=period_end,
                    fee_amount=amount,
                    fee_cycle=line.fee_cycle,
                    paid_amount=money(0),
                    pending_amount=amount,
                    status=ComponentStatus.PENDING,
                    due_date=due_date,
                    effective_from=line.start_date,
                    **self._route_fields(line),
                )
            )
        return out

    @staticmethod
    def _route_fields(line: FeeLine) -> dict:
        if isinstance(line, TransportFeeLine):
            return {"transport_route_id": line.route_id, "transport_route_name": line.route_name}
        return {}

    def generate_monthly_fee_components_for_student(
        self,
        student_id: str,
        school_id: str,
        target_year: Optional[int] = None,
        target_month: Optional[int] = None,
        *,
        today: Optional[date] = None,
    ) -> GenerationResult:
        """Backfill from admission month through the target month (default: current month).

        Background/cron use only: this writes. All months are upserted in one
        store transaction.
        """

        today = today or now_local().date()
        end_year, end_month = require_month(target_year or today.year, target_month or today.month)

        student = self._get_student(student_id, school_id)
        structure = self._build_structure(student, today)
        if structure.is_empty:
            return GenerationResult()

        admission = student.admission_date or date(end_year, 1, 1)

        components: list[MonthlyFeeComponent] = []
        for year, month in iter_months(admission.year, admission.month, end_year, end_month):
            components.extend(self.generate_monthly_fee_components(student_id, school_id, year, month, structure))

        if not components:
            return GenerationResult()

        try:
            generated, updated = self._components.upsert_components(components=components)
        except StoreError:
            logger.error("Fee component generation failed for student=%s through %d-%02d", student_id, end_year, end_month)
            raise

        logger.info(
            "Fee components for student=%s through %d-%02d: generated=%d updated=%d",
            student_id, end_year, end_month, generated, updated,
        )
        return GenerationResult(generated=generated, updated=updated)

    # ---- read side ----

    def get_monthly_fee_ledger(
        self,
        student_id: str,
        school_id: str,
        start_year: Optional[int] = None,
        end_year: Optional[int] = None,
        page: int = 1,
        limit: Optional[int] = None,
        *,
        today: Optional[date] = None,
    ) -> LedgerPage:
        """Month-grouped ledger, most recent month first, paginated by month."""

        today = today or now_local().date()
        page = require_positive_int(page, "Page")
        limit = require_positive_int(limit or self._ledger_page_size, "Limit")
        start = int(start_year or today.year - 1)
        end = int(end_year or today.year + 1)

        months = sorted(
            set(
                self._components.list_component_months(
                    student_id=student_id, school_id=school_id, start_year=start, end_year=end
                )
            ),
            reverse=True,
        )
        total = len(months)
        pagination = Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))

        offset = (page - 1) * limit
        page_months = months[offset:offset + limit]
        if not page_months:
            return LedgerPage(data=[], pagination=pagination)

        grouped: dict[tuple[int, int], list[LedgerComponent]] = {m: [] for m in page_months}
        for c in self._components.list_components_for_months(
            student_id=student_id, school_id=school_id, months=page_months
        ):
            bucket = grouped.get((c.period_year, c.period_month))
            if bucket is None:
                continue
            bucket.append(
                LedgerComponent(
                    component_id=c.component_id,
                    fee_type=c.fee_type,
                    fee_name=c.fee_name,
                    fee_amount=c.fee_amount,
                    paid_amount=c.paid_amount,
                    pending_amount=c.pending_amount,
                    status=c.display_status(today),
                    due_date=c.due_date,
                )
            )

        data = [
            LedgerMonth(month=month_label(y, m), year=y, month_number=m, components=grouped[(y, m)])
            for y, m in page_months
        ]
        return LedgerPage(data=data, pagination=pagination)

    def check_monthly_fee_components_exist(self, student_id: str, school_id: str, *, today: Optional[date] = None) -> bool:
        """Read-only: are there components for the current month? Store errors read as False."""

        today = today or now_local().date()
        try:
            return self._components.has_components_for_month(
                student_id=student_id, school_id=school_id, year=today.year, month=today.month
            )
        except StoreError as e:
            logger.warning("Component existence check failed for student=%s: %s", student_id, e)
            return False
