from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar, Iterator, NamedTuple, Optional, Sequence

from ..core.constants import MONEY_PLACES
from ..core.enums import ComponentStatus, FeeCycle, FeeType

_CENT = Decimal(1).scaleb(-MONEY_PLACES)


def money(value) -> Decimal:
    """Round to 2 decimal places, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value or 0))
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


# ---- assigned fee definitions (reference data) ----


@dataclass(frozen=True)
class ClassFeeDefault:
    fee_category_id: str
    category_name: str
    amount: Decimal
    fee_cycle: Optional[FeeCycle]


@dataclass(frozen=True)
class TransportAssignment:
    route_id: str
    route_name: str


@dataclass(frozen=True)
class TransportFeeConfig:
    route_id: str
    base_fee: Decimal
    escort_fee: Decimal
    fuel_surcharge: Decimal
    fee_cycle: Optional[FeeCycle]
    fee_category_id: Optional[str] = None

    @property
    def total(self) -> Decimal:
        return money(self.base_fee + self.escort_fee + self.fuel_surcharge)


@dataclass(frozen=True)
class CustomFeeDefinition:
    fee_category_id: str
    category_name: str
    amount: Decimal
    fee_cycle: Optional[FeeCycle]
    class_group_id: Optional[str] = None


@dataclass(frozen=True)
class FeeOverride:
    """Per-student adjustment valid within [effective_from, effective_to]."""

    student_id: str
    fee_category_id: str
    effective_from: date
    effective_to: Optional[date] = None
    is_full_free: bool = False
    custom_fee_amount: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None

    def is_effective_on(self, on_date: date) -> bool:
        if self.effective_from > on_date:
            return False
        return self.effective_to is None or self.effective_to >= on_date

    def apply(self, amount: Decimal) -> Decimal:
        # Precedence: full waiver > custom amount > discount.
        if self.is_full_free:
            return money(0)
        if self.custom_fee_amount:
            return money(self.custom_fee_amount)
        if self.discount_amount:
            return money(max(Decimal(0), amount - self.discount_amount))
        return money(amount)


def pick_effective_override(overrides: Sequence[FeeOverride], on_date: date) -> Optional[FeeOverride]:
    """The override in effect on ``on_date``; the latest effective_from wins on overlap."""

    candidates = [o for o in overrides if o.is_effective_on(on_date)]
    if not candidates:
        return None
    return max(candidates, key=lambda o: o.effective_from)


# ---- resolved fee structure: one variant per fee part ----


@dataclass(frozen=True)
class FeeLine:
    amount: Decimal
    fee_cycle: Optional[FeeCycle]
    start_date: date

    fee_type: ClassVar[FeeType]

    @property
    def fee_category_id(self) -> Optional[str]:
        return None

    @property
    def fee_name(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class ClassFeeLine(FeeLine):
    category_id: str = ""
    category_name: str = "Class Fee"

    fee_type: ClassVar[FeeType] = FeeType.CLASS_FEE

    @property
    def fee_category_id(self) -> Optional[str]:
        return self.category_id

    @property
    def fee_name(self) -> str:
        return self.category_name


@dataclass(frozen=True)
class TransportFeeLine(FeeLine):
    route_id: str = ""
    route_name: str = "Transport"

    fee_type: ClassVar[FeeType] = FeeType.TRANSPORT_FEE

    @property
    def fee_name(self) -> str:
        return f"Transport - {self.route_name}"


@dataclass(frozen=True)
class CustomFeeLine(FeeLine):
    category_id: str = ""
    category_name: str = "Custom Fee"

    fee_type: ClassVar[FeeType] = FeeType.CUSTOM_FEE

    @property
    def fee_category_id(self) -> Optional[str]:
        return self.category_id

    @property
    def fee_name(self) -> str:
        return self.category_name


@dataclass(frozen=True)
class FeeStructure:
    """What a student owes before per-month materialization.

    A part that is not configured is ``None`` (or absent from ``custom_fees``),
    which is distinct from a line configured at 0.
    """

    class_fee: Optional[ClassFeeLine] = None
    transport_fee: Optional[TransportFeeLine] = None
    custom_fees: tuple[CustomFeeLine, ...] = field(default_factory=tuple)

    def lines(self) -> Iterator[FeeLine]:
        if self.class_fee is not None:
            yield self.class_fee
        if self.transport_fee is not None:
            yield self.transport_fee
        yield from self.custom_fees

    @property
    def is_empty(self) -> bool:
        return self.class_fee is None and self.transport_fee is None and not self.custom_fees


# ---- materialized ledger rows ----


class ComponentKey(NamedTuple):
    student_id: str
    period_year: int
    period_month: int
    fee_type: FeeType
    fee_category_id: Optional[str]


@dataclass(frozen=True)
class MonthlyFeeComponent:
    student_id: str
    school_id: str
    fee_category_id: Optional[str]
    fee_type: FeeType
    fee_name: str
    period_year: int
    period_month: int
    period_start: date
    period_end: date
    fee_amount: Decimal
    fee_cycle: Optional[FeeCycle]
    paid_amount: Decimal
    pending_amount: Decimal
    status: ComponentStatus
    due_date: Optional[date]
    effective_from: Optional[date] = None
    transport_route_id: Optional[str] = None
    transport_route_name: Optional[str] = None
    component_id: Optional[str] = None

    @property
    def natural_key(self) -> ComponentKey:
        # Transport rows never carry a category.
        category = None if self.fee_type == FeeType.TRANSPORT_FEE else (self.fee_category_id or None)
        return ComponentKey(self.student_id, int(self.period_year), int(self.period_month), self.fee_type, category)

    def display_status(self, today: date) -> ComponentStatus:
        if (
            self.status in (ComponentStatus.PENDING, ComponentStatus.PARTIALLY_PAID)
            and self.due_date is not None
            and self.due_date < today
        ):
            return ComponentStatus.OVERDUE
        return self.status


@dataclass(frozen=True)
class GenerationResult:
    generated: int = 0
    updated: int = 0


@dataclass(frozen=True)
class LedgerComponent:
    component_id: Optional[str]
    fee_type: FeeType
    fee_name: str
    fee_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    status: ComponentStatus
    due_date: Optional[date]


@dataclass(frozen=True)
class LedgerMonth:
    month: str
    year: int
    month_number: int
    components: list[LedgerComponent]


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int


@dataclass(frozen=True)
class LedgerPage:
    data: list[LedgerMonth]
    pagination: Pagination
