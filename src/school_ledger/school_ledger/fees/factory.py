from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import FeeCycle
from .cycles.base import BillingCycleRule
from .cycles.monthly_rule import MonthlyRule
from .cycles.one_time_rule import OneTimeRule
from .cycles.quarterly_rule import QuarterlyRule
from .cycles.yearly_rule import YearlyRule

_RULES: dict[FeeCycle, BillingCycleRule] = {
    FeeCycle.MONTHLY: MonthlyRule(),
    FeeCycle.QUARTERLY: QuarterlyRule(),
    FeeCycle.YEARLY: YearlyRule(),
    FeeCycle.ONE_TIME: OneTimeRule(),
}


@dataclass
class BillingCycleFactory:
    """Factory Pattern: pick the billing rule for a fee cycle."""

    def for_cycle(self, fee_cycle) -> Optional[BillingCycleRule]:
        cycle = FeeCycle.parse(fee_cycle) if fee_cycle is not None else None
        return _RULES.get(cycle) if cycle else None


def should_bill_this_month(
    fee_cycle,
    start_date: date,
    target_year: int,
    target_month: int,
    *,
    factory: Optional[BillingCycleFactory] = None,
) -> bool:
    """Pure predicate: does a fee on ``fee_cycle`` starting ``start_date`` bill in (year, month)?

    Unknown cycles never bill.
    """

    rule = (factory or BillingCycleFactory()).for_cycle(fee_cycle)
    if rule is None:
        return False
    return rule.should_bill(start=start_date, year=int(target_year), month=int(target_month))
