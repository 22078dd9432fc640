from __future__ import annotations

from datetime import date
from decimal import Decimal

from ...common.datetime_utils import quarter_of
from ..model import money
from .base import BillingCycleRule

QUARTER_MONTHS = frozenset({1, 4, 7, 10})


class QuarterlyRule(BillingCycleRule):
    """Fixed calendar quarters (Jan/Apr/Jul/Oct), a third of the amount each time."""

    def bills_in(self, *, start: date, year: int, month: int) -> bool:
        if month not in QUARTER_MONTHS:
            return False
        if year > start.year:
            return True
        return year == start.year and quarter_of(month) >= quarter_of(start.month)

    def period_amount(self, amount: Decimal) -> Decimal:
        return money(amount / 3)
