from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..model import money
from .base import BillingCycleRule


class YearlyRule(BillingCycleRule):
    """January only, from the start year on; a twelfth of the amount."""

    def bills_in(self, *, start: date, year: int, month: int) -> bool:
        return month == 1 and year >= start.year

    def period_amount(self, amount: Decimal) -> Decimal:
        return money(amount / 12)
