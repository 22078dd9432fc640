from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..model import money
from .base import BillingCycleRule


class MonthlyRule(BillingCycleRule):
    """Every month from the start month, full amount."""

    def bills_in(self, *, start: date, year: int, month: int) -> bool:
        return True

    def period_amount(self, amount: Decimal) -> Decimal:
        return money(amount)
