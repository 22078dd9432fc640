from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..model import money
from .base import BillingCycleRule


class OneTimeRule(BillingCycleRule):
    def bills_in(self, *, start: date, year: int, month: int) -> bool:
        return year == start.year and month == start.month

    def period_amount(self, amount: Decimal) -> Decimal:
        return money(amount)
