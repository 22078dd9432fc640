from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal

from ...common.datetime_utils import month_index


class BillingCycleRule(ABC):
    """Strategy Pattern: when a fee cycle bills and how much of it lands in one month."""

    def should_bill(self, *, start: date, year: int, month: int) -> bool:
        if month_index(year, month) < month_index(start.year, start.month):
            return False
        return self.bills_in(start=start, year=year, month=month)

    @abstractmethod
    def bills_in(self, *, start: date, year: int, month: int) -> bool:
        """Called only for months on or after the start month."""

        raise NotImplementedError

    @abstractmethod
    def period_amount(self, amount: Decimal) -> Decimal:
        raise NotImplementedError
