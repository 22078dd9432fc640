from __future__ import annotations

from typing import Optional

from .model import BillingPolicy, CalendarPolicy, SchoolPolicy
from .repository import PolicyRepository


class PolicyService:
    """Resolves a school's calendar/billing policy, falling back to defaults."""

    def __init__(
        self,
        policies: Optional[PolicyRepository] = None,
        *,
        default_calendar: Optional[CalendarPolicy] = None,
        default_billing: Optional[BillingPolicy] = None,
    ):
        self._policies = policies
        self._default_calendar = default_calendar or CalendarPolicy()
        self._default_billing = default_billing or BillingPolicy()

    def for_school(self, school_id: str) -> SchoolPolicy:
        found = self._policies.get_for_school(school_id) if self._policies else None
        if found:
            return found
        return SchoolPolicy(school_id=school_id, calendar=self._default_calendar, billing=self._default_billing)

    def calendar_for(self, school_id: str) -> CalendarPolicy:
        return self.for_school(school_id).calendar

    def billing_for(self, school_id: str) -> BillingPolicy:
        return self.for_school(school_id).billing
