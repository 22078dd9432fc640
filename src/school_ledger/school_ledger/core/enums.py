from __future__ import annotations

from enum import Enum
from typing import Optional


class AttendanceStatus(str, Enum):
    """Student attendance status as stored in ``student_attendance``."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    LEAVE = "leave"
    HOLIDAY = "holiday"


class FeeCycle(str, Enum):
    """Billing periodicity of a recurring charge."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"

    @classmethod
    def parse(cls, value: object) -> Optional["FeeCycle"]:
        if isinstance(value, FeeCycle):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class FeeType(str, Enum):
    CLASS_FEE = "class-fee"
    TRANSPORT_FEE = "transport-fee"
    CUSTOM_FEE = "custom-fee"


class ComponentStatus(str, Enum):
    """Payment status of a monthly fee component.

    OVERDUE is display-only: it is derived when reading the ledger and never
    persisted.
    """

    PENDING = "pending"
    PARTIALLY_PAID = "partially-paid"
    PAID = "paid"
    OVERDUE = "overdue"
