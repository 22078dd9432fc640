from __future__ import annotations

from typing import Optional, Protocol

from .model import SchoolPolicy


class PolicyRepository(Protocol):
    def get_for_school(self, school_id: str) -> Optional[SchoolPolicy]:
        """Per-school calendar/billing overrides, or None to use the defaults."""

        raise NotImplementedError
