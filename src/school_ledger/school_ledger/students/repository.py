from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Student


class StudentRepository(Protocol):
    def get_by_id(self, *, student_id: str, school_id: str) -> Optional[Student]:
        raise NotImplementedError

    def list_active(self, *, school_id: Optional[str] = None) -> Sequence[Student]:
        """Active students, across all schools when ``school_id`` is None."""

        raise NotImplementedError

    def list_active_for_class(
        self,
        *,
        class_group_id: str,
        section_id: Optional[str],
        school_id: str,
    ) -> Sequence[Student]:
        """Active students of a class ordered by roll number.

        ``section_id=None`` means the whole class group.
        """

        raise NotImplementedError
