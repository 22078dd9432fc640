from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_month, require_positive_int
from ..core.constants import DEFAULT_FEE_JOB_BATCH_SIZE
from ..fees.service import FeeLedgerService
from ..students.repository import StudentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentFailure:
    student_id: str
    error: str


@dataclass
class JobResult:
    total_students: int = 0
    processed: int = 0
    generated: int = 0
    updated: int = 0
    errors: list[StudentFailure] = field(default_factory=list)


class FeeGenerationJob:
    """Nightly generation of monthly fee components for every active student.

    Runs outside request handling. One student's failure is recorded and the
    run continues with the next student.
    """

    def __init__(
        self,
        students: StudentRepository,
        fees: FeeLedgerService,
        *,
        batch_size: int = DEFAULT_FEE_JOB_BATCH_SIZE,
    ):
        self._students = students
        self._fees = fees
        self._batch_size = int(batch_size)

    def run(
        self,
        target_year: Optional[int] = None,
        target_month: Optional[int] = None,
        school_id: Optional[str] = None,
        batch_size: Optional[int] = None,
    ) -> JobResult:
        today = now_local().date()
        year, month = require_month(target_year or today.year, target_month or today.month)
        batch_size = require_positive_int(batch_size or self._batch_size, "Batch size")

        logger.info("Starting fee component generation for %d-%02d (school=%s)", year, month, school_id or "all")

        students = list(self._students.list_active(school_id=school_id))
        result = JobResult(total_students=len(students))
        if not students:
            logger.info("No active students found")
            return result

        total_batches = (len(students) + batch_size - 1) // batch_size
        for batch_no, offset in enumerate(range(0, len(students), batch_size), start=1):
            logger.info("Processing batch %d/%d", batch_no, total_batches)
            for student in students[offset:offset + batch_size]:
                try:
                    outcome = self._fees.generate_monthly_fee_components_for_student(
                        student.student_id, student.school_id, year, month
                    )
                except Exception as e:
                    logger.exception("Fee generation failed for student=%s", student.student_id)
                    result.errors.append(StudentFailure(student_id=student.student_id, error=str(e)))
                    continue

                result.processed += 1
                result.generated += outcome.generated
                result.updated += outcome.updated

        logger.info(
            "Completed: %d/%d students processed, generated=%d updated=%d errors=%d",
            result.processed, result.total_students, result.generated, result.updated, len(result.errors),
        )
        return result
