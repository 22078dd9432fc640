from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceLockService
from .core.constants import (
    DEFAULT_FEE_DUE_DAY,
    DEFAULT_FEE_JOB_BATCH_SIZE,
    DEFAULT_LEDGER_PAGE_SIZE,
    DEFAULT_WEEKLY_OFF_DAYS,
)
from .database.connection import DBConfig, DatabaseConnection
from .fees.factory import BillingCycleFactory
from .fees.mysql_fee_component_repository import MySQLFeeComponentRepository
from .fees.mysql_fee_definition_repository import MySQLFeeDefinitionRepository
from .fees.service import FeeLedgerService
from .holidays.mysql_holiday_repository import MySQLHolidayRepository
from .jobs.fee_generation import FeeGenerationJob
from .policies.model import BillingPolicy, CalendarPolicy
from .policies.mysql_policy_repository import MySQLPolicyRepository
from .policies.service import PolicyService
from .students.mysql_student_repository import MySQLStudentRepository
from .timetable.mysql_timetable_repository import MySQLTimetableRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    attendance_service: AttendanceLockService
    fee_service: FeeLedgerService
    fee_generation_job: FeeGenerationJob


def build_container(*, db_config: dict, settings: object = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    students_repo = MySQLStudentRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    timetable_repo = MySQLTimetableRepository(conn)
    holidays_repo = MySQLHolidayRepository(conn)
    definitions_repo = MySQLFeeDefinitionRepository(conn)
    components_repo = MySQLFeeComponentRepository(conn)

    policy_service = PolicyService(
        MySQLPolicyRepository(conn),
        default_calendar=CalendarPolicy(
            weekly_off_days=frozenset(getattr(settings, "WEEKLY_OFF_DAYS", DEFAULT_WEEKLY_OFF_DAYS))
        ),
        default_billing=BillingPolicy(due_day=int(getattr(settings, "FEE_DUE_DAY", DEFAULT_FEE_DUE_DAY))),
    )

    attendance_service = AttendanceLockService(
        attendance_repo,
        timetable_repo,
        holidays_repo,
        students_repo,
        policies=policy_service,
    )
    fee_service = FeeLedgerService(
        students_repo,
        definitions_repo,
        components_repo,
        policies=policy_service,
        cycle_factory=BillingCycleFactory(),
        ledger_page_size=int(getattr(settings, "LEDGER_PAGE_SIZE", DEFAULT_LEDGER_PAGE_SIZE)),
    )
    fee_generation_job = FeeGenerationJob(
        students_repo,
        fee_service,
        batch_size=int(getattr(settings, "FEE_JOB_BATCH_SIZE", DEFAULT_FEE_JOB_BATCH_SIZE)),
    )

    return Container(
        conn=conn,
        attendance_service=attendance_service,
        fee_service=fee_service,
        fee_generation_job=fee_generation_job,
    )
