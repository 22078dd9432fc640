from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, Sequence

import pytest

from src.school_ledger.school_ledger.attendance.model import (
    AttendanceLock,
    StudentAttendanceRecord,
    lock_denial_reason,
)
from src.school_ledger.school_ledger.attendance.service import AttendanceLockService
from src.school_ledger.school_ledger.core.enums import FeeCycle
from src.school_ledger.school_ledger.core.exceptions import LockConflictError, StoreError
from src.school_ledger.school_ledger.fees.model import (
    ClassFeeDefault,
    CustomFeeDefinition,
    FeeOverride,
    MonthlyFeeComponent,
    TransportAssignment,
    TransportFeeConfig,
    money,
    pick_effective_override,
)
from src.school_ledger.school_ledger.fees.service import FeeLedgerService
from src.school_ledger.school_ledger.holidays.model import Holiday
from src.school_ledger.school_ledger.students.model import Student
from src.school_ledger.school_ledger.timetable.model import TimetablePeriod

SCHOOL = "school-1"


class InMemoryStudents:
    def __init__(self, students: Sequence[Student] = ()):
        self.students: list[Student] = list(students)

    def add(self, student: Student) -> Student:
        self.students.append(student)
        return student

    def get_by_id(self, *, student_id: str, school_id: str) -> Optional[Student]:
        for s in self.students:
            if s.student_id == student_id and s.school_id == school_id:
                return s
        return None

    def list_active(self, *, school_id: Optional[str] = None) -> Sequence[Student]:
        return [s for s in self.students if s.is_active and (school_id is None or s.school_id == school_id)]

    def list_active_for_class(self, *, class_group_id: str, section_id: Optional[str], school_id: str) -> Sequence[Student]:
        out = [
            s
            for s in self.list_active(school_id=school_id)
            if s.class_group_id == class_group_id and (section_id is None or s.section_id == section_id)
        ]
        return sorted(out, key=lambda s: s.roll_number or "")


class InMemoryTimetable:
    def __init__(self, periods: Sequence[TimetablePeriod] = ()):
        self.periods: list[TimetablePeriod] = list(periods)

    def list_for_teacher_day(self, *, teacher_id: str, day_of_week: int, academic_year: int) -> Sequence[TimetablePeriod]:
        out = [
            p
            for p in self.periods
            if p.teacher_id == teacher_id
            and p.day_of_week == day_of_week
            and p.academic_year == academic_year
            and p.is_active
        ]
        return sorted(out, key=lambda p: p.period_number)


class InMemoryHolidays:
    def __init__(self):
        self.holidays: dict[tuple[str, date], Holiday] = {}
        self.fail = False

    def declare(self, school_id: str, on_date: date, name: str) -> None:
        self.holidays[(school_id, on_date)] = Holiday(school_id=school_id, holiday_date=on_date, name=name)

    def get_for_school_and_date(self, *, school_id: str, holiday_date: date) -> Optional[Holiday]:
        if self.fail:
            raise StoreError("connection refused")
        return self.holidays.get((school_id, holiday_date))


class InMemoryAttendance:
    """Mirrors the store's unique keys on (teacher, date) and (class, section, date)."""

    def __init__(self):
        self.locks: list[AttendanceLock] = []
        self.records: dict[tuple[str, date], StudentAttendanceRecord] = {}
        self._next_id = 1

    def find_lock_for_teacher(self, *, teacher_id: str, attendance_date: date) -> Optional[AttendanceLock]:
        for lock in self.locks:
            if lock.teacher_id == teacher_id and lock.attendance_date == attendance_date:
                return lock
        return None

    def find_lock_for_class(self, *, class_group_id: str, section_id: Optional[str], attendance_date: date) -> Optional[AttendanceLock]:
        for lock in self.locks:
            if (
                lock.class_group_id == class_group_id
                and lock.section_id == section_id
                and lock.attendance_date == attendance_date
            ):
                return lock
        return None

    def list_records_for_date(self, *, student_ids: Sequence[str], attendance_date: date) -> Sequence[StudentAttendanceRecord]:
        return [r for (sid, d), r in self.records.items() if sid in student_ids and d == attendance_date]

    def save_locked_attendance(self, *, lock: AttendanceLock, records: Sequence[StudentAttendanceRecord]) -> None:
        teacher_lock = self.find_lock_for_teacher(teacher_id=lock.teacher_id, attendance_date=lock.attendance_date)
        class_lock = self.find_lock_for_class(
            class_group_id=lock.class_group_id, section_id=lock.section_id, attendance_date=lock.attendance_date
        )
        reason = lock_denial_reason(
            teacher_lock=teacher_lock,
            class_lock=class_lock,
            teacher_id=lock.teacher_id,
            class_group_id=lock.class_group_id,
            section_id=lock.section_id,
        )
        if reason:
            raise LockConflictError(reason)
        if teacher_lock is None:
            self.locks.append(lock)
        for rec in records:
            self._put(rec)

    def insert_missing_records(self, *, records: Sequence[StudentAttendanceRecord]) -> int:
        inserted = 0
        for rec in records:
            if (rec.student_id, rec.attendance_date) in self.records:
                continue
            self._put(rec)
            inserted += 1
        return inserted

    def _put(self, rec: StudentAttendanceRecord) -> None:
        key = (rec.student_id, rec.attendance_date)
        existing = self.records.get(key)
        record_id = existing.record_id if existing else str(self._next_id)
        if not existing:
            self._next_id += 1
        self.records[key] = replace(rec, record_id=record_id)


class InMemoryFeeDefinitions:
    def __init__(self):
        self.class_defaults: dict[tuple[str, str], ClassFeeDefault] = {}
        self.overrides: list[FeeOverride] = []
        self.assignments: dict[tuple[str, str], TransportAssignment] = {}
        self.transport_fees: dict[tuple[str, str], TransportFeeConfig] = {}
        self.custom: list[tuple[str, CustomFeeDefinition]] = []

    def set_class_fee(self, class_group_id: str, amount, cycle=FeeCycle.MONTHLY, *, category_id="cat-tuition", name="Tuition Fee", school_id=SCHOOL):
        self.class_defaults[(class_group_id, school_id)] = ClassFeeDefault(
            fee_category_id=category_id, category_name=name, amount=money(amount), fee_cycle=cycle
        )

    def assign_route(self, student_id: str, route_id: str, route_name: str, *, base, escort=0, fuel=0, cycle=FeeCycle.MONTHLY, category_id=None, school_id=SCHOOL):
        self.assignments[(student_id, school_id)] = TransportAssignment(route_id=route_id, route_name=route_name)
        self.transport_fees[(route_id, school_id)] = TransportFeeConfig(
            route_id=route_id,
            base_fee=money(base),
            escort_fee=money(escort),
            fuel_surcharge=money(fuel),
            fee_cycle=cycle,
            fee_category_id=category_id,
        )

    def add_custom(self, category_id: str, name: str, amount, cycle=FeeCycle.MONTHLY, *, class_group_id=None, school_id=SCHOOL):
        self.custom.append(
            (
                school_id,
                CustomFeeDefinition(
                    fee_category_id=category_id,
                    category_name=name,
                    amount=money(amount),
                    fee_cycle=cycle,
                    class_group_id=class_group_id,
                ),
            )
        )

    def get_active_class_fee_default(self, *, class_group_id: str, school_id: str) -> Optional[ClassFeeDefault]:
        return self.class_defaults.get((class_group_id, school_id))

    def get_effective_override(self, *, student_id: str, fee_category_id: str, on_date: date) -> Optional[FeeOverride]:
        mine = [o for o in self.overrides if o.student_id == student_id and o.fee_category_id == fee_category_id]
        return pick_effective_override(mine, on_date)

    def get_active_transport_assignment(self, *, student_id: str, school_id: str) -> Optional[TransportAssignment]:
        return self.assignments.get((student_id, school_id))

    def get_active_transport_fee(self, *, route_id: str, school_id: str) -> Optional[TransportFeeConfig]:
        return self.transport_fees.get((route_id, school_id))

    def list_custom_fee_definitions(self, *, school_id: str, class_group_id: Optional[str]) -> Sequence[CustomFeeDefinition]:
        return [
            d
            for sid, d in self.custom
            if sid == school_id and (d.class_group_id is None or d.class_group_id == class_group_id)
        ]


class InMemoryFeeComponents:
    """Keeps rows by natural key; paid_amount/status survive regeneration."""

    def __init__(self):
        self.rows: dict = {}
        self.fail = False
        self._next_id = 1

    def upsert_components(self, *, components: Sequence[MonthlyFeeComponent]) -> tuple[int, int]:
        if self.fail:
            raise StoreError("deadlock")
        inserted = updated = 0
        for c in components:
            existing = self.rows.get(c.natural_key)
            if existing:
                self.rows[c.natural_key] = replace(
                    existing,
                    fee_amount=c.fee_amount,
                    pending_amount=money(max(c.fee_amount - existing.paid_amount, Decimal(0))),
                    fee_name=c.fee_name,
                    transport_route_id=c.transport_route_id,
                    transport_route_name=c.transport_route_name,
                    due_date=c.due_date,
                )
                updated += 1
            else:
                self.rows[c.natural_key] = replace(c, component_id=f"fc-{self._next_id}")
                self._next_id += 1
                inserted += 1
        return inserted, updated

    def record_payment(self, key, paid, status) -> None:
        row = self.rows[key]
        self.rows[key] = replace(row, paid_amount=money(paid), pending_amount=money(row.fee_amount - paid), status=status)

    def for_student(self, student_id: str) -> list[MonthlyFeeComponent]:
        return sorted(
            (c for c in self.rows.values() if c.student_id == student_id),
            key=lambda c: (c.period_year, c.period_month, c.fee_type.value),
        )

    def list_component_months(self, *, student_id: str, school_id: str, start_year: int, end_year: int):
        return [
            (c.period_year, c.period_month)
            for c in self.rows.values()
            if c.student_id == student_id and c.school_id == school_id and start_year <= c.period_year <= end_year
        ]

    def list_components_for_months(self, *, student_id: str, school_id: str, months):
        wanted = set(months)
        return [
            c
            for c in self.rows.values()
            if c.student_id == student_id and c.school_id == school_id and (c.period_year, c.period_month) in wanted
        ]

    def has_components_for_month(self, *, student_id: str, school_id: str, year: int, month: int) -> bool:
        if self.fail:
            raise StoreError("timeout")
        return any(
            c.student_id == student_id and c.school_id == school_id and (c.period_year, c.period_month) == (year, month)
            for c in self.rows.values()
        )


def make_student(student_id: str = "stu-1", *, admission_date: Optional[date] = date(2024, 3, 10), class_group_id: Optional[str] = "class-5", section_id: Optional[str] = "sec-a", roll_number: str = "1", status: str = "active", school_id: str = SCHOOL) -> Student:
    return Student(
        student_id=student_id,
        school_id=school_id,
        class_group_id=class_group_id,
        section_id=section_id,
        admission_date=admission_date,
        status=status,
        roll_number=roll_number,
        full_name=f"Student {student_id}",
    )


def make_period(teacher_id: str, period_number: int, start: time, class_group_id: str, section_id: Optional[str] = None, *, day_of_week: int = 1, academic_year: int = 2024) -> TimetablePeriod:
    return TimetablePeriod(
        teacher_id=teacher_id,
        day_of_week=day_of_week,
        academic_year=academic_year,
        period_number=period_number,
        start_time=start,
        class_group_id=class_group_id,
        section_id=section_id,
        subject_id="subj-math",
        subject_name="Mathematics",
        class_name=f"Class {class_group_id}",
    )


@pytest.fixture
def monday() -> date:
    return date(2024, 4, 1)


@pytest.fixture
def early_morning(monday) -> datetime:
    return datetime.combine(monday, time(7, 30))


@pytest.fixture
def students() -> InMemoryStudents:
    return InMemoryStudents()


@pytest.fixture
def timetable() -> InMemoryTimetable:
    return InMemoryTimetable()


@pytest.fixture
def holidays() -> InMemoryHolidays:
    return InMemoryHolidays()


@pytest.fixture
def attendance() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def definitions() -> InMemoryFeeDefinitions:
    return InMemoryFeeDefinitions()


@pytest.fixture
def components() -> InMemoryFeeComponents:
    return InMemoryFeeComponents()


@pytest.fixture
def lock_service(attendance, timetable, holidays, students) -> AttendanceLockService:
    return AttendanceLockService(attendance, timetable, holidays, students)


@pytest.fixture
def fee_service(students, definitions, components) -> FeeLedgerService:
    return FeeLedgerService(students, definitions, components)


@pytest.fixture
def student_factory():
    return make_student


@pytest.fixture
def period_factory():
    return make_period
