from dataclasses import replace
from datetime import time

import pytest

from src.school_ledger.school_ledger.attendance.model import AttendanceEntry
from src.school_ledger.school_ledger.attendance.service import AttendanceLockService
from src.school_ledger.school_ledger.core.enums import AttendanceStatus
from src.school_ledger.school_ledger.core.exceptions import (
    AttendanceDeniedError,
    LockConflictError,
    ValidationError,
)

SCHOOL = "school-1"


def _entries(*student_ids, status=AttendanceStatus.PRESENT):
    return [AttendanceEntry(student_id=s, status=status) for s in student_ids]


@pytest.fixture
def two_classes(timetable, period_factory):
    timetable.periods += [
        period_factory("T", 1, time(8, 0), "A", "sec-a"),
        period_factory("T", 3, time(10, 0), "B"),
        period_factory("U", 1, time(8, 0), "A", "sec-a"),
        period_factory("V", 2, time(9, 0), "B"),
    ]


def test_teacher_can_mark_first_class(lock_service, two_classes, monday, early_morning):
    decision = lock_service.can_mark("T", "A", "sec-a", monday, now=early_morning)

    assert decision.allowed
    assert decision.first_class.class_group_id == "A"


def test_not_first_class_is_denied_with_class_and_period(lock_service, two_classes, monday, early_morning):
    decision = lock_service.can_mark("T", "B", None, monday, now=early_morning)

    assert not decision.allowed
    assert "first class" in decision.reason
    assert "Class A, Period 1" in decision.reason


def test_no_timetable_is_denied(lock_service, monday, early_morning):
    decision = lock_service.can_mark("nobody", "A", None, monday, now=early_morning)

    assert not decision.allowed
    assert decision.reason == "No classes scheduled for you today"


def test_second_class_same_day_is_denied(lock_service, two_classes, monday, early_morning):
    lock_service.save_attendance("T", "A", "sec-a", SCHOOL, monday, _entries("s1", "s2"), now=early_morning)

    decision = lock_service.can_mark("T", "B", None, monday, now=early_morning)

    assert not decision.allowed
    assert "another class" in decision.reason
    with pytest.raises(AttendanceDeniedError) as exc:
        lock_service.save_attendance("T", "B", None, SCHOOL, monday, _entries("s9"), now=early_morning)
    assert "another class" in exc.value.reason


def test_class_locked_by_other_teacher_is_denied(lock_service, two_classes, monday, early_morning):
    lock_service.save_attendance("T", "A", "sec-a", SCHOOL, monday, _entries("s1"), now=early_morning)

    decision = lock_service.can_mark("U", "A", "sec-a", monday, now=early_morning)

    assert not decision.allowed
    assert "another teacher" in decision.reason


def test_lock_owner_can_resave_and_records_are_updated(lock_service, attendance, two_classes, monday, early_morning):
    lock_service.save_attendance("T", "A", "sec-a", SCHOOL, monday, _entries("s1", "s2"), now=early_morning)
    saved = lock_service.save_attendance(
        "T", "A", "sec-a", SCHOOL, monday, _entries("s1", status=AttendanceStatus.LATE), now=early_morning
    )

    assert saved == 1
    assert len(attendance.locks) == 1
    assert attendance.records[("s1", monday)].status == AttendanceStatus.LATE
    assert attendance.records[("s2", monday)].status == AttendanceStatus.PRESENT
    assert all(r.is_locked and r.marked_by == "T" for r in attendance.records.values())


def test_section_and_no_section_are_different_classes(lock_service, attendance, timetable, period_factory, monday, early_morning):
    timetable.periods += [
        period_factory("T", 1, time(8, 0), "A", None),
        period_factory("U", 1, time(8, 0), "A", "sec-a"),
    ]

    lock_service.save_attendance("T", "A", None, SCHOOL, monday, _entries("s1"), now=early_morning)
    lock_service.save_attendance("U", "A", "sec-a", SCHOOL, monday, _entries("s2"), now=early_morning)

    assert len(attendance.locks) == 2


def test_concurrent_claim_caught_by_store_is_a_conflict(attendance, two_classes, timetable, holidays, students, monday, early_morning):
    class RacingAttendance(type(attendance)):
        # Another teacher claims the class between the check and the write.
        def save_locked_attendance(self, *, lock, records):
            self.locks.append(replace(lock, teacher_id="U"))
            super().save_locked_attendance(lock=lock, records=records)

    racing = RacingAttendance()
    service = AttendanceLockService(racing, timetable, holidays, students)

    with pytest.raises(LockConflictError) as exc:
        service.save_attendance("T", "A", "sec-a", SCHOOL, monday, _entries("s1"), now=early_morning)

    assert "another teacher" in exc.value.reason
    assert racing.records == {}


def test_lock_is_never_released(lock_service, attendance, two_classes, monday, early_morning):
    lock_service.save_attendance("T", "A", "sec-a", SCHOOL, monday, _entries("s1"), now=early_morning)
    before = list(attendance.locks)

    with pytest.raises(AttendanceDeniedError):
        lock_service.save_attendance("U", "A", "sec-a", SCHOOL, monday, _entries("s1"), now=early_morning)

    assert attendance.locks == before


@pytest.mark.parametrize(
    "entries",
    [
        [],
        _entries("s1", "s1"),
        _entries("s1", status=AttendanceStatus.HOLIDAY),
        _entries(" "),
    ],
)
def test_invalid_batches_are_rejected_before_locking(lock_service, attendance, two_classes, monday, early_morning, entries):
    with pytest.raises(ValidationError):
        lock_service.save_attendance("T", "A", "sec-a", SCHOOL, monday, entries, now=early_morning)

    assert attendance.locks == []


def test_parse_entries_rejects_unknown_status():
    with pytest.raises(ValidationError):
        AttendanceLockService.parse_entries([{"student_id": "s1", "status": "sleeping"}])


def test_parse_entries_normalizes_case():
    entries = AttendanceLockService.parse_entries([{"student_id": " s1 ", "status": "Absent"}])

    assert entries == [AttendanceEntry(student_id="s1", status=AttendanceStatus.ABSENT)]


def test_roster_prefills_existing_status(lock_service, students, student_factory, two_classes, monday, early_morning):
    students.add(student_factory("s1", class_group_id="A", section_id="sec-a", roll_number="2"))
    students.add(student_factory("s2", class_group_id="A", section_id="sec-a", roll_number="1"))
    students.add(student_factory("s3", class_group_id="A", section_id="sec-b", roll_number="3"))
    lock_service.save_attendance(
        "T", "A", "sec-a", SCHOOL, monday, _entries("s1", status=AttendanceStatus.ABSENT), now=early_morning
    )

    roster = lock_service.get_students_for_attendance("A", "sec-a", SCHOOL, monday)

    assert [r.student_id for r in roster] == ["s2", "s1"]
    assert roster[0].status == AttendanceStatus.PRESENT and roster[0].existing_record_id is None
    assert roster[1].status == AttendanceStatus.ABSENT and roster[1].is_locked


def test_cannot_mark_on_declared_holiday(lock_service, attendance, holidays, two_classes, monday, early_morning):
    holidays.declare(SCHOOL, monday, "Founders Day")

    with pytest.raises(ValidationError) as exc:
        lock_service.save_attendance("T", "A", "sec-a", SCHOOL, monday, _entries("s1"), now=early_morning)

    assert str(exc.value) == "Cannot mark attendance. Today is Founders Day."
    assert attendance.locks == []
    assert attendance.records == {}


def test_holiday_fill_after_refused_save_covers_the_class(lock_service, attendance, holidays, students, student_factory, two_classes, monday, early_morning):
    holidays.declare(SCHOOL, monday, "Founders Day")
    students.add(student_factory("s1", class_group_id="A", section_id="sec-a"))

    with pytest.raises(ValidationError):
        lock_service.save_attendance("T", "A", "sec-a", SCHOOL, monday, _entries("s1"), now=early_morning)

    assert lock_service.apply_holiday_attendance(SCHOOL, monday) == 1
    assert attendance.records[("s1", monday)].status == AttendanceStatus.HOLIDAY
