from __future__ import annotations

from datetime import date

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import now_local, optional_iso_date
from ..common.http import error_response, identity_required, iso
from ..common.validators import optional_id, require_non_empty
from ..container import Container
from ..core.exceptions import ValidationError
from ..timetable.model import TimetablePeriod


def _period_json(p: TimetablePeriod | None) -> dict | None:
    if p is None:
        return None
    return {
        "class_group_id": p.class_group_id,
        "section_id": p.section_id,
        "period_number": p.period_number,
        "start_time": p.start_time.strftime("%H:%M"),
        "subject_id": p.subject_id,
        "subject_name": p.subject_name,
        "class_name": p.class_name,
    }


def _date_arg(value: str | None) -> date:
    try:
        return optional_iso_date(value) or now_local().date()
    except ValueError:
        raise ValidationError("Invalid date (YYYY-MM-DD)")


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/first-class", methods=["GET"], endpoint="attendance_first_class")
    @identity_required
    def first_class():
        try:
            on_date = _date_arg(request.args.get("date"))
            holiday = service.is_holiday(on_date, g.identity.school_id)
            if holiday.is_holiday:
                return jsonify({"is_holiday": True, "reason": holiday.reason, "first_class": None})

            period = service.get_first_class_of_day(g.identity.user_id, on_date)
            return jsonify({"is_holiday": False, "first_class": _period_json(period)})
        except Exception as e:
            return error_response(e)

    @app.route("/api/attendance/can-mark", methods=["GET"], endpoint="attendance_can_mark")
    @identity_required
    def can_mark():
        try:
            decision = service.can_mark(
                g.identity.user_id,
                require_non_empty(request.args.get("class_group_id"), "Class"),
                optional_id(request.args.get("section_id")),
                _date_arg(request.args.get("date")),
            )
            return jsonify(
                {
                    "allowed": decision.allowed,
                    "reason": decision.reason,
                    "first_class": _period_json(decision.first_class),
                }
            )
        except Exception as e:
            return error_response(e)

    @app.route("/api/attendance/students", methods=["GET"], endpoint="attendance_students")
    @identity_required
    def students():
        try:
            on_date = _date_arg(request.args.get("date"))
            class_group_id = require_non_empty(request.args.get("class_group_id"), "Class")
            holiday = service.is_holiday(on_date, g.identity.school_id)
            if holiday.is_holiday:
                return jsonify({"date": iso(on_date), "is_holiday": True, "reason": holiday.reason, "students": []})

            roster = service.get_students_for_attendance(
                class_group_id,
                optional_id(request.args.get("section_id")),
                g.identity.school_id,
                on_date,
            )
            return jsonify(
                {
                    "date": iso(on_date),
                    "is_holiday": False,
                    "students": [
                        {
                            "student_id": r.student_id,
                            "roll_number": r.roll_number,
                            "full_name": r.full_name,
                            "status": r.status.value,
                            "existing_attendance_id": r.existing_record_id,
                            "is_locked": r.is_locked,
                        }
                        for r in roster
                    ],
                }
            )
        except Exception as e:
            return error_response(e)

    @app.route("/api/attendance/save", methods=["POST"], endpoint="attendance_save")
    @identity_required
    def save():
        try:
            data = request.get_json(silent=True) or {}
            on_date = _date_arg(data.get("date"))
            saved = service.save_attendance(
                g.identity.user_id,
                require_non_empty(data.get("class_group_id"), "Class"),
                optional_id(data.get("section_id")),
                g.identity.school_id,
                on_date,
                service.parse_entries(data.get("records") or []),
            )
            return jsonify({"message": "Attendance saved successfully", "saved": saved, "date": iso(on_date)})
        except Exception as e:
            return error_response(e)

    @app.route("/api/attendance/holiday", methods=["POST"], endpoint="attendance_holiday")
    @identity_required
    def holiday():
        try:
            data = request.get_json(silent=True) or {}
            on_date = _date_arg(data.get("date"))
            inserted = service.apply_holiday_attendance(g.identity.school_id, on_date)
            return jsonify({"date": iso(on_date), "inserted": inserted})
        except Exception as e:
            return error_response(e)
