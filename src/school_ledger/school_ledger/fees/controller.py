from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import amount, error_response, identity_required, iso
from ..container import Container
from ..core.exceptions import ValidationError
from .model import FeeLine, FeeStructure


def _line_json(line: FeeLine | None) -> dict | None:
    if line is None:
        return None
    out = {
        "fee_type": line.fee_type.value,
        "fee_name": line.fee_name,
        "fee_category_id": line.fee_category_id,
        "amount": amount(line.amount),
        "fee_cycle": line.fee_cycle.value if line.fee_cycle else None,
        "start_date": iso(line.start_date),
    }
    route_id = getattr(line, "route_id", None)
    if route_id:
        out["route_id"] = route_id
        out["route_name"] = line.route_name
    return out


def _structure_json(structure: FeeStructure) -> dict:
    out: dict = {"custom_fees": [_line_json(c) for c in structure.custom_fees]}
    # Unconfigured parts are omitted rather than sent as zero.
    if structure.class_fee is not None:
        out["class_fee"] = _line_json(structure.class_fee)
    if structure.transport_fee is not None:
        out["transport_fee"] = _line_json(structure.transport_fee)
    return out


def _int_arg(name: str) -> int | None:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def register(app: Flask, container: Container) -> None:
    service = container.fee_service

    @app.route("/api/fees/students/<student_id>/structure", methods=["GET"], endpoint="fees_structure")
    @identity_required
    def structure(student_id: str):
        try:
            return jsonify(_structure_json(service.load_assigned_fee_structure(student_id, g.identity.school_id)))
        except Exception as e:
            return error_response(e)

    @app.route("/api/fees/students/<student_id>/ledger", methods=["GET"], endpoint="fees_ledger")
    @identity_required
    def ledger(student_id: str):
        try:
            result = service.get_monthly_fee_ledger(
                student_id,
                g.identity.school_id,
                start_year=_int_arg("start_year"),
                end_year=_int_arg("end_year"),
                page=_int_arg("page") or 1,
                limit=_int_arg("limit"),
            )
            return jsonify(
                {
                    "data": [
                        {
                            "month": m.month,
                            "year": m.year,
                            "month_number": m.month_number,
                            "components": [
                                {
                                    "id": c.component_id,
                                    "fee_type": c.fee_type.value,
                                    "fee_name": c.fee_name,
                                    "fee_amount": amount(c.fee_amount),
                                    "paid_amount": amount(c.paid_amount),
                                    "pending_amount": amount(c.pending_amount),
                                    "status": c.status.value,
                                    "due_date": iso(c.due_date),
                                }
                                for c in m.components
                            ],
                        }
                        for m in result.data
                    ],
                    "pagination": {
                        "page": result.pagination.page,
                        "limit": result.pagination.limit,
                        "total": result.pagination.total,
                        "total_pages": result.pagination.total_pages,
                    },
                }
            )
        except Exception as e:
            return error_response(e)
