from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import wraps

from flask import g, jsonify, request

from ..core.exceptions import AttendanceDeniedError, NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"
SCHOOL_HEADER = "X-School-Id"


@dataclass(frozen=True)
class CallerIdentity:
    """Identity asserted by the upstream auth layer; trusted as-is."""

    user_id: str
    school_id: str


def identity_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = (request.headers.get(USER_HEADER) or "").strip()
        school_id = (request.headers.get(SCHOOL_HEADER) or "").strip()
        if not user_id or not school_id:
            return jsonify({"error": "Missing caller identity"}), 401
        g.identity = CallerIdentity(user_id=user_id, school_id=school_id)
        return view(*args, **kwargs)

    return wrapper


def error_response(e: Exception):
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, AttendanceDeniedError):
        return jsonify({"error": e.reason}), 409
    if isinstance(e, StoreError):
        return jsonify({"error": "Record store unavailable"}), 503
    logger.exception("Unhandled error")
    return jsonify({"error": "Internal server error"}), 500


def iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def amount(value: Decimal | None) -> float:
    return float(value or 0)
