# Overview: Flask API routes for till verification operations; parses input and returns JSON responses.

# backend/shiftsync/routes/till_verifications.py
"""
Till Verification API Routes

WHY: End-of-shift cash reconciliation. The counter records expected vs.
counted cash; a till manager (never the counter) countersigns it.

DESIGN:
- POST    /api/till-verifications            -> create (UNVERIFIED)
- PATCH   /api/till-verifications/<id>       -> edit while UNVERIFIED
- PATCH   /api/till-verifications/<id>/verify -> one-way verify
- GET     list / detail / summary

SECURITY:
- Permission checks live in till_service; failures surface as
  403 Forbidden, 409 InvalidState, 404 NotFound via the app error handler.
- Amounts are integer cents only.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ShiftSyncError
from ..services import till_service
from ..validation import optional_int, optional_datetime


till_verifications_bp = Blueprint("till_verifications", __name__, url_prefix="/api/till-verifications")


@till_verifications_bp.get("/")
@till_verifications_bp.get("")
@require_auth
def list_verifications_route():
    """
    Query params: shift_id | employee_id | start & end (ISO-8601).
    """
    verifications = till_service.list_verifications(
        g.current_user,
        shift_id=optional_int(request.args.get("shift_id"), "shift_id"),
        employee_id=optional_int(request.args.get("employee_id"), "employee_id"),
        start=optional_datetime(request.args.get("start"), "start"),
        end=optional_datetime(request.args.get("end"), "end"),
    )
    return jsonify({"till_verifications": [v.to_dict() for v in verifications]})


@till_verifications_bp.get("/summary")
@require_auth
def summary_route():
    """Discrepancy totals, optionally for one venue and a date window."""
    summary = till_service.summarize_discrepancies(
        g.current_user,
        venue_id=optional_int(request.args.get("venue_id"), "venue_id"),
        start=optional_datetime(request.args.get("start"), "start"),
        end=optional_datetime(request.args.get("end"), "end"),
    )
    return jsonify({"summary": summary.to_dict()})


@till_verifications_bp.get("/<int:verification_id>")
@require_auth
def get_verification_route(verification_id: int):
    verification = till_service.get_verification_for(g.current_user, verification_id)
    return jsonify({"till_verification": verification.to_dict()})


@till_verifications_bp.post("/")
@till_verifications_bp.post("")
@require_auth
def create_verification_route():
    """
    Record a till count.

    Request body:
    {
        "shift_id": 10,
        "employee_id": 5,                 (optional, defaults to caller)
        "expected_amount_cents": 125000,
        "actual_amount_cents": 124550,
        "notes": "..."                    (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        verification = till_service.create_verification(
            employee_id=data.get("employee_id", g.current_user.id),
            shift_id=data.get("shift_id"),
            expected_amount_cents=data.get("expected_amount_cents"),
            actual_amount_cents=data.get("actual_amount_cents"),
            notes=data.get("notes"),
            acting_user=g.current_user,
        )
        return jsonify({"till_verification": verification.to_dict()}), 201
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create till verification")
        return jsonify({"error": "Internal server error"}), 500


@till_verifications_bp.patch("/<int:verification_id>")
@require_auth
def edit_verification_route(verification_id: int):
    """Editable: expected_amount_cents, actual_amount_cents, notes."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}

    try:
        verification = till_service.edit_verification(verification_id, data, g.current_user)
        return jsonify({"till_verification": verification.to_dict()})
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to edit till verification")
        return jsonify({"error": "Internal server error"}), 500


@till_verifications_bp.patch("/<int:verification_id>/verify")
@require_auth
def verify_route(verification_id: int):
    try:
        verification = till_service.verify(verification_id, g.current_user)
        return jsonify({"till_verification": verification.to_dict()})
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to verify till verification")
        return jsonify({"error": "Internal server error"}), 500
