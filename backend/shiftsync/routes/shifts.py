# Overview: Flask API routes for shift operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ShiftSyncError
from ..services import shift_service
from ..validation import optional_int, optional_datetime


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.get("/")
@shifts_bp.get("")
@require_auth
def list_shifts_route():
    """
    Query params: start, end (ISO-8601), venue_id, employee_id.
    Without view_all_shifts only the caller's own shifts are returned.
    """
    shifts = shift_service.list_shifts(
        g.current_user,
        start=optional_datetime(request.args.get("start"), "start"),
        end=optional_datetime(request.args.get("end"), "end"),
        venue_id=optional_int(request.args.get("venue_id"), "venue_id"),
        employee_id=optional_int(request.args.get("employee_id"), "employee_id"),
    )
    return jsonify({"shifts": [s.to_dict() for s in shifts]})


@shifts_bp.get("/<int:shift_id>")
@require_auth
def get_shift_route(shift_id: int):
    shift = shift_service.get_shift_for(g.current_user, shift_id)
    return jsonify({"shift": shift.to_dict()})


@shifts_bp.post("/")
@shifts_bp.post("")
@require_auth
def create_shift_route():
    """
    Requires manage_all_shifts, or manage_venue_shifts for the venue.

    Request body:
    {
        "venue_id": 1,
        "employee_id": 5,                       (optional)
        "start_time": "2026-03-01T09:00:00Z",
        "end_time": "2026-03-01T17:00:00Z",
        "title": "Bar",                         (optional)
        "status": "pending",                    (optional)
        "notes": "..."                          (optional)
    }
    """
    try:
        shift = shift_service.create_shift(g.current_user, request.get_json(silent=True))
        return jsonify({"shift": shift.to_dict()}), 201
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.patch("/<int:shift_id>")
@require_auth
def update_shift_route(shift_id: int):
    try:
        shift = shift_service.update_shift(g.current_user, shift_id, request.get_json(silent=True))
        return jsonify({"shift": shift.to_dict()})
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.delete("/<int:shift_id>")
@require_auth
def delete_shift_route(shift_id: int):
    try:
        shift_service.delete_shift(g.current_user, shift_id)
        return "", 204
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to delete shift")
        return jsonify({"error": "Internal server error"}), 500
