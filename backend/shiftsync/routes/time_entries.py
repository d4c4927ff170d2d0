# Overview: Flask API routes for timekeeping operations; parses input and returns JSON responses.

"""
Time Entry Routes

SECURITY:
- Clock in/out for self needs no extra permission.
- Acting on another employee's entry needs manage_all_time or
  manage_venue_time for the shift's venue.
- Verification needs the same, and the entry must be clocked out.
- Listing others' entries needs view_all_time.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ShiftSyncError
from ..services import timekeeping_service
from ..validation import optional_int, optional_datetime


time_entries_bp = Blueprint("time_entries", __name__, url_prefix="/api/time-entries")


@time_entries_bp.get("/")
@time_entries_bp.get("")
@require_auth
def list_entries_route():
    entries = timekeeping_service.list_entries(
        g.current_user,
        employee_id=optional_int(request.args.get("employee_id"), "employee_id"),
        shift_id=optional_int(request.args.get("shift_id"), "shift_id"),
        start=optional_datetime(request.args.get("start"), "start"),
        end=optional_datetime(request.args.get("end"), "end"),
    )
    return jsonify({"entries": [e.to_dict() for e in entries]})


@time_entries_bp.get("/status")
@require_auth
def get_status_route():
    return jsonify(timekeeping_service.get_current_status(g.current_user.id))


@time_entries_bp.get("/<int:entry_id>")
@require_auth
def get_entry_route(entry_id: int):
    entry = timekeeping_service.get_entry_for(g.current_user, entry_id)
    return jsonify({"entry": entry.to_dict()})


@time_entries_bp.post("/")
@time_entries_bp.post("")
@require_auth
def clock_in_route():
    """
    Request body:
    {
        "shift_id": 10,
        "employee_id": 5,                        (optional, defaults to caller)
        "coordinates": {"lat": .., "lng": ..},   (optional)
        "notes": "..."                           (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    if data.get("shift_id") is None:
        return jsonify({"error": "shift_id is required", "kind": "InvalidState"}), 400

    try:
        entry = timekeeping_service.clock_in(
            g.current_user,
            shift_id=data.get("shift_id"),
            employee_id=data.get("employee_id"),
            coordinates=data.get("coordinates"),
            notes=data.get("notes"),
        )
        return jsonify({"entry": entry.to_dict()}), 201
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to clock in")
        return jsonify({"error": "Internal server error"}), 500


@time_entries_bp.post("/<int:entry_id>/clock-out")
@require_auth
def clock_out_route(entry_id: int):
    data = request.get_json(silent=True) or {}
    try:
        entry = timekeeping_service.clock_out(
            g.current_user,
            entry_id,
            coordinates=data.get("coordinates"),
        )
        return jsonify({"entry": entry.to_dict()})
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to clock out")
        return jsonify({"error": "Internal server error"}), 500


@time_entries_bp.patch("/<int:entry_id>/verify")
@require_auth
def verify_entry_route(entry_id: int):
    try:
        entry = timekeeping_service.verify_entry(g.current_user, entry_id)
        return jsonify({"entry": entry.to_dict()})
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to verify time entry")
        return jsonify({"error": "Internal server error"}), 500


@time_entries_bp.patch("/<int:entry_id>")
@require_auth
def update_entry_route(entry_id: int):
    data = request.get_json(silent=True) or {}
    unknown = sorted(set(data) - {"notes"})
    if unknown:
        return jsonify({"error": f"Field not allowed: {', '.join(unknown)}", "kind": "InvalidState"}), 400

    entry = timekeeping_service.update_notes(g.current_user, entry_id, data.get("notes"))
    return jsonify({"entry": entry.to_dict()})
