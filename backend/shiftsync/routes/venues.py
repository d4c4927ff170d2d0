# Overview: Flask API routes for venue operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import ShiftSyncError
from ..permissions import Permission
from ..services import venue_service


venues_bp = Blueprint("venues", __name__, url_prefix="/api/venues")


@venues_bp.get("/")
@venues_bp.get("")
@require_auth
def list_venues_route():
    """view_all_venues sees every venue; others see their assigned venues."""
    venues = venue_service.list_venues(g.current_user)
    return jsonify({"venues": [v.to_dict() for v in venues]})


@venues_bp.get("/<int:venue_id>")
@require_auth
def get_venue_route(venue_id: int):
    venue = venue_service.get_venue_for(g.current_user, venue_id)
    return jsonify({"venue": venue.to_dict()})


@venues_bp.post("/")
@venues_bp.post("")
@require_auth
@require_permission(Permission.MANAGE_VENUES.value)
def create_venue_route():
    """
    Request body:
    {
        "name": "Harbour Bar",
        "address": "1 Quay St",
        "description": "...",                    (optional)
        "coordinates": {"lat": -33.8, "lng": 151.2} (optional)
    }
    """
    try:
        venue = venue_service.create_venue(g.current_user, request.get_json(silent=True))
        return jsonify({"venue": venue.to_dict()}), 201
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create venue")
        return jsonify({"error": "Internal server error"}), 500


@venues_bp.patch("/<int:venue_id>")
@require_auth
@require_permission(Permission.MANAGE_VENUES.value)
def update_venue_route(venue_id: int):
    try:
        venue = venue_service.update_venue(g.current_user, venue_id, request.get_json(silent=True))
        return jsonify({"venue": venue.to_dict()})
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update venue")
        return jsonify({"error": "Internal server error"}), 500


@venues_bp.delete("/<int:venue_id>")
@require_auth
@require_permission(Permission.MANAGE_VENUES.value)
def delete_venue_route(venue_id: int):
    try:
        venue_service.delete_venue(g.current_user, venue_id)
        return "", 204
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to delete venue")
        return jsonify({"error": "Internal server error"}), 500
