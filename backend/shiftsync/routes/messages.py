# Overview: Flask API routes for messaging operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ShiftSyncError
from ..services import message_service


messages_bp = Blueprint("messages", __name__, url_prefix="/api/messages")


@messages_bp.get("/")
@messages_bp.get("")
@require_auth
def list_messages_route():
    """Messages the caller sent, received, or that were broadcast."""
    messages = message_service.list_messages(g.current_user)
    return jsonify({"messages": [m.to_dict() for m in messages]})


@messages_bp.get("/unread")
@require_auth
def list_unread_route():
    messages = message_service.list_unread(g.current_user)
    return jsonify({"messages": [m.to_dict() for m in messages], "count": len(messages)})


@messages_bp.post("/")
@messages_bp.post("")
@require_auth
def send_message_route():
    """
    Request body:
    {
        "content": "Stocktake moved to Friday",
        "receiver_id": 5        (omit or null for an announcement; needs send_mass_messages)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        message = message_service.send_message(
            g.current_user,
            content=data.get("content"),
            receiver_id=data.get("receiver_id"),
        )
        return jsonify({"message": message.to_dict()}), 201
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to send message")
        return jsonify({"error": "Internal server error"}), 500


@messages_bp.patch("/<int:message_id>/read")
@require_auth
def mark_read_route(message_id: int):
    message = message_service.mark_read(g.current_user, message_id)
    return jsonify({"message": message.to_dict()})
