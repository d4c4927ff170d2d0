# Overview: Flask API routes for user operations; parses input and returns JSON responses.

"""
User management API routes

SECURITY:
- list / employees: view_all_users
- get: self or view_all_users
- create: manage_users
- update: self (profile fields) or manage_users; role, custom permissions,
  venue assignments and activation need manage_users
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import ShiftSyncError
from ..permissions import Permission, Role
from ..services import user_service, permission_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/")
@users_bp.get("")
@require_auth
@require_permission(Permission.VIEW_ALL_USERS.value)
def list_users_route():
    role = request.args.get("role")
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    users = user_service.list_users(g.current_user, role=role, include_inactive=include_inactive)
    return jsonify({"users": [u.to_dict() for u in users]})


@users_bp.get("/employees")
@require_auth
@require_permission(Permission.VIEW_ALL_USERS.value)
def list_employees_route():
    users = user_service.list_users(g.current_user, role=Role.EMPLOYEE.value)
    return jsonify({"users": [u.to_dict() for u in users]})


@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    user = user_service.get_user_for(g.current_user, user_id)
    return jsonify({"user": user.to_dict()})


@users_bp.get("/<int:user_id>/permissions")
@require_auth
def get_user_permissions_route(user_id: int):
    user = user_service.get_user_for(g.current_user, user_id)
    return jsonify(permission_service.describe_user_permissions(user))


@users_bp.post("/")
@users_bp.post("")
@require_auth
@require_permission(Permission.MANAGE_USERS.value)
def create_user_route():
    """
    Create a user account.

    Request body:
    {
        "username": "jdoe",
        "full_name": "Jane Doe",
        "email": "jane@example.com",
        "password": "Str0ng!Pass",
        "role": "employee",                      (optional)
        "custom_permissions": ["view_all_tills"], (optional)
        "assigned_venue_ids": [1, 2]              (optional)
    }
    """
    try:
        user = user_service.create_user(g.current_user, request.get_json(silent=True))
        return jsonify({"user": user.to_dict()}), 201
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    try:
        user = user_service.update_user(g.current_user, user_id, request.get_json(silent=True))
        return jsonify({"user": user.to_dict()})
    except ShiftSyncError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500
