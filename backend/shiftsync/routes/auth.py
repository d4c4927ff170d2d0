# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login     username or email + password -> bearer token
- POST /api/auth/logout    revoke the presented token
- GET  /api/auth/me        current user, effective permissions, venue reach
- POST /api/auth/register  always 403; accounts come from manage_users holders

Every login attempt and logout lands in security_events. Repeated failures
for one username/email lock it out with 429 (see login_throttle_service).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import bearer_token, require_auth
from ..models import SecurityEventType
from ..services import auth_service, login_throttle_service, permission_service, session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _client() -> dict:
    return {
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


@auth_bp.post("/register")
def register_route():
    return jsonify({
        "error": "Self-registration is disabled. Ask a manager to create your account.",
        "kind": "Forbidden",
    }), 403


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    login = data.get("username") or data.get("email")
    password = data.get("password")
    if not isinstance(login, str) or not isinstance(password, str) or not login or not password:
        return jsonify({"error": "username/email and password required", "kind": "InvalidState"}), 400

    identifier = login_throttle_service.normalize_identifier(login)
    try:
        locked, seconds_remaining = login_throttle_service.is_account_locked(identifier)
        if locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
            }), 429

        user = auth_service.authenticate(login, password)
        if user is None:
            permission_service.log_security_event(
                user_id=None,
                event_type=SecurityEventType.LOGIN_FAILED,
                success=False,
                resource=request.path,
                action=identifier,
                reason="Invalid credentials",
                **_client(),
            )
            remaining = login_throttle_service.MAX_FAILED_ATTEMPTS \
                - login_throttle_service.get_recent_failed_attempts(identifier)
            if remaining <= 0:
                current_app.logger.warning("Login locked for %s after repeated failures", identifier)
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                    "retry_after_seconds": int(login_throttle_service.LOCKOUT_DURATION.total_seconds()),
                }), 429
            body = {"error": "Invalid credentials"}
            if remaining <= 3:
                body["warning"] = f"{remaining} attempts remaining before account lockout"
            return jsonify(body), 401

        session, token = session_service.create_session(user_id=user.id, **_client())
        permission_service.log_security_event(
            user_id=user.id,
            event_type=SecurityEventType.LOGIN_SUCCESS,
            success=True,
            resource=request.path,
            action=identifier,
            **_client(),
        )
    except Exception:
        current_app.logger.exception("Failed to log in %s", login)
        return jsonify({"error": "Internal server error"}), 500

    access = permission_service.describe_user_permissions(user)
    return jsonify({
        "user": user.to_dict(),
        "permissions": access["permissions"],
        "all_venues": access["all_venues"],
        "token": token,
        "session": session.to_dict(),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    user_id = g.current_user.id
    session_service.revoke_session(bearer_token(), reason="User logout")
    permission_service.log_security_event(
        user_id=user_id,
        event_type=SecurityEventType.LOGOUT,
        success=True,
        resource=request.path,
        **_client(),
    )
    return jsonify({"message": "Logout successful"})


@auth_bp.get("/me")
@require_auth
def me_route():
    """The frontend hides navigation and actions based on this."""
    access = permission_service.describe_user_permissions(g.current_user)
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": access["permissions"],
        "all_venues": access["all_venues"],
    })
