# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import request, jsonify, g

from .models import SecurityEventType
from .services import session_service, permission_service


def bearer_token() -> str | None:
    """Token from "Authorization: Bearer <token>", or None."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(f):
    """
    Resolve the bearer session into g.current_user and g.session_context.

    401 when the header is missing, the token is unknown, expired, idle or
    revoked, or the account has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Gate a route on a global permission. Stack below @require_auth.

    Venue-scoped checks need the target venue, so they happen in the
    services once the entity is loaded.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            if not permission_service.has_permission(user, permission_code):
                permission_service.log_security_event(
                    user_id=user.id,
                    event_type=SecurityEventType.PERMISSION_DENIED,
                    success=False,
                    resource=request.path,
                    action=permission_code,
                    reason=f"Missing permission: {permission_code}",
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
                return jsonify({
                    "error": f"Permission denied: {permission_code}",
                    "kind": "Forbidden",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
