# backend/shiftsync/routes/system.py
"""
System health and version endpoints.

/health runs each check in turn and reports the worst status:
healthy -> 200, degraded -> 200 (still serving), unhealthy -> 503.
"""

import sys
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Venue, User, SessionToken
from ..permissions import Role, DEFAULT_ROLE_PERMISSIONS
from shiftsync.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

STATUS_ORDER = ("healthy", "degraded", "unhealthy")


def _timed(name: str, check) -> dict:
    """Run a check, attach its latency, and turn any exception into 'unhealthy'."""
    started = time.perf_counter()
    try:
        result = check()
    except Exception:
        current_app.logger.exception("Health check %s failed", name)
        result = {"status": "unhealthy", "error": f"{name} check failed"}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


def _database() -> dict:
    return {
        "status": "healthy",
        "details": {
            "venues": db.session.query(Venue).count(),
            "users": db.session.query(User).filter(User.is_active.is_(True)).count(),
        },
    }


def _sessions() -> dict:
    live = db.session.query(SessionToken).filter(SessionToken.is_revoked.is_(False))
    return {
        "status": "healthy",
        "details": {
            "active_sessions": live.count(),
            "expired_pending_cleanup": live.filter(SessionToken.expires_at < utcnow()).count(),
        },
    }


def _authorization() -> dict:
    """Every role has a permission row, and someone can still administer the org."""
    missing_roles = [r.value for r in Role if r not in DEFAULT_ROLE_PERMISSIONS]
    owners = db.session.query(User).filter_by(role=Role.SUPER_ADMIN.value, is_active=True).count()

    result = {"status": "healthy", "details": {"super_admins": owners}}
    if missing_roles:
        result.update(status="unhealthy", warning=f"Roles without permissions: {', '.join(missing_roles)}")
    elif owners == 0:
        result.update(status="degraded", warning="No active super_admin (run: flask system init)")
    return result


@system_bp.get("/health")
def health():
    started = time.perf_counter()
    checks = {
        "database": _timed("database", _database),
        "session_service": _timed("session_service", _sessions),
        "auth_service": _timed("auth_service", _authorization),
    }
    overall = max((c["status"] for c in checks.values()), key=STATUS_ORDER.index)

    return {
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "checks": checks,
    }, 503 if overall == "unhealthy" else 200


@system_bp.get("/version")
def version():
    """Deployment facts safe to expose: no secrets, no paths."""
    return {
        "api_version": current_app.config.get("API_VERSION"),
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
