# Overview: Service-layer operations for bearer sessions; encapsulates business logic and database work.

"""
Bearer sessions for staff devices.

A login hands the device an opaque token; only its SHA-256 digest is stored.
A session stops working when it passes its absolute lifetime, sits unused
longer than the idle window, is revoked (logout, deactivation), or its user
is deactivated. Both windows come from config so venues with shared tablets
can shorten them.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import NotFound, InvalidState
from ..models import SessionToken, User
from .concurrency import conditional_update
from shiftsync.time_utils import utcnow


TOKEN_BYTES = 32


@dataclass
class SessionContext:
    """Who is calling, and through which session."""
    user: User
    session: SessionToken


def _hours(key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(key, default))


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    # High-entropy tokens do not need a slow hash
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _active_session(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Returns (session row, plaintext token). The plaintext is never stored."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    if not user.is_active:
        raise InvalidState("User account is deactivated")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its user, or None.

    Idle or deactivated sessions are revoked on the spot so they stay dead
    even if the idle window is later lengthened. Success slides last_used_at.
    """
    session = _active_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None
    if now - session.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS", 2):
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if user is None or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token is unknown or already revoked."""
    session = _active_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str) -> int:
    """Revoke every live session of a user (deactivation). Returns the count."""
    revoked = conditional_update(
        SessionToken,
        where=(SessionToken.user_id == user_id, SessionToken.is_revoked.is_(False)),
        values={"is_revoked": True, "revoked_at": utcnow(), "revoked_reason": reason},
    )
    db.session.commit()
    db.session.expire_all()
    return revoked


def cleanup_expired_sessions(days: int = 30) -> int:
    """Delete dead sessions created more than `days` ago. Returns the count."""
    now = utcnow()
    deleted = db.session.query(SessionToken).filter(
        db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
        SessionToken.created_at < now - timedelta(days=days),
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
