# Overview: Service-layer operations for login throttling; counts failed logins per identifier.

"""
Login throttling.

Failed logins are already appended to security_events as LOGIN_FAILED with
the submitted username/email in `action`. This module counts them:

- MAX_FAILED_ATTEMPTS failures within LOCKOUT_WINDOW lock the identifier
- the lock lasts LOCKOUT_DURATION from the most recent failure
- a successful login for the identifier resets the count
"""

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, SecurityEventType
from shiftsync.time_utils import utcnow


MAX_FAILED_ATTEMPTS = 10
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)

# Matches SecurityEvent.action
IDENTIFIER_LENGTH = 64


def normalize_identifier(login: str) -> str:
    return login[:IDENTIFIER_LENGTH]


def _recent_failures(identifier: str):
    """LOGIN_FAILED rows inside the window and after the last successful login."""
    identifier = normalize_identifier(identifier)
    query = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == SecurityEventType.LOGIN_FAILED,
        SecurityEvent.action == identifier,
        SecurityEvent.occurred_at >= utcnow() - LOCKOUT_WINDOW,
    )

    last_success = db.session.query(db.func.max(SecurityEvent.id)).filter(
        SecurityEvent.event_type == SecurityEventType.LOGIN_SUCCESS,
        SecurityEvent.action == identifier,
    ).scalar()
    if last_success is not None:
        query = query.filter(SecurityEvent.id > last_success)
    return query


def get_recent_failed_attempts(identifier: str) -> int:
    return _recent_failures(identifier).count()


def is_account_locked(identifier: str) -> tuple[bool, int | None]:
    """(True, seconds_remaining) while locked, else (False, None)."""
    failures = _recent_failures(identifier)
    if failures.count() < MAX_FAILED_ATTEMPTS:
        return False, None

    latest = failures.order_by(SecurityEvent.occurred_at.desc()).first()
    lockout_end = latest.occurred_at + LOCKOUT_DURATION
    now = utcnow()
    if now >= lockout_end:
        return False, None
    return True, int((lockout_end - now).total_seconds())


def get_lockout_status(identifier: str) -> dict:
    locked, seconds_remaining = is_account_locked(identifier)
    return {
        "locked": locked,
        "failed_attempts": get_recent_failed_attempts(identifier),
        "max_attempts": MAX_FAILED_ATTEMPTS,
        "seconds_until_unlock": seconds_remaining,
        "lockout_window_minutes": int(LOCKOUT_WINDOW.total_seconds() // 60),
        "lockout_duration_minutes": int(LOCKOUT_DURATION.total_seconds() // 60),
    }
