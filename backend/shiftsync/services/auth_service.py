# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Password handling and credential checks.

Staff log in with their username or email. Passwords are bcrypt-hashed with
the cost from BCRYPT_ROUNDS and must pass PASSWORD_RULES before hashing.
Deactivated accounts never authenticate.
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..models import User
from shiftsync.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8

PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "at least one uppercase letter"),
    (re.compile(r"[a-z]"), "at least one lowercase letter"),
    (re.compile(r"\d"), "at least one digit"),
    (re.compile(r"[!@#$%^&*(),.'\":{}|<>?\-_=+]"), "at least one special character"),
)


class PasswordValidationError(ValidationError):
    """Password missing or too weak."""


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or not password:
        raise PasswordValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    for pattern, requirement in PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password must contain {requirement}")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check; a malformed stored hash simply fails."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(login: str, password: str) -> User | None:
    """
    Match `login` against username or email of an active user.

    Returns the user and stamps last_login_at, or None on any mismatch.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == login, User.email == login),
        User.is_active.is_(True),
    ).first()
    if user is None or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
