# Overview: Service-layer operations for users; encapsulates business logic and database work.

"""
User management.

SECURITY:
- role, custom_permissions, assigned_venue_ids and is_active need manage_users
- only a super_admin may create a super_admin or modify one
- unknown roles and permission tags are rejected, never stored
- users may edit their own profile fields without manage_users
"""

from __future__ import annotations

from ..extensions import db
from ..errors import Forbidden, InvalidState, NotFound, ValidationError
from ..models import User, SecurityEventType
from ..permissions import Permission, Role, coerce_role
from ..validation import ModelValidationPolicy, validate_payload
from . import auth_service, permission_service, session_service
from shiftsync.time_utils import utcnow


PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "email", "profile_picture", "phone"},
)

CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"username", "full_name", "email", "profile_picture", "phone"},
    required_on_create={"username", "full_name", "email"},
)

# Fields that only holders of manage_users may change
PRIVILEGED_FIELDS = {"role", "custom_permissions", "assigned_venue_ids", "is_active"}


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


def get_user_for(acting_user, user_id: int) -> User:
    """Self, or anyone holding view_all_users."""
    if acting_user.id != user_id:
        permission_service.require_permission(acting_user, Permission.VIEW_ALL_USERS)
    return get_user(user_id)


def list_users(acting_user, *, role: str | None = None, include_inactive: bool = False) -> list[User]:
    permission_service.require_permission(acting_user, Permission.VIEW_ALL_USERS)

    query = db.session.query(User)
    if role is not None:
        parsed = coerce_role(role)
        if parsed is None:
            raise ValidationError(f"Unknown role: {role}")
        query = query.filter(User.role == parsed.value)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username).all()


def _parse_role(value) -> Role:
    role = coerce_role(value) if isinstance(value, str) else None
    if role is None:
        raise ValidationError(f"Unknown role: {value}")
    return role


def _ensure_unique(username: str | None, email: str | None, *, exclude_id: int | None = None) -> None:
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return

    query = db.session.query(User).filter(db.or_(*clauses))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise InvalidState("Username or email already exists")


def create_user(acting_user, payload: dict) -> User:
    """
    Create an account. Requires manage_users.

    Payload: username, full_name, email, password, optional role (default
    employee), custom_permissions, assigned_venue_ids, profile_picture, phone.
    """
    permission_service.require_permission(acting_user, Permission.MANAGE_USERS)

    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)

    password = payload.pop("password", None)
    role = _parse_role(payload.pop("role", Role.EMPLOYEE.value))
    custom_permissions = payload.pop("custom_permissions", None)
    venue_ids = payload.pop("assigned_venue_ids", None)

    if role is Role.SUPER_ADMIN and not permission_service.is_super_admin(acting_user):
        raise Forbidden("Only a super_admin may create a super_admin")

    patch = validate_payload(model=User, payload=payload, policy=CREATE_POLICY, partial=False)
    _ensure_unique(patch["username"], patch["email"])

    # Validate tags before anything is written
    permission_service.parse_permission_tags(custom_permissions)

    user = User(
        **patch,
        password_hash=auth_service.hash_password(password),
        role=role.value,
        is_active=True,
        created_by_user_id=acting_user.id,
        created_at=utcnow(),
    )
    db.session.add(user)
    db.session.flush()

    if custom_permissions:
        permission_service.set_custom_permissions(user, custom_permissions, acting_user_id=acting_user.id)
    if venue_ids:
        permission_service.set_assigned_venues(user, venue_ids, acting_user_id=acting_user.id)

    db.session.commit()

    permission_service.log_security_event(
        user_id=acting_user.id,
        event_type=SecurityEventType.USER_CREATED,
        success=True,
        resource=f"user:{user.id}",
        action=role.value,
    )
    return user


def update_user(acting_user, user_id: int, payload: dict) -> User:
    """
    Partial update.

    Profile fields: self or manage_users.
    role / custom_permissions / assigned_venue_ids / is_active: manage_users.
    A super_admin target (or a promotion to super_admin) needs a super_admin actor.
    """
    user = get_user(user_id)

    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)

    can_manage = permission_service.has_permission(acting_user, Permission.MANAGE_USERS)
    if acting_user.id != user.id and not can_manage:
        raise Forbidden("Permission denied: manage_users")

    privileged = {k: payload.pop(k) for k in list(payload) if k in PRIVILEGED_FIELDS}
    password = payload.pop("password", None)

    if privileged and not can_manage:
        raise Forbidden(f"Permission denied: manage_users required to change {', '.join(sorted(privileged))}")

    new_role = _parse_role(privileged["role"]) if "role" in privileged else None
    touches_super_admin = (
        user.role == Role.SUPER_ADMIN.value or new_role is Role.SUPER_ADMIN
    )
    if touches_super_admin and acting_user.id != user.id and not permission_service.is_super_admin(acting_user):
        raise Forbidden("Only a super_admin may modify a super_admin")
    if new_role is not None and acting_user.id == user.id and new_role.value != user.role \
            and not permission_service.is_super_admin(acting_user):
        raise Forbidden("Users cannot change their own role")

    patch = validate_payload(model=User, payload=payload, policy=PROFILE_POLICY, partial=True)
    if "email" in patch:
        _ensure_unique(None, patch["email"], exclude_id=user.id)

    if "custom_permissions" in privileged:
        permission_service.parse_permission_tags(privileged["custom_permissions"])

    deactivate = False
    if "is_active" in privileged:
        active = privileged["is_active"]
        if not isinstance(active, bool):
            raise ValidationError("is_active must be a boolean")
        if not active and user.id == acting_user.id:
            raise InvalidState("You cannot deactivate your own account")
        deactivate = user.is_active and not active
        user.is_active = active

    for key, value in patch.items():
        setattr(user, key, value)

    if password is not None:
        user.password_hash = auth_service.hash_password(password)

    if new_role is not None:
        user.role = new_role.value
    if "custom_permissions" in privileged:
        permission_service.set_custom_permissions(user, privileged["custom_permissions"], acting_user_id=acting_user.id)
    if "assigned_venue_ids" in privileged:
        permission_service.set_assigned_venues(user, privileged["assigned_venue_ids"], acting_user_id=acting_user.id)

    db.session.commit()

    if deactivate:
        session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
        permission_service.log_security_event(
            user_id=acting_user.id,
            event_type=SecurityEventType.USER_DEACTIVATED,
            success=True,
            resource=f"user:{user.id}",
        )

    access_changes = sorted(k for k in privileged if k in {"role", "custom_permissions", "assigned_venue_ids"})
    if access_changes:
        permission_service.log_security_event(
            user_id=acting_user.id,
            event_type=SecurityEventType.PERMISSIONS_CHANGED,
            success=True,
            resource=f"user:{user.id}",
            action=Permission.MANAGE_USERS.value,
            reason=f"changed: {', '.join(access_changes)}",
        )

    return user
