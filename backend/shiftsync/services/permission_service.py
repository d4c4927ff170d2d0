# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Role-Permission Resolver and Security Event Logging

WHY: Enforce role-based access control and create an audit trail.
Denials are logged for security monitoring.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown permission tags resolve to "deny"
- Pure resolution: effective_permissions/has_permission/has_scoped_permission
  read only user.role, user.custom_permissions and user.assigned_venue_ids
- No caching: the role table is static; per-user grants are read per call
- Log denials only: permission grants are not logged
"""

from __future__ import annotations

from ..extensions import db
from ..errors import Forbidden, NotFound, ValidationError
from ..models import User, SecurityEvent, UserPermissionGrant, VenueAssignment, Venue
from ..permissions import (
    Permission,
    Role,
    ALL_VENUE_ROLES,
    DEFAULT_ROLE_PERMISSIONS,
    ORG_WIDE_VIEW_PERMISSIONS,
    SCOPED_PERMISSION_OVERRIDES,
    coerce_permission,
    coerce_role,
)
from shiftsync.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    venue_id: int | None = None,
) -> SecurityEvent:
    """Append one row to the audit trail (see SecurityEventType) and commit."""
    event = SecurityEvent(
        user_id=user_id,
        venue_id=venue_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


# =============================================================================
# RESOLVER
# =============================================================================

def effective_permissions(user) -> frozenset[Permission]:
    """
    Role defaults united with the user's custom grants.

    Unknown role -> role contributes nothing. Unknown custom tags are ignored.
    """
    role = coerce_role(getattr(user, "role", None))
    granted = set(DEFAULT_ROLE_PERMISSIONS[role]) if role is not None else set()

    for code in getattr(user, "custom_permissions", None) or ():
        perm = coerce_permission(code)
        if perm is not None:
            granted.add(perm)

    return frozenset(granted)


def has_permission(user, permission) -> bool:
    perm = coerce_permission(permission)
    if perm is None:
        return False
    return perm in effective_permissions(user)


def has_scoped_permission(user, permission, venue_id: int | None) -> bool:
    """
    Venue-scoped check.

    - Holding the global counterpart (manage_all_*) grants unconditionally.
    - Otherwise the permission itself must be held AND venue_id must be one
      of the user's assigned venues. For view_all_* the organization-wide
      roles (super_admin, admin, it) reach every venue.
    - Permissions without a venue scope fall back to has_permission.
    """
    perm = coerce_permission(permission)
    if perm is None:
        return False

    override = SCOPED_PERMISSION_OVERRIDES.get(perm)
    if override is None:
        return has_permission(user, perm)

    granted = effective_permissions(user)
    if override in granted:
        return True

    if perm not in granted or venue_id is None:
        return False

    if perm in ORG_WIDE_VIEW_PERMISSIONS:
        return has_venue_access(user, venue_id)

    assigned = getattr(user, "assigned_venue_ids", None) or ()
    return venue_id in assigned


def has_venue_access(user, venue_id: int | None) -> bool:
    """Organization-wide roles reach every venue; others only their assignments."""
    role = coerce_role(getattr(user, "role", None))
    if role is None:
        return False
    if role in ALL_VENUE_ROLES:
        return True
    if venue_id is None:
        return False
    return venue_id in (getattr(user, "assigned_venue_ids", None) or ())


# =============================================================================
# ENFORCEMENT
# =============================================================================

def require_permission(user, permission) -> None:
    """Raise Forbidden unless user holds permission."""
    if not has_permission(user, permission):
        raise Forbidden(f"Permission denied: {_code(permission)}")


def require_scoped_permission(user, permission, venue_id: int | None) -> None:
    """Raise Forbidden unless user holds permission for venue_id."""
    if not has_scoped_permission(user, permission, venue_id):
        raise Forbidden(f"Permission denied: {_code(permission)} for venue {venue_id}")


def _code(permission) -> str:
    return permission.value if isinstance(permission, Permission) else str(permission)


# =============================================================================
# CUSTOM GRANTS & VENUE ASSIGNMENTS
# =============================================================================

def parse_permission_tags(values) -> list[Permission]:
    """
    Validate a client-supplied list of permission tags.

    Unknown tags are rejected rather than stored.
    """
    if values is None:
        return []
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise ValidationError("custom_permissions must be a list of permission tags")

    parsed: list[Permission] = []
    unknown: list[str] = []
    for value in values:
        perm = coerce_permission(value) if isinstance(value, str) else None
        if perm is None:
            unknown.append(str(value))
        elif perm not in parsed:
            parsed.append(perm)

    if unknown:
        raise ValidationError(f"Unknown permission tags: {', '.join(unknown)}")
    return parsed


def grant_custom_permission(*, user_id: int, permission, granted_by_user_id: int | None) -> UserPermissionGrant:
    """Grant (or re-activate) an additive per-user permission."""
    perm = coerce_permission(permission)
    if perm is None:
        raise ValidationError(f"Unknown permission tag: {permission}")

    grant = db.session.query(UserPermissionGrant).filter_by(
        user_id=user_id,
        permission_code=perm.value,
    ).first()

    if grant:
        grant.is_active = True
        grant.granted_by_user_id = granted_by_user_id
        grant.granted_at = utcnow()
        grant.revoked_by_user_id = None
        grant.revoked_at = None
    else:
        grant = UserPermissionGrant(
            user_id=user_id,
            permission_code=perm.value,
            granted_by_user_id=granted_by_user_id,
            granted_at=utcnow(),
            is_active=True,
        )
        db.session.add(grant)

    return grant


def revoke_custom_permission(*, user_id: int, permission, revoked_by_user_id: int | None) -> bool:
    """Soft-revoke a per-user grant. Returns False if no active grant existed."""
    perm = coerce_permission(permission)
    if perm is None:
        raise ValidationError(f"Unknown permission tag: {permission}")

    grant = db.session.query(UserPermissionGrant).filter_by(
        user_id=user_id,
        permission_code=perm.value,
        is_active=True,
    ).first()
    if not grant:
        return False

    grant.is_active = False
    grant.revoked_by_user_id = revoked_by_user_id
    grant.revoked_at = utcnow()
    return True


def set_custom_permissions(user: User, permissions, *, acting_user_id: int | None) -> None:
    """
    Replace the user's active custom grants with exactly `permissions`.
    Caller commits.
    """
    wanted = set(parse_permission_tags(permissions))
    current = {coerce_permission(c) for c in user.custom_permissions} - {None}

    for perm in sorted(wanted - current, key=lambda p: p.value):
        grant_custom_permission(user_id=user.id, permission=perm, granted_by_user_id=acting_user_id)
    for perm in sorted(current - wanted, key=lambda p: p.value):
        revoke_custom_permission(user_id=user.id, permission=perm, revoked_by_user_id=acting_user_id)

    db.session.flush()
    db.session.expire(user, ["permission_grants"])


def set_assigned_venues(user: User, venue_ids, *, acting_user_id: int | None) -> None:
    """
    Replace the user's venue assignments. Every venue must exist.
    Caller commits.
    """
    if venue_ids is None:
        venue_ids = []
    if not isinstance(venue_ids, (list, tuple)):
        raise ValidationError("assigned_venue_ids must be a list of venue ids")

    wanted: set[int] = set()
    for raw in venue_ids:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError("assigned_venue_ids must contain integer ids")
        wanted.add(raw)

    for venue_id in sorted(wanted):
        if db.session.get(Venue, venue_id) is None:
            raise NotFound(f"Venue {venue_id} not found")

    current = {a.venue_id: a for a in user.venue_assignments}

    for venue_id, assignment in current.items():
        if venue_id not in wanted:
            db.session.delete(assignment)

    for venue_id in sorted(wanted - set(current)):
        db.session.add(VenueAssignment(
            user_id=user.id,
            venue_id=venue_id,
            assigned_by_user_id=acting_user_id,
            assigned_at=utcnow(),
        ))

    db.session.flush()
    db.session.expire(user, ["venue_assignments"])


def describe_user_permissions(user) -> dict:
    """Serializable view of a user's resolved access."""
    role = coerce_role(getattr(user, "role", None))
    perms = effective_permissions(user)
    return {
        "user_id": getattr(user, "id", None),
        "role": role.value if role else getattr(user, "role", None),
        "permissions": sorted(p.value for p in perms),
        "custom_permissions": sorted(getattr(user, "custom_permissions", None) or ()),
        "assigned_venue_ids": sorted(getattr(user, "assigned_venue_ids", None) or ()),
        "all_venues": role in ALL_VENUE_ROLES if role else False,
    }


def is_super_admin(user) -> bool:
    return coerce_role(getattr(user, "role", None)) is Role.SUPER_ADMIN
