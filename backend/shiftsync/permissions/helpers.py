# Overview: Utility functions for permission lookups and validation.

from .definitions import Permission, PERMISSION_DEFINITIONS
from .roles import Role, DEFAULT_ROLE_PERMISSIONS


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0].value == code:
            return {
                "code": perm[0].value,
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def coerce_permission(value) -> Permission | None:
    """Permission for a tag, or None when the tag is not recognized."""
    if isinstance(value, Permission):
        return value
    try:
        return Permission(value)
    except ValueError:
        return None


def coerce_role(value) -> Role | None:
    """Role for a tag, or None when the tag is not recognized."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def get_role_permission_codes(role) -> list[str]:
    """Default permission codes for a role, in table order."""
    role = coerce_role(role)
    if role is None:
        return []
    return [p.value for p in DEFAULT_ROLE_PERMISSIONS[role]]
