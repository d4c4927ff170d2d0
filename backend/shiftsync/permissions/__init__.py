# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    Permission,
    PERMISSION_DEFINITIONS,
    USER_PERMISSIONS,
    VENUE_PERMISSIONS,
    SHIFT_PERMISSIONS,
    TIMEKEEPING_PERMISSIONS,
    MESSAGING_PERMISSIONS,
    TILL_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import (
    Role,
    ALL_VENUE_ROLES,
    DEFAULT_ROLE_PERMISSIONS,
    ORG_WIDE_VIEW_PERMISSIONS,
    SCOPED_PERMISSION_OVERRIDES,
)
from .helpers import (
    get_permissions_by_category,
    get_permission_definition,
    coerce_permission,
    coerce_role,
    get_role_permission_codes,
)

__all__ = [
    "PermissionCategory",
    "Permission",
    "PERMISSION_DEFINITIONS",
    "USER_PERMISSIONS",
    "VENUE_PERMISSIONS",
    "SHIFT_PERMISSIONS",
    "TIMEKEEPING_PERMISSIONS",
    "MESSAGING_PERMISSIONS",
    "TILL_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "Role",
    "ALL_VENUE_ROLES",
    "DEFAULT_ROLE_PERMISSIONS",
    "ORG_WIDE_VIEW_PERMISSIONS",
    "SCOPED_PERMISSION_OVERRIDES",
    "get_permissions_by_category",
    "get_permission_definition",
    "coerce_permission",
    "coerce_role",
    "get_role_permission_codes",
]
