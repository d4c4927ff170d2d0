# Overview: Fixed role enum and the static role -> default permission table.

from enum import Enum
from types import MappingProxyType

from .definitions import Permission


class Role(str, Enum):
    """Closed set of user roles."""

    SUPER_ADMIN = "super_admin"  # Owner with all privileges
    ADMIN = "admin"              # Administrator with management privileges
    MANAGER = "manager"          # Venue manager with limited admin privileges
    SUPERVISOR = "supervisor"    # Shift supervisor with authority over employees
    EMPLOYEE = "employee"        # Regular staff member
    IT = "it"                    # IT support with system-level access


# Roles whose venue reach is organization-wide rather than assignment-based.
ALL_VENUE_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.IT})


# Built once at import; read-only afterwards.
DEFAULT_ROLE_PERMISSIONS = MappingProxyType({
    Role.SUPER_ADMIN: tuple(Permission),
    Role.ADMIN: (
        Permission.MANAGE_USERS,
        Permission.VIEW_ALL_USERS,
        Permission.MANAGE_VENUES,
        Permission.VIEW_ALL_VENUES,
        Permission.MANAGE_ALL_SHIFTS,
        Permission.VIEW_ALL_SHIFTS,
        Permission.MANAGE_ALL_TIME,
        Permission.VIEW_ALL_TIME,
        Permission.SEND_MASS_MESSAGES,
        Permission.MANAGE_ALL_TILLS,
        Permission.VIEW_ALL_TILLS,
    ),
    Role.MANAGER: (
        Permission.VIEW_ALL_USERS,
        Permission.VIEW_ALL_VENUES,
        Permission.MANAGE_VENUE_SHIFTS,
        Permission.VIEW_ALL_SHIFTS,
        Permission.MANAGE_VENUE_TIME,
        Permission.VIEW_ALL_TIME,
        Permission.MANAGE_VENUE_TILLS,
        Permission.VIEW_ALL_TILLS,
    ),
    Role.SUPERVISOR: (
        Permission.VIEW_ALL_SHIFTS,
        Permission.MANAGE_VENUE_TIME,
        Permission.VIEW_ALL_TIME,
        Permission.MANAGE_VENUE_TILLS,
    ),
    Role.EMPLOYEE: (),
    Role.IT: (
        Permission.SYSTEM_SETTINGS,
        Permission.VIEW_ALL_USERS,
        Permission.VIEW_ALL_VENUES,
        Permission.VIEW_ALL_SHIFTS,
        Permission.VIEW_ALL_TIME,
        Permission.VIEW_ALL_TILLS,
    ),
})


# Venue-scoped permission -> the global permission that bypasses venue assignment.
SCOPED_PERMISSION_OVERRIDES = MappingProxyType({
    Permission.MANAGE_VENUE_SHIFTS: Permission.MANAGE_ALL_SHIFTS,
    Permission.MANAGE_VENUE_TIME: Permission.MANAGE_ALL_TIME,
    Permission.MANAGE_VENUE_TILLS: Permission.MANAGE_ALL_TILLS,
    Permission.VIEW_ALL_SHIFTS: Permission.MANAGE_ALL_SHIFTS,
    Permission.VIEW_ALL_TIME: Permission.MANAGE_ALL_TIME,
    Permission.VIEW_ALL_TILLS: Permission.MANAGE_ALL_TILLS,
})

# Scoped view permissions that organization-wide roles hold for every venue.
ORG_WIDE_VIEW_PERMISSIONS = frozenset({
    Permission.VIEW_ALL_SHIFTS,
    Permission.VIEW_ALL_TIME,
    Permission.VIEW_ALL_TILLS,
})
