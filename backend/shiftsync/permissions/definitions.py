# Overview: All permission tags and their definitions organized by category.
# Each definition is: (permission, name, description, category)

from enum import Enum

from .categories import PermissionCategory


class Permission(str, Enum):
    """Closed set of permission tags. Values are the wire/storage codes."""

    MANAGE_USERS = "manage_users"
    VIEW_ALL_USERS = "view_all_users"

    MANAGE_VENUES = "manage_venues"
    VIEW_ALL_VENUES = "view_all_venues"

    MANAGE_ALL_SHIFTS = "manage_all_shifts"
    MANAGE_VENUE_SHIFTS = "manage_venue_shifts"
    VIEW_ALL_SHIFTS = "view_all_shifts"

    MANAGE_ALL_TIME = "manage_all_time"
    MANAGE_VENUE_TIME = "manage_venue_time"
    VIEW_ALL_TIME = "view_all_time"

    SEND_MASS_MESSAGES = "send_mass_messages"

    MANAGE_ALL_TILLS = "manage_all_tills"
    MANAGE_VENUE_TILLS = "manage_venue_tills"
    VIEW_ALL_TILLS = "view_all_tills"

    SYSTEM_SETTINGS = "system_settings"


# -- USERS --

USER_PERMISSIONS = [
    (
        Permission.MANAGE_USERS,
        "Manage Users",
        "Create, update and deactivate users; change roles and grants",
        PermissionCategory.USERS,
    ),
    (
        Permission.VIEW_ALL_USERS,
        "View All Users",
        "View every user profile",
        PermissionCategory.USERS,
    ),
]


# -- VENUES --

VENUE_PERMISSIONS = [
    (
        Permission.MANAGE_VENUES,
        "Manage Venues",
        "Create, update and delete venues",
        PermissionCategory.VENUES,
    ),
    (
        Permission.VIEW_ALL_VENUES,
        "View All Venues",
        "View every venue",
        PermissionCategory.VENUES,
    ),
]


# -- SHIFTS --

SHIFT_PERMISSIONS = [
    (
        Permission.MANAGE_ALL_SHIFTS,
        "Manage All Shifts",
        "Create, update and delete shifts at any venue",
        PermissionCategory.SHIFTS,
    ),
    (
        Permission.MANAGE_VENUE_SHIFTS,
        "Manage Venue Shifts",
        "Manage shifts at assigned venues",
        PermissionCategory.SHIFTS,
    ),
    (
        Permission.VIEW_ALL_SHIFTS,
        "View All Shifts",
        "View every shift",
        PermissionCategory.SHIFTS,
    ),
]


# -- TIMEKEEPING --

TIMEKEEPING_PERMISSIONS = [
    (
        Permission.MANAGE_ALL_TIME,
        "Manage All Time",
        "Manage and verify time entries for every employee",
        PermissionCategory.TIMEKEEPING,
    ),
    (
        Permission.MANAGE_VENUE_TIME,
        "Manage Venue Time",
        "Manage and verify time entries at assigned venues",
        PermissionCategory.TIMEKEEPING,
    ),
    (
        Permission.VIEW_ALL_TIME,
        "View All Time",
        "View every time entry",
        PermissionCategory.TIMEKEEPING,
    ),
]


# -- MESSAGING --

MESSAGING_PERMISSIONS = [
    (
        Permission.SEND_MASS_MESSAGES,
        "Send Announcements",
        "Send messages broadcast to all users",
        PermissionCategory.MESSAGING,
    ),
]


# -- TILLS --

TILL_PERMISSIONS = [
    (
        Permission.MANAGE_ALL_TILLS,
        "Manage All Tills",
        "Create, edit and verify till counts at any venue",
        PermissionCategory.TILLS,
    ),
    (
        Permission.MANAGE_VENUE_TILLS,
        "Manage Venue Tills",
        "Create, edit and verify till counts at assigned venues",
        PermissionCategory.TILLS,
    ),
    (
        Permission.VIEW_ALL_TILLS,
        "View All Tills",
        "View every till verification",
        PermissionCategory.TILLS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        Permission.SYSTEM_SETTINGS,
        "System Settings",
        "Access system-wide settings",
        PermissionCategory.SYSTEM,
    ),
]


# Combined list of all permissions (declaration order)
PERMISSION_DEFINITIONS = (
    USER_PERMISSIONS
    + VENUE_PERMISSIONS
    + SHIFT_PERMISSIONS
    + TIMEKEEPING_PERMISSIONS
    + MESSAGING_PERMISSIONS
    + TILL_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
