# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    USERS = "USERS"
    VENUES = "VENUES"
    SHIFTS = "SHIFTS"
    TIMEKEEPING = "TIMEKEEPING"
    MESSAGING = "MESSAGING"
    TILLS = "TILLS"
    SYSTEM = "SYSTEM"
