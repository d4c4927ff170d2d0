from .venues import Venue
from .auth import User, VenueAssignment, UserPermissionGrant, SessionToken
from .security import SecurityEvent, SecurityEventType
from .scheduling import Shift, SHIFT_STATUSES
from .timekeeping import TimeEntry
from .communications import Message
from .tills import TillVerification

__all__ = [
    'Venue',
    'User', 'VenueAssignment', 'UserPermissionGrant', 'SessionToken',
    'SecurityEvent', 'SecurityEventType',
    'Shift', 'SHIFT_STATUSES',
    'TimeEntry',
    'Message',
    'TillVerification',
]
