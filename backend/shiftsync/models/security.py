from __future__ import annotations

from ..extensions import db
from shiftsync.time_utils import to_utc_z


class SecurityEventType:
    PERMISSION_DENIED = "PERMISSION_DENIED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    USER_CREATED = "USER_CREATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    PERMISSIONS_CHANGED = "PERMISSIONS_CHANGED"
    TILL_VERIFIED = "TILL_VERIFIED"
    TIME_ENTRY_VERIFIED = "TIME_ENTRY_VERIFIED"


class SecurityEvent(db.Model):
    """
    Audit trail of access decisions and sign-offs.

    Denials and failed logins show probing; TILL_VERIFIED and
    TIME_ENTRY_VERIFIED record who countersigned what, with the venue so a
    manager's sign-offs can be reviewed per site.

    Rows are appended only. The retention purge in the CLI is the one
    deletion path.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Null for anonymous callers (failed logins)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)  # "till_verification:3", "/api/users"
    action = db.Column(db.String(64), nullable=True)     # permission tag or HTTP method

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("security_events", lazy=True))
    venue = db.relationship("Venue")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "venue_id": self.venue_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
