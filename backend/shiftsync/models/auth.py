from __future__ import annotations

from ..extensions import db
from ..permissions import Role
from shiftsync.time_utils import to_utc_z

class User(db.Model):
    """
    User accounts for authentication and attribution.

    WHY: Every action must be attributable. No shared logins.

    DESIGN:
    - role is one of the fixed Role values (validated at the service boundary)
    - custom permission grants are additive to the role defaults
      (UserPermissionGrant rows)
    - venue assignments scope venue-level permissions (VenueAssignment rows)
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "role IN ({})".format(", ".join(f"'{r.value}'" for r in Role)),
            name="ck_users_role",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default=Role.EMPLOYEE.value, index=True)

    profile_picture = db.Column(db.String(512), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.relationship("User", remote_side=[id])

    @property
    def custom_permissions(self) -> frozenset[str]:
        """Active per-user grants, as raw permission codes."""
        return frozenset(g.permission_code for g in self.permission_grants if g.is_active)

    @property
    def assigned_venue_ids(self) -> frozenset[int]:
        return frozenset(a.venue_id for a in self.venue_assignments)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "profile_picture": self.profile_picture,
            "phone": self.phone,
            "assigned_venue_ids": sorted(self.assigned_venue_ids),
            "custom_permissions": sorted(self.custom_permissions),
            "is_active": self.is_active,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class VenueAssignment(db.Model):
    """
    Assignment of a user to a venue.

    WHY: Managers and supervisors hold venue-scoped permissions
    (manage_venue_*); the assignment decides which venues those apply to.
    """
    __tablename__ = "venue_assignments"
    __table_args__ = (
        db.UniqueConstraint("user_id", "venue_id", name="uq_venue_assignments_user_venue"),
        db.Index("ix_venue_assignments_user", "user_id"),
        db.Index("ix_venue_assignments_venue", "venue_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False)
    assigned_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("venue_assignments", lazy=True, cascade="all, delete-orphan"))
    venue = db.relationship("Venue", backref=db.backref("assignments", lazy=True))
    assigned_by = db.relationship("User", foreign_keys=[assigned_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "venue_id": self.venue_id,
            "assigned_by_user_id": self.assigned_by_user_id,
            "assigned_at": to_utc_z(self.assigned_at),
        }


class UserPermissionGrant(db.Model):
    """
    Per-user permission grant, additive to the role defaults.

    DESIGN:
    - permission_code must be a known Permission value (validated on write)
    - grants are soft-revoked (is_active=False) to keep the audit trail
    """
    __tablename__ = "user_permission_grants"
    __table_args__ = (
        db.UniqueConstraint("user_id", "permission_code", name="uq_user_permission_grants"),
        db.Index("ix_user_permission_grants_user", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    permission_code = db.Column(db.String(64), nullable=False, index=True)

    granted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    revoked_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("permission_grants", lazy=True, cascade="all, delete-orphan"))
    granted_by = db.relationship("User", foreign_keys=[granted_by_user_id])
    revoked_by = db.relationship("User", foreign_keys=[revoked_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "permission_code": self.permission_code,
            "granted_by_user_id": self.granted_by_user_id,
            "granted_at": to_utc_z(self.granted_at),
            "is_active": self.is_active,
            "revoked_by_user_id": self.revoked_by_user_id,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session tokens.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts (see Config)
    - Revocable on logout or deactivation
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
