from __future__ import annotations

from ..extensions import db
from shiftsync.time_utils import to_utc_z

class TimeEntry(db.Model):
    """
    Clock-in/clock-out record against a shift.

    LIFECYCLE:
    - Created on clock-in (clock_out_at is NULL while active)
    - clock_out_at set exactly once on clock-out
    - verified flips to True only through a reviewer action

    Optional geolocation is captured separately for clock-in and clock-out.
    """
    __tablename__ = "time_entries"
    __table_args__ = (
        db.Index("ix_time_entries_employee_clock_in", "employee_id", "clock_in_at"),
        db.Index("ix_time_entries_shift", "shift_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False)

    clock_in_at = db.Column(db.DateTime(timezone=True), nullable=False)
    clock_out_at = db.Column(db.DateTime(timezone=True), nullable=True)

    verified = db.Column(db.Boolean, nullable=False, default=False)
    verified_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    clock_in_latitude = db.Column(db.Float, nullable=True)
    clock_in_longitude = db.Column(db.Float, nullable=True)
    clock_out_latitude = db.Column(db.Float, nullable=True)
    clock_out_longitude = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("User", foreign_keys=[employee_id], backref=db.backref("time_entries", lazy=True))
    verified_by = db.relationship("User", foreign_keys=[verified_by_user_id])
    shift = db.relationship("Shift", backref=db.backref("time_entries", lazy=True))

    @property
    def is_active(self) -> bool:
        return self.clock_out_at is None

    @property
    def worked_minutes(self) -> int | None:
        if self.clock_out_at is None:
            return None
        return max(int((self.clock_out_at - self.clock_in_at).total_seconds() // 60), 0)

    def _location(self, lat, lng) -> dict | None:
        if lat is None or lng is None:
            return None
        return {"lat": lat, "lng": lng}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "shift_id": self.shift_id,
            "clock_in_at": to_utc_z(self.clock_in_at),
            "clock_out_at": to_utc_z(self.clock_out_at) if self.clock_out_at else None,
            "worked_minutes": self.worked_minutes,
            "verified": self.verified,
            "verified_by_user_id": self.verified_by_user_id,
            "verified_at": to_utc_z(self.verified_at) if self.verified_at else None,
            "notes": self.notes,
            "coordinates": {
                "clock_in": self._location(self.clock_in_latitude, self.clock_in_longitude),
                "clock_out": self._location(self.clock_out_latitude, self.clock_out_longitude),
            },
            "created_at": to_utc_z(self.created_at),
        }
