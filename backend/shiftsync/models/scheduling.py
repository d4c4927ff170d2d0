from __future__ import annotations

from ..extensions import db
from shiftsync.time_utils import to_utc_z


SHIFT_STATUSES = ("pending", "confirmed", "completed", "cancelled")


class Shift(db.Model):
    """
    A scheduled block of work at a venue, optionally assigned to an employee.

    INVARIANT: end_time > start_time (checked in the service and the database).
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.CheckConstraint("end_time > start_time", name="ck_shifts_window"),
        db.Index("ix_shifts_venue_start", "venue_id", "start_time"),
        db.Index("ix_shifts_employee_start", "employee_id", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)

    title = db.Column(db.String(128), nullable=True)

    # pending, confirmed, completed, cancelled
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    venue = db.relationship("Venue", backref=db.backref("shifts", lazy=True))
    employee = db.relationship("User", backref=db.backref("shifts", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "employee_id": self.employee_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "title": self.title,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
