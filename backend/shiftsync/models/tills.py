from __future__ import annotations

from ..extensions import db
from shiftsync.time_utils import to_utc_z


class TillVerification(db.Model):
    """
    End-of-shift till count: counted cash against the expected register total.

    LIFECYCLE:
    - UNVERIFIED: created by the counting employee; verified_by/verified_at NULL
    - VERIFIED: an authorizer (never the counter) set verified_by and
      verified_at together. Terminal; the record is immutable afterwards.

    All amounts are integer cents. discrepancy_cents = actual - expected
    (positive = overage, negative = shortage).

    CONCURRENCY: transitions are conditional updates on
    "verified_by_user_id IS NULL" (see till_service).
    """
    __tablename__ = "till_verifications"
    __table_args__ = (
        db.CheckConstraint("expected_amount_cents >= 0", name="ck_tills_expected_non_negative"),
        db.CheckConstraint("actual_amount_cents >= 0", name="ck_tills_actual_non_negative"),
        db.CheckConstraint(
            "(verified_by_user_id IS NULL AND verified_at IS NULL)"
            " OR (verified_by_user_id IS NOT NULL AND verified_at IS NOT NULL)",
            name="ck_tills_verified_pair",
        ),
        db.CheckConstraint(
            "verified_by_user_id IS NULL OR verified_by_user_id <> employee_id",
            name="ck_tills_no_self_verify",
        ),
        db.Index("ix_tills_shift", "shift_id"),
        db.Index("ix_tills_employee_created", "employee_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    expected_amount_cents = db.Column(db.Integer, nullable=False)
    actual_amount_cents = db.Column(db.Integer, nullable=False)
    discrepancy_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)

    verified_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    shift = db.relationship("Shift", backref=db.backref("till_verifications", lazy=True))
    employee = db.relationship("User", foreign_keys=[employee_id])
    verified_by = db.relationship("User", foreign_keys=[verified_by_user_id])

    @property
    def is_verified(self) -> bool:
        return self.verified_by_user_id is not None

    @property
    def status(self) -> str:
        return "verified" if self.is_verified else "unverified"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "employee_id": self.employee_id,
            "expected_amount_cents": self.expected_amount_cents,
            "actual_amount_cents": self.actual_amount_cents,
            "discrepancy_cents": self.discrepancy_cents,
            "notes": self.notes,
            "status": self.status,
            "verified_by_user_id": self.verified_by_user_id,
            "verified_at": to_utc_z(self.verified_at) if self.verified_at else None,
            "created_at": to_utc_z(self.created_at),
        }
