from __future__ import annotations

from ..extensions import db
from shiftsync.time_utils import to_utc_z


class Message(db.Model):
    """
    Direct message or announcement.

    A NULL receiver_id marks an announcement broadcast to every user.
    Only senders holding send_mass_messages may create announcements.
    """
    __tablename__ = "messages"
    __table_args__ = (
        db.Index("ix_messages_receiver_read", "receiver_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    sender = db.relationship("User", foreign_keys=[sender_id])
    receiver = db.relationship("User", foreign_keys=[receiver_id])

    @property
    def is_announcement(self) -> bool:
        return self.receiver_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "is_announcement": self.is_announcement,
            "content": self.content,
            "is_read": self.is_read,
            "sent_at": to_utc_z(self.sent_at),
        }
