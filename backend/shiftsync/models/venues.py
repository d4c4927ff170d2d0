from __future__ import annotations

from ..extensions import db
from shiftsync.time_utils import to_utc_z


class Venue(db.Model):
    """
    A physical location where shifts are worked.

    Coordinates are optional and used for clock-in geolocation.
    """
    __tablename__ = "venues"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def coordinates(self) -> dict | None:
        if self.latitude is None or self.longitude is None:
            return None
        return {"lat": self.latitude, "lng": self.longitude}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "description": self.description,
            "coordinates": self.coordinates,
            "created_at": to_utc_z(self.created_at),
        }
