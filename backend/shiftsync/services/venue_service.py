# Overview: Service-layer operations for venues; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..errors import Forbidden, InvalidState, NotFound, ValidationError
from ..models import Venue, Shift
from ..permissions import Permission
from ..validation import ModelValidationPolicy, validate_payload, parse_coordinates
from . import permission_service
from shiftsync.time_utils import utcnow


VENUE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "description"},
    required_on_create={"name", "address"},
)


def get_venue(venue_id: int) -> Venue:
    venue = db.session.get(Venue, venue_id)
    if venue is None:
        raise NotFound(f"Venue {venue_id} not found")
    return venue


def get_venue_for(user, venue_id: int) -> Venue:
    venue = get_venue(venue_id)
    if not permission_service.has_venue_access(user, venue.id):
        raise Forbidden("You don't have access to this venue")
    return venue


def list_venues(user) -> list[Venue]:
    """view_all_venues sees everything; everyone else sees assigned venues."""
    query = db.session.query(Venue)
    if not permission_service.has_permission(user, Permission.VIEW_ALL_VENUES):
        assigned = sorted(user.assigned_venue_ids)
        if not assigned:
            return []
        query = query.filter(Venue.id.in_(assigned))
    return query.order_by(Venue.name).all()


def _split_coordinates(payload: dict) -> tuple[dict, bool, tuple[float, float] | None]:
    payload = dict(payload)
    has_coords = "coordinates" in payload
    coords = parse_coordinates(payload.pop("coordinates", None))
    return payload, has_coords, coords


def create_venue(user, payload: dict) -> Venue:
    permission_service.require_permission(user, Permission.MANAGE_VENUES)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload, _, coords = _split_coordinates(payload)
    patch = validate_payload(model=Venue, payload=payload, policy=VENUE_POLICY, partial=False)

    venue = Venue(**patch, created_at=utcnow())
    if coords is not None:
        venue.latitude, venue.longitude = coords

    db.session.add(venue)
    db.session.commit()
    return venue


def update_venue(user, venue_id: int, payload: dict) -> Venue:
    permission_service.require_permission(user, Permission.MANAGE_VENUES)
    venue = get_venue(venue_id)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload, has_coords, coords = _split_coordinates(payload)
    patch = validate_payload(model=Venue, payload=payload, policy=VENUE_POLICY, partial=True)

    for key, value in patch.items():
        setattr(venue, key, value)
    if has_coords:
        venue.latitude, venue.longitude = coords if coords is not None else (None, None)

    db.session.commit()
    return venue


def delete_venue(user, venue_id: int) -> None:
    """Refuses venues that still have shifts."""
    permission_service.require_permission(user, Permission.MANAGE_VENUES)
    venue = get_venue(venue_id)

    if db.session.query(Shift.id).filter_by(venue_id=venue.id).first():
        raise InvalidState("Venue has shifts and cannot be deleted")

    for assignment in list(venue.assignments):
        db.session.delete(assignment)
    db.session.delete(venue)
    db.session.commit()
