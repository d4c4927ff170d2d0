# Overview: Service-layer operations for shifts; encapsulates business logic and database work.

"""
Shift scheduling.

SECURITY:
- create/update/delete: manage_all_shifts, or manage_venue_shifts for the
  shift's venue (for moves, both the old and the new venue)
- list: view_all_shifts sees every shift; others see their own
- get: own shift, view_all_shifts, or venue access
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import Forbidden, InvalidState, NotFound
from ..models import Shift, User, Venue, TimeEntry, TillVerification
from ..permissions import Permission
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_shift
from . import permission_service
from shiftsync.time_utils import utcnow


SHIFT_POLICY = ModelValidationPolicy(
    writable_fields={"venue_id", "employee_id", "start_time", "end_time", "title", "status", "notes"},
    required_on_create={"venue_id", "start_time", "end_time"},
)


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if shift is None:
        raise NotFound(f"Shift {shift_id} not found")
    return shift


def can_view_shift(user, shift: Shift) -> bool:
    if shift.employee_id == user.id:
        return True
    if permission_service.has_permission(user, Permission.VIEW_ALL_SHIFTS):
        return True
    return permission_service.has_venue_access(user, shift.venue_id)


def get_shift_for(user, shift_id: int) -> Shift:
    shift = get_shift(shift_id)
    if not can_view_shift(user, shift):
        raise Forbidden("You don't have permission to view this shift")
    return shift


def _require_manage(user, venue_id: int) -> None:
    permission_service.require_scoped_permission(user, Permission.MANAGE_VENUE_SHIFTS, venue_id)


def _check_references(patch: dict) -> None:
    if "venue_id" in patch and db.session.get(Venue, patch["venue_id"]) is None:
        raise NotFound(f"Venue {patch['venue_id']} not found")
    employee_id = patch.get("employee_id")
    if employee_id is not None and db.session.get(User, employee_id) is None:
        raise NotFound(f"Employee {employee_id} not found")


def list_shifts(
    user,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    venue_id: int | None = None,
    employee_id: int | None = None,
) -> list[Shift]:
    """
    Overlap semantics for the date window: a shift is included when it
    starts before `end` and ends after `start`.
    """
    query = db.session.query(Shift)

    if not permission_service.has_permission(user, Permission.VIEW_ALL_SHIFTS):
        if employee_id is not None and employee_id != user.id:
            raise Forbidden("You don't have permission to view other employees' shifts")
        query = query.filter(Shift.employee_id == user.id)
    elif employee_id is not None:
        query = query.filter(Shift.employee_id == employee_id)

    if venue_id is not None:
        query = query.filter(Shift.venue_id == venue_id)
    if start is not None:
        query = query.filter(Shift.end_time > start)
    if end is not None:
        query = query.filter(Shift.start_time < end)

    return query.order_by(Shift.start_time, Shift.id).all()


def create_shift(user, payload: dict) -> Shift:
    patch = validate_payload(model=Shift, payload=payload, policy=SHIFT_POLICY, partial=False)
    enforce_rules_shift(patch)
    _check_references(patch)
    _require_manage(user, patch["venue_id"])

    shift = Shift(**patch, created_at=utcnow())
    if shift.status is None:
        shift.status = "pending"

    db.session.add(shift)
    db.session.commit()
    return shift


def update_shift(user, shift_id: int, payload: dict) -> Shift:
    shift = get_shift(shift_id)
    _require_manage(user, shift.venue_id)

    patch = validate_payload(model=Shift, payload=payload, policy=SHIFT_POLICY, partial=True)
    enforce_rules_shift(patch, start_time=shift.start_time, end_time=shift.end_time)
    _check_references(patch)

    if "venue_id" in patch and patch["venue_id"] != shift.venue_id:
        _require_manage(user, patch["venue_id"])

    for key, value in patch.items():
        setattr(shift, key, value)

    db.session.commit()
    return shift


def delete_shift(user, shift_id: int) -> None:
    """Refuses shifts with recorded time entries or till counts."""
    shift = get_shift(shift_id)
    _require_manage(user, shift.venue_id)

    if db.session.query(TimeEntry.id).filter_by(shift_id=shift.id).first():
        raise InvalidState("Shift has time entries and cannot be deleted")
    if db.session.query(TillVerification.id).filter_by(shift_id=shift.id).first():
        raise InvalidState("Shift has till verifications and cannot be deleted")

    db.session.delete(shift)
    db.session.commit()
