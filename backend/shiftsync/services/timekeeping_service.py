# Overview: Service-layer operations for timekeeping; encapsulates business logic.

"""
Timekeeping Service (Shift-Based)

WHY: Employees clock in/out against a scheduled shift. An entry is closed
exactly once, and only a reviewer with time-management rights for the
shift's venue can mark it verified.

RULES:
- one open entry per employee
- clock-out happens once; the entry must be open
- verify requires a closed entry; one-way
- acting on another employee's entry needs manage_all_time or
  manage_venue_time for the shift's venue
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import Forbidden, InvalidState, NotFound, ValidationError
from ..models import TimeEntry, Shift, User, SecurityEventType
from ..permissions import Permission
from ..validation import parse_coordinates, parse_int
from . import permission_service
from .concurrency import conditional_update
from shiftsync.time_utils import utcnow


def _get_open_entry(employee_id: int) -> TimeEntry | None:
    return db.session.query(TimeEntry).filter(
        TimeEntry.employee_id == employee_id,
        TimeEntry.clock_out_at.is_(None),
    ).first()


def get_entry(entry_id: int) -> TimeEntry:
    entry = db.session.get(TimeEntry, entry_id)
    if entry is None:
        raise NotFound(f"Time entry {entry_id} not found")
    return entry


def _can_manage_time(user, venue_id: int) -> bool:
    return permission_service.has_scoped_permission(user, Permission.MANAGE_VENUE_TIME, venue_id)


def _require_owner_or_manager(user, entry: TimeEntry) -> None:
    if entry.employee_id == user.id:
        return
    if not _can_manage_time(user, entry.shift.venue_id):
        raise Forbidden("Cannot modify another employee's time entry")


def can_view_entry(user, entry: TimeEntry) -> bool:
    if entry.employee_id == user.id:
        return True
    if permission_service.has_permission(user, Permission.VIEW_ALL_TIME):
        return True
    return _can_manage_time(user, entry.shift.venue_id)


def get_entry_for(user, entry_id: int) -> TimeEntry:
    entry = get_entry(entry_id)
    if not can_view_entry(user, entry):
        raise Forbidden("You don't have permission to view this time entry")
    return entry


def clock_in(
    user,
    *,
    shift_id,
    employee_id=None,
    coordinates=None,
    notes: str | None = None,
) -> TimeEntry:
    shift_id = parse_int(shift_id, "shift_id")
    employee_id = user.id if employee_id is None else parse_int(employee_id, "employee_id")
    coords = parse_coordinates(coordinates)

    shift = db.session.get(Shift, shift_id)
    if shift is None:
        raise NotFound(f"Shift {shift_id} not found")
    if employee_id != user.id:
        if db.session.get(User, employee_id) is None:
            raise NotFound(f"Employee {employee_id} not found")
        if not _can_manage_time(user, shift.venue_id):
            raise Forbidden("Cannot clock in another employee")

    if _get_open_entry(employee_id):
        raise InvalidState("Employee is already clocked in")

    entry = TimeEntry(
        employee_id=employee_id,
        shift_id=shift_id,
        clock_in_at=utcnow(),
        notes=notes,
        verified=False,
        created_at=utcnow(),
    )
    if coords is not None:
        entry.clock_in_latitude, entry.clock_in_longitude = coords

    db.session.add(entry)
    db.session.commit()
    return entry


def clock_out(user, entry_id: int, *, coordinates=None) -> TimeEntry:
    entry = get_entry(entry_id)
    _require_owner_or_manager(user, entry)
    coords = parse_coordinates(coordinates)

    if entry.clock_out_at is not None:
        raise InvalidState("Time entry is already clocked out")

    now = utcnow()
    values = {"clock_out_at": now}
    if coords is not None:
        values["clock_out_latitude"], values["clock_out_longitude"] = coords

    changed = conditional_update(
        TimeEntry,
        where=(TimeEntry.id == entry.id, TimeEntry.clock_out_at.is_(None)),
        values=values,
    )
    if changed == 0:
        db.session.rollback()
        raise InvalidState("Time entry is already clocked out")

    db.session.commit()
    return get_entry(entry.id)


def verify_entry(user, entry_id: int) -> TimeEntry:
    """Guard order: permission -> closed -> not-already-verified."""
    entry = get_entry(entry_id)
    if not _can_manage_time(user, entry.shift.venue_id):
        raise Forbidden("Permission denied: manage_venue_time for venue {}".format(entry.shift.venue_id))
    if entry.clock_out_at is None:
        raise InvalidState("Cannot verify a time entry that is still open")
    if entry.verified:
        raise InvalidState("Time entry is already verified")

    changed = conditional_update(
        TimeEntry,
        where=(TimeEntry.id == entry.id, TimeEntry.verified.is_(False)),
        values={"verified": True, "verified_by_user_id": user.id, "verified_at": utcnow()},
    )
    if changed == 0:
        db.session.rollback()
        raise InvalidState("Time entry is already verified")

    db.session.commit()
    verified = get_entry(entry.id)
    db.session.refresh(verified)

    permission_service.log_security_event(
        user_id=user.id,
        venue_id=verified.shift.venue_id,
        event_type=SecurityEventType.TIME_ENTRY_VERIFIED,
        success=True,
        resource=f"time_entry:{verified.id}",
        action=Permission.MANAGE_VENUE_TIME.value,
        reason=f"worked_minutes={verified.worked_minutes}",
    )
    return verified


def update_notes(user, entry_id: int, notes) -> TimeEntry:
    entry = get_entry(entry_id)
    _require_owner_or_manager(user, entry)
    if entry.verified:
        raise InvalidState("Verified time entries cannot be edited")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string")

    entry.notes = notes
    db.session.commit()
    return entry


def list_entries(
    user,
    *,
    employee_id: int | None = None,
    shift_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[TimeEntry]:
    """Without view_all_time a user only sees their own entries."""
    query = db.session.query(TimeEntry)

    if not permission_service.has_permission(user, Permission.VIEW_ALL_TIME):
        if employee_id is not None and employee_id != user.id:
            raise Forbidden("You don't have permission to view other employees' time entries")
        query = query.filter(TimeEntry.employee_id == user.id)
    elif employee_id is not None:
        query = query.filter(TimeEntry.employee_id == employee_id)

    if shift_id is not None:
        query = query.filter(TimeEntry.shift_id == shift_id)
    if start is not None:
        query = query.filter(TimeEntry.clock_in_at >= start)
    if end is not None:
        query = query.filter(TimeEntry.clock_in_at <= end)

    return query.order_by(TimeEntry.clock_in_at.desc(), TimeEntry.id.desc()).limit(500).all()


def get_current_status(user_id: int) -> dict:
    entry = _get_open_entry(user_id)
    return {
        "clocked_in": entry is not None,
        "entry": entry.to_dict() if entry else None,
    }
