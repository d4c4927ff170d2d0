# Overview: Service-layer operations for till verification; encapsulates business logic and database work.

"""
Till Reconciliation Engine

WHY: Every end-of-shift till count is compared against the expected register
total, and the result has to be countersigned by someone other than the
counter before it is trusted.

LIFECYCLE:
- create_verification: UNVERIFIED, discrepancy = actual - expected
- edit_verification: UNVERIFIED only; counter or till manager
- verify: UNVERIFIED -> VERIFIED (one-way, terminal)

GUARD ORDER (verify): permission -> not-self -> not-already-verified.
GUARD ORDER (edit):   permission -> not-verified.

CONCURRENCY: both transitions are compare-and-set updates on
"verified_by_user_id IS NULL". Whoever loses the race gets InvalidState.

All amounts are integer cents; floats are rejected at parse time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func

from ..extensions import db
from ..errors import Forbidden, InvalidState, NotFound, ValidationError
from ..models import TillVerification, Shift, User, SecurityEventType
from ..permissions import Permission
from ..validation import parse_cents, parse_int
from . import permission_service
from .concurrency import conditional_update
from shiftsync.time_utils import utcnow


EDITABLE_FIELDS = {"expected_amount_cents", "actual_amount_cents", "notes"}


@dataclass(frozen=True)
class DiscrepancySummary:
    count: int
    verified_count: int
    unverified_count: int
    total_overage_cents: int
    total_shortage_cents: int
    net_discrepancy_cents: int

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "verified_count": self.verified_count,
            "unverified_count": self.unverified_count,
            "total_overage_cents": self.total_overage_cents,
            "total_shortage_cents": self.total_shortage_cents,
            "net_discrepancy_cents": self.net_discrepancy_cents,
        }


def compute_discrepancy(expected_amount_cents: int, actual_amount_cents: int) -> int:
    """Positive = overage, negative = shortage."""
    return actual_amount_cents - expected_amount_cents


def _get_verification(verification_id: int) -> TillVerification:
    verification = db.session.get(TillVerification, verification_id)
    if verification is None:
        raise NotFound(f"Till verification {verification_id} not found")
    return verification


def _resolve(verification) -> TillVerification:
    if isinstance(verification, int) and not isinstance(verification, bool):
        return _get_verification(verification)
    return verification


def _shift_venue_id(shift_id: int) -> int:
    shift = db.session.get(Shift, shift_id)
    if shift is None:
        raise NotFound(f"Shift {shift_id} not found")
    return shift.venue_id


def _can_manage_tills(user, venue_id: int) -> bool:
    # manage_all_tills satisfies the scoped check through the override table
    return permission_service.has_scoped_permission(user, Permission.MANAGE_VENUE_TILLS, venue_id)


def can_view_verification(user, verification) -> bool:
    if verification.employee_id == user.id:
        return True
    if permission_service.has_permission(user, Permission.VIEW_ALL_TILLS):
        return True
    venue_id = _shift_venue_id(verification.shift_id)
    return (
        permission_service.has_permission(user, Permission.MANAGE_VENUE_TILLS)
        and permission_service.has_venue_access(user, venue_id)
    )


# =============================================================================
# TRANSITIONS
# =============================================================================

def create_verification(
    *,
    employee_id: int,
    shift_id: int,
    expected_amount_cents,
    actual_amount_cents,
    notes: str | None = None,
    acting_user=None,
) -> TillVerification:
    """
    Record a till count in the UNVERIFIED state.

    Amounts are validated before anything is looked up, so a negative amount
    fails with ValidationError regardless of the ids supplied.

    When acting_user is given and differs from employee_id, the actor needs
    manage_all_tills or manage_venue_tills for the shift's venue.
    """
    expected = parse_cents(expected_amount_cents, "expected_amount_cents")
    actual = parse_cents(actual_amount_cents, "actual_amount_cents")
    employee_id = parse_int(employee_id, "employee_id")
    shift_id = parse_int(shift_id, "shift_id")

    shift = db.session.get(Shift, shift_id)
    if shift is None:
        raise NotFound(f"Shift {shift_id} not found")
    if db.session.get(User, employee_id) is None:
        raise NotFound(f"Employee {employee_id} not found")

    if acting_user is not None and acting_user.id != employee_id:
        if not _can_manage_tills(acting_user, shift.venue_id):
            raise Forbidden("Cannot record a till count for another employee")

    verification = TillVerification(
        shift_id=shift_id,
        employee_id=employee_id,
        expected_amount_cents=expected,
        actual_amount_cents=actual,
        discrepancy_cents=compute_discrepancy(expected, actual),
        notes=notes,
        verified_by_user_id=None,
        verified_at=None,
        created_at=utcnow(),
    )
    db.session.add(verification)
    db.session.commit()
    return verification


def edit_verification(verification, patch: dict, acting_user) -> TillVerification:
    """
    Edit an UNVERIFIED record. Discrepancy is recomputed from the new amounts.

    Raises:
        Forbidden: actor is neither the counter nor a till manager for the venue
        InvalidState: record is verified (including a verify that won a race)
        ValidationError: patch carries unknown fields or bad amounts
    """
    verification = _resolve(verification)
    venue_id = _shift_venue_id(verification.shift_id)

    is_counter = acting_user.id == verification.employee_id
    if not is_counter and not _can_manage_tills(acting_user, venue_id):
        raise Forbidden("Cannot edit this till verification")

    if verification.verified_by_user_id is not None:
        raise InvalidState("Till verification is already verified and cannot be edited")

    if not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(patch) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    expected = verification.expected_amount_cents
    actual = verification.actual_amount_cents
    if "expected_amount_cents" in patch:
        expected = parse_cents(patch["expected_amount_cents"], "expected_amount_cents")
    if "actual_amount_cents" in patch:
        actual = parse_cents(patch["actual_amount_cents"], "actual_amount_cents")

    values = {
        "expected_amount_cents": expected,
        "actual_amount_cents": actual,
        "discrepancy_cents": compute_discrepancy(expected, actual),
    }
    if "notes" in patch:
        notes = patch["notes"]
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes must be a string")
        values["notes"] = notes

    changed = conditional_update(
        TillVerification,
        where=(
            TillVerification.id == verification.id,
            TillVerification.verified_by_user_id.is_(None),
        ),
        values=values,
    )
    if changed == 0:
        db.session.rollback()
        raise InvalidState("Till verification was verified concurrently and cannot be edited")

    db.session.commit()
    return _get_verification(verification.id)


def verify(verification, verifying_user) -> TillVerification:
    """
    Countersign a till count.

    verified_by_user_id and verified_at are written by one conditional UPDATE,
    so they change together or not at all.

    Raises:
        Forbidden: verifier lacks manage_all_tills / scoped manage_venue_tills
        InvalidState: verifier is the counter, or the record is already verified
    """
    verification = _resolve(verification)
    venue_id = _shift_venue_id(verification.shift_id)

    if not _can_manage_tills(verifying_user, venue_id):
        raise Forbidden("Permission denied: manage_venue_tills for venue {}".format(venue_id))

    if verifying_user.id == verification.employee_id:
        raise InvalidState("You cannot verify your own till count")

    if verification.verified_by_user_id is not None:
        raise InvalidState("Till verification is already verified")

    changed = conditional_update(
        TillVerification,
        where=(
            TillVerification.id == verification.id,
            TillVerification.verified_by_user_id.is_(None),
        ),
        values={
            "verified_by_user_id": verifying_user.id,
            "verified_at": utcnow(),
        },
    )
    if changed == 0:
        db.session.rollback()
        raise InvalidState("Till verification is already verified")

    db.session.commit()
    verified = _get_verification(verification.id)
    db.session.refresh(verified)

    permission_service.log_security_event(
        user_id=verifying_user.id,
        venue_id=venue_id,
        event_type=SecurityEventType.TILL_VERIFIED,
        success=True,
        resource=f"till_verification:{verified.id}",
        action=Permission.MANAGE_VENUE_TILLS.value,
        reason=f"discrepancy_cents={verified.discrepancy_cents}",
    )
    return verified


# =============================================================================
# QUERIES
# =============================================================================

def get_verification_for(user, verification_id: int) -> TillVerification:
    verification = _get_verification(verification_id)
    if not can_view_verification(user, verification):
        raise Forbidden("You don't have permission to view this till verification")
    return verification


def list_verifications(
    user,
    *,
    shift_id: int | None = None,
    employee_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[TillVerification]:
    """
    Visibility:
    - shift filter: own shift, view_all_tills, or manage_venue_tills with venue access
    - employee filter: self or view_all_tills
    - date range alone: view_all_tills
    - no filter: everything with view_all_tills, otherwise own counts
    """
    view_all = permission_service.has_permission(user, Permission.VIEW_ALL_TILLS)
    query = db.session.query(TillVerification)

    if shift_id is not None:
        shift = db.session.get(Shift, shift_id)
        if shift is None:
            raise NotFound(f"Shift {shift_id} not found")
        venue_manager = (
            permission_service.has_permission(user, Permission.MANAGE_VENUE_TILLS)
            and permission_service.has_venue_access(user, shift.venue_id)
        )
        if not (view_all or venue_manager or shift.employee_id == user.id):
            raise Forbidden("You don't have permission to view these till verifications")
        query = query.filter(TillVerification.shift_id == shift_id)
    elif employee_id is not None:
        if employee_id != user.id and not view_all:
            raise Forbidden("You don't have permission to view other employees' till verifications")
        query = query.filter(TillVerification.employee_id == employee_id)
    elif start is not None or end is not None:
        if not view_all:
            raise Forbidden("You don't have permission to view all till verifications")
    elif not view_all:
        query = query.filter(TillVerification.employee_id == user.id)

    if start is not None:
        query = query.filter(TillVerification.created_at >= start)
    if end is not None:
        query = query.filter(TillVerification.created_at <= end)

    return query.order_by(TillVerification.created_at.desc(), TillVerification.id.desc()).all()


def summarize_discrepancies(
    user,
    *,
    venue_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> DiscrepancySummary:
    """
    Aggregate discrepancies, optionally for one venue and a created_at window.

    Organization-wide summaries need view_all_tills; a single venue may also
    be summarized by its till managers.
    """
    if venue_id is None:
        permission_service.require_permission(user, Permission.VIEW_ALL_TILLS)
    elif not (
        permission_service.has_permission(user, Permission.VIEW_ALL_TILLS)
        or _can_manage_tills(user, venue_id)
    ):
        raise Forbidden(f"Permission denied: till summary for venue {venue_id}")

    d = TillVerification.discrepancy_cents
    query = db.session.query(
        func.count(TillVerification.id),
        func.coalesce(func.sum(case((TillVerification.verified_by_user_id.isnot(None), 1), else_=0)), 0),
        func.coalesce(func.sum(case((d > 0, d), else_=0)), 0),
        func.coalesce(func.sum(case((d < 0, d), else_=0)), 0),
    )
    if venue_id is not None:
        query = query.join(Shift, Shift.id == TillVerification.shift_id).filter(Shift.venue_id == venue_id)
    if start is not None:
        query = query.filter(TillVerification.created_at >= start)
    if end is not None:
        query = query.filter(TillVerification.created_at <= end)

    count, verified, overage, shortage = query.one()
    count, verified, overage, shortage = int(count), int(verified), int(overage), int(shortage)

    return DiscrepancySummary(
        count=count,
        verified_count=verified,
        unverified_count=count - verified,
        total_overage_cents=overage,
        total_shortage_cents=-shortage,
        net_discrepancy_cents=overage + shortage,
    )
