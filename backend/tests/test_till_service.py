"""
Till reconciliation engine tests.

Verifies:
- discrepancy = actual - expected, records start unverified
- negative / non-integer amounts rejected with nothing persisted
- verify guard order: permission -> not-self -> not-already-verified
- verified records are immutable
- a verify that loses a race observes InvalidState
"""

from types import SimpleNamespace

import pytest

from shiftsync.errors import Forbidden, InvalidState, NotFound, ValidationError
from shiftsync.models import TillVerification, SecurityEvent
from shiftsync.permissions import Role
from shiftsync.services import till_service


def _count(db_session):
    return db_session.query(TillVerification).count()


def _create(employee, shift, expected=10000, actual=10000, **kwargs):
    return till_service.create_verification(
        employee_id=employee.id,
        shift_id=shift.id,
        expected_amount_cents=expected,
        actual_amount_cents=actual,
        **kwargs,
    )


# =============================================================================
# CREATE
# =============================================================================


class TestCreateVerification:

    @pytest.mark.parametrize(
        "expected,actual",
        [(0, 0), (10000, 10000), (10000, 10250), (10000, 9875), (0, 500), (500, 0), (999_999_999, 0)],
    )
    def test_discrepancy_is_actual_minus_expected(self, db_session, employee, shift_a, expected, actual):
        verification = _create(employee, shift_a, expected, actual)

        assert verification.discrepancy_cents == actual - expected
        assert verification.verified_by_user_id is None
        assert verification.verified_at is None
        assert verification.status == "unverified"

    def test_scenario_d_negative_amount_rejected(self, db_session):
        # Ids need not exist: amounts are validated first
        with pytest.raises(InvalidState) as exc:
            till_service.create_verification(
                employee_id=1,
                shift_id=10,
                expected_amount_cents=-5,
                actual_amount_cents=100,
                notes=None,
            )
        assert isinstance(exc.value, ValidationError)
        assert exc.value.kind == "InvalidState"
        assert _count(db_session) == 0

    @pytest.mark.parametrize("bad", [12.5, "12.50", "1e3", True, None, "abc"])
    def test_non_integer_amount_rejected(self, db_session, employee, shift_a, bad):
        with pytest.raises(ValidationError):
            _create(employee, shift_a, expected=bad)
        assert _count(db_session) == 0

    def test_unknown_shift(self, db_session, employee):
        with pytest.raises(NotFound):
            till_service.create_verification(
                employee_id=employee.id,
                shift_id=9999,
                expected_amount_cents=100,
                actual_amount_cents=100,
            )

    def test_unknown_employee(self, db_session, shift_a):
        with pytest.raises(NotFound):
            till_service.create_verification(
                employee_id=9999,
                shift_id=shift_a.id,
                expected_amount_cents=100,
                actual_amount_cents=100,
            )

    def test_employee_cannot_record_for_someone_else(self, db_session, employee, other_employee, shift_a):
        with pytest.raises(Forbidden):
            _create(employee, shift_a, acting_user=other_employee)
        assert _count(db_session) == 0

    def test_manager_can_record_for_employee_at_own_venue(self, db_session, manager, employee, shift_a):
        verification = _create(employee, shift_a, acting_user=manager)
        # Recording on someone's behalf does not verify it
        assert verification.verified_by_user_id is None

    def test_manager_cannot_record_at_other_venue(self, db_session, manager, employee, shift_b):
        with pytest.raises(Forbidden):
            _create(employee, shift_b, acting_user=manager)


# =============================================================================
# EDIT
# =============================================================================


class TestEditVerification:

    def test_scenario_a_employee_edits_own_unverified(self, db_session, employee, shift_a):
        verification = _create(employee, shift_a, 10000, 10000)

        edited = till_service.edit_verification(
            verification, {"actual_amount_cents": 9500, "notes": "recount"}, employee,
        )

        assert edited.actual_amount_cents == 9500
        assert edited.discrepancy_cents == -500
        assert edited.notes == "recount"
        assert edited.verified_by_user_id is None

    def test_edit_recomputes_from_both_amounts(self, db_session, manager, employee, shift_a):
        verification = _create(employee, shift_a, 10000, 10000)
        edited = till_service.edit_verification(
            verification.id, {"expected_amount_cents": 12000, "actual_amount_cents": 12500}, manager,
        )
        assert edited.discrepancy_cents == 500

    def test_other_employee_cannot_edit(self, db_session, employee, other_employee, shift_a):
        verification = _create(employee, shift_a)
        with pytest.raises(Forbidden):
            till_service.edit_verification(verification, {"notes": "mine now"}, other_employee)

    def test_manager_at_other_venue_cannot_edit(self, db_session, manager, employee, shift_b):
        verification = _create(employee, shift_b)
        with pytest.raises(Forbidden):
            till_service.edit_verification(verification, {"notes": "x"}, manager)

    def test_negative_amount_on_edit_rejected(self, db_session, employee, shift_a):
        verification = _create(employee, shift_a, 100, 100)
        with pytest.raises(ValidationError):
            till_service.edit_verification(verification, {"actual_amount_cents": -1}, employee)
        assert db_session.get(TillVerification, verification.id).actual_amount_cents == 100

    def test_unknown_field_rejected(self, db_session, employee, shift_a):
        verification = _create(employee, shift_a)
        with pytest.raises(ValidationError):
            till_service.edit_verification(verification, {"verified_by_user_id": 1}, employee)


# =============================================================================
# VERIFY
# =============================================================================


class TestVerify:

    def test_scenario_c_manager_verifies_at_assigned_venue(self, db_session, manager, employee, shift_a):
        verification = _create(employee, shift_a, 10000, 9900)

        verified = till_service.verify(verification, manager)

        assert verified.verified_by_user_id == manager.id
        assert verified.verified_at is not None
        assert verified.status == "verified"
        assert verified.discrepancy_cents == -100

    def test_scenario_c_manager_at_unassigned_venue_forbidden(self, db_session, manager, employee, shift_b):
        verification = _create(employee, shift_b)

        with pytest.raises(Forbidden):
            till_service.verify(verification, manager)

        assert db_session.get(TillVerification, verification.id).verified_by_user_id is None

    def test_scenario_b_employee_without_permission_gets_forbidden(self, db_session, employee, shift_a):
        verification = _create(employee, shift_a)
        # Permission check runs before the self-verification check
        with pytest.raises(Forbidden):
            till_service.verify(verification, employee)

    def test_self_verify_rejected_even_with_permission(self, db_session, make_user, venue_a, shift_a):
        # A manager counting their own till at their own venue
        counter = make_user("counting_manager", Role.MANAGER, venues=[venue_a])
        verification = till_service.create_verification(
            employee_id=counter.id,
            shift_id=shift_a.id,
            expected_amount_cents=100,
            actual_amount_cents=100,
        )

        with pytest.raises(InvalidState) as exc:
            till_service.verify(verification, counter)
        assert not isinstance(exc.value, ValidationError)

    def test_self_verify_rejected_for_super_admin(self, db_session, owner, shift_a):
        verification = till_service.create_verification(
            employee_id=owner.id,
            shift_id=shift_a.id,
            expected_amount_cents=100,
            actual_amount_cents=100,
        )
        with pytest.raises(InvalidState):
            till_service.verify(verification, owner)

    def test_employee_with_custom_grant_still_cannot_self_verify(self, db_session, make_user, venue_a, shift_a):
        counter = make_user("granted_employee", Role.EMPLOYEE, venues=[venue_a], custom=["manage_all_tills"])
        verification = till_service.create_verification(
            employee_id=counter.id,
            shift_id=shift_a.id,
            expected_amount_cents=100,
            actual_amount_cents=100,
        )
        with pytest.raises(InvalidState):
            till_service.verify(verification, counter)

    def test_supervisor_verifies_at_assigned_venue(self, db_session, supervisor, employee, shift_a):
        verified = till_service.verify(_create(employee, shift_a), supervisor)
        assert verified.verified_by_user_id == supervisor.id

    def test_admin_verifies_anywhere(self, db_session, admin, employee, shift_b):
        verified = till_service.verify(_create(employee, shift_b), admin)
        assert verified.verified_by_user_id == admin.id

    def test_it_cannot_verify(self, db_session, it_user, employee, shift_a):
        with pytest.raises(Forbidden):
            till_service.verify(_create(employee, shift_a), it_user)

    def test_verify_logs_security_event(self, db_session, manager, employee, shift_a):
        verification = till_service.verify(_create(employee, shift_a), manager)
        event = db_session.query(SecurityEvent).filter_by(event_type="TILL_VERIFIED").one()
        assert event.user_id == manager.id
        assert event.resource == f"till_verification:{verification.id}"

    def test_verify_by_id(self, db_session, manager, employee, shift_a):
        verification = _create(employee, shift_a)
        assert till_service.verify(verification.id, manager).verified_by_user_id == manager.id

    def test_verify_unknown_id(self, db_session, manager):
        with pytest.raises(NotFound):
            till_service.verify(424242, manager)


# =============================================================================
# IMMUTABILITY AFTER VERIFY
# =============================================================================


class TestVerifiedIsTerminal:

    def test_second_verify_rejected(self, db_session, manager, admin, employee, shift_a):
        verification = till_service.verify(_create(employee, shift_a), manager)

        with pytest.raises(InvalidState):
            till_service.verify(verification, admin)

        assert db_session.get(TillVerification, verification.id).verified_by_user_id == manager.id

    def test_counter_cannot_edit_after_verify(self, db_session, manager, employee, shift_a):
        verification = till_service.verify(_create(employee, shift_a, 100, 90), manager)

        with pytest.raises(InvalidState):
            till_service.edit_verification(verification, {"actual_amount_cents": 100}, employee)

        reloaded = db_session.get(TillVerification, verification.id)
        assert reloaded.actual_amount_cents == 90
        assert reloaded.discrepancy_cents == -10

    def test_admin_cannot_edit_after_verify(self, db_session, manager, admin, employee, shift_a):
        verification = till_service.verify(_create(employee, shift_a), manager)
        with pytest.raises(InvalidState):
            till_service.edit_verification(verification, {"notes": "late fix"}, admin)

    def test_edit_guard_order_forbidden_before_verified(self, db_session, manager, other_employee, employee, shift_a):
        verification = till_service.verify(_create(employee, shift_a), manager)
        with pytest.raises(Forbidden):
            till_service.edit_verification(verification, {"notes": "x"}, other_employee)


# =============================================================================
# CONCURRENCY
# =============================================================================


def _stale_snapshot(verification):
    """What a second request loaded before the first one committed."""
    return SimpleNamespace(
        id=verification.id,
        shift_id=verification.shift_id,
        employee_id=verification.employee_id,
        expected_amount_cents=verification.expected_amount_cents,
        actual_amount_cents=verification.actual_amount_cents,
        verified_by_user_id=None,
    )


class TestConcurrentTransitions:

    def test_losing_verify_gets_invalid_state(self, db_session, manager, admin, employee, shift_a):
        verification = _create(employee, shift_a)
        stale = _stale_snapshot(verification)

        till_service.verify(verification, manager)

        # The loser passed every guard on its stale read; only the
        # conditional update can catch it
        with pytest.raises(InvalidState):
            till_service.verify(stale, admin)

        reloaded = db_session.get(TillVerification, verification.id)
        assert reloaded.verified_by_user_id == manager.id
        assert reloaded.verified_at is not None

    def test_edit_racing_verify_gets_invalid_state(self, db_session, manager, employee, shift_a):
        verification = _create(employee, shift_a, 100, 100)
        stale = _stale_snapshot(verification)

        till_service.verify(verification, manager)

        with pytest.raises(InvalidState):
            till_service.edit_verification(stale, {"actual_amount_cents": 50}, employee)

        reloaded = db_session.get(TillVerification, verification.id)
        assert reloaded.actual_amount_cents == 100
        assert reloaded.discrepancy_cents == 0

    def test_exactly_one_of_two_verifies_succeeds(self, db_session, manager, admin, employee, shift_a):
        verification = _create(employee, shift_a)
        first, second = _stale_snapshot(verification), _stale_snapshot(verification)

        outcomes = []
        for snapshot, verifier in ((first, manager), (second, admin)):
            try:
                till_service.verify(snapshot, verifier)
                outcomes.append("ok")
            except InvalidState:
                outcomes.append("invalid")

        assert sorted(outcomes) == ["invalid", "ok"]


# =============================================================================
# SUMMARY
# =============================================================================


class TestDiscrepancySummary:

    def test_summary_totals(self, db_session, admin, manager, employee, shift_a, shift_b):
        till_service.verify(_create(employee, shift_a, 1000, 1200), manager)  # +200
        _create(employee, shift_a, 1000, 700)                                  # -300
        _create(employee, shift_b, 500, 500)                                   # 0

        summary = till_service.summarize_discrepancies(admin)
        assert summary.count == 3
        assert summary.verified_count == 1
        assert summary.unverified_count == 2
        assert summary.total_overage_cents == 200
        assert summary.total_shortage_cents == 300
        assert summary.net_discrepancy_cents == -100

    def test_summary_by_venue(self, db_session, manager, employee, shift_a, shift_b, venue_a):
        _create(employee, shift_a, 1000, 1100)
        _create(employee, shift_b, 1000, 0)

        summary = till_service.summarize_discrepancies(manager, venue_id=venue_a.id)
        assert summary.count == 1
        assert summary.net_discrepancy_cents == 100

    def test_supervisor_needs_venue(self, db_session, supervisor, venue_a, venue_b):
        assert till_service.summarize_discrepancies(supervisor, venue_id=venue_a.id).count == 0
        with pytest.raises(Forbidden):
            till_service.summarize_discrepancies(supervisor)
        with pytest.raises(Forbidden):
            till_service.summarize_discrepancies(supervisor, venue_id=venue_b.id)

    def test_empty_summary(self, db_session, admin):
        summary = till_service.summarize_discrepancies(admin)
        assert summary.to_dict() == {
            "count": 0,
            "verified_count": 0,
            "unverified_count": 0,
            "total_overage_cents": 0,
            "total_shortage_cents": 0,
            "net_discrepancy_cents": 0,
        }
