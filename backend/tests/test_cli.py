"""
Tests for the flask CLI groups: system, users, perms, maintenance.
"""

from datetime import timedelta

from shiftsync.cli import (
    check_permission_cli,
    cleanup_security_events_cli,
    create_user_cli,
    init_system,
    list_permissions_cli,
)
from shiftsync.models import User, SecurityEvent
from shiftsync.permissions import Role
from shiftsync.time_utils import utcnow


def test_system_init_creates_super_admin_once(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(init_system, ["--username", "boss", "--email", "boss@shiftsync.test"])
    assert result.exit_code == 0
    assert "Created super_admin: boss" in result.output

    user = db_session.query(User).filter_by(username="boss").one()
    assert user.role == Role.SUPER_ADMIN.value
    assert user.is_active is True

    again = runner.invoke(init_system, ["--username", "boss", "--email", "boss@shiftsync.test"])
    assert "already exists" in again.output
    assert db_session.query(User).filter_by(username="boss").count() == 1


def test_users_create_assigns_venues(app, db_session, venue_a):
    runner = app.test_cli_runner()
    result = runner.invoke(create_user_cli, [
        "--username", "jdoe",
        "--full-name", "Jane Doe",
        "--email", "jane@shiftsync.test",
        "--password", "Password123!",
        "--role", "manager",
        "--venue-id", str(venue_a.id),
    ])
    assert result.exit_code == 0
    assert "Created user: jdoe" in result.output

    user = db_session.query(User).filter_by(username="jdoe").one()
    assert user.role == "manager"
    assert venue_a.id in user.assigned_venue_ids


def test_users_create_rejects_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(create_user_cli, [
        "--username", "weak",
        "--full-name", "Weak Password",
        "--email", "weak@shiftsync.test",
        "--password", "short",
        "--role", "employee",
    ])
    assert "Password validation failed" in result.output
    assert db_session.query(User).filter_by(username="weak").first() is None


def test_perms_check_respects_venue_scope(app, manager, venue_a, venue_b):
    runner = app.test_cli_runner()

    inside = runner.invoke(check_permission_cli, ["manager", "manage_venue_tills", "--venue-id", str(venue_a.id)])
    assert "HAS permission 'manage_venue_tills' for venue" in inside.output

    outside = runner.invoke(check_permission_cli, ["manager", "manage_venue_tills", "--venue-id", str(venue_b.id)])
    assert "DOES NOT HAVE permission" in outside.output

    unknown = runner.invoke(check_permission_cli, ["manager", "fly_the_plane"])
    assert "Unknown permission" in unknown.output


def test_perms_check_it_views_any_venue(app, it_user, venue_b):
    runner = app.test_cli_runner()
    result = runner.invoke(check_permission_cli, ["it_support", "view_all_tills", "--venue-id", str(venue_b.id)])
    assert "HAS permission 'view_all_tills' for venue" in result.output


def test_perms_list_by_role(app):
    runner = app.test_cli_runner()
    result = runner.invoke(list_permissions_cli, ["--role", "employee"])
    assert result.exit_code == 0
    assert "Permissions for role: EMPLOYEE" in result.output

    bad = runner.invoke(list_permissions_cli, ["--role", "pilot"])
    assert "Role 'pilot' not found" in bad.output


def test_cleanup_security_events_keeps_recent(app, db_session, employee):
    db_session.add(SecurityEvent(
        user_id=employee.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        occurred_at=utcnow() - timedelta(days=200),
    ))
    db_session.add(SecurityEvent(
        user_id=employee.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        occurred_at=utcnow(),
    ))
    db_session.commit()

    runner = app.test_cli_runner()
    result = runner.invoke(cleanup_security_events_cli, ["--retention-days", "90"])
    assert "Deleted 1 security events" in result.output
    assert db_session.query(SecurityEvent).count() == 1
