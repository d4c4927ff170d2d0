# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shiftsync/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--username owner --email owner@shiftsync.local]
#   Idempotent bootstrap: creates tables and the first super_admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role manager]
#   List all users with role and active status.
# - python -m flask users create --username jdoe --full-name "Jane Doe" --email jane@shiftsync.local --role manager
#   Create a user (prompts if options are omitted).
#
# Permission inspection:
# - python -m flask perms list [--role supervisor] [--category TILLS]
#   List permissions (optionally filtered by role or category).
# - python -m flask perms check jdoe manage_venue_tills [--venue-id 4]
#   Check whether a user has a permission (optionally for a venue).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --days 30
#   Delete expired/revoked sessions older than the window.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .extensions import db
from .errors import ShiftSyncError
from .models import User, SecurityEvent
from .permissions import (
    PERMISSION_DEFINITIONS,
    Role,
    coerce_permission,
    coerce_role,
    get_permission_definition,
    get_permissions_by_category,
    get_role_permission_codes,
)
from .services.auth_service import hash_password, PasswordValidationError
from .services import permission_service
from .services import session_service
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='owner', show_default=True, help='super_admin username')
@click.option('--email', default='owner@shiftsync.local', show_default=True, help='super_admin email')
@click.option('--full-name', default='Venue Owner', show_default=True, help='super_admin display name')
@click.option('--password', default='Password123!', show_default=True, help='super_admin password')
@with_appcontext
def init_system(username, email, full_name, password):
    """
    Initialize ShiftSync: create tables and the first super_admin.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing ShiftSync...")

    db.create_all()
    click.echo("PASS Tables created")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        click.echo(f"WARN  User '{username}' already exists, skipping...")
        return

    try:
        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            role=Role.SUPER_ADMIN.value,
            is_active=True,
            created_at=utcnow(),
        )
        db.session.add(user)
        db.session.commit()
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed for '{username}': {e.message}")
        return

    click.echo(f"PASS Created super_admin: {username} ({email})")
    click.echo("\nSECURITY WARNING: change this password immediately in production!")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@click.option('--venue-id', 'venue_ids', type=int, multiple=True, help='Assigned venue (repeatable)')
@with_appcontext
def create_user_cli(username, full_name, email, password, role, venue_ids):
    """
    Create a new user from the command line.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    if db.session.query(User).filter(db.or_(User.username == username, User.email == email)).first():
        click.echo("FAIL Username or email already exists")
        return

    try:
        user = User(
            username=username,
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            is_active=True,
            created_at=utcnow(),
        )
        db.session.add(user)
        db.session.flush()
        if venue_ids:
            permission_service.set_assigned_venues(user, list(venue_ids), acting_user_id=None)
        db.session.commit()
    except PasswordValidationError as e:
        db.session.rollback()
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except ShiftSyncError as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
    if venue_ids:
        click.echo(f"     Venues: {', '.join(str(v) for v in venue_ids)}")


@users_group.command('list')
@click.option('--role', help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their role and venues."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<12} {'Active':<8} {'Venues'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        venues = ", ".join(str(v) for v in sorted(user.assigned_venue_ids)) or "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<12} {active_str:<8} {venues}")

    click.echo("="*100 + "\n")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Filter by role name')
@click.option('--category', help='Filter by category')
@with_appcontext
def list_permissions_cli(role, category):
    """List all permissions, optionally filtered by role or category."""
    if role:
        if coerce_role(role) is None:
            click.echo(f"FAIL Role '{role}' not found")
            return

        codes = get_role_permission_codes(role)

        click.echo(f"\n{'='*80}")
        click.echo(f"Permissions for role: {role.upper()}")
        click.echo(f"{'='*80}\n")

        click.echo(f"{'Code':<30} {'Name':<35} {'Category'}")
        click.echo("-"*80)

        for code in codes:
            perm = get_permission_definition(code)
            click.echo(f"{perm['code']:<30} {perm['name']:<35} {perm['category']}")

        click.echo(f"\n Total: {len(codes)} permissions\n")
        return

    definitions = get_permissions_by_category(category) if category else PERMISSION_DEFINITIONS
    perms = [
        {"code": p.value, "name": name, "category": cat}
        for p, name, _desc, cat in definitions
    ]

    click.echo(f"\n{'='*80}")
    click.echo(f"Permissions in category: {category}" if category else "All Permissions")
    click.echo(f"{'='*80}\n")

    current_category = None
    for perm in sorted(perms, key=lambda p: (p["category"], p["code"])):
        if perm["category"] != current_category:
            if current_category:
                click.echo("")
            click.echo(f"CATEGORY {perm['category']}")
            click.echo("-"*80)
            current_category = perm["category"]

        click.echo(f"  {perm['code']:<28} {perm['name']}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('check')
@click.argument('username')
@click.argument('permission_code')
@click.option('--venue-id', type=int, help='Check the venue-scoped variant for this venue')
@with_appcontext
def check_permission_cli(username, permission_code, venue_id):
    """Check if a user has a specific permission."""
    user = db.session.query(User).filter_by(username=username).first()

    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    if coerce_permission(permission_code) is None:
        click.echo(f"FAIL Unknown permission '{permission_code}'")
        return

    if venue_id is None:
        allowed = permission_service.has_permission(user, permission_code)
        scope = ""
    else:
        allowed = permission_service.has_scoped_permission(user, permission_code, venue_id)
        scope = f" for venue {venue_id}"

    if allowed:
        click.echo(f"PASS User '{username}' HAS permission '{permission_code}'{scope}")
    else:
        click.echo(f"FAIL User '{username}' DOES NOT HAVE permission '{permission_code}'{scope}")

    access = permission_service.describe_user_permissions(user)
    click.echo(f"\nUser role: {access['role']}")
    click.echo(f"Custom permissions: {', '.join(access['custom_permissions']) or 'none'}")
    click.echo(f"Total permissions: {len(access['permissions'])}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(days):
    """Delete expired or revoked sessions older than the window."""
    deleted = session_service.cleanup_expired_sessions(days=days)
    click.echo(f"Deleted {deleted} sessions older than {days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
