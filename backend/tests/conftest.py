"""
Pytest fixtures for ShiftSync backend tests.

Provides the app on in-memory SQLite, a fresh database per test, one user
per role, two venues with shifts, and bearer-header helpers.
"""

import pytest
from datetime import timedelta

from shiftsync import create_app
from shiftsync.extensions import db
from shiftsync.models import User, Venue, Shift, VenueAssignment, UserPermissionGrant
from shiftsync.permissions import Role
from shiftsync.services.auth_service import hash_password
from shiftsync.time_utils import utcnow


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user("name", Role.MANAGER, venues=[v], custom=["view_all_tills"])."""
    def _make(username, role, *, venues=(), custom=(), is_active=True):
        user = User(
            username=username,
            full_name=username.replace("_", " ").title(),
            email=f"{username}@shiftsync.test",
            password_hash=hash_password(PASSWORD),
            role=role.value if isinstance(role, Role) else role,
            is_active=is_active,
            created_at=utcnow(),
        )
        db_session.add(user)
        db_session.flush()

        for venue in venues:
            db_session.add(VenueAssignment(user_id=user.id, venue_id=venue.id, assigned_at=utcnow()))
        for code in custom:
            db_session.add(UserPermissionGrant(
                user_id=user.id,
                permission_code=code,
                granted_at=utcnow(),
                is_active=True,
            ))

        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def venue_a(db_session):
    venue = Venue(name="Harbour Bar", address="1 Quay St", latitude=-33.86, longitude=151.21, created_at=utcnow())
    db_session.add(venue)
    db_session.commit()
    return venue


@pytest.fixture(scope='function')
def venue_b(db_session):
    venue = Venue(name="Hilltop Cafe", address="9 Ridge Rd", created_at=utcnow())
    db_session.add(venue)
    db_session.commit()
    return venue


@pytest.fixture(scope='function')
def owner(make_user):
    return make_user("owner", Role.SUPER_ADMIN)


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin", Role.ADMIN)


@pytest.fixture(scope='function')
def manager(make_user, venue_a):
    """Manager assigned to venue_a only."""
    return make_user("manager", Role.MANAGER, venues=[venue_a])


@pytest.fixture(scope='function')
def supervisor(make_user, venue_a):
    return make_user("supervisor", Role.SUPERVISOR, venues=[venue_a])


@pytest.fixture(scope='function')
def employee(make_user, venue_a):
    return make_user("employee", Role.EMPLOYEE, venues=[venue_a])


@pytest.fixture(scope='function')
def other_employee(make_user, venue_a):
    return make_user("other_employee", Role.EMPLOYEE, venues=[venue_a])


@pytest.fixture(scope='function')
def it_user(make_user):
    return make_user("it_support", Role.IT)


def _shift(db_session, venue, employee):
    start = utcnow().replace(microsecond=0) - timedelta(hours=4)
    shift = Shift(
        venue_id=venue.id,
        employee_id=employee.id,
        start_time=start,
        end_time=start + timedelta(hours=8),
        title="Bar",
        status="confirmed",
        created_at=utcnow(),
    )
    db_session.add(shift)
    db_session.commit()
    return shift


@pytest.fixture(scope='function')
def shift_a(db_session, venue_a, employee):
    """employee's shift at venue_a."""
    return _shift(db_session, venue_a, employee)


@pytest.fixture(scope='function')
def shift_b(db_session, venue_b, employee):
    """employee's shift at venue_b (outside the manager's assignment)."""
    return _shift(db_session, venue_b, employee)


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_for(client):
    """headers_for(user) -> Authorization headers from a real login."""
    def _headers(user):
        token = get_auth_token(client, user.username)
        assert token, f"login failed for {user.username}"
        return auth_headers(token)
    return _headers
