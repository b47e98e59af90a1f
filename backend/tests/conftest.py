"""
Pytest fixtures for AnimaID backend tests.

Provides an in-memory database, a controllable clock, seeded roles and
users, and helpers for bearer-token requests.
"""

from datetime import datetime, timedelta

import pytest
from animaid import create_app
from animaid.config import PasswordPolicy
from animaid.extensions import db
from animaid.models import Role, User, UserRole
from animaid.services.auth_service import create_default_roles, get_auth_service, hash_password
from animaid.services import permission_service


BASE_TIME = datetime(2026, 3, 2, 9, 0, 0)

PASSWORD = "Password123"

TEST_POLICY = PasswordPolicy(bcrypt_rounds=4)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def reset(self):
        self.now = BASE_TIME


_clock = FakeClock()


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-signing-secret-with-enough-length-for-hs256',
        'BCRYPT_ROUNDS': 4,
    }, clock=_clock)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def clock():
    """The application clock, reset to BASE_TIME for every test."""
    _clock.reset()
    yield _clock
    _clock.reset()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app, clock):
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
def auth_service(app):
    return get_auth_service()


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles and permissions."""
    create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()
    db_session.commit()


@pytest.fixture(scope='function')
def make_user(db_session, setup_roles):
    """Factory: create a user with the given role names."""
    def _make_user(username, roles=(), password=PASSWORD, is_active=True):
        user = User(
            username=username,
            email=f"{username}@animaid.test",
            full_name=username.title(),
            password_hash=hash_password(password, TEST_POLICY),
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()

        for role_name in roles:
            role = db_session.query(Role).filter_by(name=role_name).first()
            db_session.add(UserRole(user_id=user.id, role_id=role.id))
        db_session.commit()

        return user
    return _make_user


@pytest.fixture(scope='function')
def admin_user(make_user):
    return make_user("admin", roles=["technical_admin"])


@pytest.fixture(scope='function')
def animatore_user(make_user):
    return make_user("mario", roles=["animatore"])


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin", PASSWORD))


@pytest.fixture(scope='function')
def animatore_headers(client, animatore_user):
    return auth_headers(get_auth_token(client, "mario", PASSWORD))


def get_auth_token(client, username: str, password: str) -> str:
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
