"""
Global test fixtures for Greenpia

Provides an in-memory SQLite database, sessions, household factories and
an authenticated FastAPI test client.
"""

import os
import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

# Must be set before greenpia.api.main loads the config
os.environ['GREENPIA_CONFIG'] = str(ROOT_DIR / 'config' / 'config.yaml')
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SESSION_SECRET'] = 'test-secret'
os.environ['NOTIFY_WEBHOOK_URL'] = ''

from greenpia.database import connection
from greenpia.database.models import Base, Household, LeaderRotationLogic, User


TEST_PASSWORD = 'correct-horse-battery'


@pytest.fixture
def config_dict():
    """Plain config dict as consumed by RotationService / RotationSelector"""
    return {
        'rotation': {
            'fiscal_year_start_month': 4,
            'move_in_grace_months': 12,
            'schedule_span_years': 8,
        }
    }


@pytest.fixture
def engine():
    """
    Fresh in-memory database per test.

    The connection module's singletons are reset so get_db() and
    get_session() use the same StaticPool engine.
    """
    connection.reset_engine()
    test_engine = connection.get_engine()
    Base.metadata.create_all(test_engine)

    yield test_engine

    Base.metadata.drop_all(test_engine)
    connection.reset_engine()


@pytest.fixture
def db_session(engine):
    """
    Session bound to the test database.

    Fixtures commit what they create: API requests share the single
    in-memory connection and would otherwise roll it back on close.
    """
    SessionFactory = connection.get_session_factory()
    session = SessionFactory()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def make_household(db_session):
    """
    Factory for registry rows

    Usage:
        make_household('101', move_in=datetime(2018, 4, 1), history=2)
    """
    def _create(household_id, move_in=None, history=0):
        household = Household(
            household_id=household_id,
            move_in_date=move_in,
            leader_history_count=history,
        )
        db_session.add(household)
        db_session.commit()
        return household

    return _create


@pytest.fixture
def rotation_logic(db_session):
    """Version 1 rotation logic (calculate_next_year refuses to run without one)"""
    logic = LeaderRotationLogic(
        version=1,
        logic={'priority': ['move_in_date', 'household_id'], 'excludeConditions': ['C']},
        reason='initial',
    )
    db_session.add(logic)
    db_session.commit()
    return logic


@pytest.fixture
def make_user(db_session):
    """Factory for password users (cheap bcrypt rounds)"""
    from greenpia.api.auth import hash_password

    def _create(email, role='member', household_id=None, name=None):
        user = User(
            name=name or email.split('@')[0],
            email=email,
            password_hash=hash_password(TEST_PASSWORD, rounds=4),
            login_method='password',
            household_id=household_id,
            role=role,
            last_signed_in=datetime.utcnow(),
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _create


@pytest.fixture
def notifier():
    """Notifier stand-in recording calls (always reports delivery)"""
    from greenpia.notifications import Notifier

    mock = MagicMock(spec=Notifier)
    mock.notify.return_value = True
    return mock


@pytest.fixture
def client(engine, notifier):
    """FastAPI TestClient on the test database with the notifier replaced."""
    from fastapi.testclient import TestClient

    from greenpia.api.main import app
    from greenpia.notifications import get_notifier

    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Log the test client in as `email` (cookie kept by the client)."""
    def _login(email, password=TEST_PASSWORD):
        response = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.text
        return response.json()

    return _login


@pytest.fixture
def admin_client(client, make_user, login):
    """Client logged in as an admin without a household."""
    make_user('admin@example.com', role='admin')
    login('admin@example.com')
    return client
