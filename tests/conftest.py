"""
Pytest configuration and fixtures.
Each test gets an isolated SQLite database in a temporary directory.
"""

import os
from datetime import date, timedelta

import pytest

os.environ['FLASK_ENV'] = 'test'

ORGANIZATION_ID = 1
ADMIN_ID = 1


@pytest.fixture
def app(tmp_path):
    """Create test application with isolated database."""
    from app import create_app
    from database import init_db

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    app.config['DATABASE_PATH'] = str(tmp_path / 'cabinshare_test.db')
    app.config['NOTIFICATION_FUNCTION_URL'] = None

    with app.app_context():
        init_db()
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def login(client, member_id):
    """Mark a member as logged in on the test client session."""
    with client.session_transaction() as session:
        session['_user_id'] = str(member_id)
        session['_fresh'] = True


@pytest.fixture
def organization_id(app):
    return ORGANIZATION_ID


@pytest.fixture
def smith_member(app):
    """Regular member of the Smith family group."""
    from models.member import create_member
    return create_member(ORGANIZATION_ID, 'smith', family_group='Smith')


@pytest.fixture
def jones_member(app):
    """Regular member of the Jones family group."""
    from models.member import create_member
    return create_member(ORGANIZATION_ID, 'jones', family_group='Jones')


@pytest.fixture
def admin_client(client):
    """Client logged in as the seeded administrator."""
    login(client, ADMIN_ID)
    return client


@pytest.fixture
def smith_client(client, smith_member):
    """Client logged in as a Smith family member."""
    login(client, smith_member)
    return client


@pytest.fixture
def make_reservation(app):
    """Factory creating confirmed reservations directly in the store."""
    from models.reservation import create_reservation

    def _make(start_date, end_date, family_group='Smith', status='confirmed', **kwargs):
        return create_reservation(
            organization_id=kwargs.pop('organization_id', ORGANIZATION_ID),
            family_group=family_group,
            start_date=start_date,
            end_date=end_date,
            status=status,
            **kwargs
        )

    return _make


@pytest.fixture
def future_dates():
    """Check-in 30 days from now and check-out 3 nights later (ISO strings)."""
    start = date.today() + timedelta(days=30)
    return start.isoformat(), (start + timedelta(days=3)).isoformat()
