"""
Pytest fixtures for timebank backend tests.

Provides an in-memory database, employee factories for each role and
authenticated test-client headers.
"""

from datetime import datetime

import pytest

from timebank import create_app
from timebank.extensions import db
from timebank.models import Employee, ROLE_ADMIN, ROLE_MANAGER, ROLE_EMPLOYEE
from timebank.services.access_service import resolve_scope
from timebank.services.auth_service import hash_password


PASSWORD = "Password123"

WEEKDAY_SCHEDULE = {
    "monday": {"start_time": "09:00", "end_time": "18:00"},
    "tuesday": {"start_time": "09:00", "end_time": "18:00"},
    "wednesday": {"start_time": "09:00", "end_time": "18:00"},
    "thursday": {"start_time": "09:00", "end_time": "18:00"},
    "friday": {"start_time": "09:00", "end_time": "18:00"},
    "saturday": None,
    "sunday": None,
}

# 2026-10-19 is a Monday
MONDAY = datetime(2026, 10, 19)


def at(day: datetime, hhmm: str) -> datetime:
    hour, minute = hhmm.split(":")
    return day.replace(hour=int(hour), minute=int(minute), second=0, microsecond=0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TIMEZONE': 'UTC',
        'MAIL_ENABLED': False,
        'LATE_ARRIVAL_POLICY': 'flag',
        'ENFORCE_EARLIEST_ENTRY': False,
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
        app.config.update(LATE_ARRIVAL_POLICY='flag', ENFORCE_EARLIEST_ENTRY=False, MAIL_ENABLED=False)
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def make_employee(db_session, password_hash):
    counter = {"n": 0}

    def _make(role=ROLE_EMPLOYEE, department="Ops", **overrides):
        counter["n"] += 1
        fields = {
            "name": f"{role.title()} {counter['n']}",
            "email": f"{role}{counter['n']}@timebank.test",
            "password_hash": password_hash,
            "role": role,
            "department": department,
            "work_schedule": dict(WEEKDAY_SCHEDULE),
            "lunch_break_hours": 1.0,
            "late_tolerance": 10,
            "is_active": True,
        }
        fields.update(overrides)
        employee = Employee(**fields)
        db_session.add(employee)
        db_session.commit()
        return employee

    return _make


@pytest.fixture(scope='function')
def admin(make_employee):
    return make_employee(ROLE_ADMIN, department="HR")


@pytest.fixture(scope='function')
def manager(make_employee):
    return make_employee(ROLE_MANAGER, department="Ops")


@pytest.fixture(scope='function')
def employee(make_employee):
    return make_employee(ROLE_EMPLOYEE, department="Ops")


@pytest.fixture(scope='function')
def outsider(make_employee):
    """Employee in a department the manager does not run."""
    return make_employee(ROLE_EMPLOYEE, department="Sales")


def scope_of(employee):
    return resolve_scope(employee)


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for an employee."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def login(client):
    def _login(employee):
        return auth_headers(get_auth_token(client, employee.email))
    return _login
