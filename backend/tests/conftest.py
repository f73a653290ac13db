"""
Pytest fixtures for ReportDesk backend tests.

Provides a fresh in-memory database per test, user fixtures for each
system role, a custom "Supervisor" role, and bearer-token helpers.
"""

import pytest

from reportdesk import create_app
from reportdesk.config import TestingConfig
from reportdesk.extensions import db
from reportdesk.services import auth_service, permission_service


DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


def make_user(username: str, role: str = "employee", password: str = DEFAULT_PASSWORD, **kwargs):
    return auth_service.create_user(username, password, role=role, **kwargs)


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user("admin_user", role="admin", email="admin@reportdesk.local")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return make_user("manager_user", role="manager")


@pytest.fixture(scope='function')
def employee_user(db_session):
    return make_user("employee_user", role="employee")


@pytest.fixture(scope='function')
def other_employee(db_session):
    return make_user("other_employee", role="employee")


@pytest.fixture(scope='function')
def supervisor_role(db_session, admin_user):
    """Custom role that may delete reports but not manage users."""
    return permission_service.create_custom_role(
        name="Supervisor",
        description="Shift supervisor",
        permissions={
            "can_view_reports": True,
            "can_create_reports": True,
            "can_edit_reports": True,
            "can_delete_reports": True,
            "can_view_all_reports": True,
            "can_manage_users": False,
        },
        created_by_user_id=admin_user.id,
    )


@pytest.fixture(scope='function')
def supervisor_user(db_session, supervisor_role):
    return make_user("supervisor_user", role="Supervisor")


def get_auth_token(client, username: str, password: str = DEFAULT_PASSWORD) -> str:
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


def _headers_for(client, user):
    token = get_auth_token(client, user.username)
    assert token, f"login failed for {user.username}"
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return _headers_for(client, admin_user)


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return _headers_for(client, manager_user)


@pytest.fixture(scope='function')
def employee_headers(client, employee_user):
    return _headers_for(client, employee_user)


@pytest.fixture(scope='function')
def other_employee_headers(client, other_employee):
    return _headers_for(client, other_employee)


@pytest.fixture(scope='function')
def supervisor_headers(client, supervisor_user):
    return _headers_for(client, supervisor_user)


@pytest.fixture(scope='function')
def login(client):
    """Fixture form of get_auth_token returning headers."""
    def _login(username: str, password: str = DEFAULT_PASSWORD):
        token = get_auth_token(client, username, password)
        return auth_headers(token) if token else None
    return _login


def report_payload(date="2024-01-05", services=None, expenses=None, **extra):
    payload = {
        "date": date,
        "services": services if services is not None else [
            {"id": "s1", "name": "Haircut", "amount": 100},
            {"id": "s2", "name": "Coloring", "amount": "50.50"},
        ],
        "expenses": expenses if expenses is not None else [
            {"id": "e1", "name": "Shop rent", "amount": 40},
        ],
    }
    payload.update(extra)
    return payload


@pytest.fixture(scope='function')
def make_report_payload():
    return report_payload
