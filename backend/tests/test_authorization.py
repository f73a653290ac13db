"""
Authorization gate tests.

Verifies:
- Every protected route rejects anonymous callers with 401
- Capability checks return 403 with the required permission named
- Custom roles are honored by capability, not by name
- Role changes and deactivation revoke outstanding sessions
"""

import pytest

from conftest import auth_headers, get_auth_token, report_payload


PROTECTED_ENDPOINTS = [
    ("GET", "/api/reports"),
    ("POST", "/api/reports"),
    ("GET", "/api/reports/1"),
    ("PUT", "/api/reports/1"),
    ("DELETE", "/api/reports/1"),
    ("GET", "/api/reports/date/2024-01-05"),
    ("POST", "/api/reports/bulk-restore"),
    ("GET", "/api/reports/backup"),
    ("GET", "/api/analytics/summary"),
    ("POST", "/api/analytics/goal-seek"),
    ("GET", "/api/admin/users"),
    ("POST", "/api/admin/users"),
    ("GET", "/api/admin/roles"),
    ("POST", "/api/admin/roles"),
    ("DELETE", "/api/admin/roles/1"),
    ("GET", "/api/admin/permissions"),
    ("GET", "/api/activity-logs"),
    ("GET", "/api/auth/me"),
    ("POST", "/api/auth/logout"),
]


class TestAuthentication:

    @pytest.mark.parametrize("method,path", PROTECTED_ENDPOINTS)
    def test_no_token_is_401(self, client, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401

    @pytest.mark.parametrize("method,path", PROTECTED_ENDPOINTS[:4])
    def test_bogus_token_is_401(self, client, method, path):
        response = client.open(path, method=method, json={}, headers=auth_headers("not-a-real-token"))
        assert response.status_code == 401

    def test_register_disabled(self, client):
        response = client.post('/api/auth/register', json={'username': 'x', 'password': 'y'})
        assert response.status_code == 403

    def test_logout_revokes_token(self, client, employee_headers):
        assert client.post('/api/auth/logout', headers=employee_headers).status_code == 200
        assert client.get('/api/auth/me', headers=employee_headers).status_code == 401

    def test_me_includes_permissions(self, client, supervisor_headers):
        response = client.get('/api/auth/me', headers=supervisor_headers)
        assert response.status_code == 200
        assert response.json['permissions']['can_delete_reports'] is True
        assert response.json['permissions']['can_manage_users'] is False

    @pytest.mark.parametrize("body", [[1, 2], "admin", {"username": "admin", "password": 123}])
    def test_login_malformed_body(self, client, body):
        response = client.post('/api/auth/login', json=body)
        assert response.status_code == 400
        assert 'error' in response.json

    def test_deactivated_user_cannot_login(self, client, admin_headers, employee_user):
        client.patch(f'/api/admin/users/{employee_user.id}', json={'is_active': False}, headers=admin_headers)
        response = client.post('/api/auth/login', json={
            'username': employee_user.username,
            'password': 'Password123!'
        })
        assert response.status_code == 403


class TestCapabilityGate:

    @pytest.mark.parametrize("method,path,capability", [
        ("GET", "/api/admin/users", "can_manage_users"),
        ("GET", "/api/admin/roles", "can_access_admin"),
        ("GET", "/api/activity-logs", "can_view_activity_logs"),
        ("GET", "/api/reports/backup", "can_backup_restore"),
        ("DELETE", "/api/reports/1", "can_delete_reports"),
        ("PUT", "/api/reports/1", "can_edit_reports"),
    ])
    def test_employee_denied(self, client, employee_headers, method, path, capability):
        response = client.open(path, method=method, json={}, headers=employee_headers)
        assert response.status_code == 403
        assert response.json['required_permission'] == capability

    def test_employee_can_create_and_view(self, client, employee_headers):
        response = client.post('/api/reports', json=report_payload(), headers=employee_headers)
        assert response.status_code == 201
        assert client.get('/api/reports', headers=employee_headers).status_code == 200

    def test_manager_cannot_delete(self, client, manager_headers, employee_headers):
        report_id = client.post('/api/reports', json=report_payload(), headers=employee_headers).json['report']['id']
        response = client.delete(f'/api/reports/{report_id}', headers=manager_headers)
        assert response.status_code == 403

    def test_manager_can_read_admin_but_not_manage_users(self, client, manager_headers):
        assert client.get('/api/admin/roles', headers=manager_headers).status_code == 200
        assert client.get('/api/admin/users', headers=manager_headers).status_code == 403

    def test_supervisor_can_delete(self, client, supervisor_headers, employee_headers):
        report_id = client.post('/api/reports', json=report_payload(), headers=employee_headers).json['report']['id']
        response = client.delete(f'/api/reports/{report_id}', headers=supervisor_headers)
        assert response.status_code == 200

    def test_supervisor_cannot_manage_users(self, client, supervisor_headers):
        response = client.get('/api/admin/users', headers=supervisor_headers)
        assert response.status_code == 403

    def test_admin_allowed_everywhere(self, client, admin_headers):
        for path in ('/api/admin/users', '/api/admin/roles', '/api/activity-logs', '/api/reports/backup'):
            assert client.get(path, headers=admin_headers).status_code == 200


class TestSessionRevocation:

    def test_role_change_revokes_sessions(self, client, admin_headers, employee_user, employee_headers):
        response = client.put(
            f'/api/admin/users/{employee_user.id}',
            json={'role': 'manager'},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert client.get('/api/auth/me', headers=employee_headers).status_code == 401

        # New login picks up the new role
        token = get_auth_token(client, employee_user.username)
        response = client.get('/api/admin/roles', headers=auth_headers(token))
        assert response.status_code == 200

    def test_custom_role_change_revokes_holders(self, client, admin_headers, supervisor_role, supervisor_headers):
        response = client.put(
            f'/api/admin/roles/{supervisor_role.id}',
            json={'permissions': {'can_delete_reports': False}},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert client.get('/api/auth/me', headers=supervisor_headers).status_code == 401

    def test_deactivation_revokes_sessions(self, client, admin_headers, employee_user, employee_headers):
        client.patch(f'/api/admin/users/{employee_user.id}', json={'isActive': False}, headers=admin_headers)
        assert client.get('/api/reports', headers=employee_headers).status_code == 401

    def test_change_password_keeps_current_session_only(self, client, employee_user, employee_headers):
        other_token = get_auth_token(client, employee_user.username)
        response = client.post('/api/auth/change-password', json={
            'current_password': 'Password123!',
            'new_password': 'NewPassword456!'
        }, headers=employee_headers)
        assert response.status_code == 200
        assert client.get('/api/auth/me', headers=employee_headers).status_code == 200
        assert client.get('/api/auth/me', headers=auth_headers(other_token)).status_code == 401

    @pytest.mark.parametrize("body", [
        ["x"],
        {"current_password": 123, "new_password": "NewPassword456!"},
        {"current_password": "Password123!", "new_password": ["NewPassword456!"]},
    ])
    def test_change_password_malformed_body(self, client, employee_headers, body):
        response = client.post('/api/auth/change-password', json=body, headers=employee_headers)
        assert response.status_code == 400
        assert 'error' in response.json

    def test_change_password_wrong_current(self, client, employee_headers):
        response = client.post('/api/auth/change-password', json={
            'currentPassword': 'WrongPassword1!',
            'newPassword': 'NewPassword456!'
        }, headers=employee_headers)
        assert response.status_code == 400

    @pytest.mark.parametrize("new_password", ["short1!", "alllowercase1!", "NoDigitsHere!", "NoSpecial123"])
    def test_weak_new_password(self, client, employee_headers, new_password):
        response = client.post('/api/auth/change-password', json={
            'current_password': 'Password123!',
            'new_password': new_password
        }, headers=employee_headers)
        assert response.status_code == 400
