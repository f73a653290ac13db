"""
Failed-login throttling.

Unit tests drive LoginThrottle with a fake clock; the API tests exercise
the instance the app factory installs.
"""

from datetime import datetime, timedelta

import pytest

from reportdesk.services.login_throttle_service import EXTENSION_KEY, LoginThrottle


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def throttle(clock):
    return LoginThrottle(clock=clock)


class TestLoginThrottle:

    def test_unknown_user_is_unlocked(self, throttle):
        status = throttle.check("nobody")
        assert not status.locked
        assert status.failed_attempts == 0

    def test_locks_on_fifth_failure(self, throttle):
        for _ in range(4):
            assert not throttle.record_failure("alice").locked
        status = throttle.record_failure("alice")
        assert status.locked
        assert status.seconds_remaining == 30 * 60
        assert throttle.check("alice").locked

    def test_identifier_is_case_insensitive(self, throttle):
        for _ in range(5):
            throttle.record_failure("Alice")
        assert throttle.check(" alice ").locked

    def test_lock_expires(self, throttle, clock):
        for _ in range(5):
            throttle.record_failure("alice")
        clock.advance(minutes=29)
        assert throttle.check("alice").locked
        clock.advance(minutes=2)
        status = throttle.check("alice")
        assert not status.locked
        assert status.failed_attempts == 0

    def test_count_restarts_after_quiet_window(self, throttle, clock):
        for _ in range(4):
            throttle.record_failure("alice")
        clock.advance(minutes=16)
        assert throttle.check("alice").failed_attempts == 0
        status = throttle.record_failure("alice")
        assert not status.locked
        assert status.failed_attempts == 1

    def test_clear(self, throttle):
        for _ in range(3):
            throttle.record_failure("alice")
        throttle.clear("alice")
        assert throttle.check("alice").failed_attempts == 0

    def test_remaining_attempts(self, throttle):
        status = throttle.record_failure("alice")
        assert throttle.remaining_attempts(status) == 4

    def test_stale_entries_are_pruned(self, throttle, clock):
        for name in ("alice", "bob", "carol"):
            throttle.record_failure(name)
        clock.advance(minutes=16)
        throttle.record_failure("dave")
        assert set(throttle._attempts) == {"dave"}

    def test_active_lockout_survives_pruning(self, throttle, clock):
        for _ in range(5):
            throttle.record_failure("alice")
        throttle.record_failure("bob")
        clock.advance(minutes=20)
        throttle.record_failure("carol")
        assert set(throttle._attempts) == {"alice", "carol"}
        assert throttle.check("alice").locked

        clock.advance(minutes=11)
        throttle.record_failure("carol")
        assert set(throttle._attempts) == {"carol"}

    def test_status_dict(self, throttle):
        data = throttle.status("alice")
        assert data["max_attempts"] == 5
        assert data["lockout_duration_minutes"] == 30
        assert data["locked"] is False


class TestLoginLockoutApi:

    def test_lockout_after_repeated_failures(self, client, employee_user):
        for _ in range(4):
            response = client.post('/api/auth/login', json={
                'username': employee_user.username,
                'password': 'WrongPassword1!'
            })
            assert response.status_code == 401

        response = client.post('/api/auth/login', json={
            'username': employee_user.username,
            'password': 'WrongPassword1!'
        })
        assert response.status_code == 429

        # Correct password is refused while locked
        response = client.post('/api/auth/login', json={
            'username': employee_user.username,
            'password': 'Password123!'
        })
        assert response.status_code == 429

    def test_warning_when_few_attempts_remain(self, client, employee_user):
        response = None
        for _ in range(2):
            response = client.post('/api/auth/login', json={
                'username': employee_user.username,
                'password': 'WrongPassword1!'
            })
        assert response.status_code == 401
        assert 'warning' in response.json

    def test_success_clears_failures(self, app, client, employee_user):
        for _ in range(3):
            client.post('/api/auth/login', json={
                'username': employee_user.username,
                'password': 'WrongPassword1!'
            })
        response = client.post('/api/auth/login', json={
            'username': employee_user.username,
            'password': 'Password123!'
        })
        assert response.status_code == 200
        assert app.extensions[EXTENSION_KEY].check(employee_user.username).failed_attempts == 0

    def test_lockout_status_endpoint(self, client, employee_user):
        client.post('/api/auth/login', json={
            'username': employee_user.username,
            'password': 'WrongPassword1!'
        })
        response = client.get(f'/api/auth/lockout-status/{employee_user.username}')
        assert response.status_code == 200
        assert response.json['failed_attempts'] == 1
        assert response.json['locked'] is False

    def test_throttle_is_per_app(self, app, client, employee_user):
        for _ in range(5):
            client.post('/api/auth/login', json={
                'username': employee_user.username,
                'password': 'WrongPassword1!'
            })
        app.extensions[EXTENSION_KEY].reset()
        response = client.post('/api/auth/login', json={
            'username': employee_user.username,
            'password': 'Password123!'
        })
        assert response.status_code == 200
