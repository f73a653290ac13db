"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts.
After too many failures, the username is temporarily locked.

LIFECYCLE: One LoginThrottle is created per application in create_app()
(init_app) and stored in app.extensions; handlers reach it through
get_login_throttle(). Nothing lives at module level.

POLICY (defaults, overridable in config):
- LOGIN_MAX_ATTEMPTS failures within LOGIN_WINDOW_MINUTES lock the username
- Lockout lasts LOGIN_LOCKOUT_MINUTES
- A failure after a quiet window restarts the count at 1
- A successful login clears the record
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from flask import current_app

from ..time_utils import utcnow


EXTENSION_KEY = "login_throttle"


@dataclass
class _AttemptRecord:
    count: int
    last_attempt: datetime
    locked_until: datetime | None = None


@dataclass(frozen=True)
class LockoutStatus:
    locked: bool
    failed_attempts: int
    seconds_remaining: int | None = None


class LoginThrottle:
    """In-process failed-login tracker keyed by username."""

    def __init__(
        self,
        max_attempts: int = 5,
        window: timedelta = timedelta(minutes=15),
        lockout: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_attempts = max_attempts
        self.window = window
        self.lockout = lockout
        self._clock = clock
        self._attempts: dict[str, _AttemptRecord] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(identifier: str) -> str:
        return identifier.strip().lower()

    def _prune(self, now: datetime) -> None:
        """Drop records with no live lockout and no failure inside the window. Caller holds the lock."""
        stale = [
            key for key, record in self._attempts.items()
            if (record.locked_until is None or record.locked_until <= now)
            and now - record.last_attempt > self.window
        ]
        for key in stale:
            del self._attempts[key]

    def check(self, identifier: str) -> LockoutStatus:
        """Lockout state for a username; expired lockouts are cleared."""
        key = self._key(identifier)
        now = self._clock()
        with self._lock:
            record = self._attempts.get(key)
            if record is None:
                return LockoutStatus(locked=False, failed_attempts=0)

            if record.locked_until is not None:
                if record.locked_until > now:
                    remaining = int((record.locked_until - now).total_seconds())
                    return LockoutStatus(True, record.count, max(remaining, 1))
                del self._attempts[key]
                return LockoutStatus(locked=False, failed_attempts=0)

            if now - record.last_attempt > self.window:
                return LockoutStatus(locked=False, failed_attempts=0)
            return LockoutStatus(locked=False, failed_attempts=record.count)

    def record_failure(self, identifier: str) -> LockoutStatus:
        """Count a failed attempt; locks the username once the limit is reached."""
        key = self._key(identifier)
        now = self._clock()
        with self._lock:
            self._prune(now)
            record = self._attempts.get(key)
            if record is None or now - record.last_attempt > self.window:
                record = _AttemptRecord(count=1, last_attempt=now)
            else:
                record.count += 1
                record.last_attempt = now

            if record.count >= self.max_attempts:
                record.locked_until = now + self.lockout

            self._attempts[key] = record

            if record.locked_until is not None:
                return LockoutStatus(True, record.count, int(self.lockout.total_seconds()))
            return LockoutStatus(False, record.count)

    def clear(self, identifier: str) -> None:
        with self._lock:
            self._attempts.pop(self._key(identifier), None)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()

    def remaining_attempts(self, status: LockoutStatus) -> int:
        return max(self.max_attempts - status.failed_attempts, 0)

    def status(self, identifier: str) -> dict:
        state = self.check(identifier)
        return {
            "locked": state.locked,
            "failed_attempts": state.failed_attempts,
            "max_attempts": self.max_attempts,
            "seconds_until_unlock": state.seconds_remaining,
            "lockout_window_minutes": int(self.window.total_seconds() / 60),
            "lockout_duration_minutes": int(self.lockout.total_seconds() / 60),
        }


def init_app(app) -> LoginThrottle:
    throttle = LoginThrottle(
        max_attempts=app.config.get("LOGIN_MAX_ATTEMPTS", 5),
        window=timedelta(minutes=app.config.get("LOGIN_WINDOW_MINUTES", 15)),
        lockout=timedelta(minutes=app.config.get("LOGIN_LOCKOUT_MINUTES", 30)),
    )
    app.extensions[EXTENSION_KEY] = throttle
    return throttle


def get_login_throttle() -> LoginThrottle:
    return current_app.extensions[EXTENSION_KEY]
