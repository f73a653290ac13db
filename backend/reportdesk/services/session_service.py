# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

ROLE SNAPSHOT: The holder's role is resolved once at login and stored on
the session (name, kind, permissions bag). Authenticated requests use the
snapshot instead of resolving the role string again. Anything that would
make a snapshot stale revokes the affected sessions.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout or security events
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import Permissions
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


@dataclass
class SessionContext:
    """Session context returned by validate_session."""
    user: User
    session: SessionToken
    permissions: Permissions


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy), sent to the client only."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 of the token for storage.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user: User,
    resolved_role,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session for `user` carrying its resolved role.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        role_name=resolved_role.name,
        role_kind=resolved_role.kind,
        permissions_data=resolved_role.permissions.to_dict(),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str, now=None) -> None:
    session.is_revoked = True
    session.revoked_at = now or utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is invalid, expired, or revoked
    - User account is deactivated (is_active=False)

    Updates last_used_at on successful validation (activity tracking).
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout", now)
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated", now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, permissions=session.permissions)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke one session. Returns False if no active session matched."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(
    user_id: int,
    reason: str = "Revoke all sessions",
    except_session_id: int | None = None,
) -> int:
    """
    Revoke all active sessions for a user, optionally keeping one.

    Returns count of sessions revoked.
    """
    now = utcnow()
    query = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    )
    if except_session_id is not None:
        query = query.filter(SessionToken.id != except_session_id)
    sessions = query.all()

    for session in sessions:
        _revoke(session, reason, now)

    db.session.commit()
    return len(sessions)


def revoke_sessions_for_role(role_name: str, reason: str = "Role changed") -> int:
    """Revoke active sessions of every user whose role matches role_name (case-insensitive)."""
    key = " ".join(role_name.split()).lower()
    user_ids = [
        row.id for row in db.session.query(User.id).filter(func.lower(User.role) == key).all()
    ]
    if not user_ids:
        return 0

    now = utcnow()
    sessions = db.session.query(SessionToken).filter(
        SessionToken.user_id.in_(user_ids),
        SessionToken.is_revoked.is_(False),
    ).all()

    for session in sessions:
        _revoke(session, reason, now)

    db.session.commit()
    return len(sessions)


def delete_user_sessions(user_id: int) -> int:
    """Remove every session row of a user (used before hard-deleting the user)."""
    deleted = db.session.query(SessionToken).filter_by(user_id=user_id).delete()
    db.session.flush()
    return deleted


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than the retention window.

    Returns count of sessions deleted.
    """
    cutoff = utcnow() - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
