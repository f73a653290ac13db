# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and User Management Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (BCRYPT_ROUNDS, default cost factor 12)
- 8 to 100 characters
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Users cannot delete themselves or change their own role
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    parse_bool,
    validate_email,
    validate_username,
)
from . import permission_service, session_service


PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AccountDeactivatedError(Exception):
    """Raised when valid credentials belong to a deactivated account."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < PASSWORD_MIN_LENGTH:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if len(password) > PASSWORD_MAX_LENGTH:
        raise PasswordValidationError("Password must not exceed 100 characters")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r'[^A-Za-z0-9]', password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash the password."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    if not isinstance(password, str) or not isinstance(password_hash, str):
        return False
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_username(username: str) -> User | None:
    return db.session.query(User).filter_by(username=username).first()


def create_user(username, password, email=None, role="employee") -> User:
    """
    Create a user.

    Raises ValidationError for malformed fields or an unknown role,
    PasswordValidationError for weak passwords, and ConflictError when the
    username is taken.
    """
    username = validate_username(username)
    email = validate_email(email)
    role = permission_service.canonical_role_name(role or "employee")

    if get_user_by_username(username) is not None:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
        created_at=utcnow(),
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Check credentials.

    Returns the user on success, None on bad credentials. Raises
    AccountDeactivatedError when the password is right but the account is
    inactive. Updates last_login_at on success.
    """
    user = get_user_by_username(username)
    if user is None or not verify_password(password, user.password_hash):
        return None

    if not user.is_active:
        raise AccountDeactivatedError("Account is deactivated")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def update_user(actor: User, user_id: int, changes: dict) -> tuple[User, dict]:
    """
    Update email, role and/or active flag.

    Returns (user, applied_changes). Changing one's own role is a conflict.
    Role and activation changes revoke the user's sessions.
    """
    user = get_user(user_id)
    applied: dict = {}

    if "email" in changes:
        applied["email"] = validate_email(changes["email"])

    if "role" in changes:
        role = permission_service.canonical_role_name(changes["role"])
        if actor.id == user.id and role != user.role:
            raise ConflictError("Cannot change your own role")
        applied["role"] = role

    if "is_active" in changes:
        applied["is_active"] = parse_bool(changes["is_active"], "is_active")
        if actor.id == user.id and applied["is_active"] is False:
            raise ConflictError("Cannot deactivate your own account")

    if not applied:
        raise ValidationError("At least one field must be provided for update")

    revoke = (
        ("role" in applied and applied["role"] != user.role)
        or ("is_active" in applied and applied["is_active"] is False and user.is_active)
    )

    for key, value in applied.items():
        setattr(user, key, value)
    db.session.commit()

    if revoke:
        session_service.revoke_all_user_sessions(user.id, reason="Role or status changed")

    return user, applied


def delete_user(actor: User, user_id: int) -> dict:
    """Hard-delete a user; returns the deleted record. Deleting one's own account is a conflict."""
    user = get_user(user_id)
    if actor.id == user.id:
        raise ConflictError("Cannot delete your own account")

    snapshot = user.to_dict()
    session_service.delete_user_sessions(user.id)
    db.session.delete(user)
    db.session.commit()
    return snapshot


def change_password(user: User, current_password: str, new_password: str) -> None:
    """
    Replace a user's password after verifying the current one.

    Raises ValidationError on a wrong current password and
    PasswordValidationError on a weak new one.
    """
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.session.commit()


def ensure_admin_user(username: str, password: str, email: str | None = None) -> tuple[User, bool]:
    """
    Create the bootstrap admin when no user with that name exists.

    Returns (user, created). Idempotent.
    """
    existing = get_user_by_username(username)
    if existing is not None:
        return existing, False

    user = create_user(username, password, email=email, role="admin")
    return user, True
