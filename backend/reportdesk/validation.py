from __future__ import annotations

import re
from typing import Any, Iterable


USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
ROLE_NAME_RE = re.compile(r"^[A-Za-z0-9_\s]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

USERNAME_MIN, USERNAME_MAX = 3, 30
ROLE_NAME_MIN, ROLE_NAME_MAX = 2, 30
ROLE_DESCRIPTION_MAX = 200
LINE_ITEM_NAME_MAX = 120


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level: referenced report, user or role does not exist."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate role name)."""


def require_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def reject_unknown_fields(payload: dict, allowed: Iterable[str]) -> None:
    allowed = set(allowed)
    unknown = sorted(k for k in payload.keys() if k not in allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")


def clean_string(value: Any, field: str, *, max_length: int | None = None, required: bool = True) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if not value:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return value


def validate_username(username: Any) -> str:
    username = clean_string(username, "username")
    if len(username) < USERNAME_MIN:
        raise ValidationError(f"Username must be at least {USERNAME_MIN} characters")
    if len(username) > USERNAME_MAX:
        raise ValidationError(f"Username must not exceed {USERNAME_MAX} characters")
    if not USERNAME_RE.match(username):
        raise ValidationError("Username can only contain letters, numbers, and underscores")
    return username


def validate_email(email: Any) -> str | None:
    email = clean_string(email, "email", max_length=255, required=False)
    if email is not None and not EMAIL_RE.match(email):
        raise ValidationError("Valid email is required")
    return email


def validate_role_name(name: Any) -> str:
    name = clean_string(name, "name")
    # Collapse inner whitespace so "Shift  Lead" and "Shift Lead" collide
    name = re.sub(r"\s+", " ", name)
    if len(name) < ROLE_NAME_MIN:
        raise ValidationError(f"Role name must be at least {ROLE_NAME_MIN} characters")
    if len(name) > ROLE_NAME_MAX:
        raise ValidationError(f"Role name must not exceed {ROLE_NAME_MAX} characters")
    if not ROLE_NAME_RE.match(name):
        raise ValidationError("Role name can only contain letters, numbers, spaces, and underscores")
    return name


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field} must be a boolean")


def parse_limit(value: Any, default: int, maximum: int) -> int:
    if value in (None, ""):
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return min(limit, maximum)
