# Overview: Utility functions for capability lookups and validation.

import re

from ..validation import ValidationError
from .definitions import PERMISSION_DEFINITIONS
from .roles import Permissions


def get_all_permission_codes():
    """Get list of all capability codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all capabilities in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a capability code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    """Check if a capability code is valid."""
    return code in get_all_permission_codes()


def normalize_permission_key(key: str) -> str:
    """Accept camelCase keys ("canViewReports") alongside snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def parse_permissions(payload, base: Permissions | None = None) -> Permissions:
    """
    Validate a client-supplied capability mapping into a complete bag.

    Missing capabilities keep their value from `base` (defaults when None).
    Unknown keys and non-boolean values are rejected.
    """
    if payload is None:
        return base or Permissions()
    if not isinstance(payload, dict):
        raise ValidationError("permissions must be an object")

    values = (base or Permissions()).to_dict()
    for key, value in payload.items():
        code = normalize_permission_key(str(key))
        if not validate_permission_code(code):
            raise ValidationError(f"Unknown permission: {key}")
        if not isinstance(value, bool):
            raise ValidationError(f"Permission {key} must be a boolean")
        values[code] = value
    return Permissions(**values)
