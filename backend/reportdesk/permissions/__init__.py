# Overview: Capability system package.
# Re-exports all public APIs for imports from reportdesk.permissions.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    REPORT_PERMISSIONS,
    ADMIN_PERMISSIONS,
    USER_PERMISSIONS,
    AUDIT_PERMISSIONS,
    DATA_PERMISSIONS,
)
from .roles import (
    Permissions,
    ADMIN,
    MANAGER,
    EMPLOYEE,
    SYSTEM_ROLES,
    SYSTEM_ROLE_DESCRIPTIONS,
    ROLE_TIERS,
    TIER_CAPABILITY,
    DEFAULT_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    is_system_role,
    is_reserved_role_name,
)
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    normalize_permission_key,
    parse_permissions,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "REPORT_PERMISSIONS",
    "ADMIN_PERMISSIONS",
    "USER_PERMISSIONS",
    "AUDIT_PERMISSIONS",
    "DATA_PERMISSIONS",
    "Permissions",
    "ADMIN",
    "MANAGER",
    "EMPLOYEE",
    "SYSTEM_ROLES",
    "SYSTEM_ROLE_DESCRIPTIONS",
    "ROLE_TIERS",
    "TIER_CAPABILITY",
    "DEFAULT_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "is_system_role",
    "is_reserved_role_name",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "normalize_permission_key",
    "parse_permissions",
]
