# Overview: Service-layer operations for roles and capabilities; resolver, authorization gate and custom-role management.

"""
Role Resolution and Capability Checks

WHY: Every role (system or custom) maps to exactly one complete Permissions
bag. Authorization is a lookup in that bag.

DESIGN PRINCIPLES:
- Resolver functions never raise: unknown roles resolve to the employee bag,
  unknown capabilities resolve to False.
- System roles (admin, manager, employee) are constants and never stored.
- Custom roles are matched by case-insensitive exact name.
- The legacy tier check (has_role) is kept for compatibility only; routes
  authorize by capability.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from sqlalchemy import func

from ..extensions import db
from ..models import CustomRole, User
from ..permissions import (
    DEFAULT_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    ROLE_TIERS,
    SYSTEM_ROLE_DESCRIPTIONS,
    SYSTEM_ROLES,
    TIER_CAPABILITY,
    Permissions,
    is_reserved_role_name,
    is_system_role,
    normalize_permission_key,
    parse_permissions,
)
from ..time_utils import utcnow
from . import session_service
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    ROLE_DESCRIPTION_MAX,
    clean_string,
    validate_role_name,
)


@dataclass(frozen=True)
class SystemRole:
    name: str
    tier: int


@dataclass(frozen=True)
class CustomRoleRef:
    id: int
    name: str


@dataclass(frozen=True)
class ResolvedRole:
    """
    A role name resolved to its source and concrete permissions bag.

    source is None when the name matched nothing and the employee
    fallback was applied.
    """
    requested_name: str
    source: Union[SystemRole, CustomRoleRef, None]
    permissions: Permissions

    @property
    def kind(self) -> str:
        if isinstance(self.source, SystemRole):
            return "system"
        if isinstance(self.source, CustomRoleRef):
            return "custom"
        return "fallback"

    @property
    def name(self) -> str:
        return self.source.name if self.source is not None else self.requested_name


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as seen by the gate."""
    id: int
    username: str
    role: str
    permissions: Permissions | None = None


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    status: int = 200
    reason: str | None = None


ADMIT = AuthorizationDecision(allowed=True)


# =============================================================================
# RESOLUTION
# =============================================================================

def _role_key(name: str) -> str:
    return " ".join(name.split()).lower()


def find_custom_role(name) -> CustomRole | None:
    """Case-insensitive exact lookup of a stored custom role."""
    if not isinstance(name, str) or not name.strip():
        return None
    return db.session.query(CustomRole).filter_by(name_key=_role_key(name)).first()


def resolve_role(role_name) -> ResolvedRole:
    """
    Resolve a role name to its source and permissions bag.

    1. Reserved system name -> constant bag
    2. Custom role (case-insensitive) -> stored bag
    3. Anything else -> employee bag
    """
    requested = role_name if isinstance(role_name, str) else ""

    if is_system_role(requested):
        return ResolvedRole(
            requested_name=requested,
            source=SystemRole(name=requested, tier=ROLE_TIERS[requested]),
            permissions=DEFAULT_ROLE_PERMISSIONS[requested],
        )

    custom = find_custom_role(requested)
    if custom is not None:
        return ResolvedRole(
            requested_name=requested,
            source=CustomRoleRef(id=custom.id, name=custom.name),
            permissions=custom.permissions,
        )

    return ResolvedRole(requested_name=requested, source=None, permissions=DEFAULT_PERMISSIONS)


def resolve_permissions(role_name) -> Permissions:
    return resolve_role(role_name).permissions


def has_capability(role_name, capability) -> bool:
    """Total and deterministic: any role string, any capability string."""
    if not isinstance(capability, str):
        return False
    return resolve_permissions(role_name).allows(normalize_permission_key(capability))


def has_role(user_role, required_role) -> bool:
    """
    Legacy tier check: admin(3) > manager(2) > employee(1).

    A custom role has no tier; it satisfies the requirement when it holds
    the capability that represents the required tier.
    """
    if not is_system_role(required_role):
        return False

    if is_system_role(user_role):
        return ROLE_TIERS[user_role] >= ROLE_TIERS[required_role]

    if find_custom_role(user_role) is None:
        return False
    return has_capability(user_role, TIER_CAPABILITY[required_role])


def authorize(
    identity: Identity | None,
    required_role: str | None = None,
    required_capability: str | None = None,
) -> AuthorizationDecision:
    """
    Admit or deny a request.

    401 when there is no identity, 403 when the identity lacks the
    capability (or legacy role tier). The identity's cached bag is used
    when present; otherwise the role is resolved now.
    """
    if identity is None:
        return AuthorizationDecision(False, 401, "Authentication required")

    permissions = identity.permissions or resolve_permissions(identity.role)

    if required_capability is not None and not (
        isinstance(required_capability, str)
        and permissions.allows(normalize_permission_key(required_capability))
    ):
        return AuthorizationDecision(False, 403, f"Missing capability: {required_capability}")

    if required_role is not None and not has_role(identity.role, required_role):
        return AuthorizationDecision(False, 403, f"Requires role: {required_role}")

    return ADMIT


def canonical_role_name(role_name) -> str:
    """
    Validate a role name for assignment to a user.

    Returns the stored spelling (lowercase system name or the custom role's
    own name). Raises ValidationError when the role does not exist.
    """
    name = clean_string(role_name, "role")
    if is_reserved_role_name(name):
        return name.lower()
    custom = find_custom_role(name)
    if custom is None:
        raise ValidationError(f"Role '{name}' not found")
    return custom.name


# =============================================================================
# ROLE MANAGEMENT
# =============================================================================

def count_users_with_role(name: str) -> int:
    return db.session.query(User).filter(func.lower(User.role) == _role_key(name)).count()


def _system_role_dict(name: str) -> dict:
    return {
        "id": None,
        "name": name,
        "description": SYSTEM_ROLE_DESCRIPTIONS[name],
        "permissions": DEFAULT_ROLE_PERMISSIONS[name].to_dict(),
        "is_system": True,
        "tier": ROLE_TIERS[name],
        "created_at": None,
        "created_by": None,
    }


def list_roles(include_user_counts: bool = False) -> list[dict]:
    roles = [_system_role_dict(name) for name in SYSTEM_ROLES]
    customs = db.session.query(CustomRole).order_by(CustomRole.name_key).all()
    roles.extend(role.to_dict() for role in customs)

    if include_user_counts:
        for role in roles:
            role["user_count"] = count_users_with_role(role["name"])
    return roles


def get_custom_role(role_id: int) -> CustomRole:
    role = db.session.get(CustomRole, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    return role


def get_role(role_name: str) -> dict:
    """Role record by name, system or custom."""
    if is_system_role(role_name):
        return _system_role_dict(role_name)
    custom = find_custom_role(role_name)
    if custom is None:
        raise NotFoundError("Role not found")
    return custom.to_dict()


def _ensure_name_available(name: str, exclude_id: int | None = None) -> None:
    if is_reserved_role_name(name):
        raise ConflictError(f"'{name}' is a reserved system role name")

    existing = db.session.query(CustomRole).filter_by(name_key=_role_key(name)).first()
    if existing is not None and existing.id != exclude_id:
        raise ConflictError(f"Role '{existing.name}' already exists")


def create_custom_role(
    *,
    name,
    permissions=None,
    description=None,
    created_by_user_id: int | None = None,
) -> CustomRole:
    """
    Create a custom role.

    Raises ValidationError on malformed input and ConflictError when the
    name collides with a system role or another custom role.
    """
    name = validate_role_name(name)
    description = clean_string(description, "description", max_length=ROLE_DESCRIPTION_MAX, required=False)
    bag = parse_permissions(permissions)

    _ensure_name_available(name)

    role = CustomRole(
        name=name,
        name_key=_role_key(name),
        description=description,
        created_by_user_id=created_by_user_id,
        created_at=utcnow(),
    )
    role.permissions = bag

    db.session.add(role)
    db.session.commit()
    return role


def update_custom_role(
    role_id: int,
    *,
    name=None,
    description=None,
    permissions=None,
    fields: set[str] | None = None,
) -> CustomRole:
    """
    Update a custom role.

    `fields` lists which keys the caller supplied so that an explicit null
    description clears it. Renaming moves every user holding the old name to
    the new one. Any change to name or bag revokes the sessions of users
    holding the role so their cached permissions are re-resolved.
    """
    role = get_custom_role(role_id)
    fields = fields if fields is not None else {
        k for k, v in (("name", name), ("description", description), ("permissions", permissions)) if v is not None
    }

    old_name = role.name
    affects_sessions = False

    if "name" in fields:
        new_name = validate_role_name(name)
        if _role_key(new_name) != role.name_key:
            _ensure_name_available(new_name, exclude_id=role.id)
        if new_name != role.name:
            db.session.query(User).filter(func.lower(User.role) == role.name_key).update(
                {User.role: new_name}, synchronize_session=False
            )
            role.name = new_name
            role.name_key = _role_key(new_name)
            affects_sessions = True

    if "description" in fields:
        role.description = clean_string(
            description, "description", max_length=ROLE_DESCRIPTION_MAX, required=False
        )

    if "permissions" in fields:
        bag = parse_permissions(permissions, base=role.permissions)
        if bag != role.permissions:
            role.permissions = bag
            affects_sessions = True

    db.session.commit()

    if affects_sessions:
        session_service.revoke_sessions_for_role(old_name, reason="Role updated")
        if role.name != old_name:
            session_service.revoke_sessions_for_role(role.name, reason="Role updated")

    return role


def delete_custom_role(role_id: int) -> dict:
    """
    Delete a custom role.

    Refused with ConflictError while any user references the role; those
    users must be reassigned first.
    """
    role = get_custom_role(role_id)

    assigned = count_users_with_role(role.name)
    if assigned > 0:
        raise ConflictError(
            f"Role '{role.name}' is assigned to {assigned} user(s); reassign them before deleting"
        )

    snapshot = role.to_dict()
    db.session.delete(role)
    db.session.commit()
    return snapshot
