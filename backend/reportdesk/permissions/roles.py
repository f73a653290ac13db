# Overview: Permissions bag type and the fixed system roles.

from __future__ import annotations

from dataclasses import dataclass, fields, replace


@dataclass(frozen=True)
class Permissions:
    """
    Complete set of boolean capabilities held by one role.

    Defaults match the least-privileged (employee) bag, so a bag built from
    partial input is always complete.
    """
    can_view_reports: bool = True
    can_create_reports: bool = True
    can_edit_reports: bool = False
    can_delete_reports: bool = False
    can_view_all_reports: bool = False
    can_access_admin: bool = False
    can_manage_users: bool = False
    can_view_activity_logs: bool = False
    can_export_data: bool = True
    can_backup_restore: bool = False

    @classmethod
    def capability_codes(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def all_granted(cls) -> "Permissions":
        return cls(**{code: True for code in cls.capability_codes()})

    @classmethod
    def from_mapping(cls, data: dict | None) -> "Permissions":
        """
        Build a bag from stored data. Unknown keys are ignored and
        anything other than a literal True/False falls back to the default.
        """
        bag = cls()
        if not data:
            return bag
        updates = {
            code: data[code]
            for code in cls.capability_codes()
            if isinstance(data.get(code), bool)
        }
        return replace(bag, **updates)

    def allows(self, capability: str) -> bool:
        if capability not in self.capability_codes():
            return False
        return getattr(self, capability) is True

    def granted(self) -> list[str]:
        return [code for code in self.capability_codes() if getattr(self, code)]

    def to_dict(self) -> dict:
        return {code: getattr(self, code) for code in self.capability_codes()}


ADMIN = "admin"
MANAGER = "manager"
EMPLOYEE = "employee"

SYSTEM_ROLES = (ADMIN, MANAGER, EMPLOYEE)

SYSTEM_ROLE_DESCRIPTIONS = {
    ADMIN: "Full system access",
    MANAGER: "Reports, analytics and activity logs; no deletes or user management",
    EMPLOYEE: "Create and view own reports",
}

# Legacy hierarchical tiers
ROLE_TIERS = {
    ADMIN: 3,
    MANAGER: 2,
    EMPLOYEE: 1,
}

# Capability that stands in for a tier when the user holds a custom role
TIER_CAPABILITY = {
    ADMIN: "can_manage_users",
    MANAGER: "can_access_admin",
    EMPLOYEE: "can_view_reports",
}

DEFAULT_PERMISSIONS = Permissions()

DEFAULT_ROLE_PERMISSIONS = {
    ADMIN: Permissions.all_granted(),
    MANAGER: replace(
        Permissions.all_granted(),
        can_delete_reports=False,
        can_manage_users=False,
        can_backup_restore=False,
    ),
    EMPLOYEE: DEFAULT_PERMISSIONS,
}


def is_system_role(name: str | None) -> bool:
    return isinstance(name, str) and name in DEFAULT_ROLE_PERMISSIONS


def is_reserved_role_name(name: str | None) -> bool:
    return isinstance(name, str) and name.strip().lower() in SYSTEM_ROLES
