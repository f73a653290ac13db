# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "can_view_reports",
        "View Reports",
        "View daily reports (own reports unless view-all is granted)",
        PermissionCategory.REPORTS,
    ),
    (
        "can_create_reports",
        "Create Reports",
        "Create new daily reports",
        PermissionCategory.REPORTS,
    ),
    (
        "can_edit_reports",
        "Edit Reports",
        "Replace the contents of an existing report",
        PermissionCategory.REPORTS,
    ),
    (
        "can_delete_reports",
        "Delete Reports",
        "Permanently delete reports",
        PermissionCategory.REPORTS,
    ),
    (
        "can_view_all_reports",
        "View All Reports",
        "View reports created by any user",
        PermissionCategory.REPORTS,
    ),
]


# -- ADMIN --

ADMIN_PERMISSIONS = [
    (
        "can_access_admin",
        "Access Admin",
        "Open the admin area and list roles",
        PermissionCategory.ADMIN,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "can_manage_users",
        "Manage Users",
        "Create, edit, deactivate and delete users and custom roles",
        PermissionCategory.USERS,
    ),
]


# -- AUDIT --

AUDIT_PERMISSIONS = [
    (
        "can_view_activity_logs",
        "View Activity Logs",
        "Browse the activity log",
        PermissionCategory.AUDIT,
    ),
]


# -- DATA --

DATA_PERMISSIONS = [
    (
        "can_export_data",
        "Export Data",
        "Export reports and analytics",
        PermissionCategory.DATA,
    ),
    (
        "can_backup_restore",
        "Backup & Restore",
        "Download backups and bulk-restore reports",
        PermissionCategory.DATA,
    ),
]


PERMISSION_DEFINITIONS = (
    REPORT_PERMISSIONS
    + ADMIN_PERMISSIONS
    + USER_PERMISSIONS
    + AUDIT_PERMISSIONS
    + DATA_PERMISSIONS
)
