# Overview: Capability category constants for grouping related capabilities.


class PermissionCategory:
    """Capability categories for organization and UI display."""
    REPORTS = "REPORTS"
    ADMIN = "ADMIN"
    USERS = "USERS"
    AUDIT = "AUDIT"
    DATA = "DATA"
