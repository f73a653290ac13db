from .auth import User, CustomRole, SessionToken
from .reports import Report, ReportLineItem
from .activity import ActivityLog, ACTIVITY_ACTIONS

__all__ = [
    'User', 'CustomRole', 'SessionToken',
    'Report', 'ReportLineItem',
    'ActivityLog', 'ACTIVITY_ACTIONS',
]
