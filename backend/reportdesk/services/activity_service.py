# Overview: Service-layer operations for the activity log; best-effort writes and filtered reads.

"""
Activity Log

WHY: Append-only trail of who did what. Entries are written after the
primary operation has committed.

BEST EFFORT: A failed log write is rolled back and logged; it never fails
or undoes the operation that triggered it.
"""

from __future__ import annotations

from flask import current_app, g, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog, ACTIVITY_ACTIONS
from ..time_utils import utcnow
from ..validation import ValidationError


def log_activity(
    user_id: int | None,
    username: str,
    action: str,
    resource_type: str | None = None,
    resource_id=None,
    metadata: dict | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ActivityLog | None:
    """
    Append an activity entry. Returns None if the write failed.

    action must be one of ACTIVITY_ACTIONS.
    """
    if action not in ACTIVITY_ACTIONS:
        raise ValueError(f"Unknown activity action: {action}")

    entry = ActivityLog(
        user_id=user_id,
        username=username,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=metadata,
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
        timestamp=utcnow(),
    )

    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to write activity log entry: %s", action)
        return None

    return entry


def log_request_activity(
    action: str,
    resource_type: str | None = None,
    resource_id=None,
    metadata: dict | None = None,
    user=None,
) -> ActivityLog | None:
    """log_activity for the current request's user and client details."""
    user = user or getattr(g, "current_user", None)
    if user is None:
        return None

    ip_address = request.remote_addr if has_request_context() else None
    user_agent = request.headers.get("User-Agent") if has_request_context() else None

    return log_activity(
        user_id=user.id,
        username=user.username,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        metadata=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def list_activity(
    *,
    user_id: int | None = None,
    action: str | None = None,
    limit: int = 100,
) -> list[ActivityLog]:
    """Newest first."""
    if action is not None and action not in ACTIVITY_ACTIONS:
        raise ValidationError(f"Unknown action: {action}")

    query = db.session.query(ActivityLog).order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
    if user_id is not None:
        query = query.filter(ActivityLog.user_id == user_id)
    if action:
        query = query.filter(ActivityLog.action == action)

    return query.limit(limit).all()
