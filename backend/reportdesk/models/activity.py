from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ACTIVITY_ACTIONS = (
    "login",
    "logout",
    "report_created",
    "report_updated",
    "report_deleted",
    "report_viewed",
    "report_exported",
    "report_shared",
    "user_created",
    "user_updated",
    "user_deleted",
    "role_created",
    "role_updated",
    "role_deleted",
)


class ActivityLog(db.Model):
    """
    Activity audit log.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    user_id is kept as a plain value so entries survive user deletion.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_user_action", "user_id", "action"),
        db.Index("ix_activity_logs_timestamp", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, nullable=True, index=True)
    username = db.Column(db.String(30), nullable=False)

    action = db.Column(db.String(32), nullable=False, index=True)
    resource_type = db.Column(db.String(32), nullable=True)
    resource_id = db.Column(db.String(64), nullable=True)
    details = db.Column("metadata", db.JSON, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "metadata": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "timestamp": to_utc_z(self.timestamp),
        }
