from __future__ import annotations

from ..extensions import db
from ..permissions import Permissions
from ..time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    `role` holds exactly one role name: a system role (admin, manager,
    employee) or the name of a CustomRole. Names that resolve to neither
    fall back to employee capabilities.

    WHY: Every action must be attributable. No shared logins.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(30), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(64), nullable=False, default="employee")

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class CustomRole(db.Model):
    """
    Admin-defined role with an arbitrary, complete permissions bag.

    Names are unique case-insensitively (`name_key` is the lowercased name)
    and may never shadow a system role name. System roles are constants and
    are not stored here.
    """
    __tablename__ = "custom_roles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    name_key = db.Column(db.String(64), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)

    # Complete capability mapping, see Permissions
    permissions_data = db.Column("permissions", db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    @property
    def permissions(self) -> Permissions:
        return Permissions.from_mapping(self.permissions_data)

    @permissions.setter
    def permissions(self, bag: Permissions) -> None:
        self.permissions_data = bag.to_dict()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": self.permissions.to_dict(),
            "is_system": False,
            "created_at": to_utc_z(self.created_at),
            "created_by": self.created_by_user_id,
        }


class SessionToken(db.Model):
    """
    Bearer session token with the holder's resolved role.

    The role name and its permissions bag are resolved once at login and
    stored here; requests authorize against this snapshot. Sessions are
    revoked whenever the snapshot would go stale (role change, role edit,
    deactivation).

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Resolved role snapshot
    role_name = db.Column(db.String(64), nullable=False)
    role_kind = db.Column(db.String(16), nullable=False)  # system | custom | fallback
    permissions_data = db.Column("permissions", db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    @property
    def permissions(self) -> Permissions:
        return Permissions.from_mapping(self.permissions_data)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role_name,
            "role_kind": self.role_kind,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
