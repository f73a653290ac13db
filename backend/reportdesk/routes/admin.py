# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for user and role management.

Provides endpoints for:
- User management (list, get, create, update, delete)
- Role management (system roles listed, custom roles created/edited/deleted)
- Capability definitions and resolved role permissions

All endpoints require authentication and a capability.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User
from ..services import auth_service, permission_service
from ..services.activity_service import log_request_activity
from ..services.auth_service import PasswordValidationError
from ..decorators import require_auth, require_capability
from ..permissions import PERMISSION_DEFINITIONS, get_permission_definition
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    reject_unknown_fields,
    require_object,
)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

USER_CREATE_FIELDS = {"username", "password", "email", "role"}
USER_UPDATE_FIELDS = {"email", "role", "is_active", "isActive"}
ROLE_FIELDS = {"name", "description", "permissions"}


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_capability("can_manage_users")
def list_users():
    """
    List users.

    Query params:
    - include_inactive: bool (default true) - include deactivated users
    - role: str - filter by role name (case-insensitive)
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    role = request.args.get("role")

    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    if role:
        query = query.filter(db.func.lower(User.role) == role.strip().lower())

    users = query.order_by(User.username).all()
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_capability("can_manage_users")
def get_user(user_id: int):
    """Get a user with the permissions its role currently resolves to."""
    try:
        user = auth_service.get_user(user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    user_dict = user.to_dict()
    user_dict["permissions"] = permission_service.resolve_permissions(user.role).to_dict()
    return jsonify({"user": user_dict})


@admin_bp.post("/users")
@require_auth
@require_capability("can_manage_users")
def create_user():
    """
    Create a new user.

    Request body:
    - username: str (required)
    - password: str (required)
    - email: str (optional)
    - role: str (optional, default "employee") - system or custom role name
    """
    try:
        data = require_object(request.get_json(silent=True))
        reject_unknown_fields(data, USER_CREATE_FIELDS)

        user = auth_service.create_user(
            data.get("username"),
            data.get("password"),
            email=data.get("email"),
            role=data.get("role") or "employee",
        )

        log_request_activity("user_created", resource_type="user", resource_id=user.id,
                             metadata={"username": user.username, "role": user.role})

        return jsonify({"user": user.to_dict(), "message": "User created successfully"}), 201

    except (PasswordValidationError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.route("/users/<int:user_id>", methods=["PUT", "PATCH"])
@require_auth
@require_capability("can_manage_users")
def update_user(user_id: int):
    """
    Update user details.

    Request body (at least one):
    - email: str | null
    - role: str - must name a system or custom role
    - is_active: bool - deactivation revokes the user's sessions

    Changing your own role is refused (409).
    """
    try:
        data = require_object(request.get_json(silent=True))
        reject_unknown_fields(data, USER_UPDATE_FIELDS)
        if "isActive" in data and "is_active" not in data:
            data = {**data, "is_active": data["isActive"]}
        data.pop("isActive", None)

        user, applied = auth_service.update_user(g.current_user, user_id, data)

        log_request_activity("user_updated", resource_type="user", resource_id=user.id,
                             metadata={"changes": sorted(applied)})

        return jsonify({"user": user.to_dict(), "message": "User updated successfully"})

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_capability("can_manage_users")
def delete_user(user_id: int):
    """Hard-delete a user. Deleting your own account is refused (409)."""
    try:
        deleted = auth_service.delete_user(g.current_user, user_id)

        log_request_activity("user_deleted", resource_type="user", resource_id=user_id,
                             metadata={"username": deleted["username"]})

        return jsonify({"message": f"User {deleted['username']} deleted"})

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ROLE MANAGEMENT
# =============================================================================

@admin_bp.get("/roles")
@require_auth
@require_capability("can_access_admin")
def list_roles():
    """System roles followed by custom roles, each with its user count."""
    roles = permission_service.list_roles(include_user_counts=True)
    return jsonify({"roles": roles, "count": len(roles)})


@admin_bp.get("/roles/<role_name>")
@require_auth
@require_capability("can_access_admin")
def get_role(role_name: str):
    try:
        role = permission_service.get_role(role_name)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    role["user_count"] = permission_service.count_users_with_role(role["name"])
    return jsonify({"role": role})


@admin_bp.get("/roles/<role_name>/permissions")
@require_auth
@require_capability("can_access_admin")
def get_role_permissions(role_name: str):
    """
    Resolved permissions bag for any role name.

    Unknown names resolve to the employee bag; "resolved_from" says which
    source applied (system, custom or fallback).
    """
    resolved = permission_service.resolve_role(role_name)
    return jsonify({
        "role": resolved.name,
        "resolved_from": resolved.kind,
        "permissions": resolved.permissions.to_dict(),
    })


@admin_bp.post("/roles")
@require_auth
@require_capability("can_manage_users")
def create_role():
    """
    Create a custom role.

    Request body:
    - name: str (required) - 2-30 letters, digits, spaces, underscores
    - description: str (optional, max 200)
    - permissions: {capability: bool} (optional) - missing capabilities take defaults
    """
    try:
        data = require_object(request.get_json(silent=True))
        reject_unknown_fields(data, ROLE_FIELDS)

        role = permission_service.create_custom_role(
            name=data.get("name"),
            description=data.get("description"),
            permissions=data.get("permissions"),
            created_by_user_id=g.current_user.id,
        )

        log_request_activity("role_created", resource_type="role", resource_id=role.id,
                             metadata={"name": role.name})

        return jsonify({"role": role.to_dict(), "message": "Role created successfully"}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create role")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.route("/roles/<int:role_id>", methods=["PUT", "PATCH"])
@require_auth
@require_capability("can_manage_users")
def update_role(role_id: int):
    """
    Update a custom role's name, description and/or permissions.

    Renaming moves assigned users to the new name. Name or permission
    changes revoke the sessions of users holding the role.
    """
    try:
        data = require_object(request.get_json(silent=True))
        reject_unknown_fields(data, ROLE_FIELDS)
        if not data:
            return jsonify({"error": "At least one field must be provided for update"}), 400

        role = permission_service.update_custom_role(
            role_id,
            name=data.get("name"),
            description=data.get("description"),
            permissions=data.get("permissions"),
            fields=set(data.keys()),
        )

        log_request_activity("role_updated", resource_type="role", resource_id=role.id,
                             metadata={"name": role.name, "changes": sorted(data)})

        return jsonify({"role": role.to_dict(), "message": "Role updated successfully"})

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update role")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/roles/<int:role_id>")
@require_auth
@require_capability("can_manage_users")
def delete_role(role_id: int):
    """Delete a custom role. Refused (409) while any user holds it."""
    try:
        deleted = permission_service.delete_custom_role(role_id)

        log_request_activity("role_deleted", resource_type="role", resource_id=role_id,
                             metadata={"name": deleted["name"]})

        return jsonify({"message": f"Role {deleted['name']} deleted"})

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete role")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CAPABILITIES
# =============================================================================

@admin_bp.get("/permissions")
@require_auth
@require_capability("can_access_admin")
def list_permissions():
    """
    List all capability definitions.

    Query params:
    - category: str - filter by category
    """
    category = request.args.get("category")

    permissions = [get_permission_definition(perm[0]) for perm in PERMISSION_DEFINITIONS]
    if category:
        permissions = [p for p in permissions if p["category"] == category.upper()]

    return jsonify({"permissions": permissions})
