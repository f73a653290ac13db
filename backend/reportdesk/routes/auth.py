# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Login throttling to prevent brute-force attacks
- Username lockout after repeated failed attempts (429)
- Session management with token-based auth
- Role resolved once at login and stored on the session
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services.activity_service import log_request_activity
from ..services.login_throttle_service import get_login_throttle
from ..services.auth_service import AccountDeactivatedError, PasswordValidationError
from ..validation import ValidationError, require_object
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration is disabled.

    Users can only be created by administrators via:
    - POST /api/admin/users (requires can_manage_users)
    - CLI: flask users create
    """
    return jsonify({
        "error": "Self-registration is disabled. Contact an administrator to create an account."
    }), 403


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Returns user info, resolved role, permissions bag and session token.
    Token must be included in Authorization header for protected routes.

    SECURITY:
    - Checks for lockout before attempting authentication
    - Records failed attempts for throttling
    """
    try:
        data = require_object(request.get_json(silent=True))
        username = data.get("username")
        password = data.get("password")

        if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
            return jsonify({"error": "username and password required"}), 400

        throttle = get_login_throttle()

        status = throttle.check(username)
        if status.locked:
            current_app.logger.warning("Login rejected for locked username %s", username)
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": status.seconds_remaining,
                "retry_after_minutes": (status.seconds_remaining // 60) + 1,
            }), 429

        try:
            user = auth_service.authenticate(username, password)
        except AccountDeactivatedError:
            return jsonify({"error": "Account is deactivated"}), 403

        if not user:
            status = throttle.record_failure(username)
            if status.locked:
                current_app.logger.warning("Username %s locked after %d failed logins", username, status.failed_attempts)
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                    "retry_after_seconds": status.seconds_remaining,
                    "retry_after_minutes": int(throttle.lockout.total_seconds() // 60),
                }), 429

            remaining = throttle.remaining_attempts(status)
            if remaining <= 3:
                return jsonify({
                    "error": "Invalid credentials",
                    "warning": f"{remaining} attempts remaining before account lockout"
                }), 401
            return jsonify({"error": "Invalid credentials"}), 401

        throttle.clear(username)

        resolved = permission_service.resolve_role(user.role)
        session, token = session_service.create_session(
            user,
            resolved,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        log_request_activity("login", resource_type="session", resource_id=session.id, user=user)

        return jsonify({
            "user": user.to_dict(),
            "role": resolved.name,
            "role_kind": resolved.kind,
            "permissions": resolved.permissions.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/lockout-status/<identifier>")
def lockout_status_route(identifier: str):
    """Public lockout status so a locked-out user can see when to retry."""
    return jsonify(get_login_throttle().status(identifier))


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Revoke the caller's session token.

    WHY: Explicit logout prevents token reuse.
    """
    try:
        user = g.current_user
        session_service.revoke_session(g.session_token, reason="User logout")
        log_request_activity("logout", resource_type="session", resource_id=g.session_context.session.id, user=user)
        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with the role and permissions bag of this session."""
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "role": context.session.role_name,
        "role_kind": context.session.role_kind,
        "permissions": context.permissions.to_dict(),
        "session": context.session.to_dict(),
    }), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password.

    Request body:
    - current_password: str (required)
    - new_password: str (required)

    Other sessions of the user are revoked; the current one stays valid.
    """
    try:
        data = require_object(request.get_json(silent=True))
        current_password = data.get("current_password") or data.get("currentPassword")
        new_password = data.get("new_password") or data.get("newPassword")

        if not isinstance(current_password, str) or not isinstance(new_password, str) \
                or not current_password or not new_password:
            return jsonify({"error": "current_password and new_password required"}), 400

        auth_service.change_password(g.current_user, current_password, new_password)
        revoked = session_service.revoke_all_user_sessions(
            g.current_user.id,
            reason="Password changed",
            except_session_id=g.session_context.session.id,
        )

        log_request_activity("user_updated", resource_type="user", resource_id=g.current_user.id,
                             metadata={"password_changed": True})

        return jsonify({
            "message": "Password changed successfully",
            "sessions_revoked": revoked,
        }), 200

    except (PasswordValidationError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
