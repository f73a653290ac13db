# Overview: Request and capability decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service, permission_service
from .services.permission_service import Identity


def _bearer_token():
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def current_identity():
    return getattr(g, "identity", None)


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.identity: Identity carrying the role snapshot taken at login
    - g.session_token: The plaintext bearer token (for logout)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.session_token = token
        g.identity = Identity(
            id=context.user.id,
            username=context.user.username,
            role=context.session.role_name,
            permissions=context.permissions,
        )

        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: str):
    """
    Require a capability in the caller's permissions bag.

    Apply below @require_auth. Denials are logged and answered with 403;
    a missing identity is 401.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            decision = permission_service.authorize(
                current_identity(), required_capability=capability
            )
            if not decision.allowed:
                if decision.status == 403:
                    identity = current_identity()
                    current_app.logger.warning(
                        "Permission denied: user=%s role=%s capability=%s path=%s",
                        identity.username, identity.role, capability, request.path,
                    )
                    return jsonify({
                        "error": "Permission denied",
                        "required_permission": capability,
                        "message": decision.reason,
                    }), 403
                return jsonify({"error": decision.reason}), decision.status

            return f(*args, **kwargs)

        return decorated_function
    return decorator
