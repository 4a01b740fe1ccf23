# Overview: Request and role decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from . import permissions
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_user to the authenticated User.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or idle token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(operation: str):
    """
    Require the current user's role to be allowed for `operation` (see permissions.ROLE_POLICY).

    Must be stacked under @require_auth.
    """
    permissions.allowed_roles(operation)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            if not permissions.is_allowed(g.current_user.role, operation):
                return jsonify({
                    "error": "Forbidden - Insufficient permissions",
                    "required_operation": operation,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
