# Overview: Request decorators for authentication and role checks on API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import db
from .models.auth import MANAGER_ROLES
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user (the User) and g.session_context. Returns 401 if the
    Authorization header is missing or the token is invalid, expired, or
    revoked, or the user was deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(db.session, token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of the given roles.

    Must be applied after @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if user.role not in roles:
                current_app.logger.warning(
                    "Role %s denied for user %s on %s %s",
                    user.role, user.id, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "message": "Access forbidden: insufficient role",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def forbid_other_user(user_id, message: str):
    """
    403 response when a cashier acts for another user, else None.

    Supervisors and owners may act for anyone. Must run inside a route
    protected by @require_auth.
    """
    user = g.current_user
    if user_id is None or user_id == user.id or user.role in MANAGER_ROLES:
        return None
    current_app.logger.warning(
        "User %s denied acting for user %s on %s %s",
        user.id, user_id, request.method, request.path,
    )
    return jsonify({"error": "Permission denied", "message": message}), 403
