# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Login exchanges username/password for a bearer token
- Logout revokes the token
- /me returns the authenticated user
- Register creates a staff account; only an owner may call it (the CLI
  command flask users create does the same offline)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, require_role
from ..models.auth import ROLE_OWNER
from ..validation import ServiceError, error_response
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
@require_auth
@require_role(ROLE_OWNER)
def register_route():
    """
    Create a staff account.

    Request body:
    {
        "username": "casey",
        "password": "...",        at least 8 characters
        "full_name": "Casey",     (optional)
        "role": "cashier"         cashier | supervisor | owner
    }

    Returns:
        201: {"user"}
        400: invalid input
        409: username taken
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            db.session,
            data.get("username"),
            data.get("password"),
            role=str(data.get("role") or "cashier"),
            full_name=data.get("full_name"),
        )
        current_app.logger.info("User %s (%s) created by user %s", user.id, user.role, g.current_user.id)
        return jsonify({"user": user.to_dict(), "message": "User created successfully"}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(db.session, username, password)
        if not user:
            current_app.logger.warning("Failed login for %s from %s", username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        record, token = session_service.create_session(db.session, user.id)
        current_app.logger.info("User %s logged in", user.id)

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": to_utc_z(record.expires_at),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]
        if not session_service.revoke_session(db.session, token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
