# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /login issues an opaque bearer token (employee id + password)
- POST /logout revokes it
- GET /me returns the caller
- POST /register creates a user (Admin only)
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import bearer_token, require_auth, require_role
from ..errors import StationOpsError, error_body
from ..extensions import db
from ..services import auth_service, session_service
from ..validation import parse_int, require_fields, require_json


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        employee_id = data.get("employee_id")
        password = data.get("password")

        if not all([employee_id, password]):
            return jsonify({"error": "employee_id and password are required"}), 400

        user = auth_service.authenticate(employee_id, password)
        if not user:
            current_app.logger.warning("Failed login for employee %s from %s", employee_id, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "token": token,
            "user": user.to_dict(),
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the caller's session token."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/register")
@require_auth
@require_role("REGISTER_USER")
def register_route():
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "employee_id", "password", "name", "role")

        user = auth_service.create_user(
            employee_id=data["employee_id"],
            name=data["name"],
            password=data["password"],
            role=data["role"],
            station_id=parse_int("station_id", data.get("station_id"), required=False),
            area_manager_id=parse_int("area_manager_id", data.get("area_manager_id"), required=False),
        )
        return jsonify({"message": "User created successfully", "user": user.to_dict()}), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500
