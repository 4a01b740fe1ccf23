# Overview: Flask API routes for user administration; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import StationOpsError, error_body
from ..extensions import db
from ..services import auth_service
from ..validation import parse_int, require_fields, require_json


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _user_payload(user) -> dict:
    payload = user.to_dict()
    payload["station"] = user.station.to_dict() if user.station else None
    payload["area_manager"] = user.area_manager.to_summary() if user.area_manager else None
    return payload


@users_bp.get("")
@require_auth
@require_role("LIST_USERS")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"users": [_user_payload(u) for u in users]}), 200


@users_bp.post("")
@require_auth
@require_role("MANAGE_USERS")
def create_user_route():
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
        return jsonify({"message": "User created successfully", "user": _user_payload(user)}), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>")
@require_auth
@require_role("MANAGE_USERS")
def update_user_route(user_id: int):
    """
    Update station and/or area manager assignment.

    Request body (both optional; null clears):
    {
        "station_id": int | null,
        "area_manager_id": int | null
    }
    """
    try:
        data = require_json(request.get_json(silent=True))

        changes = {}
        if "station_id" in data:
            changes["station_id"] = parse_int("station_id", data["station_id"], required=False)
        if "area_manager_id" in data:
            changes["area_manager_id"] = parse_int("area_manager_id", data["area_manager_id"], required=False)

        user = auth_service.update_assignment(user_id, **changes)
        return jsonify({"message": "User updated successfully", "user": _user_payload(user)}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500
