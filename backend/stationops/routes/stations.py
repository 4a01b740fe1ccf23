# Overview: Flask API routes for stations, tanks and nozzles; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import StationOpsError, error_body
from ..extensions import db
from ..services import station_service, tank_ledger_service
from ..validation import parse_float, parse_int, require_fields, require_json


stations_bp = Blueprint("stations", __name__, url_prefix="/api/stations")


@stations_bp.get("")
@require_auth
def list_stations_route():
    stations = station_service.list_stations_for(g.current_user)
    return jsonify({"stations": [s.to_dict() for s in stations]}), 200


@stations_bp.get("/<int:station_id>")
@require_auth
def get_station_route(station_id: int):
    try:
        station = station_service.get_station(station_id)
    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code

    payload = station.to_dict()
    payload["tanks"] = [t.to_dict() for t in tank_ledger_service.list_station_tanks(station_id)]
    payload["nozzles"] = [n.to_dict() for n in tank_ledger_service.list_station_nozzles(station_id)]
    return jsonify({"station": payload}), 200


@stations_bp.post("")
@require_auth
@require_role("MANAGE_STATIONS")
def create_station_route():
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "name")
        station = station_service.create_station(name=data["name"], address=data.get("address"))
        return jsonify({"message": "Station created successfully", "station": station.to_dict()}), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create station")
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.patch("/<int:station_id>")
@require_auth
@require_role("MANAGE_STATIONS")
def update_station_route(station_id: int):
    try:
        data = require_json(request.get_json(silent=True))
        station = station_service.update_station(
            station_id,
            name=data.get("name"),
            address=data.get("address"),
        )
        return jsonify({"message": "Station updated successfully", "station": station.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update station %s", station_id)
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.post("/<int:station_id>/tanks")
@require_auth
@require_role("MANAGE_STATIONS")
def create_tank_route(station_id: int):
    """
    Request body:
    {
        "fuel_type": "91_GASOLINE" | "95_GASOLINE" | "DIESEL",
        "capacity": float (optional),
        "current_level": float (optional, default 0)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "fuel_type")
        tank = station_service.create_tank(
            station_id,
            fuel_type=data["fuel_type"],
            capacity=parse_float("capacity", data.get("capacity"), required=False),
            current_level=parse_float("current_level", data.get("current_level"), required=False) or 0.0,
        )
        return jsonify({"message": "Tank created successfully", "tank": tank.to_dict()}), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create tank for station %s", station_id)
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.post("/<int:station_id>/nozzles")
@require_auth
@require_role("MANAGE_STATIONS")
def create_nozzle_route(station_id: int):
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "name", "tank_id")
        nozzle = station_service.create_nozzle(
            station_id,
            tank_id=parse_int("tank_id", data["tank_id"]),
            name=data["name"],
            fuel_type=data.get("fuel_type"),
            meter_limit=parse_float("meter_limit", data.get("meter_limit"), required=False),
        )
        return jsonify({"message": "Nozzle created successfully", "nozzle": nozzle.to_dict()}), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create nozzle for station %s", station_id)
        return jsonify({"error": "Internal server error"}), 500
