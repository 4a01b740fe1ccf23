# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory API routes: nozzles, tanks, the live shift, meter readings,
shift locking and tanker deliveries.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import StationOpsError, error_body
from ..extensions import db
from ..services import meter_reading_service, shift_service, tank_ledger_service
from ..validation import parse_datetime, parse_float, parse_int, require_json


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")
shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@inventory_bp.get("/stations/<int:station_id>/nozzles")
@require_auth
def list_nozzles_route(station_id: int):
    nozzles = tank_ledger_service.list_station_nozzles(station_id)
    return jsonify({"nozzles": [n.to_dict(include_tank=True) for n in nozzles]}), 200


@inventory_bp.get("/stations/<int:station_id>/tanks")
@require_auth
def list_tanks_route(station_id: int):
    tanks = tank_ledger_service.list_station_tanks(station_id)
    return jsonify({"tanks": [t.to_dict() for t in tanks]}), 200


@inventory_bp.get("/shifts/stations/<int:station_id>/current")
@shifts_bp.get("/stations/<int:station_id>/current")
@require_auth
def current_shift_route(station_id: int):
    """Find or open the station's shift for the current inventory window."""
    try:
        shift = shift_service.resolve_current_shift(station_id)
        return jsonify({"shift": shift.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to resolve current shift for station %s", station_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/shifts/<int:shift_id>/readings")
@require_auth
def list_readings_route(shift_id: int):
    readings = meter_reading_service.get_shift_readings(shift_id)
    return jsonify({"readings": [r.to_dict() for r in readings]}), 200


@inventory_bp.post("/shifts/<int:shift_id>/readings")
@require_auth
@require_role("RECORD_READINGS")
def record_readings_route(shift_id: int):
    """
    Record closing readings for the caller's station.

    Request body:
    {
        "readings": [{"nozzle_id": int, "closing_reading": float}, ...]
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        readings = data.get("readings")
        if not isinstance(readings, list):
            return jsonify({"error": "Readings array is required"}), 400

        station_id = g.current_user.station_id
        if not station_id:
            return jsonify({"error": "Station ID required"}), 403

        result = meter_reading_service.record_readings(shift_id, station_id, readings)
        return jsonify({
            "message": "Readings created successfully",
            "readings": [r.to_dict() for r in result],
        }), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record readings for shift %s", shift_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/shifts/<int:shift_id>/readings/<int:reading_id>")
@require_auth
@require_role("UPDATE_READING")
def update_reading_route(shift_id: int, reading_id: int):
    try:
        data = require_json(request.get_json(silent=True))
        closing = parse_float("closing_reading", data.get("closing_reading"))

        reading = meter_reading_service.update_reading(shift_id, reading_id, closing)
        return jsonify({"message": "Reading updated successfully", "reading": reading.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update reading %s", reading_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/shifts/<int:shift_id>/lock")
@require_auth
@require_role("LOCK_SHIFT")
def lock_shift_route(shift_id: int):
    try:
        shift = meter_reading_service.lock_shift(shift_id, user_id=g.current_user.id)
        return jsonify({"message": "Shift locked successfully", "shift": shift.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to lock shift %s", shift_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/shifts/<int:shift_id>/unlock")
@require_auth
@require_role("UNLOCK_SHIFT")
def unlock_shift_route(shift_id: int):
    try:
        shift = meter_reading_service.unlock_shift(shift_id, g.current_user.id)
        current_app.logger.info("Shift %s unlocked by user %s", shift_id, g.current_user.id)
        return jsonify({"message": "Shift unlocked successfully", "shift": shift.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to unlock shift %s", shift_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/tanks/<int:tank_id>/deliveries")
@require_auth
@require_role("RECORD_DELIVERY")
def record_delivery_route(tank_id: int):
    """
    Request body:
    {
        "liters_delivered": float,
        "delivery_date": ISO-8601 (optional, default now),
        "ticket_reference": str (optional),
        "notes": str (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        liters = parse_float("liters_delivered", data.get("liters_delivered"))

        delivery, tank = tank_ledger_service.record_delivery(
            tank_id,
            liters_delivered=liters,
            delivered_by_user_id=g.current_user.id,
            delivery_date=parse_datetime("delivery_date", data.get("delivery_date")),
            ticket_reference=data.get("ticket_reference"),
            notes=data.get("notes"),
        )
        return jsonify({
            "message": "Delivery recorded successfully",
            "delivery": delivery.to_dict(),
            "tank": tank.to_dict(),
        }), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record delivery for tank %s", tank_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/deliveries")
@require_auth
def list_deliveries_route():
    try:
        tank_id = parse_int("tank_id", request.args.get("tank_id"), required=False)
    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code

    deliveries = tank_ledger_service.list_deliveries(tank_id)
    return jsonify({"deliveries": [d.to_dict() for d in deliveries]}), 200
