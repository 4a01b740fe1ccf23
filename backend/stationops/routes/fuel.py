# Overview: Flask API routes for fuel prices and nozzle sales; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import StationOpsError, error_body
from ..extensions import db
from ..services import fuel_price_service, nozzle_sales_service, shift_service
from ..validation import parse_datetime, parse_int, parse_price_cents, require_fields, require_json


fuel_bp = Blueprint("fuel", __name__, url_prefix="/api/fuel")


# -- prices --

@fuel_bp.post("/prices")
@require_auth
@require_role("SET_FUEL_PRICE")
def create_price_route():
    """
    Request body:
    {
        "station_id": int,
        "fuel_type": "91_GASOLINE" | "95_GASOLINE" | "DIESEL",
        "price_per_liter_cents": int,
        "effective_from": ISO-8601 (optional, default now)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        require_fields(data, "station_id", "fuel_type", "price_per_liter_cents")

        price = fuel_price_service.set_fuel_price(
            station_id=parse_int("station_id", data["station_id"]),
            fuel_type=data["fuel_type"],
            price_per_liter_cents=parse_price_cents("price_per_liter_cents", data["price_per_liter_cents"]),
            created_by_user_id=g.current_user.id,
            effective_from=parse_datetime("effective_from", data.get("effective_from")),
        )
        return jsonify({"message": "Fuel price set successfully", "price": price.to_dict()}), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to set fuel price")
        return jsonify({"error": "Internal server error"}), 500


@fuel_bp.get("/prices")
@require_auth
@require_role("LIST_FUEL_PRICES")
def list_prices_route():
    prices = fuel_price_service.list_all_prices()
    return jsonify({"prices": [p.to_dict() for p in prices]}), 200


@fuel_bp.get("/prices/station/<int:station_id>")
@require_auth
def station_prices_route(station_id: int):
    prices = fuel_price_service.get_current_prices(station_id)
    return jsonify({"prices": [p.to_dict() for p in prices]}), 200


# -- nozzle sales --

@fuel_bp.get("/sales/shift/<int:shift_id>")
@require_auth
def shift_sales_route(shift_id: int):
    try:
        shift = shift_service.get_shift(shift_id)
    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code

    sales = nozzle_sales_service.get_shift_sales(shift_id)
    return jsonify({
        "shift": shift.to_dict(),
        "sales": [s.to_dict() for s in sales],
        "total_amount_cents": sum(s.total_amount_cents for s in sales),
    }), 200


@fuel_bp.put("/sales/<int:sale_id>")
@require_auth
@require_role("UPDATE_SALE")
def update_sale_route(sale_id: int):
    """
    Partial update; omitted fields are unchanged.

    Request body:
    {
        "quantity_liters": float,
        "card_amount_cents": int,
        "cash_amount_cents": int
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        sale = nozzle_sales_service.update_sale(
            sale_id,
            quantity_liters=data.get("quantity_liters"),
            card_amount_cents=data.get("card_amount_cents"),
            cash_amount_cents=data.get("cash_amount_cents"),
        )
        return jsonify({"message": "Sale updated successfully", "sale": sale.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@fuel_bp.post("/sales/shift/<int:shift_id>/submit")
@require_auth
@require_role("SUBMIT_SALES")
def submit_sales_route(shift_id: int):
    try:
        shift = nozzle_sales_service.submit_sales(shift_id, user_id=g.current_user.id)
        return jsonify({"message": "Sales submitted successfully", "shift": shift.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to submit sales for shift %s", shift_id)
        return jsonify({"error": "Internal server error"}), 500


@fuel_bp.get("/sales/shift/<int:shift_id>/reconciliation")
@require_auth
def reconciliation_route(shift_id: int):
    try:
        return jsonify(nozzle_sales_service.reconcile_shift(shift_id)), 200
    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
