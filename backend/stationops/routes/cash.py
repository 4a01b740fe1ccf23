# Overview: Flask API routes for cash custody; parses input and returns JSON responses.

"""
Cash custody API routes.

PENDING_ACCEPTANCE -> WITH_AM -> DEPOSITED
- SM records the shift cash and hands it to their area manager
- AM accepts it, then deposits it with a receipt upload
- Admin watches cash that has not reached the bank
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import StationOpsError, error_body
from ..extensions import db
from ..models.auth import ROLE_STATION_MANAGER
from ..services import cash_service, receipt_storage
from ..validation import parse_cents, parse_float, parse_int, require_json


cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


@cash_bp.post("/transactions")
@require_auth
@require_role("CREATE_CASH_TRANSACTION")
def create_transaction_route():
    """
    Record cash for the station's live shift.

    Request body:
    {
        "liters_sold": float,
        "rate_per_liter_cents": int,
        "card_payments_cents": int,
        "bank_deposit_cents": int (optional, default 0),
        "station_id": int (optional, defaults to the caller's station)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        user = g.current_user

        station_id = parse_int("station_id", data.get("station_id"), required=False) or user.station_id
        if not station_id:
            return jsonify({"error": "Station ID required"}), 403
        if user.role == ROLE_STATION_MANAGER and user.station_id and station_id != user.station_id:
            return jsonify({"error": "Station managers may only record cash for their own station"}), 403

        transaction = cash_service.create_cash_transaction(
            station_id=station_id,
            liters_sold=parse_float("liters_sold", data.get("liters_sold")),
            rate_per_liter_cents=parse_cents("rate_per_liter_cents", data.get("rate_per_liter_cents")),
            card_payments_cents=parse_cents("card_payments_cents", data.get("card_payments_cents")),
            bank_deposit_cents=parse_cents("bank_deposit_cents", data.get("bank_deposit_cents"), required=False) or 0,
            user_id=user.id,
        )
        return jsonify({
            "message": "Transaction created successfully",
            "transaction": transaction.to_dict(),
        }), 201

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create cash transaction")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/transactions")
@require_auth
def list_transactions_route():
    transactions = cash_service.list_cash_transactions(g.current_user)
    return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200


@cash_bp.post("/transactions/<int:transaction_id>/transfer")
@require_auth
@require_role("INITIATE_TRANSFER")
def transfer_route(transaction_id: int):
    try:
        transfer = cash_service.initiate_transfer(transaction_id, g.current_user.id)
        return jsonify({"message": "Transfer initiated successfully", "transfer": transfer.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to initiate transfer for transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/transactions/<int:transaction_id>/accept")
@require_auth
@require_role("ACCEPT_CASH")
def accept_route(transaction_id: int):
    try:
        transaction = cash_service.accept_cash(transaction_id, g.current_user.id)
        return jsonify({"message": "Cash accepted successfully", "transaction": transaction.to_dict()}), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to accept cash for transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/transactions/<int:transaction_id>/deposit")
@require_auth
@require_role("DEPOSIT_CASH")
def deposit_route(transaction_id: int):
    """Multipart form with the bank receipt under the "receipt" field."""
    try:
        file = request.files.get("receipt")
        if file is None or not file.filename:
            return jsonify({"error": "Receipt image required"}), 400

        # Reject before the file is written
        cash_service.ensure_deposit_ready(transaction_id)

        receipt_url = receipt_storage.save_receipt(file)
        transaction = cash_service.deposit_cash(transaction_id, receipt_url)
        return jsonify({
            "message": "Cash deposited successfully",
            "receipt_url": receipt_url,
            "transaction": transaction.to_dict(),
        }), 200

    except StationOpsError as e:
        return jsonify(error_body(e)), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to deposit cash for transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/floating-cash")
@require_auth
@require_role("VIEW_FLOATING_CASH")
def floating_cash_route():
    floating = cash_service.get_floating_cash()
    floating["transactions"] = [t.to_dict() for t in floating["transactions"]]
    return jsonify(floating), 200
