# Overview: Service-layer operations for cash custody; owns the cash transaction state machine.

"""
Cash Custody State Machine

LIFECYCLE:
1. PENDING_ACCEPTANCE: station manager recorded the shift's cash
   (a CashTransfer row appears once the manager hands it over)
2. WITH_AM: the assigned area manager accepted the cash
3. DEPOSITED: the area manager banked it and attached a receipt (terminal)

Every transition re-checks its precondition inside the transaction and
writes with a status-conditional UPDATE, so a stale concurrent attempt
changes nothing and is reported as already processed.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import (
    AlreadyProcessedError,
    InvalidInputError,
    InvalidStateError,
    NoAreaManagerAssignedError,
    NotYetAcceptedError,
    TransactionNotFoundError,
    TransferNotFoundError,
    UnauthorizedError,
    UserNotFoundError,
)
from ..models import CashTransaction, CashTransfer, User
from ..models.auth import ROLE_STATION_MANAGER, ROLE_AREA_MANAGER
from ..models.cash import (
    CASH_STATUS_PENDING_ACCEPTANCE,
    CASH_STATUS_WITH_AM,
    CASH_STATUS_DEPOSITED,
    FLOATING_STATUSES,
)
from ..money import liters_times_rate_cents
from ..time_utils import station_now
from . import shift_service
from .concurrency import lock_for_update, run_in_transaction


def compute_cash_amounts(
    liters_sold: float,
    rate_per_liter_cents: int,
    card_payments_cents: int,
    bank_deposit_cents: int,
) -> dict:
    """
    Derive the money columns of a cash entry (all cents).

    total_revenue = liters x rate; cash_on_hand = revenue - card;
    cash_to_am = cash_on_hand - bank deposit.
    """
    total_revenue = liters_times_rate_cents(liters_sold, rate_per_liter_cents)
    cash_on_hand = total_revenue - card_payments_cents
    cash_to_am = cash_on_hand - bank_deposit_cents
    return {
        "total_revenue_cents": total_revenue,
        "cash_on_hand_cents": cash_on_hand,
        "cash_to_am_cents": cash_to_am,
    }


def _validate_entry(liters_sold, rate_per_liter_cents, card_payments_cents, bank_deposit_cents) -> None:
    if liters_sold is None or liters_sold <= 0:
        raise InvalidInputError("liters_sold must be positive")
    if rate_per_liter_cents is None or rate_per_liter_cents <= 0:
        raise InvalidInputError("rate_per_liter_cents must be positive")
    if card_payments_cents < 0:
        raise InvalidInputError("card_payments_cents cannot be negative")
    if bank_deposit_cents < 0:
        raise InvalidInputError("bank_deposit_cents cannot be negative")


def create_cash_transaction(
    station_id: int,
    liters_sold: float,
    rate_per_liter_cents: int,
    card_payments_cents: int,
    bank_deposit_cents: int,
    user_id: int | None,
    now: datetime | None = None,
) -> CashTransaction:
    """
    Record the cash of the station's live shift (cash-entry clock).

    Raises:
        StationNotFoundError: station does not exist
        InvalidInputError: non-positive liters/rate, negative payments, or
            card payments / bank deposit larger than the cash they come from
        InvalidStateError: the shift already has a cash transaction
    """
    card_payments_cents = card_payments_cents or 0
    bank_deposit_cents = bank_deposit_cents or 0
    _validate_entry(liters_sold, rate_per_liter_cents, card_payments_cents, bank_deposit_cents)

    amounts = compute_cash_amounts(liters_sold, rate_per_liter_cents, card_payments_cents, bank_deposit_cents)
    if amounts["cash_on_hand_cents"] < 0:
        raise InvalidInputError("card_payments_cents exceeds total revenue")
    if amounts["cash_to_am_cents"] < 0:
        raise InvalidInputError("bank_deposit_cents exceeds cash on hand")

    shift = shift_service.resolve_cash_entry_shift(station_id, now=now)

    def _op():
        if db.session.query(CashTransaction.id).filter_by(shift_id=shift.id).first():
            raise InvalidStateError(f"Cash already recorded for shift {shift.id}")

        transaction = CashTransaction(
            shift_id=shift.id,
            station_id=station_id,
            liters_sold=liters_sold,
            rate_per_liter_cents=rate_per_liter_cents,
            card_payments_cents=card_payments_cents,
            bank_deposit_cents=bank_deposit_cents,
            status=CASH_STATUS_PENDING_ACCEPTANCE,
            created_by_user_id=user_id,
            **amounts,
        )
        db.session.add(transaction)
        try:
            db.session.flush()
        except IntegrityError:
            raise InvalidStateError(f"Cash already recorded for shift {shift.id}")
        return transaction

    transaction = run_in_transaction(_op)
    current_app.logger.info(
        "Cash transaction %s recorded for station %s shift %s (cash to AM %s cents)",
        transaction.id, station_id, shift.id, transaction.cash_to_am_cents,
    )
    return transaction


def get_cash_transaction(transaction_id: int) -> CashTransaction:
    transaction = db.session.get(CashTransaction, transaction_id)
    if not transaction:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    return transaction


def list_cash_transactions(user: User) -> list[CashTransaction]:
    """
    Transactions visible to a user.

    - SM: own station only
    - AM: everything not yet deposited
    - Admin: everything
    """
    query = db.session.query(CashTransaction)

    if user.role == ROLE_STATION_MANAGER:
        if not user.station_id:
            return []
        query = query.filter(CashTransaction.station_id == user.station_id)
    elif user.role == ROLE_AREA_MANAGER:
        query = query.filter(CashTransaction.status.in_(FLOATING_STATUSES))

    return query.order_by(CashTransaction.created_at.desc(), CashTransaction.id.desc()).all()


def _lock_transaction(transaction_id: int) -> CashTransaction:
    transaction = lock_for_update(db.session.query(CashTransaction).filter_by(id=transaction_id)).first()
    if not transaction:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    return transaction


def _lock_transfer(transaction_id: int) -> CashTransfer:
    transfer = lock_for_update(
        db.session.query(CashTransfer).filter_by(cash_transaction_id=transaction_id)
    ).first()
    if not transfer:
        raise TransferNotFoundError(f"Transfer not initiated for transaction {transaction_id}")
    return transfer


def _transition(transaction_id: int, transfer_id: int, expected: str, values: dict, transfer_values: dict) -> None:
    """Move transfer and transaction out of `expected` together, or not at all."""
    transfer_result = db.session.execute(
        update(CashTransfer)
        .where(CashTransfer.id == transfer_id, CashTransfer.status == expected)
        .values(**values, **transfer_values)
    )
    transaction_result = db.session.execute(
        update(CashTransaction)
        .where(CashTransaction.id == transaction_id, CashTransaction.status == expected)
        .values(**values)
    )
    if transfer_result.rowcount != 1 or transaction_result.rowcount != 1:
        raise AlreadyProcessedError(f"Transaction {transaction_id} was already processed")


def initiate_transfer(transaction_id: int, from_user_id: int) -> CashTransfer:
    """
    Hand a pending transaction to the station manager's area manager.

    The transaction keeps its PENDING_ACCEPTANCE status; the new transfer row
    is what marks the handoff.

    Raises:
        TransactionNotFoundError, AlreadyProcessedError, UserNotFoundError,
        NoAreaManagerAssignedError
    """
    def _op():
        transaction = _lock_transaction(transaction_id)
        if transaction.status != CASH_STATUS_PENDING_ACCEPTANCE:
            raise AlreadyProcessedError(f"Transaction {transaction_id} already processed")

        existing = db.session.query(CashTransfer.id).filter_by(cash_transaction_id=transaction_id).first()
        if existing:
            raise AlreadyProcessedError(f"Transfer already initiated for transaction {transaction_id}")

        user = db.session.get(User, from_user_id)
        if not user:
            raise UserNotFoundError(f"User {from_user_id} not found")
        if not user.area_manager_id:
            raise NoAreaManagerAssignedError("No area manager assigned to this user")

        transfer = CashTransfer(
            cash_transaction_id=transaction_id,
            from_user_id=from_user_id,
            to_user_id=user.area_manager_id,
            status=CASH_STATUS_PENDING_ACCEPTANCE,
        )
        db.session.add(transfer)
        try:
            db.session.flush()
        except IntegrityError:
            raise AlreadyProcessedError(f"Transfer already initiated for transaction {transaction_id}")
        return transfer

    transfer = run_in_transaction(_op)
    current_app.logger.info(
        "Cash transaction %s handed from user %s to area manager %s",
        transaction_id, transfer.from_user_id, transfer.to_user_id,
    )
    return transfer


def accept_cash(transaction_id: int, user_id: int) -> CashTransaction:
    """
    Area manager takes custody: transfer and transaction move to WITH_AM.

    Raises:
        TransactionNotFoundError, TransferNotFoundError,
        UnauthorizedError (caller is not the transfer's recipient),
        AlreadyProcessedError (transfer no longer pending)
    """
    def _op():
        transaction = _lock_transaction(transaction_id)
        transfer = _lock_transfer(transaction_id)

        if transfer.to_user_id != user_id:
            raise UnauthorizedError("Unauthorized: cash is assigned to a different area manager")
        if transfer.status != CASH_STATUS_PENDING_ACCEPTANCE:
            raise AlreadyProcessedError("Transfer already processed")

        _transition(
            transaction.id,
            transfer.id,
            expected=CASH_STATUS_PENDING_ACCEPTANCE,
            values={"status": CASH_STATUS_WITH_AM},
            transfer_values={},
        )
        return transaction

    transaction = run_in_transaction(_op)
    current_app.logger.info("Cash transaction %s accepted by area manager %s", transaction_id, user_id)
    return transaction


def ensure_deposit_ready(transaction_id: int) -> None:
    """Read-only pre-check for deposit; deposit_cash re-checks under lock."""
    get_cash_transaction(transaction_id)
    transfer = db.session.query(CashTransfer).filter_by(cash_transaction_id=transaction_id).first()
    if not transfer:
        raise TransferNotFoundError(f"Transfer not initiated for transaction {transaction_id}")
    if transfer.status != CASH_STATUS_WITH_AM:
        raise NotYetAcceptedError("Cash must be accepted before deposit")


def deposit_cash(transaction_id: int, receipt_url: str, now: datetime | None = None) -> CashTransaction:
    """
    Area manager banked the cash; attach the stored receipt and close custody.

    receipt_url is the path returned by receipt storage for the uploaded slip.

    Raises:
        TransactionNotFoundError, TransferNotFoundError,
        NotYetAcceptedError (transfer is not WITH_AM)
    """
    now = now or station_now()

    def _op():
        if not receipt_url:
            raise InvalidInputError("receipt_url is required")

        transaction = _lock_transaction(transaction_id)
        transfer = _lock_transfer(transaction_id)

        if transfer.status != CASH_STATUS_WITH_AM:
            raise NotYetAcceptedError("Cash must be accepted before deposit")

        _transition(
            transaction.id,
            transfer.id,
            expected=CASH_STATUS_WITH_AM,
            values={"status": CASH_STATUS_DEPOSITED},
            transfer_values={"receipt_url": receipt_url, "deposited_at": now},
        )
        return transaction

    transaction = run_in_transaction(_op)
    current_app.logger.info("Cash transaction %s deposited (receipt %s)", transaction_id, receipt_url)
    return transaction


def get_floating_cash() -> dict:
    """
    Cash not yet in the bank: cash_to_am summed over PENDING_ACCEPTANCE and WITH_AM.

    Read-only.
    """
    totals = dict(
        db.session.query(CashTransaction.status, func.coalesce(func.sum(CashTransaction.cash_to_am_cents), 0))
        .filter(CashTransaction.status.in_(FLOATING_STATUSES))
        .group_by(CashTransaction.status)
        .all()
    )
    pending = int(totals.get(CASH_STATUS_PENDING_ACCEPTANCE, 0))
    with_am = int(totals.get(CASH_STATUS_WITH_AM, 0))

    transactions = (
        db.session.query(CashTransaction)
        .filter(CashTransaction.status.in_(FLOATING_STATUSES))
        .order_by(CashTransaction.created_at.desc(), CashTransaction.id.desc())
        .all()
    )

    return {
        "total_floating_cents": pending + with_am,
        "breakdown": {
            "pending_acceptance_cents": pending,
            "with_am_cents": with_am,
        },
        "transactions": transactions,
    }
