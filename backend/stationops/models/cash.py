from __future__ import annotations

from ..extensions import db
from ..time_utils import station_now, to_iso

CASH_STATUS_PENDING_ACCEPTANCE = "PENDING_ACCEPTANCE"
CASH_STATUS_WITH_AM = "WITH_AM"
CASH_STATUS_DEPOSITED = "DEPOSITED"

CASH_STATUSES = (CASH_STATUS_PENDING_ACCEPTANCE, CASH_STATUS_WITH_AM, CASH_STATUS_DEPOSITED)

# Cash that has not reached the bank yet
FLOATING_STATUSES = (CASH_STATUS_PENDING_ACCEPTANCE, CASH_STATUS_WITH_AM)


class CashTransaction(db.Model):
    """
    Cash entry for one shift, written by the station manager.

    Amounts are in cents:
    - total_revenue = liters_sold x rate_per_liter
    - cash_on_hand = total_revenue - card_payments
    - cash_to_am = cash_on_hand - bank_deposit

    LIFECYCLE: PENDING_ACCEPTANCE -> WITH_AM -> DEPOSITED (terminal).
    A pending transaction with no CashTransfer is still in the station
    manager's custody; the transfer row, not this status, marks a handoff.
    """
    __tablename__ = "cash_transactions"
    __table_args__ = (
        db.Index("ix_cash_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, unique=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)

    liters_sold = db.Column(db.Float, nullable=False)
    rate_per_liter_cents = db.Column(db.Integer, nullable=False)
    total_revenue_cents = db.Column(db.Integer, nullable=False)
    card_payments_cents = db.Column(db.Integer, nullable=False, default=0)
    cash_on_hand_cents = db.Column(db.Integer, nullable=False)
    bank_deposit_cents = db.Column(db.Integer, nullable=False, default=0)
    cash_to_am_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(32), nullable=False, default=CASH_STATUS_PENDING_ACCEPTANCE, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    station = db.relationship("Station", backref=db.backref("cash_transactions", lazy=True))
    shift = db.relationship("Shift", backref=db.backref("cash_transaction", uselist=False, lazy=True))
    created_by = db.relationship("User")

    def to_dict(self) -> dict:
        transfer = self.cash_transfer
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "station_id": self.station_id,
            "station": self.station.to_dict() if self.station else None,
            "shift": self.shift.to_dict() if self.shift else None,
            "liters_sold": self.liters_sold,
            "rate_per_liter_cents": self.rate_per_liter_cents,
            "total_revenue_cents": self.total_revenue_cents,
            "card_payments_cents": self.card_payments_cents,
            "cash_on_hand_cents": self.cash_on_hand_cents,
            "bank_deposit_cents": self.bank_deposit_cents,
            "cash_to_am_cents": self.cash_to_am_cents,
            "status": self.status,
            "created_by_user_id": self.created_by_user_id,
            "cash_transfer": transfer.to_dict() if transfer else None,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


class CashTransfer(db.Model):
    """
    Custody handoff of a cash transaction from a station manager to their area manager.

    Created only when the station manager initiates the transfer. Its status
    mirrors the transaction status from then on; receipt_url and deposited_at
    are set by the deposit step.
    """
    __tablename__ = "cash_transfers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    cash_transaction_id = db.Column(
        db.Integer, db.ForeignKey("cash_transactions.id"), nullable=False, unique=True
    )
    from_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(32), nullable=False, default=CASH_STATUS_PENDING_ACCEPTANCE, index=True)
    receipt_url = db.Column(db.Text, nullable=True)
    deposited_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    cash_transaction = db.relationship(
        "CashTransaction", backref=db.backref("cash_transfer", uselist=False, lazy=True)
    )
    from_user = db.relationship("User", foreign_keys=[from_user_id])
    to_user = db.relationship("User", foreign_keys=[to_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cash_transaction_id": self.cash_transaction_id,
            "from_user_id": self.from_user_id,
            "to_user_id": self.to_user_id,
            "from_user": self.from_user.to_summary() if self.from_user else None,
            "to_user": self.to_user.to_summary() if self.to_user else None,
            "status": self.status,
            "receipt_url": self.receipt_url,
            "deposited_at": to_iso(self.deposited_at),
            "created_at": to_iso(self.created_at),
        }
