from __future__ import annotations

from ..extensions import db
from ..money import liters_times_rate_cents
from ..time_utils import station_now, to_iso

SHIFT_TYPE_DAY = "DAY"
SHIFT_TYPE_NIGHT = "NIGHT"

SHIFT_STATUS_OPEN = "OPEN"
SHIFT_STATUS_CLOSED = "CLOSED"
SHIFT_STATUS_LOCKED = "LOCKED"

# Which window policy produced the shift (see shift_service)
WINDOW_POLICY_INVENTORY = "INVENTORY"
WINDOW_POLICY_CASH_ENTRY = "CASH_ENTRY"


class Shift(db.Model):
    """
    Operating window at one station; the unit of reconciliation.

    LIFECYCLE:
    - OPEN: readings, sales and cash may be recorded
    - CLOSED: sales submitted (locked=True) or unlocked by an admin (locked=False)
    - LOCKED: explicitly locked by the station manager

    The unique window key closes the find-or-create race: the second
    concurrent insert fails and the caller re-reads the winner.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.UniqueConstraint(
            "station_id", "window_policy", "shift_type", "window_start",
            name="uq_shifts_station_window",
        ),
        db.Index("ix_shifts_station_start", "station_id", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    shift_type = db.Column(db.String(8), nullable=False)  # DAY, NIGHT

    window_policy = db.Column(db.String(16), nullable=False, default=WINDOW_POLICY_INVENTORY)
    window_start = db.Column(db.DateTime, nullable=False)

    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_STATUS_OPEN, index=True)
    locked = db.Column(db.Boolean, nullable=False, default=False)
    locked_by = db.Column(db.String(255), nullable=True)
    locked_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    station = db.relationship("Station", backref=db.backref("shifts", lazy=True))

    def __repr__(self) -> str:
        return f"<Shift id={self.id} station_id={self.station_id} {self.shift_type} {self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "shift_type": self.shift_type,
            "window_policy": self.window_policy,
            "window_start": to_iso(self.window_start),
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "status": self.status,
            "locked": self.locked,
            "locked_by": self.locked_by,
            "locked_at": to_iso(self.locked_at),
        }


class NozzleReading(db.Model):
    """
    Meter totalizer reading for one nozzle in one shift.

    consumption = closing_reading - opening_reading, never negative.
    opening_reading is seeded from the previous shift's closing reading.
    """
    __tablename__ = "nozzle_readings"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "nozzle_id", name="uq_nozzle_readings_shift_nozzle"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    nozzle_id = db.Column(db.Integer, db.ForeignKey("nozzles.id"), nullable=False, index=True)

    opening_reading = db.Column(db.Float, nullable=False, default=0.0)
    closing_reading = db.Column(db.Float, nullable=True)
    consumption = db.Column(db.Float, nullable=True)
    is_rollover = db.Column(db.Boolean, nullable=False, default=False)

    price_per_liter_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    shift = db.relationship("Shift", backref=db.backref("nozzle_readings", lazy=True))
    nozzle = db.relationship("Nozzle", backref=db.backref("readings", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "nozzle_id": self.nozzle_id,
            "nozzle": self.nozzle.to_dict(include_tank=True) if self.nozzle else None,
            "opening_reading": self.opening_reading,
            "closing_reading": self.closing_reading,
            "consumption": self.consumption,
            "is_rollover": self.is_rollover,
            "price_per_liter_cents": self.price_per_liter_cents,
        }


class NozzleSale(db.Model):
    """
    Revenue line for one nozzle in one shift.

    Seeded (quantity 0) for every station nozzle when the shift opens, with the
    price captured at that moment. total_amount_cents is always derived.
    """
    __tablename__ = "nozzle_sales"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "nozzle_id", name="uq_nozzle_sales_shift_nozzle"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    nozzle_id = db.Column(db.Integer, db.ForeignKey("nozzles.id"), nullable=False, index=True)

    quantity_liters = db.Column(db.Float, nullable=False, default=0.0)
    price_per_liter_cents = db.Column(db.Integer, nullable=False)
    card_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    cash_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    shift = db.relationship("Shift", backref=db.backref("nozzle_sales", lazy=True))
    nozzle = db.relationship("Nozzle", backref=db.backref("sales", lazy=True))

    @property
    def total_amount_cents(self) -> int:
        return liters_times_rate_cents(self.quantity_liters or 0, self.price_per_liter_cents or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "nozzle_id": self.nozzle_id,
            "nozzle": self.nozzle.to_dict(include_tank=True) if self.nozzle else None,
            "quantity_liters": self.quantity_liters,
            "price_per_liter_cents": self.price_per_liter_cents,
            "card_amount_cents": self.card_amount_cents,
            "cash_amount_cents": self.cash_amount_cents,
            "total_amount_cents": self.total_amount_cents,
        }
