# Overview: Service-layer operations for per-nozzle sales; the revenue track of a shift.

"""
Nozzle Sales Invariants

- One NozzleSale per (shift, nozzle), seeded when the inventory-path shift opens.
- price_per_liter_cents is a snapshot taken at seeding; later price changes
  do not touch open shifts.
- total_amount_cents is derived (quantity x price), never accepted as input.
- submit_sales debits each tank once by its aggregate sold quantity and locks
  the shift, all in one transaction.

Sales quantities and meter consumption both debit tanks. The two tracks are
compared by reconcile_shift(); a mismatch is logged, not corrected.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..errors import (
    InsufficientFuelError,
    InvalidInputError,
    SaleNotFoundError,
    ShiftLockedError,
    ShiftNotFoundError,
)
from ..models import Nozzle, NozzleReading, NozzleSale, Shift
from ..models.shifts import SHIFT_STATUS_CLOSED
from ..time_utils import station_now
from . import fuel_price_service, tank_ledger_service
from .concurrency import lock_for_update, run_in_transaction

# Liters; differences below this are treated as equal when reconciling
RECONCILE_TOLERANCE_LITERS = 0.01


def initialize_sales(shift_id: int, station_id: int) -> list[NozzleSale]:
    """
    Seed one zero-quantity sale row per station nozzle at the current price.

    Participates in the caller's transaction (no commit). Nozzles that
    already have a row for the shift are skipped.
    """
    nozzles = db.session.query(Nozzle).filter_by(station_id=station_id).order_by(Nozzle.name).all()
    price_map = fuel_price_service.get_price_map(station_id)
    default_price_cents = current_app.config.get("DEFAULT_FUEL_PRICE_CENTS", 10000)

    existing = {
        nozzle_id
        for (nozzle_id,) in db.session.query(NozzleSale.nozzle_id).filter_by(shift_id=shift_id)
    }

    created = []
    for nozzle in nozzles:
        if nozzle.id in existing:
            continue

        price_cents = price_map.get(nozzle.fuel_type)
        if price_cents is None:
            current_app.logger.warning(
                "No %s price set for station %s; seeding nozzle %s at default %s cents",
                nozzle.fuel_type, station_id, nozzle.name, default_price_cents,
            )
            price_cents = default_price_cents

        sale = NozzleSale(
            shift_id=shift_id,
            nozzle_id=nozzle.id,
            quantity_liters=0.0,
            price_per_liter_cents=price_cents,
            card_amount_cents=0,
            cash_amount_cents=0,
        )
        db.session.add(sale)
        created.append(sale)

    db.session.flush()
    return created


def get_shift_sales(shift_id: int) -> list[NozzleSale]:
    return (
        db.session.query(NozzleSale)
        .join(Nozzle, Nozzle.id == NozzleSale.nozzle_id)
        .filter(NozzleSale.shift_id == shift_id)
        .order_by(Nozzle.name)
        .all()
    )


def _coerce_float(name: str, value) -> float:
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be a number")


def _coerce_cents(name: str, value) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an integer number of cents")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise InvalidInputError(f"{name} must be an integer number of cents")


def update_sale(
    sale_id: int,
    quantity_liters=None,
    card_amount_cents=None,
    cash_amount_cents=None,
) -> NozzleSale:
    """
    Partial update; omitted (None) fields are left unchanged.

    Quantities and amounts may not be negative. Sales of a locked shift
    are frozen; they were already debited from the tanks.
    """
    def _op():
        sale = db.session.get(NozzleSale, sale_id)
        if not sale:
            raise SaleNotFoundError(f"Sale {sale_id} not found")
        if sale.shift.locked:
            raise ShiftLockedError(f"Shift {sale.shift_id} is locked")

        if quantity_liters is not None:
            liters = _coerce_float("quantity_liters", quantity_liters)
            if liters < 0:
                raise InvalidInputError("quantity_liters cannot be negative")
            sale.quantity_liters = liters
        if card_amount_cents is not None:
            card_cents = _coerce_cents("card_amount_cents", card_amount_cents)
            if card_cents < 0:
                raise InvalidInputError("card_amount_cents cannot be negative")
            sale.card_amount_cents = card_cents
        if cash_amount_cents is not None:
            cash_cents = _coerce_cents("cash_amount_cents", cash_amount_cents)
            if cash_cents < 0:
                raise InvalidInputError("cash_amount_cents cannot be negative")
            sale.cash_amount_cents = cash_cents

        db.session.flush()
        return sale

    return run_in_transaction(_op)


def submit_sales(shift_id: int, user_id: int | None = None, now: datetime | None = None) -> Shift:
    """
    Debit tanks by sold quantity and close + lock the shift.

    All-or-nothing: every tank is checked before any is debited, and any
    failure rolls back all debits and the shift transition.

    Raises:
        ShiftNotFoundError: shift does not exist
        ShiftLockedError: shift already locked (sales already submitted)
        InsufficientFuelError: a tank holds less than its aggregate sold quantity
    """
    now = now or station_now()

    def _op():
        shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
        if not shift:
            raise ShiftNotFoundError(f"Shift {shift_id} not found")
        if shift.locked:
            raise ShiftLockedError(f"Shift {shift_id} is locked")

        sales = db.session.query(NozzleSale).filter_by(shift_id=shift_id).all()

        sold_by_tank: dict[int, float] = {}
        for sale in sales:
            tank_id = sale.nozzle.tank_id
            sold_by_tank[tank_id] = sold_by_tank.get(tank_id, 0.0) + (sale.quantity_liters or 0.0)

        # Lock in id order so concurrent submissions cannot deadlock
        tank_ids = sorted(tank_id for tank_id, liters in sold_by_tank.items() if liters)
        for tank_id in tank_ids:
            needed = sold_by_tank[tank_id]
            if needed < 0:
                raise InvalidInputError(f"Sold quantity for tank {tank_id} cannot be negative")
            tank = tank_ledger_service.lock_tank(tank_id)
            current_level = tank.current_level or 0.0
            if current_level - needed < -tank_ledger_service.LEVEL_EPSILON:
                raise InsufficientFuelError(
                    f"Insufficient fuel in {tank.fuel_type} tank. "
                    f"Current: {current_level}L, Needed: {needed}L"
                )

        for tank_id in tank_ids:
            tank_ledger_service.apply_delta(tank_id, -sold_by_tank[tank_id])

        shift.status = SHIFT_STATUS_CLOSED
        shift.locked = True
        shift.locked_at = now
        shift.end_time = now
        if user_id is not None:
            shift.locked_by = str(user_id)

        db.session.flush()
        return shift

    shift = run_in_transaction(_op)

    summary = reconcile_shift(shift_id)
    for line in summary["lines"]:
        if not line["matches"]:
            current_app.logger.warning(
                "Shift %s nozzle %s: sold %sL but meters show %sL",
                shift_id, line["nozzle_name"], line["sold_liters"], line["metered_liters"],
            )
    return shift


def reconcile_shift(shift_id: int) -> dict:
    """
    Compare sold quantity with metered consumption per nozzle.

    metered_liters is None when the nozzle has no closed reading for the shift.
    """
    if not db.session.get(Shift, shift_id):
        raise ShiftNotFoundError(f"Shift {shift_id} not found")

    lines: "OrderedDict[int, dict]" = OrderedDict()

    for sale in get_shift_sales(shift_id):
        lines[sale.nozzle_id] = {
            "nozzle_id": sale.nozzle_id,
            "nozzle_name": sale.nozzle.name,
            "tank_id": sale.nozzle.tank_id,
            "sold_liters": sale.quantity_liters or 0.0,
            "metered_liters": None,
        }

    readings = db.session.query(NozzleReading).filter_by(shift_id=shift_id).all()
    for reading in readings:
        line = lines.setdefault(reading.nozzle_id, {
            "nozzle_id": reading.nozzle_id,
            "nozzle_name": reading.nozzle.name,
            "tank_id": reading.nozzle.tank_id,
            "sold_liters": 0.0,
            "metered_liters": None,
        })
        if reading.closing_reading is not None:
            line["metered_liters"] = reading.consumption or 0.0

    for line in lines.values():
        metered = line["metered_liters"]
        if metered is None:
            line["variance_liters"] = None
            line["matches"] = line["sold_liters"] == 0
        else:
            line["variance_liters"] = line["sold_liters"] - metered
            line["matches"] = abs(line["variance_liters"]) <= RECONCILE_TOLERANCE_LITERS

    return {
        "shift_id": shift_id,
        "lines": list(lines.values()),
        "balanced": all(line["matches"] for line in lines.values()),
    }
