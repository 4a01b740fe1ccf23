# Overview: Service-layer operations for tank stock; the only writer of Tank.current_level.

"""
Tank Ledger Invariants (authoritative)

- Tank.current_level changes only through apply_delta().
- A delta is applied as a locked read-modify-write inside the caller's
  transaction; apply_delta never commits.
- Deliveries (+) may not push the level above capacity.
- Consumption (-) may not push the level below zero.
- Level after any interleaving of deliveries and consumptions is
  initial + sum(deliveries) - sum(consumptions).
- Callers that need a richer failure message (sales submission) check the
  floor themselves before calling in.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..errors import (
    InvalidDeliveryError,
    InvalidInputError,
    InsufficientFuelError,
    TankNotFoundError,
    UserNotFoundError,
)
from ..models import Tank, TankerDelivery, Nozzle, User
from ..time_utils import station_now
from .concurrency import lock_for_update, run_in_transaction

# Float noise tolerance when comparing liters against bounds
LEVEL_EPSILON = 1e-6


def get_tank(tank_id: int) -> Tank:
    tank = db.session.get(Tank, tank_id)
    if not tank:
        raise TankNotFoundError(f"Tank {tank_id} not found")
    return tank


def list_station_tanks(station_id: int) -> list[Tank]:
    return db.session.query(Tank).filter_by(station_id=station_id).order_by(Tank.id).all()


def list_station_nozzles(station_id: int) -> list[Nozzle]:
    return db.session.query(Nozzle).filter_by(station_id=station_id).order_by(Nozzle.name).all()


def lock_tank(tank_id: int) -> Tank:
    tank = lock_for_update(db.session.query(Tank).filter_by(id=tank_id)).first()
    if not tank:
        raise TankNotFoundError(f"Tank {tank_id} not found")
    return tank


def apply_delta(tank_id: int, signed_liters: float) -> Tank:
    """
    Apply a signed change to a tank's level.

    Positive = delivery / credit, negative = consumption / debit.
    Participates in the caller's transaction (no commit).

    Raises:
        TankNotFoundError: tank does not exist
        InvalidDeliveryError: level would exceed capacity
        InsufficientFuelError: level would drop below zero
    """
    tank = lock_tank(tank_id)

    current_level = tank.current_level or 0.0
    new_level = current_level + signed_liters

    if signed_liters > 0 and tank.capacity is not None and new_level > tank.capacity + LEVEL_EPSILON:
        raise InvalidDeliveryError(
            f"Delivery exceeds tank capacity. "
            f"Capacity: {tank.capacity}L, Current: {current_level}L, "
            f"Delivery: {signed_liters}L, New Total: {new_level}L"
        )

    if signed_liters < 0 and new_level < -LEVEL_EPSILON:
        raise InsufficientFuelError(
            f"Insufficient fuel in {tank.fuel_type} tank. "
            f"Current: {current_level}L, Needed: {-signed_liters}L"
        )

    tank.current_level = new_level
    db.session.flush()
    return tank


def record_delivery(
    tank_id: int,
    liters_delivered: float,
    delivered_by_user_id: int,
    delivery_date: datetime | None = None,
    ticket_reference: str | None = None,
    notes: str | None = None,
) -> tuple[TankerDelivery, Tank]:
    """
    Record a tanker delivery and credit the tank in one transaction.

    Returns (delivery, tank).
    """
    def _op():
        if liters_delivered is None or liters_delivered <= 0:
            raise InvalidInputError("liters_delivered must be positive")

        get_tank(tank_id)
        if not db.session.get(User, delivered_by_user_id):
            raise UserNotFoundError(f"User {delivered_by_user_id} not found")

        delivery = TankerDelivery(
            tank_id=tank_id,
            liters_delivered=liters_delivered,
            delivery_date=delivery_date or station_now(),
            delivered_by_user_id=delivered_by_user_id,
            ticket_reference=ticket_reference,
            notes=notes,
        )
        db.session.add(delivery)

        tank = apply_delta(tank_id, liters_delivered)
        return delivery, tank

    delivery, tank = run_in_transaction(_op)
    current_app.logger.info(
        "Tanker delivery %s: %sL into tank %s (level now %sL)",
        delivery.id, liters_delivered, tank_id, tank.current_level,
    )
    return delivery, tank


def list_deliveries(tank_id: int | None = None) -> list[TankerDelivery]:
    query = db.session.query(TankerDelivery)
    if tank_id is not None:
        query = query.filter_by(tank_id=tank_id)
    return query.order_by(TankerDelivery.delivery_date.desc(), TankerDelivery.id.desc()).all()
