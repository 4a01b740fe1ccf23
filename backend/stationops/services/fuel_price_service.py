# Overview: Service-layer operations for the fuel price register (append-only history).

from __future__ import annotations

from datetime import datetime

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidInputError, InvalidStateError, StationNotFoundError
from ..models import FuelPrice, Station
from ..models.inventory import FUEL_TYPES
from ..time_utils import station_now
from .concurrency import run_in_transaction


def validate_fuel_type(fuel_type: str) -> str:
    if fuel_type not in FUEL_TYPES:
        raise InvalidInputError(f"fuel_type must be one of: {', '.join(FUEL_TYPES)}")
    return fuel_type


def set_fuel_price(
    station_id: int,
    fuel_type: str,
    price_per_liter_cents: int,
    created_by_user_id: int | None,
    effective_from: datetime | None = None,
) -> FuelPrice:
    """
    Append a price to the station's history. Existing rows are never edited.

    Raises:
        StationNotFoundError: station does not exist
        InvalidInputError: unknown fuel type or non-positive price
        InvalidStateError: a price already exists for that exact effective time
    """
    def _op():
        validate_fuel_type(fuel_type)
        if price_per_liter_cents is None or price_per_liter_cents <= 0:
            raise InvalidInputError("price_per_liter_cents must be positive")
        if not db.session.get(Station, station_id):
            raise StationNotFoundError(f"Station {station_id} not found")

        price = FuelPrice(
            station_id=station_id,
            fuel_type=fuel_type,
            price_per_liter_cents=price_per_liter_cents,
            effective_from=effective_from or station_now(),
            created_by_user_id=created_by_user_id,
        )
        db.session.add(price)
        try:
            db.session.flush()
        except IntegrityError:
            raise InvalidStateError(
                f"A {fuel_type} price is already effective from {price.effective_from} at station {station_id}"
            )
        return price

    return run_in_transaction(_op)


def get_current_price(station_id: int, fuel_type: str) -> FuelPrice | None:
    """Most recent effective price for (station, fuel type), or None if never set."""
    return (
        db.session.query(FuelPrice)
        .filter_by(station_id=station_id, fuel_type=fuel_type)
        .order_by(FuelPrice.effective_from.desc(), FuelPrice.id.desc())
        .first()
    )


def get_current_prices(station_id: int) -> list[FuelPrice]:
    """Current price per fuel type for a station (fuel types without a price are omitted)."""
    prices = (
        db.session.query(FuelPrice)
        .filter_by(station_id=station_id)
        .order_by(FuelPrice.effective_from.desc(), FuelPrice.id.desc())
        .all()
    )

    latest: dict[str, FuelPrice] = {}
    for price in prices:
        latest.setdefault(price.fuel_type, price)
    return list(latest.values())


def get_price_map(station_id: int) -> dict[str, int]:
    return {p.fuel_type: p.price_per_liter_cents for p in get_current_prices(station_id)}


def list_all_prices() -> list[FuelPrice]:
    return (
        db.session.query(FuelPrice)
        .order_by(FuelPrice.effective_from.desc(), FuelPrice.id.desc())
        .all()
    )
