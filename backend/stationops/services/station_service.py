from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidInputError, StationNotFoundError, TankNotFoundError
from ..models import Nozzle, Station, Tank, User
from ..models.auth import ROLE_STATION_MANAGER
from ..models.inventory import DEFAULT_METER_LIMIT
from .concurrency import lock_for_update, run_in_transaction
from .fuel_price_service import validate_fuel_type


def get_station(station_id: int) -> Station:
    station = db.session.get(Station, station_id)
    if not station:
        raise StationNotFoundError(f"Station {station_id} not found")
    return station


def list_stations_for(user: User) -> list[Station]:
    """Station managers see their own station; area managers and admins see all."""
    query = db.session.query(Station)
    if user.role == ROLE_STATION_MANAGER:
        if not user.station_id:
            return []
        query = query.filter(Station.id == user.station_id)
    return query.order_by(Station.name).all()


def create_station(name: str, address: str | None = None) -> Station:
    def _op():
        if not name:
            raise InvalidInputError("Station name is required")

        station = Station(name=name, address=address)
        db.session.add(station)
        try:
            db.session.flush()
        except IntegrityError:
            raise InvalidInputError(f"Station name {name!r} already exists")
        return station

    return run_in_transaction(_op)


def update_station(station_id: int, *, name: str | None = None, address: str | None = None) -> Station:
    def _op():
        station = lock_for_update(db.session.query(Station).filter_by(id=station_id)).first()
        if not station:
            raise StationNotFoundError(f"Station {station_id} not found")

        if name is not None:
            if not name:
                raise InvalidInputError("Station name is required")
            station.name = name
        if address is not None:
            station.address = address

        try:
            db.session.flush()
        except IntegrityError:
            raise InvalidInputError(f"Station name {name!r} already exists")
        return station

    return run_in_transaction(_op)


def create_tank(
    station_id: int,
    fuel_type: str,
    capacity: float | None = None,
    current_level: float = 0.0,
) -> Tank:
    def _op():
        get_station(station_id)
        validate_fuel_type(fuel_type)
        if capacity is not None and capacity <= 0:
            raise InvalidInputError("capacity must be positive")
        if current_level < 0:
            raise InvalidInputError("current_level cannot be negative")
        if capacity is not None and current_level > capacity:
            raise InvalidInputError("current_level cannot exceed capacity")

        tank = Tank(
            station_id=station_id,
            fuel_type=fuel_type,
            capacity=capacity,
            current_level=current_level,
        )
        db.session.add(tank)
        db.session.flush()
        return tank

    return run_in_transaction(_op)


def create_nozzle(
    station_id: int,
    tank_id: int,
    name: str,
    fuel_type: str | None = None,
    meter_limit: float | None = None,
) -> Nozzle:
    """
    Attach a nozzle to a tank. The nozzle takes its tank's fuel type; an
    explicit fuel_type must agree with it.
    """
    def _op():
        get_station(station_id)
        if not name:
            raise InvalidInputError("Nozzle name is required")

        tank = db.session.get(Tank, tank_id)
        if not tank:
            raise TankNotFoundError(f"Tank {tank_id} not found")
        if tank.station_id != station_id:
            raise InvalidInputError(f"Tank {tank_id} does not belong to station {station_id}")
        if fuel_type is not None and fuel_type != tank.fuel_type:
            raise InvalidInputError(
                f"Nozzle fuel type {fuel_type} does not match tank fuel type {tank.fuel_type}"
            )

        nozzle = Nozzle(
            name=name,
            station_id=station_id,
            tank_id=tank_id,
            fuel_type=tank.fuel_type,
            meter_limit=meter_limit if meter_limit is not None else DEFAULT_METER_LIMIT,
        )
        db.session.add(nozzle)
        try:
            db.session.flush()
        except IntegrityError:
            raise InvalidInputError(f"Nozzle name {name!r} already exists")
        return nozzle

    return run_in_transaction(_op)
