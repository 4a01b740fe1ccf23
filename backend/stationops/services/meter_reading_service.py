# Overview: Service-layer operations for nozzle meter readings and shift locking.

"""
Meter Reading Invariants

- opening_reading = closing reading of the same nozzle in the station's most
  recent prior shift, or 0 when there is none (or it was never closed).
- consumption = closing_reading - opening_reading, and is never negative.
  Meter rollover is not handled: a reading below the opening is rejected.
- Tank debits are batched: one ledger delta per tank per call.
- Re-recording or correcting a reading debits only the change in consumption,
  so repeating the same value leaves the tank untouched.
- Locked shifts accept no reading changes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, or_

from ..extensions import db
from ..errors import (
    InvalidInputError,
    InvalidReadingError,
    InvalidStateError,
    NozzleNotFoundError,
    ReadingNotFoundError,
    ShiftLockedError,
    ShiftNotFoundError,
)
from ..models import Nozzle, NozzleReading, Shift
from ..models.shifts import SHIFT_STATUS_CLOSED, SHIFT_STATUS_LOCKED
from ..time_utils import station_now
from . import fuel_price_service, tank_ledger_service
from .concurrency import lock_for_update, run_in_transaction


def _lock_shift_row(shift_id: int) -> Shift:
    shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
    if not shift:
        raise ShiftNotFoundError(f"Shift {shift_id} not found")
    return shift


def get_previous_shift(shift: Shift) -> Shift | None:
    """Latest other shift of the same station that started no later than this one."""
    return (
        db.session.query(Shift)
        .filter(
            Shift.station_id == shift.station_id,
            Shift.id != shift.id,
            or_(
                Shift.start_time < shift.start_time,
                and_(Shift.start_time == shift.start_time, Shift.id < shift.id),
            ),
        )
        .order_by(Shift.start_time.desc(), Shift.id.desc())
        .first()
    )


def opening_readings_for(shift: Shift) -> dict[int, float]:
    """nozzle_id -> opening reading carried over from the previous shift."""
    previous = get_previous_shift(shift)
    if previous is None:
        return {}

    return {
        reading.nozzle_id: reading.closing_reading
        for reading in db.session.query(NozzleReading).filter_by(shift_id=previous.id)
        if reading.closing_reading is not None
    }


def get_shift_readings(shift_id: int) -> list[NozzleReading]:
    return (
        db.session.query(NozzleReading)
        .join(Nozzle, Nozzle.id == NozzleReading.nozzle_id)
        .filter(NozzleReading.shift_id == shift_id)
        .order_by(Nozzle.name)
        .all()
    )


def _parse_reading_item(item: dict) -> tuple[int, float]:
    try:
        nozzle_id = int(item["nozzle_id"])
        closing = float(item["closing_reading"])
    except KeyError as e:
        raise InvalidInputError(f"Missing required field: {e.args[0]}")
    except (TypeError, ValueError):
        raise InvalidInputError("nozzle_id must be an integer and closing_reading a number")
    return nozzle_id, closing


def _check_meter_limit(nozzle: Nozzle, closing: float) -> None:
    if nozzle.meter_limit is not None and closing > nozzle.meter_limit:
        raise InvalidReadingError(
            f"Invalid reading for nozzle {nozzle.name}: {closing} exceeds meter limit {nozzle.meter_limit}"
        )


def record_readings(shift_id: int, station_id: int, readings: list[dict]) -> list[NozzleReading]:
    """
    Record closing readings for a shift and debit tanks by the consumption.

    Args:
        shift_id: Shift the readings belong to
        station_id: Station owning the shift and nozzles
        readings: [{"nozzle_id": int, "closing_reading": float}, ...]

    Raises:
        ShiftNotFoundError, ShiftLockedError, NozzleNotFoundError,
        InvalidReadingError (negative consumption or above meter limit)
    """
    def _op():
        shift = _lock_shift_row(shift_id)
        if shift.locked:
            raise ShiftLockedError(f"Shift {shift_id} is locked")
        if shift.station_id != station_id:
            raise InvalidInputError(f"Shift {shift_id} does not belong to station {station_id}")

        nozzles = {
            nozzle.id: nozzle
            for nozzle in db.session.query(Nozzle).filter_by(station_id=station_id)
        }
        openings = opening_readings_for(shift)
        price_map = fuel_price_service.get_price_map(station_id)

        consumption_by_tank: dict[int, float] = {}

        for item in readings:
            nozzle_id, closing = _parse_reading_item(item)
            nozzle = nozzles.get(nozzle_id)
            if nozzle is None:
                raise NozzleNotFoundError(f"Nozzle {nozzle_id} not found at station {station_id}")

            _check_meter_limit(nozzle, closing)

            opening = openings.get(nozzle_id, 0.0)
            consumption = closing - opening
            if consumption < 0:
                raise InvalidReadingError(
                    f"Invalid reading for nozzle {nozzle.name}: closing {closing} is below opening {opening}"
                )

            reading = (
                db.session.query(NozzleReading)
                .filter_by(shift_id=shift_id, nozzle_id=nozzle_id)
                .first()
            )
            if reading:
                delta = consumption - (reading.consumption or 0.0)
                reading.opening_reading = opening
                reading.closing_reading = closing
                reading.consumption = consumption
            else:
                delta = consumption
                reading = NozzleReading(
                    shift_id=shift_id,
                    nozzle_id=nozzle_id,
                    opening_reading=opening,
                    closing_reading=closing,
                    consumption=consumption,
                    is_rollover=False,
                    price_per_liter_cents=price_map.get(nozzle.fuel_type),
                )
                db.session.add(reading)
            db.session.flush()

            consumption_by_tank[nozzle.tank_id] = consumption_by_tank.get(nozzle.tank_id, 0.0) + delta

        for tank_id in sorted(consumption_by_tank):
            liters = consumption_by_tank[tank_id]
            if liters:
                tank_ledger_service.apply_delta(tank_id, -liters)

        return get_shift_readings(shift_id)

    return run_in_transaction(_op)


def update_reading(shift_id: int, reading_id: int, closing_reading: float) -> NozzleReading:
    """
    Correct the closing reading of one nozzle; the tank absorbs only the difference.

    Raises:
        ReadingNotFoundError: reading missing
        InvalidStateError: reading belongs to another shift
        ShiftLockedError: owning shift is locked
        InvalidReadingError: negative consumption or above meter limit
    """
    def _op():
        reading = lock_for_update(db.session.query(NozzleReading).filter_by(id=reading_id)).first()
        if not reading:
            raise ReadingNotFoundError(f"Reading {reading_id} not found")
        if reading.shift_id != shift_id:
            raise InvalidStateError(f"Reading {reading_id} does not belong to shift {shift_id}")

        shift = _lock_shift_row(shift_id)
        if shift.locked:
            raise ShiftLockedError(f"Shift {shift_id} is locked")

        try:
            closing = float(closing_reading)
        except (TypeError, ValueError):
            raise InvalidInputError("closing_reading must be a number")

        nozzle = reading.nozzle
        _check_meter_limit(nozzle, closing)

        new_consumption = closing - (reading.opening_reading or 0.0)
        if new_consumption < 0:
            raise InvalidReadingError(
                f"Invalid reading for nozzle {nozzle.name}: closing {closing} is below opening {reading.opening_reading}"
            )

        diff = new_consumption - (reading.consumption or 0.0)

        reading.closing_reading = closing
        reading.consumption = new_consumption
        db.session.flush()

        if diff:
            tank_ledger_service.apply_delta(nozzle.tank_id, -diff)

        return reading

    return run_in_transaction(_op)


def lock_shift(shift_id: int, user_id: int | None = None, now: datetime | None = None) -> Shift:
    """Mark a shift LOCKED; readings can no longer change."""
    now = now or station_now()

    def _op():
        shift = _lock_shift_row(shift_id)
        shift.status = SHIFT_STATUS_LOCKED
        shift.locked = True
        shift.locked_at = now
        if user_id is not None:
            shift.locked_by = str(user_id)
        return shift

    return run_in_transaction(_op)


def unlock_shift(shift_id: int, user_id: int) -> Shift:
    """Reopen a locked shift for corrections (status CLOSED), recording who unlocked it."""
    def _op():
        shift = _lock_shift_row(shift_id)
        shift.status = SHIFT_STATUS_CLOSED
        shift.locked = False
        shift.locked_by = str(user_id)
        return shift

    return run_in_transaction(_op)
