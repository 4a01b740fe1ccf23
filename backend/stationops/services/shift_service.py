# Overview: Service-layer operations for shifts; finds or creates the live shift of a station.

"""
Shift Resolver

Two window policies exist and are selected by the calling path:

- INVENTORY_WINDOWS (readings / sales): DAY = 00:00-12:00, NIGHT = 12:00-24:00
- CASH_ENTRY_WINDOWS (cash entry):      DAY = 06:00-18:00, NIGHT = 18:00-06:00

The two are not unified; each caller names the policy it uses. "now" is
always injectable so windows can be exercised at any wall-clock time.

Find-or-create is closed against races by the unique window key on shifts
(station_id, window_policy, shift_type, window_start): a losing insert raises
IntegrityError, the unit of work is rolled back, and the winner is re-read.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ShiftNotFoundError, StationNotFoundError
from ..models import Shift, Station
from ..models.shifts import (
    SHIFT_TYPE_DAY,
    SHIFT_TYPE_NIGHT,
    SHIFT_STATUS_OPEN,
    SHIFT_STATUS_CLOSED,
    WINDOW_POLICY_INVENTORY,
    WINDOW_POLICY_CASH_ENTRY,
)
from ..time_utils import station_now
from . import nozzle_sales_service
from .concurrency import run_in_transaction

SHIFT_LENGTH = timedelta(hours=12)


@dataclass(frozen=True)
class ShiftWindowPolicy:
    """Two back-to-back 12-hour windows per day; DAY starts at day_start_hour."""
    name: str
    day_start_hour: int

    def shift_type_for(self, now: datetime) -> str:
        hour = now.hour
        if self.day_start_hour <= hour < self.day_start_hour + 12:
            return SHIFT_TYPE_DAY
        return SHIFT_TYPE_NIGHT

    def window_start_for(self, now: datetime) -> datetime:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_start = midnight + timedelta(hours=self.day_start_hour)
        night_start = day_start + SHIFT_LENGTH

        if now < day_start:
            # Early-morning hours belong to the previous evening's night window
            return night_start - timedelta(days=1)
        if now < night_start:
            return day_start
        return night_start


INVENTORY_WINDOWS = ShiftWindowPolicy(WINDOW_POLICY_INVENTORY, day_start_hour=0)
CASH_ENTRY_WINDOWS = ShiftWindowPolicy(WINDOW_POLICY_CASH_ENTRY, day_start_hour=6)


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if not shift:
        raise ShiftNotFoundError(f"Shift {shift_id} not found")
    return shift


def list_station_shifts(station_id: int, limit: int = 20) -> list[Shift]:
    return (
        db.session.query(Shift)
        .filter_by(station_id=station_id)
        .order_by(Shift.start_time.desc(), Shift.id.desc())
        .limit(limit)
        .all()
    )


def _ensure_station(station_id: int) -> None:
    if not db.session.get(Station, station_id):
        raise StationNotFoundError(f"Station {station_id} not found")


def _find_by_window_key(station_id: int, policy: ShiftWindowPolicy, shift_type: str, window_start: datetime):
    return (
        db.session.query(Shift)
        .filter_by(
            station_id=station_id,
            window_policy=policy.name,
            shift_type=shift_type,
            window_start=window_start,
        )
        .first()
    )


def resolve_current_shift(station_id: int, now: datetime | None = None) -> Shift:
    """
    Find or create the station's shift for the current inventory window.

    A shift matches when it has the same type, started inside the current
    window, and is OPEN or CLOSED, whichever clock opened it. A new shift
    starts at the window boundary. Every unlocked shift returned here has
    one NozzleSale row per station nozzle.
    """
    now = now or station_now()
    policy = INVENTORY_WINDOWS
    shift_type = policy.shift_type_for(now)
    window_start = policy.window_start_for(now)
    window_end = window_start + SHIFT_LENGTH

    def _find():
        return (
            db.session.query(Shift)
            .filter(
                Shift.station_id == station_id,
                Shift.shift_type == shift_type,
                Shift.start_time >= window_start,
                Shift.start_time < window_end,
                Shift.status.in_([SHIFT_STATUS_OPEN, SHIFT_STATUS_CLOSED]),
            )
            .order_by(Shift.start_time, Shift.id)
            .first()
        )

    def _op():
        _ensure_station(station_id)
        existing = _find()
        if existing:
            # A shift opened by cash entry carries no sales rows yet
            if not existing.locked:
                nozzle_sales_service.initialize_sales(existing.id, station_id)
            return existing, False

        shift = Shift(
            station_id=station_id,
            shift_type=shift_type,
            window_policy=policy.name,
            window_start=window_start,
            start_time=window_start,
            status=SHIFT_STATUS_OPEN,
            locked=False,
        )
        db.session.add(shift)
        db.session.flush()

        nozzle_sales_service.initialize_sales(shift.id, station_id)
        return shift, True

    try:
        shift, created = run_in_transaction(_op)
    except IntegrityError:
        # Lost the creation race; the winner owns this window
        shift = _find_by_window_key(station_id, policy, shift_type, window_start)
        if shift is None:
            raise
        created = False

    if created:
        current_app.logger.info(
            "Opened %s shift %s for station %s (window %s)", shift_type, shift.id, station_id, window_start
        )
    return shift


def resolve_cash_entry_shift(station_id: int, now: datetime | None = None) -> Shift:
    """
    Return any OPEN shift of the station, or open one on the cash-entry clock.

    Type and window of a new shift come from CASH_ENTRY_WINDOWS; its start
    time is the moment of creation. No sales rows are seeded on this path.
    """
    now = now or station_now()
    policy = CASH_ENTRY_WINDOWS
    shift_type = policy.shift_type_for(now)
    window_start = policy.window_start_for(now)

    def _find_open():
        return (
            db.session.query(Shift)
            .filter_by(station_id=station_id, status=SHIFT_STATUS_OPEN)
            .order_by(Shift.start_time.desc(), Shift.id.desc())
            .first()
        )

    def _op():
        _ensure_station(station_id)
        existing = _find_open()
        if existing:
            return existing, False

        shift = Shift(
            station_id=station_id,
            shift_type=shift_type,
            window_policy=policy.name,
            window_start=window_start,
            start_time=now,
            status=SHIFT_STATUS_OPEN,
            locked=False,
        )
        db.session.add(shift)
        db.session.flush()
        return shift, True

    try:
        shift, created = run_in_transaction(_op)
    except IntegrityError:
        shift = _find_open() or _find_by_window_key(station_id, policy, shift_type, window_start)
        if shift is None:
            raise
        created = False

    if created:
        current_app.logger.info(
            "Opened %s shift %s for station %s on the cash-entry clock", shift_type, shift.id, station_id
        )
    return shift
