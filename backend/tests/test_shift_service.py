"""
Shift resolver tests.

Verifies:
- Both window policies bucket wall-clock time as documented
- Find-or-create returns the same shift within a window
- A new inventory shift seeds one sale row per nozzle
- Cash entry reuses any open shift, otherwise opens one on its own clock
"""

from datetime import datetime

import pytest

from stationops.errors import StationNotFoundError
from stationops.extensions import db
from stationops.models import NozzleSale, Shift
from stationops.models.shifts import (
    SHIFT_STATUS_CLOSED,
    SHIFT_STATUS_OPEN,
    SHIFT_TYPE_DAY,
    SHIFT_TYPE_NIGHT,
    WINDOW_POLICY_CASH_ENTRY,
    WINDOW_POLICY_INVENTORY,
)
from stationops.services import meter_reading_service, shift_service
from stationops.services.shift_service import CASH_ENTRY_WINDOWS, INVENTORY_WINDOWS


class TestWindowPolicies:

    @pytest.mark.parametrize(
        "hour,expected_type,expected_start",
        [
            (0, SHIFT_TYPE_DAY, datetime(2026, 3, 10, 0, 0)),
            (11, SHIFT_TYPE_DAY, datetime(2026, 3, 10, 0, 0)),
            (12, SHIFT_TYPE_NIGHT, datetime(2026, 3, 10, 12, 0)),
            (23, SHIFT_TYPE_NIGHT, datetime(2026, 3, 10, 12, 0)),
        ],
    )
    def test_inventory_windows(self, hour, expected_type, expected_start):
        now = datetime(2026, 3, 10, hour, 15)
        assert INVENTORY_WINDOWS.shift_type_for(now) == expected_type
        assert INVENTORY_WINDOWS.window_start_for(now) == expected_start

    @pytest.mark.parametrize(
        "hour,expected_type,expected_start",
        [
            (5, SHIFT_TYPE_NIGHT, datetime(2026, 3, 9, 18, 0)),
            (6, SHIFT_TYPE_DAY, datetime(2026, 3, 10, 6, 0)),
            (17, SHIFT_TYPE_DAY, datetime(2026, 3, 10, 6, 0)),
            (18, SHIFT_TYPE_NIGHT, datetime(2026, 3, 10, 18, 0)),
            (23, SHIFT_TYPE_NIGHT, datetime(2026, 3, 10, 18, 0)),
        ],
    )
    def test_cash_entry_windows(self, hour, expected_type, expected_start):
        now = datetime(2026, 3, 10, hour, 15)
        assert CASH_ENTRY_WINDOWS.shift_type_for(now) == expected_type
        assert CASH_ENTRY_WINDOWS.window_start_for(now) == expected_start


class TestResolveCurrentShift:

    def test_creates_open_shift_at_window_start(self, station):
        shift = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 14, 5))

        assert shift.status == SHIFT_STATUS_OPEN
        assert shift.shift_type == SHIFT_TYPE_NIGHT
        assert shift.window_policy == WINDOW_POLICY_INVENTORY
        assert shift.start_time == datetime(2026, 3, 10, 12, 0)
        assert shift.locked is False

    def test_same_window_returns_same_shift(self, station):
        first = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 1, 0))
        second = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 11, 59))

        assert first.id == second.id
        assert db.session.query(Shift).count() == 1

    def test_next_window_opens_new_shift(self, station):
        day = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 9, 0))
        night = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 13, 0))

        assert day.id != night.id
        assert night.shift_type == SHIFT_TYPE_NIGHT

    def test_closed_shift_is_still_current(self, station):
        shift = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 9, 0))
        shift.status = SHIFT_STATUS_CLOSED
        db.session.commit()

        again = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 10, 0))
        assert again.id == shift.id

    def test_locked_shift_wins_the_window(self, station):
        shift = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 9, 0))
        meter_reading_service.lock_shift(shift.id)

        again = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 10, 0))
        assert again.id == shift.id
        assert db.session.query(Shift).count() == 1

    def test_seeds_sales_for_every_nozzle(self, station, nozzle, gasoline_tank, db_session):
        from stationops.models import Nozzle

        db_session.add(Nozzle(
            name="N-02", station_id=station.id, tank_id=gasoline_tank.id, fuel_type=gasoline_tank.fuel_type
        ))
        db_session.commit()

        shift = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 9, 0))
        sales = db.session.query(NozzleSale).filter_by(shift_id=shift.id).all()

        assert len(sales) == 2
        assert all(s.quantity_liters == 0 for s in sales)

    def test_resolving_again_does_not_reseed(self, station, nozzle):
        shift = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 9, 0))
        shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 9, 5))

        assert db.session.query(NozzleSale).filter_by(shift_id=shift.id).count() == 1

    def test_adopted_cash_entry_shift_gets_sales(self, station, nozzle):
        now = datetime(2026, 3, 10, 19, 0)
        cash_shift = shift_service.resolve_cash_entry_shift(station.id, now=now)
        assert db.session.query(NozzleSale).filter_by(shift_id=cash_shift.id).count() == 0

        shift = shift_service.resolve_current_shift(station.id, now=now)

        assert shift.id == cash_shift.id
        sales = db.session.query(NozzleSale).filter_by(shift_id=shift.id).all()
        assert [s.nozzle_id for s in sales] == [nozzle.id]

    def test_unknown_station(self, db_session):
        with pytest.raises(StationNotFoundError):
            shift_service.resolve_current_shift(9999, now=datetime(2026, 3, 10, 9, 0))


class TestResolveCashEntryShift:

    def test_reuses_any_open_shift(self, station):
        inventory_shift = shift_service.resolve_current_shift(station.id, now=datetime(2026, 3, 10, 9, 0))

        # Different window on both clocks; still the open shift
        cash_shift = shift_service.resolve_cash_entry_shift(station.id, now=datetime(2026, 3, 10, 20, 0))
        assert cash_shift.id == inventory_shift.id

    def test_opens_shift_on_cash_clock(self, station):
        now = datetime(2026, 3, 10, 4, 45)
        shift = shift_service.resolve_cash_entry_shift(station.id, now=now)

        assert shift.status == SHIFT_STATUS_OPEN
        assert shift.shift_type == SHIFT_TYPE_NIGHT
        assert shift.window_policy == WINDOW_POLICY_CASH_ENTRY
        assert shift.window_start == datetime(2026, 3, 9, 18, 0)
        assert shift.start_time == now

    def test_does_not_seed_sales(self, station, nozzle):
        shift = shift_service.resolve_cash_entry_shift(station.id, now=datetime(2026, 3, 10, 9, 0))
        assert db.session.query(NozzleSale).filter_by(shift_id=shift.id).count() == 0

    def test_unknown_station(self, db_session):
        with pytest.raises(StationNotFoundError):
            shift_service.resolve_cash_entry_shift(9999)
