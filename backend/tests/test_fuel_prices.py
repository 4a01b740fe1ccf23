"""
Fuel price register tests.

Verifies:
- Prices are appended, never edited, and the latest effective price wins
- Invalid prices and fuel types are rejected
"""

from datetime import datetime

import pytest

from stationops.errors import InvalidInputError, InvalidStateError, StationNotFoundError
from stationops.extensions import db
from stationops.models import FuelPrice
from stationops.models.inventory import FUEL_91_GASOLINE, FUEL_DIESEL
from stationops.services import fuel_price_service


class TestSetFuelPrice:

    def test_appends_history(self, station, admin_user):
        fuel_price_service.set_fuel_price(
            station.id, FUEL_DIESEL, 240, admin_user.id, effective_from=datetime(2026, 3, 1, 6, 0)
        )
        fuel_price_service.set_fuel_price(
            station.id, FUEL_DIESEL, 255, admin_user.id, effective_from=datetime(2026, 3, 5, 6, 0)
        )

        assert db.session.query(FuelPrice).filter_by(station_id=station.id).count() == 2
        assert fuel_price_service.get_current_price(station.id, FUEL_DIESEL).price_per_liter_cents == 255

    def test_latest_effective_wins_regardless_of_insert_order(self, station, admin_user):
        fuel_price_service.set_fuel_price(
            station.id, FUEL_DIESEL, 255, admin_user.id, effective_from=datetime(2026, 3, 5, 6, 0)
        )
        fuel_price_service.set_fuel_price(
            station.id, FUEL_DIESEL, 240, admin_user.id, effective_from=datetime(2026, 3, 1, 6, 0)
        )

        assert fuel_price_service.get_current_price(station.id, FUEL_DIESEL).price_per_liter_cents == 255

    def test_same_effective_time_rejected(self, station, admin_user):
        effective = datetime(2026, 3, 1, 6, 0)
        fuel_price_service.set_fuel_price(station.id, FUEL_DIESEL, 240, admin_user.id, effective_from=effective)

        with pytest.raises(InvalidStateError):
            fuel_price_service.set_fuel_price(station.id, FUEL_DIESEL, 260, admin_user.id, effective_from=effective)

    @pytest.mark.parametrize("price", [0, -100, None])
    def test_non_positive_price_rejected(self, station, admin_user, price):
        with pytest.raises(InvalidInputError):
            fuel_price_service.set_fuel_price(station.id, FUEL_DIESEL, price, admin_user.id)

    def test_unknown_fuel_type_rejected(self, station, admin_user):
        with pytest.raises(InvalidInputError):
            fuel_price_service.set_fuel_price(station.id, "KEROSENE", 200, admin_user.id)

    def test_unknown_station(self, admin_user):
        with pytest.raises(StationNotFoundError):
            fuel_price_service.set_fuel_price(9999, FUEL_DIESEL, 200, admin_user.id)


class TestCurrentPrices:

    def test_none_when_never_set(self, station):
        assert fuel_price_service.get_current_price(station.id, FUEL_DIESEL) is None
        assert fuel_price_service.get_price_map(station.id) == {}

    def test_one_price_per_fuel_type(self, station, other_station, admin_user):
        fuel_price_service.set_fuel_price(
            station.id, FUEL_DIESEL, 240, admin_user.id, effective_from=datetime(2026, 3, 1, 6, 0)
        )
        fuel_price_service.set_fuel_price(
            station.id, FUEL_DIESEL, 250, admin_user.id, effective_from=datetime(2026, 3, 2, 6, 0)
        )
        fuel_price_service.set_fuel_price(
            station.id, FUEL_91_GASOLINE, 300, admin_user.id, effective_from=datetime(2026, 3, 1, 6, 0)
        )
        # Other stations keep their own register
        fuel_price_service.set_fuel_price(
            other_station.id, FUEL_DIESEL, 999, admin_user.id, effective_from=datetime(2026, 3, 3, 6, 0)
        )

        assert fuel_price_service.get_price_map(station.id) == {FUEL_DIESEL: 250, FUEL_91_GASOLINE: 300}
        assert len(fuel_price_service.list_all_prices()) == 4
