"""
Station setup tests.

Verifies:
- Stations, tanks and nozzles are validated on creation
- Station managers only see their own station
- Receipt storage naming and file type checks
- Setup CLI commands
"""

import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from stationops.errors import InvalidInputError, StationNotFoundError, TankNotFoundError
from stationops.models import FuelPrice, Station, User
from stationops.models.inventory import DEFAULT_METER_LIMIT, FUEL_91_GASOLINE, FUEL_DIESEL
from stationops.services import receipt_storage, station_service

from conftest import PASSWORD


class TestStations:

    def test_create_and_rename(self, db_session):
        station = station_service.create_station("Station East", address="Harbour 4")
        renamed = station_service.update_station(station.id, name="Station East 2")

        assert renamed.name == "Station East 2"
        assert renamed.address == "Harbour 4"

    def test_duplicate_name(self, station):
        with pytest.raises(InvalidInputError):
            station_service.create_station(station.name)

    def test_name_required(self, db_session):
        with pytest.raises(InvalidInputError):
            station_service.create_station("")

    def test_station_manager_sees_own_station(self, station, other_station, station_manager, area_manager):
        assert [s.id for s in station_service.list_stations_for(station_manager)] == [station.id]
        assert len(station_service.list_stations_for(area_manager)) == 2


class TestTanksAndNozzles:

    def test_create_tank(self, station):
        tank = station_service.create_tank(station.id, FUEL_91_GASOLINE, capacity=5000, current_level=1200)
        assert tank.current_level == 1200
        assert tank.capacity == 5000

    @pytest.mark.parametrize("kwargs", [
        {"fuel_type": "LPG"},
        {"fuel_type": FUEL_DIESEL, "capacity": 0},
        {"fuel_type": FUEL_DIESEL, "current_level": -1},
        {"fuel_type": FUEL_DIESEL, "capacity": 100, "current_level": 101},
    ])
    def test_invalid_tank(self, station, kwargs):
        with pytest.raises(InvalidInputError):
            station_service.create_tank(station.id, **kwargs)

    def test_tank_for_unknown_station(self, db_session):
        with pytest.raises(StationNotFoundError):
            station_service.create_tank(9999, FUEL_DIESEL)

    def test_nozzle_takes_tank_fuel_type(self, station, tank):
        nozzle = station_service.create_nozzle(station.id, tank.id, "N-05")

        assert nozzle.fuel_type == tank.fuel_type
        assert nozzle.meter_limit == DEFAULT_METER_LIMIT

    def test_nozzle_fuel_type_must_match_tank(self, station, tank):
        with pytest.raises(InvalidInputError):
            station_service.create_nozzle(station.id, tank.id, "N-06", fuel_type=FUEL_91_GASOLINE)

    def test_nozzle_on_foreign_tank(self, station, other_station):
        foreign = station_service.create_tank(other_station.id, FUEL_DIESEL, capacity=1000)

        with pytest.raises(InvalidInputError):
            station_service.create_nozzle(station.id, foreign.id, "N-07")

    def test_nozzle_on_unknown_tank(self, station):
        with pytest.raises(TankNotFoundError):
            station_service.create_nozzle(station.id, 9999, "N-08")

    def test_duplicate_nozzle_name(self, station, tank, nozzle):
        with pytest.raises(InvalidInputError):
            station_service.create_nozzle(station.id, tank.id, nozzle.name)


class TestReceiptStorage:

    def test_saves_under_upload_dir(self, app):
        stored = receipt_storage.save_receipt(
            FileStorage(stream=io.BytesIO(b"%PDF-1.4"), filename="Bank Slip.PDF")
        )

        assert stored.startswith("/uploads/receipts/receipt-")
        assert stored.endswith(".pdf")
        name = stored.rsplit("/", 1)[1]
        with open(os.path.join(app.config["UPLOAD_DIR"], name), "rb") as fh:
            assert fh.read() == b"%PDF-1.4"

    def test_rejects_unknown_type(self, app):
        with pytest.raises(InvalidInputError):
            receipt_storage.save_receipt(FileStorage(stream=io.BytesIO(b"MZ"), filename="slip.exe"))

    def test_rejects_missing_extension(self, app):
        with pytest.raises(InvalidInputError):
            receipt_storage.save_receipt(FileStorage(stream=io.BytesIO(b"x"), filename="slip"))


class TestSetupCommands:

    def test_station_tank_nozzle_price(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["stations", "create", "--name", "CLI Station"])
        assert result.exit_code == 0, result.output
        assert "PASS Created station CLI Station" in result.output
        station = db_session.query(Station).filter_by(name="CLI Station").one()

        result = runner.invoke(args=[
            "tanks", "create", "--station-id", str(station.id), "--fuel-type", FUEL_DIESEL, "--capacity", "9000",
        ])
        assert result.exit_code == 0, result.output

        tank_id = station.tanks[0].id
        result = runner.invoke(args=[
            "nozzles", "create", "--station-id", str(station.id), "--tank-id", str(tank_id), "--name", "C-01",
        ])
        assert result.exit_code == 0, result.output

        result = runner.invoke(args=[
            "prices", "set", "--station-id", str(station.id), "--fuel-type", FUEL_DIESEL, "--price-cents", "245",
        ])
        assert result.exit_code == 0, result.output
        assert db_session.query(FuelPrice).filter_by(station_id=station.id).one().price_per_liter_cents == 245

    def test_create_user(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create", "--employee-id", "A900", "--name", "Root", "--password", PASSWORD, "--role", "Admin",
        ])
        assert result.exit_code == 0, result.output
        assert db_session.query(User).filter_by(employee_id="A900").count() == 1

        listing = runner.invoke(args=["users", "list"])
        assert "A900" in listing.output

    def test_domain_error_exits_nonzero(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "tanks", "create", "--station-id", "9999", "--fuel-type", FUEL_DIESEL,
        ])
        assert result.exit_code != 0
        assert "Station 9999 not found" in result.output
