"""
Pytest fixtures for station operations backend tests.

Provides test database setup, a station with one diesel tank and nozzle,
one user per role, and login helpers.
"""

from datetime import datetime

import pytest

from stationops import create_app
from stationops.extensions import db
from stationops.models import Nozzle, Shift, NozzleReading, Station, Tank, User
from stationops.models.auth import ROLE_ADMIN, ROLE_AREA_MANAGER, ROLE_STATION_MANAGER
from stationops.models.inventory import FUEL_DIESEL, FUEL_95_GASOLINE
from stationops.models.shifts import SHIFT_TYPE_DAY, SHIFT_STATUS_CLOSED, WINDOW_POLICY_INVENTORY
from stationops.services.auth_service import hash_password

PASSWORD = "Password123!"

# A fixed station-local morning: inside the DAY window of both clocks
MORNING = datetime(2026, 3, 10, 9, 30)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STATION_TIMEZONE': 'UTC',
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_DIR': str(tmp_path_factory.mktemp("receipts")),
        'BASE_URL': '',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def station(db_session):
    station = Station(name="Station North", address="King Road 1")
    db_session.add(station)
    db_session.commit()
    return station


@pytest.fixture(scope='function')
def other_station(db_session):
    station = Station(name="Station South")
    db_session.add(station)
    db_session.commit()
    return station


@pytest.fixture(scope='function')
def tank(db_session, station):
    """Diesel tank, 10000 L capacity, holding 5000 L."""
    tank = Tank(station_id=station.id, fuel_type=FUEL_DIESEL, capacity=10000.0, current_level=5000.0)
    db_session.add(tank)
    db_session.commit()
    return tank


@pytest.fixture(scope='function')
def gasoline_tank(db_session, station):
    tank = Tank(station_id=station.id, fuel_type=FUEL_95_GASOLINE, capacity=8000.0, current_level=40.0)
    db_session.add(tank)
    db_session.commit()
    return tank


@pytest.fixture(scope='function')
def nozzle(db_session, station, tank):
    nozzle = Nozzle(name="N-01", station_id=station.id, tank_id=tank.id, fuel_type=tank.fuel_type)
    db_session.add(nozzle)
    db_session.commit()
    return nozzle


@pytest.fixture(scope='function')
def admin_user(db_session):
    user = User(employee_id="A001", name="Admin", role=ROLE_ADMIN, password_hash=hash_password(PASSWORD))
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def area_manager(db_session):
    user = User(employee_id="AM01", name="Area Manager", role=ROLE_AREA_MANAGER, password_hash=hash_password(PASSWORD))
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def station_manager(db_session, station, area_manager):
    user = User(
        employee_id="SM01",
        name="Station Manager",
        role=ROLE_STATION_MANAGER,
        station_id=station.id,
        area_manager_id=area_manager.id,
        password_hash=hash_password(PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def previous_shift(db_session, station, nozzle):
    """A closed shift from the day before MORNING whose nozzle closed at 100."""
    start = datetime(2026, 3, 9, 0, 0)
    shift = Shift(
        station_id=station.id,
        shift_type=SHIFT_TYPE_DAY,
        window_policy=WINDOW_POLICY_INVENTORY,
        window_start=start,
        start_time=start,
        end_time=datetime(2026, 3, 9, 12, 0),
        status=SHIFT_STATUS_CLOSED,
        locked=True,
    )
    db_session.add(shift)
    db_session.flush()
    db_session.add(NozzleReading(
        shift_id=shift.id,
        nozzle_id=nozzle.id,
        opening_reading=0.0,
        closing_reading=100.0,
        consumption=100.0,
    ))
    db_session.commit()
    return shift


def get_auth_token(client, employee_id: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'employee_id': employee_id,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.employee_id))


@pytest.fixture(scope='function')
def am_headers(client, area_manager):
    return auth_headers(get_auth_token(client, area_manager.employee_id))


@pytest.fixture(scope='function')
def sm_headers(client, station_manager):
    return auth_headers(get_auth_token(client, station_manager.employee_id))
