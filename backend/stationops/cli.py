# Overview: Flask CLI command groups for bootstrap and station setup.

# backend/stationops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (use migrations for existing databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Station setup:
# - python -m flask stations create --name "Station 1" --address "King Road"
# - python -m flask tanks create --station-id 1 --fuel-type DIESEL --capacity 10000
# - python -m flask nozzles create --station-id 1 --tank-id 1 --name "N-01"
# - python -m flask prices set --station-id 1 --fuel-type DIESEL --price-cents 250
#
# Users:
# - python -m flask users create --employee-id A001 --name "Admin" --role Admin
# - python -m flask users list

import click
from flask.cli import with_appcontext

from .errors import StationOpsError
from .extensions import db
from .models import User
from .models.auth import ROLES
from .models.inventory import FUEL_TYPES
from .services import auth_service, fuel_price_service, station_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('stations')
def stations_group():
    """Station management commands."""


@stations_group.command('create')
@click.option('--name', prompt=True, help='Station name (unique)')
@click.option('--address', default=None, help='Street address')
@with_appcontext
def create_station_cli(name, address):
    try:
        station = station_service.create_station(name=name, address=address)
        click.echo(f"PASS Created station {station.name} (ID: {station.id})")
    except StationOpsError as e:
        raise click.ClickException(str(e))


@click.group('tanks')
def tanks_group():
    """Tank management commands."""


@tanks_group.command('create')
@click.option('--station-id', type=int, required=True)
@click.option('--fuel-type', type=click.Choice(FUEL_TYPES), required=True)
@click.option('--capacity', type=float, default=None, help='Liters; omit for unbounded')
@click.option('--level', type=float, default=0.0, help='Initial level in liters')
@with_appcontext
def create_tank_cli(station_id, fuel_type, capacity, level):
    try:
        tank = station_service.create_tank(station_id, fuel_type=fuel_type, capacity=capacity, current_level=level)
        click.echo(f"PASS Created {tank.fuel_type} tank (ID: {tank.id}) at station {station_id}")
    except StationOpsError as e:
        raise click.ClickException(str(e))


@click.group('nozzles')
def nozzles_group():
    """Nozzle management commands."""


@nozzles_group.command('create')
@click.option('--station-id', type=int, required=True)
@click.option('--tank-id', type=int, required=True)
@click.option('--name', required=True, help='Nozzle name (unique)')
@click.option('--meter-limit', type=float, default=None)
@with_appcontext
def create_nozzle_cli(station_id, tank_id, name, meter_limit):
    try:
        nozzle = station_service.create_nozzle(station_id, tank_id=tank_id, name=name, meter_limit=meter_limit)
        click.echo(f"PASS Created nozzle {nozzle.name} (ID: {nozzle.id}) on tank {tank_id}")
    except StationOpsError as e:
        raise click.ClickException(str(e))


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--employee-id', prompt=True, help='Employee ID (login name)')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), prompt=True, help='Role')
@click.option('--station-id', type=int, default=None)
@click.option('--area-manager-id', type=int, default=None)
@with_appcontext
def create_user_cli(employee_id, name, password, role, station_id, area_manager_id):
    """
    Create a new user.

    Password must be at least 8 characters.
    """
    try:
        user = auth_service.create_user(
            employee_id=employee_id,
            name=name,
            password=password,
            role=role,
            station_id=station_id,
            area_manager_id=area_manager_id,
        )
        click.echo(f"PASS Created user {user.employee_id} (ID: {user.id}, role: {user.role})")
    except StationOpsError as e:
        raise click.ClickException(str(e))


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Employee':<15} {'Name':<25} {'Role':<7} {'Station':<8} {'AM':<5} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.id:<5} {user.employee_id:<15} {user.name:<25} {user.role:<7} "
            f"{user.station_id or '-':<8} {user.area_manager_id or '-':<5} {active_str}"
        )

    click.echo("="*80 + "\n")


@click.group('prices')
def prices_group():
    """Fuel price commands."""


@prices_group.command('set')
@click.option('--station-id', type=int, required=True)
@click.option('--fuel-type', type=click.Choice(FUEL_TYPES), required=True)
@click.option('--price-cents', type=int, required=True, help='Price per liter in cents')
@with_appcontext
def set_price_cli(station_id, fuel_type, price_cents):
    try:
        price = fuel_price_service.set_fuel_price(station_id, fuel_type, price_cents, created_by_user_id=None)
        click.echo(f"PASS {fuel_type} at station {station_id} is now {price.price_per_liter_cents} cents/L")
    except StationOpsError as e:
        raise click.ClickException(str(e))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stations_group)
    app.cli.add_command(tanks_group)
    app.cli.add_command(nozzles_group)
    app.cli.add_command(users_group)
    app.cli.add_command(prices_group)
