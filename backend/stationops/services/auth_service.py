# Overview: Service-layer operations for auth; password hashing, user creation and assignment.

"""
Employees and their credentials.

Every custody step is attributed to one employee, who logs in with an
employee id and a bcrypt-hashed password (BCRYPT_ROUNDS, default 12).
Deactivated employees cannot log in. Tokens live in session_service.

Assignment rules:
- station_id must name an existing station
- area_manager_id must name an AM, and only an SM may have one
"""

from __future__ import annotations

import bcrypt
from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidInputError, StationNotFoundError, UserNotFoundError
from ..models import Station, User
from ..models.auth import ROLES, ROLE_STATION_MANAGER, ROLE_AREA_MANAGER
from ..time_utils import station_now
from .concurrency import run_in_transaction

MIN_PASSWORD_LENGTH = 8


class PasswordValidationError(InvalidInputError):
    """Password too short to be stored."""


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """bcrypt hash of a password that passed validate_password_strength."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of a password against its stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        return False


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def _validate_assignment(role: str, station_id: int | None, area_manager_id: int | None) -> None:
    if station_id is not None and not db.session.get(Station, station_id):
        raise StationNotFoundError(f"Station {station_id} not found")

    if area_manager_id is not None:
        manager = db.session.get(User, area_manager_id)
        if not manager:
            raise UserNotFoundError(f"User {area_manager_id} not found")
        if manager.role != ROLE_AREA_MANAGER:
            raise InvalidInputError("area_manager_id must reference an area manager (AM)")
        if role != ROLE_STATION_MANAGER:
            raise InvalidInputError("Only station managers report to an area manager")


def create_user(
    employee_id: str,
    name: str,
    password: str,
    role: str,
    station_id: int | None = None,
    area_manager_id: int | None = None,
) -> User:
    """
    Register an employee.

    Raises:
        InvalidInputError: missing fields, invalid role, duplicate employee id,
            or an area manager reference that is not an AM
        PasswordValidationError: password too short
        StationNotFoundError / UserNotFoundError: dangling assignment
    """
    if not employee_id or not name or not role:
        raise InvalidInputError("Missing required fields")
    if role not in ROLES:
        raise InvalidInputError("Invalid role")

    password_hash = hash_password(password)

    def _op():
        if db.session.query(User.id).filter_by(employee_id=employee_id).first():
            raise InvalidInputError("Employee ID already exists")

        _validate_assignment(role, station_id, area_manager_id)

        user = User(
            employee_id=employee_id,
            name=name,
            password_hash=password_hash,
            role=role,
            station_id=station_id,
            area_manager_id=area_manager_id,
        )
        db.session.add(user)
        try:
            db.session.flush()
        except IntegrityError:
            raise InvalidInputError("Employee ID already exists")
        return user

    return run_in_transaction(_op)


_UNSET = object()


def update_assignment(user_id: int, station_id=_UNSET, area_manager_id=_UNSET) -> User:
    """
    Re-point a user's station and/or area manager. Omitted fields are unchanged;
    None clears the assignment.
    """
    def _op():
        user = get_user(user_id)
        new_station = user.station_id if station_id is _UNSET else station_id
        new_manager = user.area_manager_id if area_manager_id is _UNSET else area_manager_id

        _validate_assignment(
            user.role,
            None if station_id is _UNSET else new_station,
            None if area_manager_id is _UNSET else new_manager,
        )

        user.station_id = new_station
        user.area_manager_id = new_manager
        return user

    return run_in_transaction(_op)


def authenticate(employee_id: str, password: str) -> User | None:
    """
    The active employee matching the credentials, or None.

    A successful login stamps last_login_at.
    """
    user = db.session.query(User).filter(
        User.employee_id == employee_id,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = station_now()
        db.session.commit()
        return user

    return None
