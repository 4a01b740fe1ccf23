from __future__ import annotations

from datetime import datetime
from typing import Any

from .errors import InvalidInputError
from .time_utils import parse_iso_datetime

# Maximum price: 9,999,999.99 per liter (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class ValidationError(InvalidInputError):
    """400-level input problem."""


def require_json(data: Any) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


def require_fields(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_int(name: str, value: Any, *, required: bool = True) -> int | None:
    """
    Strict integer parsing: ints and plain digit strings only.

    Floats, booleans, decimals and scientific notation are rejected.
    """
    if value is None or value == "":
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{name} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    raise ValidationError(f"{name} must be an integer")


def parse_float(name: str, value: Any, *, required: bool = True) -> float | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def parse_cents(name: str, value: Any, *, required: bool = True) -> int | None:
    """Money in integer cents; negative and absurdly large amounts are rejected."""
    cents = parse_int(name, value, required=required)
    if cents is None:
        return None
    if cents < 0:
        raise ValidationError(f"{name} cannot be negative")
    if cents > MAX_PRICE_CENTS * 1000:
        raise ValidationError(f"{name} is too large")
    return cents


def parse_price_cents(name: str, value: Any) -> int:
    cents = parse_int(name, value)
    if cents <= 0:
        raise ValidationError(f"{name} must be positive")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{name} cannot exceed {MAX_PRICE_CENTS}")
    return cents


def parse_datetime(name: str, value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
