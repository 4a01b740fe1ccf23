# Overview: Cent arithmetic helpers (nearest-cent rounding, half-up).

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 2.5 from picking up binary noise
    return Decimal(str(value))


def round_cents(value) -> int:
    """Round a (possibly fractional) cent amount to a whole cent, half-up."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def liters_times_rate_cents(liters, rate_per_liter_cents: int) -> int:
    """liters x price-per-liter (cents) -> whole cents."""
    return round_cents(to_decimal(liters) * to_decimal(rate_per_liter_cents))


def cents_to_display(cents: int | None) -> str | None:
    if cents is None:
        return None
    return str((Decimal(cents) / Decimal(100)).quantize(Decimal("0.01")))
