# Overview: Role policy table; which roles may perform which operation.
# Each entry is: operation code -> roles allowed to perform it.

from __future__ import annotations

from .models.auth import ROLE_ADMIN, ROLE_AREA_MANAGER, ROLE_STATION_MANAGER

SM = ROLE_STATION_MANAGER
AM = ROLE_AREA_MANAGER
ADMIN = ROLE_ADMIN


# -- ADMINISTRATION --

ADMIN_POLICY = {
    "REGISTER_USER": {ADMIN},
    "MANAGE_USERS": {ADMIN},
    "MANAGE_STATIONS": {ADMIN},
    "LIST_USERS": {AM, ADMIN},
}

# -- INVENTORY --

INVENTORY_POLICY = {
    "RECORD_READINGS": {SM},
    "UPDATE_READING": {SM},
    "LOCK_SHIFT": {SM},
    "UNLOCK_SHIFT": {ADMIN},
    "RECORD_DELIVERY": {SM, AM, ADMIN},
}

# -- FUEL --

FUEL_POLICY = {
    "SET_FUEL_PRICE": {ADMIN},
    "LIST_FUEL_PRICES": {ADMIN},
    "UPDATE_SALE": {SM},
    "SUBMIT_SALES": {SM},
}

# -- CASH --

CASH_POLICY = {
    "CREATE_CASH_TRANSACTION": {SM},
    "INITIATE_TRANSFER": {SM},
    "ACCEPT_CASH": {AM},
    "DEPOSIT_CASH": {AM},
    "VIEW_FLOATING_CASH": {ADMIN},
}

ROLE_POLICY: dict[str, frozenset[str]] = {
    code: frozenset(roles)
    for table in (ADMIN_POLICY, INVENTORY_POLICY, FUEL_POLICY, CASH_POLICY)
    for code, roles in table.items()
}


def allowed_roles(operation: str) -> frozenset[str]:
    try:
        return ROLE_POLICY[operation]
    except KeyError:
        raise ValueError(f"Unknown operation: {operation}")


def is_allowed(role: str, operation: str) -> bool:
    return role in allowed_roles(operation)
