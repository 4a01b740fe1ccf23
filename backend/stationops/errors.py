# Overview: Domain error taxonomy shared by services and routes.

"""
Every service failure is raised as a StationOpsError subclass.

Routes answer with {"error": str(e), "kind": e.kind} and e.status_code.
The enclosing database transaction is always rolled back before the error
leaves the service layer.
"""


class StationOpsError(Exception):
    """Base class for domain errors."""
    status_code = 500
    kind = "ERROR"


class NotFoundError(StationOpsError):
    status_code = 404
    kind = "NOT_FOUND"


class InvalidStateError(StationOpsError):
    status_code = 409
    kind = "INVALID_STATE"


class InvalidInputError(StationOpsError, ValueError):
    status_code = 400
    kind = "INVALID_INPUT"


class UnauthorizedError(StationOpsError):
    status_code = 403
    kind = "UNAUTHORIZED"


class ConfigurationError(StationOpsError):
    status_code = 422
    kind = "CONFIGURATION"


# -- not found --

class StationNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class ShiftNotFoundError(NotFoundError):
    pass


class TankNotFoundError(NotFoundError):
    pass


class NozzleNotFoundError(NotFoundError):
    pass


class ReadingNotFoundError(NotFoundError):
    pass


class SaleNotFoundError(NotFoundError):
    pass


class TransactionNotFoundError(NotFoundError):
    pass


class TransferNotFoundError(NotFoundError):
    pass


# -- lifecycle --

class ShiftLockedError(InvalidStateError):
    pass


class AlreadyProcessedError(InvalidStateError):
    pass


class NotYetAcceptedError(InvalidStateError):
    pass


# -- input --

class InvalidReadingError(InvalidInputError):
    pass


class InvalidDeliveryError(InvalidInputError):
    pass


class InsufficientFuelError(InvalidInputError):
    pass


# -- configuration --

class NoAreaManagerAssignedError(ConfigurationError):
    pass


def error_body(e: StationOpsError) -> dict:
    return {"error": str(e), "kind": e.kind}
