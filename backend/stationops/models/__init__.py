from .stations import Station
from .auth import User, SessionToken
from .inventory import Tank, Nozzle, TankerDelivery
from .pricing import FuelPrice
from .shifts import Shift, NozzleReading, NozzleSale
from .cash import CashTransaction, CashTransfer

__all__ = [
    'Station',
    'User', 'SessionToken',
    'Tank', 'Nozzle', 'TankerDelivery',
    'FuelPrice',
    'Shift', 'NozzleReading', 'NozzleSale',
    'CashTransaction', 'CashTransfer',
]
