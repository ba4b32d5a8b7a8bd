# constants/fuel.py
"""
Fuel domain constants shared by crud, services and routers.
"""

from enum import Enum


class Currency(str, Enum):
    BAM = "BAM"
    EUR = "EUR"
    USD = "USD"


CURRENCIES = [c.value for c in Currency]

DEFAULT_SPECIFIC_DENSITY = 0.8

# intake distributions must add up to the received quantity within this margin
INTAKE_DISTRIBUTION_TOLERANCE = 0.1


class TankStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"


class RefillSource(str, Enum):
    SUPPLIER = "supplier"
    FIXED = "fixed"


class DrainSource(str, Enum):
    FIXED = "fixed"
    MOBILE = "mobile"


class TrafficType(str, Enum):
    DOMESTIC = "DOMESTIC"
    INTERNATIONAL = "INTERNATIONAL"
    MILITARY = "MILITARY"
    OTHER = "OTHER"


# unified tanker transaction kinds
TX_SUPPLIER_REFILL = "supplier_refill"
TX_FIXED_TANK_TRANSFER = "fixed_tank_transfer"
TX_AIRCRAFT_FUELING = "aircraft_fueling"
TX_DRAIN = "drain"
TX_DRAIN_RETURN = "drain_return"


# operation types that draw fuel from a fixed tank (override token scope)
class FixedTankOperation(str, Enum):
    TANKER_REFILL = "TANKER_REFILL"
    FUEL_DRAIN = "FUEL_DRAIN"
    TANK_TRANSFER = "TANK_TRANSFER"


class SyncStrategy(str, Enum):
    REPORT_ONLY = "REPORT_ONLY"
    ADJUST_TANK_QUANTITY = "ADJUST_TANK_QUANTITY"
    ADJUST_MRN_RECORDS = "ADJUST_MRN_RECORDS"


class CorrectionAction(str, Enum):
    ADJUST_TANK = "adjust_tank"
    CREATE_BALANCING_MRN = "create_balancing_mrn"
    ADJUST_MRN = "adjust_mrn"


BALANCING_MRN_PREFIX = "BAL"

# system log actions
LOG_CONSISTENCY_CORRECTION = "CONSISTENCY_CORRECTION"
LOG_CONSISTENCY_OVERRIDE = "CONSISTENCY_OVERRIDE"
LOG_CONSISTENCY_CHECK = "FUEL_CONSISTENCY_CHECK"
LOG_TANK_INCONSISTENCY = "TANK_INCONSISTENCY_DETECTED"
LOG_FUEL_DATA_SYNC = "FUEL_DATA_SYNC"
