"""
Rating enumerations.

Service categories, excess-weight classes, cargo categories and the phases
of a freight reconciliation session.
"""

import enum


class ServiceCategory(str, enum.Enum):
    """
    Kind of delivery service a shipment is priced under.

    Values are the identifiers stored on delivery records. Historical
    records also carry a few aliases which are accepted on parse:
        tracked      -> trackedVehicle
        door_to_door -> doorToDoorInterior
        scheduled    -> difficultAccess
    """
    STANDARD = "standard"
    EMERGENCY = "emergency"
    SATURDAY = "saturday"
    EXCLUSIVE = "exclusive"
    DIFFICULT_ACCESS = "difficultAccess"
    METROPOLITAN_REGION = "metropolitanRegion"
    SUNDAY_HOLIDAY = "sundayHoliday"
    NORMAL_BIOLOGICAL = "normalBiological"
    INFECTIOUS_BIOLOGICAL = "infectiousBiological"
    TRACKED_VEHICLE = "trackedVehicle"
    DOOR_TO_DOOR_INTERIOR = "doorToDoorInterior"
    RESHIPMENT = "reshipment"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return _SERVICE_CATEGORY_ALIASES.get(value)
        return None


_SERVICE_CATEGORY_ALIASES = {
    "tracked": ServiceCategory.TRACKED_VEHICLE,
    "door_to_door": ServiceCategory.DOOR_TO_DOOR_INTERIOR,
    "scheduled": ServiceCategory.DIFFICULT_ACCESS,
}


class WeightRateClass(str, enum.Enum):
    """Excess-weight pricing buckets a service category maps onto."""
    STANDARD = "standard"
    PREMIUM = "premium"
    BIOLOGICAL = "biological"
    RESHIPMENT = "reshipment"


class CargoCategory(str, enum.Enum):
    """
    Cargo handling category.

    PERISHABLE carries a 20% surcharge and may use its own insurance rate.
    Older records store "general" for standard cargo.
    """
    STANDARD = "standard"
    PERISHABLE = "perishable"

    @classmethod
    def _missing_(cls, value):
        if value == "general":
            return cls.STANDARD
        return None


class RatingSignal(str, enum.Enum):
    """Non-blocking warnings attached to a computed freight."""
    NO_RATE_TABLE_ASSIGNED = "NO_RATE_TABLE_ASSIGNED"
    LOOKUP_FAILURE = "LOOKUP_FAILURE"
    CITY_DISTANCE_UNAVAILABLE = "CITY_DISTANCE_UNAVAILABLE"
    FALLBACK_RATE_APPLIED = "FALLBACK_RATE_APPLIED"


class ReconciliationPhase(str, enum.Enum):
    """
    Freight reconciliation phase.

    Flow:
        IDLE → AUTO_COMPUTING ⇄ MANUAL_OVERRIDE → IDLE
    """
    IDLE = "IDLE"
    AUTO_COMPUTING = "AUTO_COMPUTING"
    MANUAL_OVERRIDE = "MANUAL_OVERRIDE"
