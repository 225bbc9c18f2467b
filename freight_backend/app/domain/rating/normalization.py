"""
Price Table Normalization.

Price tables reach the engine in two shapes:

    nested  - rate sections as objects (`minimum_rate`, `excess_weight`,
              `door_to_door`, `insurance`), possibly still JSON-encoded and
              possibly keyed by the historical names (`standardDelivery`,
              `minPerKg`, `ratePerKm`, ...)
    flat    - one column per rate (`fortaleza_normal_min_rate`,
              `biological_normal_excess_rate`, `interior_exclusive_km_rate`, ...)

`normalize_rate_table` folds either (or a mix) into one canonical RateTable.
Nested values win; a missing or zero nested value falls back to the flat
column, then to 0. Normalizing a RateTable again returns an equal table.
"""

import json
import logging
import math
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from freight_backend.app.domain.rating.types import DoorToDoorRates, InsuranceRates, RateTable
from freight_backend.app.models.rating_enums import ServiceCategory, WeightRateClass

logger = logging.getLogger("freight.rating")

DEFAULT_INSURANCE_RATE = 0.01
DEFAULT_DOOR_TO_DOOR_MAX_WEIGHT = 100.0


# =============================================================================
# FIELD MAPPINGS
# =============================================================================

# Nested keys accepted per category: canonical value first, then historical name
NESTED_MINIMUM_RATE_KEYS: Dict[ServiceCategory, Tuple[str, ...]] = {
    ServiceCategory.STANDARD: ("standard", "standardDelivery"),
    ServiceCategory.EMERGENCY: ("emergency", "emergencyCollection"),
    ServiceCategory.SATURDAY: ("saturday", "saturdayCollection"),
    ServiceCategory.EXCLUSIVE: ("exclusive", "exclusiveVehicle"),
    ServiceCategory.DIFFICULT_ACCESS: ("difficultAccess", "scheduledDifficultAccess"),
    ServiceCategory.METROPOLITAN_REGION: ("metropolitanRegion",),
    ServiceCategory.SUNDAY_HOLIDAY: ("sundayHoliday",),
    ServiceCategory.NORMAL_BIOLOGICAL: ("normalBiological",),
    ServiceCategory.INFECTIOUS_BIOLOGICAL: ("infectiousBiological",),
    ServiceCategory.TRACKED_VEHICLE: ("trackedVehicle", "tracked"),
    ServiceCategory.DOOR_TO_DOOR_INTERIOR: ("doorToDoorInterior",),
    ServiceCategory.RESHIPMENT: ("reshipment",),
}

FLAT_MINIMUM_RATE_FIELDS: Dict[ServiceCategory, str] = {
    ServiceCategory.STANDARD: "fortaleza_normal_min_rate",
    ServiceCategory.EMERGENCY: "fortaleza_emergency_min_rate",
    ServiceCategory.SATURDAY: "fortaleza_saturday_min_rate",
    ServiceCategory.EXCLUSIVE: "fortaleza_exclusive_min_rate",
    ServiceCategory.DIFFICULT_ACCESS: "fortaleza_scheduled_min_rate",
    ServiceCategory.METROPOLITAN_REGION: "metropolitan_min_rate",
    ServiceCategory.SUNDAY_HOLIDAY: "fortaleza_holiday_min_rate",
    ServiceCategory.NORMAL_BIOLOGICAL: "biological_normal_min_rate",
    ServiceCategory.INFECTIOUS_BIOLOGICAL: "biological_infectious_min_rate",
    ServiceCategory.TRACKED_VEHICLE: "tracked_vehicle_min_rate",
    ServiceCategory.DOOR_TO_DOOR_INTERIOR: "interior_exclusive_min_rate",
    ServiceCategory.RESHIPMENT: "reshipment_min_rate",
}

NESTED_EXCESS_WEIGHT_KEYS: Dict[WeightRateClass, Tuple[str, ...]] = {
    WeightRateClass.STANDARD: ("standard", "minPerKg"),
    WeightRateClass.PREMIUM: ("premium", "maxPerKg"),
    WeightRateClass.BIOLOGICAL: ("biological", "biologicalPerKg"),
    WeightRateClass.RESHIPMENT: ("reshipment", "reshipmentPerKg"),
}

FLAT_EXCESS_WEIGHT_FIELDS: Dict[WeightRateClass, str] = {
    WeightRateClass.STANDARD: "fortaleza_normal_excess_rate",
    WeightRateClass.PREMIUM: "fortaleza_emergency_excess_rate",
    WeightRateClass.BIOLOGICAL: "biological_normal_excess_rate",
    WeightRateClass.RESHIPMENT: "reshipment_excess_rate",
}

FLAT_KM_RATE_FIELD = "interior_exclusive_km_rate"


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def normalize_rate_table(source: Union[RateTable, Mapping[str, Any]]) -> RateTable:
    """
    Produce the canonical RateTable from a table in any supported shape.

    Args:
        source: A RateTable, an ORM-derived mapping (see
            `PriceTable.to_rate_source`) or an API payload

    Returns:
        Normalized RateTable
    """
    if isinstance(source, RateTable):
        source = source.model_dump(mode="json")

    minimum_section = _section(source, "minimum_rate", "minimumRate")
    excess_section = _section(source, "excess_weight_rate", "excess_weight", "excessWeight")
    door_section = _section(source, "door_to_door", "doorToDoor")
    insurance_section = _section(source, "insurance")

    minimum_rate = {
        category: _first_positive(minimum_section, keys)
        or _non_negative(source.get(FLAT_MINIMUM_RATE_FIELDS[category]))
        or 0.0
        for category, keys in NESTED_MINIMUM_RATE_KEYS.items()
    }

    excess_weight_rate = {
        weight_class: _first_positive(excess_section, keys)
        or _non_negative(source.get(FLAT_EXCESS_WEIGHT_FIELDS[weight_class]))
        or 0.0
        for weight_class, keys in NESTED_EXCESS_WEIGHT_KEYS.items()
    }

    door_to_door = DoorToDoorRates(
        rate_per_km=_first_positive(door_section, ("rate_per_km", "ratePerKm"))
        or _non_negative(source.get(FLAT_KM_RATE_FIELD))
        or 0.0,
        max_weight=_first_positive(door_section, ("max_weight", "maxWeight"))
        or DEFAULT_DOOR_TO_DOOR_MAX_WEIGHT,
    )

    standard_rate = _first_present(insurance_section, ("standard_rate", "standardRate", "standard", "rate"))
    if standard_rate is None:
        standard_rate = DEFAULT_INSURANCE_RATE
    perishable_rate = _first_present(insurance_section, ("perishable_rate", "perishableRate", "perishable"))
    if perishable_rate is None:
        perishable_rate = standard_rate

    discount = _non_negative(_first_present(source, ("discount_percent", "default_discount", "defaultDiscount"))) or 0.0
    if discount > 100:
        logger.warning("Discount above 100%% clamped", extra={"table": source.get("name"), "discount": discount})
        discount = 100.0

    multiplier = _number(source.get("multiplier"))
    if multiplier is None or multiplier <= 0:
        multiplier = 1.0

    return RateTable(
        id=source.get("id"),
        name=source.get("name") or "",
        description=source.get("description"),
        minimum_rate=minimum_rate,
        excess_weight_rate=excess_weight_rate,
        door_to_door=door_to_door,
        insurance=InsuranceRates(standard_rate=standard_rate, perishable_rate=perishable_rate),
        discount_percent=discount,
        multiplier=multiplier,
    )


# =============================================================================
# HELPERS
# =============================================================================

def _section(source: Mapping[str, Any], *names: str) -> Dict[str, Any]:
    """Return the first nested section found under any of `names`, decoding JSON strings."""
    for name in names:
        value = source.get(name)
        if value is None:
            continue
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning("Unparseable rate section ignored", extra={"section": name, "table": source.get("name")})
                continue
        if isinstance(value, Mapping):
            return dict(value)
    return {}


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Non-numeric rate ignored", extra={"value": str(value)})
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _non_negative(value: Any) -> Optional[float]:
    number = _number(value)
    if number is None:
        return None
    if number < 0:
        logger.warning("Negative rate clamped to 0", extra={"value": number})
        return 0.0
    return number


def _first_positive(section: Mapping[str, Any], keys: Tuple[str, ...]) -> Optional[float]:
    for key in keys:
        number = _non_negative(section.get(key))
        if number:
            return number
    return None


def _first_present(section: Mapping[str, Any], keys: Tuple[str, ...]) -> Optional[float]:
    for key in keys:
        number = _non_negative(section.get(key))
        if number is not None:
            return number
    return None
