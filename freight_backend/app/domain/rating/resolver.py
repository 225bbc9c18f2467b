"""
Rate Resolver.

Pure computation of a shipment's freight from a normalized RateTable.

Order of application:
1. Base rate for the service category
2. Excess weight above the category's weight limit
3. Distance charge (doorToDoorInterior only)
4. Perishable surcharge (x1.2)
5. Insurance over the declared value
6. Additional service charges
7. Collection / delivery factor
8. Discount
9. Multiplier
10. Floor at 0, round half-up to cents

The resolver never injects business minimums; that is the calculator's job.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from freight_backend.app.core.exceptions import InvalidRatingInputError
from freight_backend.app.domain.rating.catalog import rule_for
from freight_backend.app.domain.rating.types import RateTable, RatingRequest
from freight_backend.app.models.rating_enums import CargoCategory, ServiceCategory

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")

PERISHABLE_SURCHARGE = Decimal("1.2")
ROUND_TRIP_FACTOR = Decimal("2")
COLLECTION_ONLY_FACTOR = Decimal("0.7")


def d(value: Any) -> Decimal:
    """Decimal from a float without binary noise (0.55 -> Decimal('0.55'))."""
    if value is None:
        return ZERO
    return Decimal(str(value))


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def validate_rating_request(request: RatingRequest) -> None:
    """
    Reject inputs no rate can be computed from.

    Raises:
        InvalidRatingInputError: NaN, infinite or negative weight, distance,
            declared value or additional charge
    """
    _check_non_negative("weight_kg", request.weight_kg, required=True)
    _check_non_negative("city_distance_km", request.city_distance_km)
    _check_non_negative("declared_value", request.declared_value)
    for charge in request.additional_service_charges:
        _check_non_negative("additional_service_charges", charge, required=True)


def _check_non_negative(field: str, value: Optional[float], required: bool = False) -> None:
    if value is None:
        if required:
            raise InvalidRatingInputError(field, value, "value is required")
        return
    if math.isnan(value) or math.isinf(value):
        raise InvalidRatingInputError(field, value, "must be a finite number")
    if value < 0:
        raise InvalidRatingInputError(field, value, "must not be negative")


def rate(table: RateTable, request: RatingRequest) -> float:
    """
    Compute the freight amount for `request` under `table`.

    Args:
        table: Normalized rate table
        request: Shipment attributes

    Returns:
        Amount rounded half-up to 2 decimals, never negative

    Raises:
        InvalidRatingInputError: If the request carries malformed numbers
    """
    validate_rating_request(request)

    category = ServiceCategory(request.service_category)
    perishable = CargoCategory(request.cargo_category) == CargoCategory.PERISHABLE
    rule = rule_for(category)
    weight = d(request.weight_kg)

    # 1-2. Base rate plus excess weight
    amount = d(table.minimum_rate.get(category))
    if weight > rule.weight_limit_kg:
        excess_rate = d(table.excess_weight_rate.get(rule.weight_class))
        amount += (weight - rule.weight_limit_kg) * excess_rate

    # 3. Distance
    if category == ServiceCategory.DOOR_TO_DOOR_INTERIOR and request.city_distance_km:
        amount += d(request.city_distance_km) * d(table.door_to_door.rate_per_km)

    # 4. Perishable surcharge
    if perishable:
        amount *= PERISHABLE_SURCHARGE

    # 5. Insurance
    if request.declared_value and request.declared_value > 0:
        insurance_rate = table.insurance.standard_rate
        if perishable and table.insurance.perishable_rate is not None:
            insurance_rate = table.insurance.perishable_rate
        amount += d(request.declared_value) * d(insurance_rate)

    # 6. Additional services
    for charge in request.additional_service_charges:
        amount += d(charge)

    # 7. Collection / delivery
    if request.has_collection and request.has_delivery:
        amount *= ROUND_TRIP_FACTOR
    elif request.has_collection:
        amount *= COLLECTION_ONLY_FACTOR

    # 8. Discount
    discount = d(table.discount_percent)
    if discount > 0:
        amount -= amount * discount / 100

    # 9. Multiplier
    amount *= d(table.multiplier)

    # 10. Floor and round
    if amount < 0:
        amount = ZERO
    return float(round_cents(amount))
