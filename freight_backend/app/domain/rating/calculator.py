"""
Freight Calculator.

Combines the client's plan lookup, the rate resolver and a safe fallback so
that a valid delivery always gets a price.

Flow:
1. Validate the request (malformed numbers are rejected, not priced)
2. Resolve the client's RateTable (missing table or failed lookup -> signal)
3. Resolve the city distance for doorToDoorInterior when not supplied
4. Rate with the resolver
5. Amount <= 0 -> basic fallback rate
"""

import logging
from decimal import Decimal
from typing import Optional

from freight_backend.app.core.exceptions import LookupFailureError
from freight_backend.app.domain.rating.lookups import CityLookup, ClientPlanLookup
from freight_backend.app.domain.rating.normalization import normalize_rate_table
from freight_backend.app.domain.rating.resolver import d, rate, round_cents, validate_rating_request
from freight_backend.app.domain.rating.types import FreightQuote, RateTable, RatingRequest
from freight_backend.app.models.rating_enums import CargoCategory, RatingSignal, ServiceCategory

logger = logging.getLogger("freight.rating")

FALLBACK_FLOOR = Decimal("50")
FALLBACK_STANDARD_BASE = Decimal("15")
FALLBACK_PERISHABLE_BASE = Decimal("25")


def weight_tier(weight_kg: float) -> Decimal:
    if weight_kg <= 5:
        return Decimal("1")
    if weight_kg <= 10:
        return Decimal("1.5")
    if weight_kg <= 20:
        return Decimal("2")
    return Decimal("3")


def basic_fallback_rate(weight_kg: float, cargo_category: CargoCategory = CargoCategory.STANDARD) -> float:
    """
    Minimum price used when no usable rate could be computed.

    max(tier * (25 if perishable else 15), 50) with weight tiers
    1 (<=5kg), 1.5 (<=10kg), 2 (<=20kg) and 3 above.
    """
    perishable = CargoCategory(cargo_category) == CargoCategory.PERISHABLE
    base = FALLBACK_PERISHABLE_BASE if perishable else FALLBACK_STANDARD_BASE
    amount = max(weight_tier(weight_kg) * base, FALLBACK_FLOOR)
    return float(round_cents(amount))


class FreightCalculator:
    """
    Prices a shipment for a client.

    Lookups are injected; the calculator holds no table or city state of its own.
    """

    def __init__(self, plan_lookup: ClientPlanLookup, city_lookup: Optional[CityLookup] = None):
        self.plan_lookup = plan_lookup
        self.city_lookup = city_lookup

    async def calculate(
        self,
        client_id: int,
        request: RatingRequest,
        city_id: Optional[int] = None,
    ) -> FreightQuote:
        """
        Compute the freight quote for `client_id`.

        Args:
            client_id: Client whose price table applies
            request: Shipment attributes
            city_id: Destination city, consulted for doorToDoorInterior when
                the request carries no distance

        Returns:
            FreightQuote with the amount and any non-blocking signals

        Raises:
            InvalidRatingInputError: If the request carries malformed numbers
        """
        validate_rating_request(request)
        signals = []

        table: Optional[RateTable] = None
        try:
            table = await self.plan_lookup.get(client_id)
        except LookupFailureError as exc:
            logger.warning(
                "Price table lookup failed, using fallback rate",
                extra={"client_id": client_id, "reason": exc.message}
            )
            signals.append(RatingSignal.LOOKUP_FAILURE)

        if table is None and RatingSignal.LOOKUP_FAILURE not in signals:
            logger.info("No price table assigned to client", extra={"client_id": client_id})
            signals.append(RatingSignal.NO_RATE_TABLE_ASSIGNED)

        request = await self._with_city_distance(request, city_id, signals)

        amount = 0.0
        if table is not None:
            table = normalize_rate_table(table)
            amount = rate(table, request)

        used_fallback = False
        if amount <= 0:
            amount = basic_fallback_rate(request.weight_kg, request.cargo_category)
            used_fallback = True
            signals.append(RatingSignal.FALLBACK_RATE_APPLIED)
            logger.info(
                "Fallback rate applied",
                extra={"client_id": client_id, "weight_kg": request.weight_kg, "amount": amount}
            )

        return FreightQuote(
            amount=float(round_cents(d(amount))),
            rate_table_id=table.id if table is not None else None,
            used_fallback=used_fallback,
            signals=signals,
        )

    async def _with_city_distance(self, request: RatingRequest, city_id: Optional[int], signals: list) -> RatingRequest:
        if ServiceCategory(request.service_category) != ServiceCategory.DOOR_TO_DOOR_INTERIOR:
            return request
        if request.city_distance_km is not None:
            return request
        if city_id is None or self.city_lookup is None:
            signals.append(RatingSignal.CITY_DISTANCE_UNAVAILABLE)
            return request

        city = None
        try:
            city = await self.city_lookup.get(city_id)
        except LookupFailureError as exc:
            logger.warning("City lookup failed", extra={"city_id": city_id, "reason": exc.message})
            if RatingSignal.LOOKUP_FAILURE not in signals:
                signals.append(RatingSignal.LOOKUP_FAILURE)
            signals.append(RatingSignal.CITY_DISTANCE_UNAVAILABLE)
            return request

        if city is None:
            signals.append(RatingSignal.CITY_DISTANCE_UNAVAILABLE)
            return request
        return request.model_copy(update={"city_distance_km": city.distance_km})
