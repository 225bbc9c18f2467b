"""
Freight Quote API Endpoints.

Stateless pricing: one request, one quote. Used by the budget form.
"""

from fastapi import APIRouter, Depends
from freight_backend.app.core.dependencies import get_freight_calculator
from freight_backend.app.domain.rating.calculator import FreightCalculator
from freight_backend.app.domain.rating.types import RatingRequest
from freight_backend.app.domain.rating.weights import rated_weight
from freight_backend.app.schemas.rating import QuoteRequest, FreightQuoteResponse

router = APIRouter(prefix="/freight", tags=["Freight"])


@router.post("/quote", response_model=FreightQuoteResponse)
async def quote_freight(
    quote_data: QuoteRequest,
    calculator: FreightCalculator = Depends(get_freight_calculator)
):
    """
    Compute a freight quote for a client.

    Weight comes from `weight_kg` or, when packages are listed, from their
    rated (real vs. cubic) weight. A price is always returned; missing or
    unreachable price tables show up in `signals`.
    """
    weight = rated_weight(quote_data.packages) if quote_data.packages else quote_data.weight_kg

    request = RatingRequest(
        service_category=quote_data.service_category,
        cargo_category=quote_data.cargo_category,
        weight_kg=weight,
        declared_value=quote_data.declared_value,
        city_distance_km=quote_data.city_distance_km,
        additional_service_charges=[service.value for service in quote_data.additional_services],
        has_collection=quote_data.has_collection,
        has_delivery=quote_data.has_delivery,
    )
    quote = await calculator.calculate(quote_data.client_id, request, city_id=quote_data.city_id)

    return FreightQuoteResponse(
        client_id=quote_data.client_id,
        rated_weight_kg=weight,
        amount=quote.amount,
        rate_table_id=quote.rate_table_id,
        used_fallback=quote.used_fallback,
        signals=quote.signals,
    )
