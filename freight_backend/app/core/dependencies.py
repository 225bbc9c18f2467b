"""
Dependencies for FastAPI.

Wires registry lookups, the freight calculator, the delivery store and the
freight session registry into route handlers. Process-wide objects
(circuit breakers, open sessions) live on `app.state`.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from freight_backend.app.core.config import settings
from freight_backend.app.db.session import get_db, get_session_factory
from freight_backend.app.domain.deliveries.store import SqlDeliveryStore
from freight_backend.app.domain.rating.calculator import FreightCalculator
from freight_backend.app.domain.rating.lookups import LookupBreakers, SqlCityLookup, SqlClientPlanLookup
from freight_backend.app.services.freight_sessions import FreightSessionRegistry


def get_lookup_breakers(request: Request) -> LookupBreakers:
    return request.app.state.lookup_breakers


def get_freight_sessions(request: Request) -> FreightSessionRegistry:
    return request.app.state.freight_sessions


def get_reconciliation_debounce() -> float:
    """Debounce before the first automatic computation, in seconds."""
    return settings.reconciliation_debounce_ms / 1000


def get_plan_lookup(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    breakers: LookupBreakers = Depends(get_lookup_breakers),
) -> SqlClientPlanLookup:
    return SqlClientPlanLookup(session_factory, breakers.plans)


def get_city_lookup(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    breakers: LookupBreakers = Depends(get_lookup_breakers),
) -> SqlCityLookup:
    return SqlCityLookup(session_factory, breakers.cities)


def get_freight_calculator(
    plan_lookup: SqlClientPlanLookup = Depends(get_plan_lookup),
    city_lookup: SqlCityLookup = Depends(get_city_lookup),
) -> FreightCalculator:
    return FreightCalculator(plan_lookup, city_lookup)


def get_delivery_store(db: AsyncSession = Depends(get_db)) -> SqlDeliveryStore:
    return SqlDeliveryStore(db)
