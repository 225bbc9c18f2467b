"""
Registry Lookups.

Boundary interfaces to the client/plan and city registries, their SQL-backed
implementations, and the per-session snapshot used by freight reconciliation.

Failures of the fetch itself (database or connection errors, open circuit) surface as
LookupFailureError; "not found" is a plain None.
"""

import asyncio
import logging
import math
from typing import Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from freight_backend.app.core.exceptions import LookupFailureError
from freight_backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from freight_backend.app.domain.rating.normalization import normalize_rate_table
from freight_backend.app.domain.rating.types import CityDistance, RateTable
from freight_backend.app.models.city import City
from freight_backend.app.models.client import Client
from freight_backend.app.models.price_table import PriceTable

logger = logging.getLogger("freight.lookups")

# Database errors, unreachable hosts (asyncpg raises raw OSError), timeouts, open circuit
REGISTRY_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError, CircuitOpenError)


class ClientPlanLookup(Protocol):
    async def get(self, client_id: int) -> Optional[RateTable]:
        ...


class CityLookup(Protocol):
    async def get(self, city_id: int) -> Optional[CityDistance]:
        ...


class LookupBreakers:
    """Circuit breakers shared by every lookup against the same registry."""

    def __init__(self, plans: CircuitBreaker, cities: CircuitBreaker):
        self.plans = plans
        self.cities = cities

    @classmethod
    def from_settings(cls, settings) -> "LookupBreakers":
        return cls(
            plans=CircuitBreaker(
                name="client_plans",
                failure_threshold=settings.lookup_failure_threshold,
                reset_timeout=settings.lookup_reset_timeout,
            ),
            cities=CircuitBreaker(
                name="cities",
                failure_threshold=settings.lookup_failure_threshold,
                reset_timeout=settings.lookup_reset_timeout,
            ),
        )


class SqlClientPlanLookup:
    """Resolves a client's assigned price table from the database, normalized."""

    def __init__(self, session_factory: async_sessionmaker, breaker: CircuitBreaker):
        self.session_factory = session_factory
        self.breaker = breaker

    async def get(self, client_id: int) -> Optional[RateTable]:
        try:
            return await self.breaker.call(self._fetch, client_id)
        except REGISTRY_ERRORS as exc:
            logger.warning("Client plan lookup failed", extra={"client_id": client_id, "error": str(exc)})
            raise LookupFailureError("client_plans", client_id, str(exc)) from exc

    async def _fetch(self, client_id: int) -> Optional[RateTable]:
        async with self.session_factory() as session:
            query = (
                select(PriceTable)
                .join(Client, Client.price_table_id == PriceTable.id)
                .where(Client.id == client_id)
            )
            result = await session.execute(query)
            price_table = result.scalar_one_or_none()

        if price_table is None:
            return None
        return normalize_rate_table(price_table.to_rate_source())


class SqlCityLookup:
    """Resolves a city's road distance; cities without a usable distance count as missing."""

    def __init__(self, session_factory: async_sessionmaker, breaker: CircuitBreaker):
        self.session_factory = session_factory
        self.breaker = breaker

    async def get(self, city_id: int) -> Optional[CityDistance]:
        try:
            return await self.breaker.call(self._fetch, city_id)
        except REGISTRY_ERRORS as exc:
            logger.warning("City lookup failed", extra={"city_id": city_id, "error": str(exc)})
            raise LookupFailureError("cities", city_id, str(exc)) from exc

    async def _fetch(self, city_id: int) -> Optional[CityDistance]:
        async with self.session_factory() as session:
            city = await session.get(City, city_id)

        if city is None or city.distance_km is None:
            return None
        if math.isnan(city.distance_km) or city.distance_km < 0:
            logger.warning("City has an unusable distance", extra={"city_id": city_id})
            return None
        return CityDistance(city_id=city.id, distance_km=city.distance_km)


class SnapshotPlanLookup:
    """
    Fetches each client's table once and reuses it.

    One instance lives for one freight session, so edits to a price table
    made by administrators meanwhile do not reach an already-open form.
    Failed lookups are not remembered and are retried on the next call.
    """

    def __init__(self, inner: ClientPlanLookup):
        self.inner = inner
        self._tables: Dict[int, Optional[RateTable]] = {}

    async def get(self, client_id: int) -> Optional[RateTable]:
        if client_id not in self._tables:
            self._tables[client_id] = await self.inner.get(client_id)
        return self._tables[client_id]
