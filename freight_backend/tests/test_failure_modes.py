"""
Failure Injection Tests.

Registry failures must degrade to a fallback price, never to an error.
"""

import pytest
from sqlalchemy.exc import OperationalError

from freight_backend.app.main import app
from freight_backend.app.core.exceptions import LookupFailureError
from freight_backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from freight_backend.app.db.session import get_session_factory
from freight_backend.app.domain.rating.lookups import SqlCityLookup, SqlClientPlanLookup
from freight_backend.app.models.rating_enums import ServiceCategory


def broken_session_factory():
    raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def unreachable_session_factory():
    raise ConnectionRefusedError(111, "Connect call failed")


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=1)

    async def failing_func():
        raise ValueError("Boom")

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    # Threshold reached
    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout(mocker):
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=30)

    async def failing_func():
        raise ValueError("Boom")

    async def working_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    mocker.patch("freight_backend.app.core.reliability.time.time", return_value=cb.last_failure_time + 31)
    assert await cb.call(working_func) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_circuit_breaker_counts_only_consecutive_failures():
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=30)

    async def failing_func():
        raise ValueError("Boom")

    async def working_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert await cb.call(working_func) == "ok"
    assert cb.failures == 0

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "CLOSED"
    assert cb.failures == 1


@pytest.mark.asyncio
async def test_plan_lookup_wraps_database_errors():
    lookup = SqlClientPlanLookup(broken_session_factory, CircuitBreaker(failure_threshold=5))

    with pytest.raises(LookupFailureError) as exc_info:
        await lookup.get(1)

    assert exc_info.value.error_code == "ERR_LOOKUP_001"


@pytest.mark.asyncio
async def test_open_circuit_surfaces_as_lookup_failure():
    breaker = CircuitBreaker(failure_threshold=1)
    lookup = SqlCityLookup(broken_session_factory, breaker)

    with pytest.raises(LookupFailureError):
        await lookup.get(1)
    assert breaker.state == "OPEN"

    with pytest.raises(LookupFailureError) as exc_info:
        await lookup.get(1)
    assert "OPEN" in exc_info.value.message


@pytest.mark.asyncio
async def test_plan_lookup_returns_none_for_client_without_table(session_factory, unrated_client):
    lookup = SqlClientPlanLookup(session_factory, CircuitBreaker())

    assert await lookup.get(unrated_client.id) is None


@pytest.mark.asyncio
async def test_plan_lookup_returns_normalized_table(session_factory, rated_client, price_table):
    lookup = SqlClientPlanLookup(session_factory, CircuitBreaker())

    table = await lookup.get(rated_client.id)

    assert table.id == price_table.id
    assert table.minimum_rate[ServiceCategory.STANDARD] == 36.0
    assert table.minimum_rate[ServiceCategory.SATURDAY] == 0.0


@pytest.mark.asyncio
async def test_quote_falls_back_when_registry_is_down(client):
    original = app.dependency_overrides[get_session_factory]
    app.dependency_overrides[get_session_factory] = lambda: broken_session_factory
    try:
        response = await client.post("/v1/freight/quote", json={"client_id": 1, "weight_kg": 15})
    finally:
        app.dependency_overrides[get_session_factory] = original

    assert response.status_code == 200
    data = response.json()
    assert data["amount"] == 50.00
    assert data["used_fallback"] is True
    assert "LOOKUP_FAILURE" in data["signals"]


@pytest.mark.asyncio
async def test_session_survives_registry_outage(client):
    original = app.dependency_overrides[get_session_factory]
    app.dependency_overrides[get_session_factory] = lambda: broken_session_factory
    try:
        response = await client.post("/v1/delivery-sessions", json={"client_id": 1, "weight_kg": 8})
    finally:
        app.dependency_overrides[get_session_factory] = original

    assert response.status_code == 201
    data = response.json()
    assert data["displayed"] == 50.00
    assert data["phase"] == "AUTO_COMPUTING"
    assert "LOOKUP_FAILURE" in data["signals"]


@pytest.mark.asyncio
async def test_lookups_wrap_connection_errors():
    plans = SqlClientPlanLookup(unreachable_session_factory, CircuitBreaker(failure_threshold=5))
    cities = SqlCityLookup(unreachable_session_factory, CircuitBreaker(failure_threshold=5))

    with pytest.raises(LookupFailureError) as exc_info:
        await plans.get(1)
    assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)

    with pytest.raises(LookupFailureError):
        await cities.get(1)


@pytest.mark.asyncio
async def test_quote_falls_back_when_database_host_refuses_connection(client):
    original = app.dependency_overrides[get_session_factory]
    app.dependency_overrides[get_session_factory] = lambda: unreachable_session_factory
    try:
        response = await client.post("/v1/freight/quote", json={"client_id": 1, "weight_kg": 6})
    finally:
        app.dependency_overrides[get_session_factory] = original

    assert response.status_code == 200
    data = response.json()
    assert data["amount"] == 50.00
    assert data["used_fallback"] is True
    assert "LOOKUP_FAILURE" in data["signals"]
