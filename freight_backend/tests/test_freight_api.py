"""
Integration tests for the freight API.

Price tables, quotes, the minute-number check and delivery form sessions.
"""

import json
import pytest

from freight_backend.app.main import app
from freight_backend.app.core.exceptions import ReconciliationStateError
from freight_backend.app.models.client import Client
from freight_backend.app.services.freight_sessions import FreightSessionRegistry


# =============================================================================
# PRICE TABLES
# =============================================================================

@pytest.mark.asyncio
async def test_create_flat_price_table_returns_normalized(client):
    response = await client.post("/v1/price-tables", json={
        "name": "Tabela Antiga",
        "legacy_rates": {
            "fortaleza_normal_min_rate": 36.0,
            "fortaleza_normal_excess_rate": 0.55,
            "interior_exclusive_km_rate": 2.4,
        },
        "insurance": json.dumps({"standardRate": 0.02}),
    })

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Tabela Antiga"
    rate_table = data["rate_table"]
    assert rate_table["minimum_rate"]["standard"] == 36.0
    assert rate_table["minimum_rate"]["emergency"] == 0.0
    assert rate_table["excess_weight_rate"]["standard"] == 0.55
    assert rate_table["door_to_door"] == {"rate_per_km": 2.4, "max_weight": 100.0}
    assert rate_table["insurance"] == {"standard_rate": 0.02, "perishable_rate": 0.02}


@pytest.mark.asyncio
async def test_get_and_list_price_tables(client, price_table):
    response = await client.get(f"/v1/price-tables/{price_table.id}")
    assert response.status_code == 200
    assert response.json()["rate_table"]["minimum_rate"]["doorToDoorInterior"] == 200.0

    response = await client.get("/v1/price-tables")
    assert response.status_code == 200
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_missing_price_table_is_404(client):
    response = await client.get("/v1/price-tables/999")

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


# =============================================================================
# QUOTES
# =============================================================================

@pytest.mark.asyncio
async def test_quote_with_weight(client, rated_client, price_table):
    response = await client.post("/v1/freight/quote", json={
        "client_id": rated_client.id,
        "weight_kg": 15,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["amount"] == 38.75
    assert data["rate_table_id"] == price_table.id
    assert data["used_fallback"] is False
    assert data["signals"] == []


@pytest.mark.asyncio
async def test_quote_with_packages_uses_cubic_weight(client, rated_client):
    # 50 x 40 x 30 / 6000 = 10 kg cubic vs 4 kg real, two packages -> 20 kg
    response = await client.post("/v1/freight/quote", json={
        "client_id": rated_client.id,
        "packages": [{"width": 50, "length": 40, "height": 30, "weight": 4, "quantity": 2}],
        "additional_services": [{"description": "Ajudante", "value": 10}],
    })

    assert response.status_code == 200
    data = response.json()
    assert data["rated_weight_kg"] == 20.0
    # 36 + 10 * 0.55 + 10
    assert data["amount"] == 51.50


@pytest.mark.asyncio
async def test_quote_door_to_door_with_city(client, rated_client, interior_city):
    response = await client.post("/v1/freight/quote", json={
        "client_id": rated_client.id,
        "service_category": "door_to_door",
        "weight_kg": 50,
        "city_id": interior_city.id,
    })

    assert response.status_code == 200
    assert response.json()["amount"] == 248.00


@pytest.mark.asyncio
async def test_quote_for_client_without_table(client, unrated_client):
    response = await client.post("/v1/freight/quote", json={
        "client_id": unrated_client.id,
        "weight_kg": 6,
        "cargo_category": "general",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["amount"] == 50.00
    assert data["used_fallback"] is True
    assert "NO_RATE_TABLE_ASSIGNED" in data["signals"]


@pytest.mark.asyncio
async def test_quote_rejects_negative_weight(client, rated_client):
    response = await client.post("/v1/freight/quote", json={
        "client_id": rated_client.id,
        "weight_kg": -4,
    })

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "ERR_RATING_INPUT_001"
    assert body["details"]["field"] == "weight_kg"


@pytest.mark.asyncio
async def test_quote_requires_weight_or_packages(client, rated_client):
    response = await client.post("/v1/freight/quote", json={"client_id": rated_client.id})

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


# =============================================================================
# DELIVERY SESSIONS
# =============================================================================

async def open_session(client, client_id, **fields):
    response = await client.post("/v1/delivery-sessions", json={"client_id": client_id, **fields})
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_manual_override_survives_edits_until_recalculate(client, rated_client):
    session = await open_session(client, rated_client.id, weight_kg=8)
    session_id = session["session_id"]
    assert session["displayed"] == 36.00
    assert session["phase"] == "AUTO_COMPUTING"

    response = await client.put(f"/v1/delivery-sessions/{session_id}/freight", json={"value": "120,00"})
    assert response.json()["accepted"] is True
    assert response.json()["phase"] == "MANUAL_OVERRIDE"

    response = await client.patch(f"/v1/delivery-sessions/{session_id}/inputs", json={"weight_kg": 15})
    assert response.json()["displayed"] == 120.00

    response = await client.post(f"/v1/delivery-sessions/{session_id}/recalculate")
    data = response.json()
    assert data["displayed"] == 38.75
    assert data["phase"] == "AUTO_COMPUTING"
    assert data["manually_overridden"] is False


@pytest.mark.asyncio
async def test_invalid_field_change_is_rejected(client, rated_client):
    session = await open_session(client, rated_client.id, weight_kg=8)

    response = await client.patch(
        f"/v1/delivery-sessions/{session['session_id']}/inputs", json={"weight_kg": -1}
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_RATING_INPUT_001"


@pytest.mark.asyncio
async def test_submit_persists_displayed_and_round_trips(client, rated_client):
    session = await open_session(client, rated_client.id, weight_kg=8)
    session_id = session["session_id"]
    await client.put(f"/v1/delivery-sessions/{session_id}/freight", json={"value": "48.555"})

    response = await client.post(f"/v1/delivery-sessions/{session_id}/submit", json={
        "minute_number": "001",
        "receiver": "Posto Central",
    })

    assert response.status_code == 201
    delivery = response.json()["delivery"]
    assert delivery["total_freight"] == 48.56

    response = await client.get(f"/v1/deliveries/{delivery['id']}")
    assert response.status_code == 200
    assert response.json()["total_freight"] == 48.56

    # Submitted sessions are gone
    response = await client.get(f"/v1/delivery-sessions/{session_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_duplicate_minute_requires_confirmation(client, rated_client):
    first = await open_session(client, rated_client.id, weight_kg=8)
    await client.post(f"/v1/delivery-sessions/{first['session_id']}/submit", json={"minute_number": "001"})

    second = await open_session(client, rated_client.id, weight_kg=12)
    submit_url = f"/v1/delivery-sessions/{second['session_id']}/submit"

    response = await client.post(submit_url, json={"minute_number": "001"})
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMATION_REQUIRED"
    assert response.json()["delivery"] is None

    response = await client.post(submit_url, json={"minute_number": "001", "confirm_duplicate": True})
    assert response.status_code == 201
    assert response.json()["status"] == "SAVED"
    assert response.json()["duplicate_minute"] is True

    response = await client.get("/v1/deliveries/minute-check", params={
        "minute_number": "001", "client_id": rated_client.id,
    })
    assert response.json()["exists"] is True


@pytest.mark.asyncio
async def test_editing_delivery_with_unchanged_minute_skips_check(client, rated_client):
    first = await open_session(client, rated_client.id, weight_kg=8)
    await client.post(f"/v1/delivery-sessions/{first['session_id']}/submit", json={"minute_number": "001"})
    second = await open_session(client, rated_client.id, weight_kg=8)
    response = await client.post(
        f"/v1/delivery-sessions/{second['session_id']}/submit",
        json={"minute_number": "001", "confirm_duplicate": True},
    )
    delivery_id = response.json()["delivery"]["id"]

    # Reopen the second delivery: stored freight is shown as is
    response = await client.post("/v1/delivery-sessions", json={"delivery_id": delivery_id})
    reopened = response.json()
    assert reopened["displayed"] == 36.00
    assert reopened["delivery_id"] == delivery_id

    response = await client.post(
        f"/v1/delivery-sessions/{reopened['session_id']}/submit",
        json={"minute_number": "001", "receiver": "Novo Recebedor"},
    )
    assert response.status_code == 201
    assert response.json()["delivery"]["id"] == delivery_id
    assert response.json()["delivery"]["receiver"] == "Novo Recebedor"


@pytest.mark.asyncio
async def test_moving_delivery_to_client_with_same_minute_requires_confirmation(client, db_session, rated_client, price_table):
    other_client = Client(name="Distribuidora Norte", price_table_id=price_table.id)
    db_session.add(other_client)
    await db_session.commit()
    await db_session.refresh(other_client)

    other = await open_session(client, other_client.id, weight_kg=8)
    await client.post(f"/v1/delivery-sessions/{other['session_id']}/submit", json={"minute_number": "001"})
    own = await open_session(client, rated_client.id, weight_kg=8)
    response = await client.post(f"/v1/delivery-sessions/{own['session_id']}/submit", json={"minute_number": "001"})
    assert response.status_code == 201
    delivery_id = response.json()["delivery"]["id"]

    response = await client.post("/v1/delivery-sessions", json={"delivery_id": delivery_id})
    session_id = response.json()["session_id"]
    await client.patch(f"/v1/delivery-sessions/{session_id}/inputs", json={"client_id": other_client.id})

    response = await client.post(f"/v1/delivery-sessions/{session_id}/submit", json={"minute_number": "001"})

    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMATION_REQUIRED"
    assert response.json()["duplicate_minute"] is True


@pytest.mark.asyncio
async def test_minute_check_excludes_record_being_edited(client, rated_client):
    session = await open_session(client, rated_client.id, weight_kg=8)
    response = await client.post(
        f"/v1/delivery-sessions/{session['session_id']}/submit", json={"minute_number": "007"}
    )
    delivery_id = response.json()["delivery"]["id"]

    response = await client.get("/v1/deliveries/minute-check", params={
        "minute_number": "007", "client_id": rated_client.id, "exclude_id": delivery_id,
    })

    assert response.status_code == 200
    assert response.json()["exists"] is False


@pytest.mark.asyncio
async def test_open_unknown_delivery_is_404(client):
    response = await client.post("/v1/delivery-sessions", json={"delivery_id": 12345})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_close_session(client, rated_client):
    session = await open_session(client, rated_client.id, weight_kg=8)
    url = f"/v1/delivery-sessions/{session['session_id']}"

    response = await client.delete(url)
    assert response.status_code == 204

    response = await client.delete(url)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_idle_session_expires(client, rated_client):
    now = [1000.0]
    app.state.freight_sessions = FreightSessionRegistry(ttl_seconds=60, clock=lambda: now[0])

    session = await open_session(client, rated_client.id, weight_kg=8)
    url = f"/v1/delivery-sessions/{session['session_id']}"

    now[0] += 45
    response = await client.get(url)
    assert response.status_code == 200

    # Reading it again restarted the idle clock
    now[0] += 45
    response = await client.get(url)
    assert response.status_code == 200

    now[0] += 61
    response = await client.get(url)
    assert response.status_code == 404
    assert len(app.state.freight_sessions) == 0


@pytest.mark.asyncio
async def test_session_is_not_kept_when_opening_fails(client, rated_client, mocker):
    mocker.patch(
        "freight_backend.app.domain.deliveries.reconciliation.FreightReconciliation.open",
        side_effect=ReconciliationStateError("Session cannot open", "IDLE"),
    )

    response = await client.post("/v1/delivery-sessions", json={"client_id": rated_client.id, "weight_kg": 8})

    assert response.status_code == 409
    assert len(app.state.freight_sessions) == 0


@pytest.mark.asyncio
async def test_health_and_correlation_header(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.status_code == 200
    assert response.json()["lookups"] == {"client_plans": "CLOSED", "cities": "CLOSED"}
    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers
