"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from freight_backend.app.api.v1.endpoints import (
    price_tables, freight, deliveries, delivery_sessions
)

router = APIRouter()

# Price table administration
router.include_router(price_tables.router)

# Stateless quotes (budget form)
router.include_router(freight.router)

# Persisted deliveries and minute-number check
router.include_router(deliveries.router)

# Delivery form sessions (freight reconciliation)
router.include_router(delivery_sessions.router)
