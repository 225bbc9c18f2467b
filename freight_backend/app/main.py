"""
FastAPI Application Entry Point.

This is the main application file for the Freight Rating Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from freight_backend.app.core.config import settings
from freight_backend.app.api.v1.router import router as api_v1_router
from freight_backend.app.db.session import engine, Base
from freight_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from freight_backend.app.domain.rating.lookups import LookupBreakers
from freight_backend.app.services.freight_sessions import FreightSessionRegistry
from freight_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from freight_backend.app.models.price_table import PriceTable
from freight_backend.app.models.client import Client
from freight_backend.app.models.city import City
from freight_backend.app.models.delivery import Delivery

configure_logging(settings.debug)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Disposes the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Freight rating, duplicate-minute checks and delivery freight reconciliation",
    lifespan=lifespan,
)

# Process-wide state: registry circuit breakers and open delivery forms
app.state.lookup_breakers = LookupBreakers.from_settings(settings)
app.state.freight_sessions = FreightSessionRegistry(ttl_seconds=settings.freight_session_ttl_seconds)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and lookup circuit states
    """
    breakers = app.state.lookup_breakers
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "lookups": {
            "client_plans": breakers.plans.state,
            "cities": breakers.cities.state,
        },
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Freight Rating Backend API",
        "docs": "/docs",
        "health": "/health",
    }
