"""Entry point for the FastAPI application.

This module constructs the FastAPI app, includes all routers and
sets up startup and shutdown events. When run with uvicorn it
initialises the database and loads configuration from
``fuelops.core.config``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exception_handlers import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from fuelops.core.config import settings
from fuelops.core.database import init_db, get_db_debug_info
from fuelops.core.exceptions import FuelOpsError
from fuelops.core.observability import init_sentry
from fuelops.api.endpoints.health import router as health_router
from fuelops.api.error_handlers import (
    domain_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)
from fuelops.api.routes.auth import router as auth_router
from fuelops.api.routes.users import router as users_router
from fuelops.api.routes.sites import router as sites_router
from fuelops.api.routes.tickets import router as tickets_router
from fuelops.api.routes.deviations import router as deviations_router
from fuelops.api.routes.dispersions import router as dispersions_router
from fuelops.api.routes.uplifts import router as uplifts_router
from fuelops.api.routes.reports import router as reports_router
from fuelops.api.routes.alerts import router as alerts_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    logger.info("Starting up...")
    # Centralised Sentry init (idempotent)
    if init_sentry("api"):
        logger.info("Sentry SDK initialized (api)")
    await init_db()
    yield
    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title="FuelOps API",
    version="1.0.0",
    lifespan=lifespan,
)

"""CORS configuration.

Logic:
1. In development => allow all ( * ) for simplest DX.
2. Otherwise use BACKEND_CORS_ORIGINS, deduplicated in order.
"""
env_is_dev = (settings.ENVIRONMENT or "development").lower() == "development"
allow_origins = ["*"] if env_is_dev else list(dict.fromkeys(settings.BACKEND_CORS_ORIGINS or []))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=not env_is_dev,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register custom exception handlers
app.add_exception_handler(FuelOpsError, domain_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(sites_router)
app.include_router(tickets_router)
app.include_router(deviations_router)
app.include_router(dispersions_router)
app.include_router(uplifts_router)
app.include_router(reports_router)
app.include_router(alerts_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Welcome to the FuelOps API"}


@app.get("/debug/db")
async def db_debug():
    """Return non-sensitive DB diagnostics (development only)."""
    if (settings.ENVIRONMENT or "development").lower() != "development":
        return {"ok": False, "message": "disabled in non-development env"}
    return get_db_debug_info()
