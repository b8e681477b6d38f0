"""FastAPI application for the CVD Risk Engine."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cvdrisk import __version__
from cvdrisk.api import risk_router, units_router, validation_router
from cvdrisk.core.config import settings
from cvdrisk.services.physiological_validator import get_physiological_validator_service
from cvdrisk.services.risk_engine import get_risk_engine
from cvdrisk.services.unit_converter import get_unit_converter_service

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def prewarm_all_services() -> dict[str, Any]:
    """Create the singleton services before accepting requests.

    Returns:
        Dictionary with service names and their stats.
    """
    start_time = time.perf_counter()
    services_loaded = {
        "unit_converter": get_unit_converter_service().get_stats(),
        "physiological_validator": get_physiological_validator_service().get_stats(),
        "risk_engine": get_risk_engine().get_stats(),
    }
    total_time_ms = (time.perf_counter() - start_time) * 1000

    return {
        "services_loaded": len(services_loaded),
        "total_prewarm_time_ms": round(total_time_ms, 2),
        "services": services_loaded,
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: prewarm services on startup."""
    prewarm_stats = prewarm_all_services()
    logger.info(
        f"Services pre-warmed: {prewarm_stats['services_loaded']} services "
        f"in {prewarm_stats['total_prewarm_time_ms']}ms"
    )
    app.state.prewarm_stats = prewarm_stats

    yield


app = FastAPI(
    title=settings.app_name,
    description="Cardiovascular risk scoring: Framingham, QRISK3, Lp(a) modifier, "
    "physiological validation and clinical unit conversion.",
    version=__version__,
    debug=settings.debug,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(risk_router, prefix=settings.api_v1_prefix)
app.include_router(validation_router, prefix=settings.api_v1_prefix)
app.include_router(units_router, prefix=settings.api_v1_prefix)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint (liveness check)."""
    return {
        "status": "healthy",
        "service": "cvd-risk-engine",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "service": "CVD Risk Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "api": settings.api_v1_prefix,
    }
