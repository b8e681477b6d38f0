"""API routers for the CVD Risk Engine."""

from cvdrisk.api.risk import router as risk_router
from cvdrisk.api.units import router as units_router
from cvdrisk.api.validation import router as validation_router

__all__ = [
    "risk_router",
    "units_router",
    "validation_router",
]
