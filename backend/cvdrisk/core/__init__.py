"""Core configuration and error types."""

from cvdrisk.core.config import settings
from cvdrisk.core.errors import (
    InvalidInputError,
    MissingInputError,
    RangeConfigurationError,
    RiskEngineError,
    UnsupportedConversionError,
)

__all__ = [
    # Config
    "settings",
    # Errors
    "RiskEngineError",
    "InvalidInputError",
    "MissingInputError",
    "UnsupportedConversionError",
    "RangeConfigurationError",
]
