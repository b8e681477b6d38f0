"""Cardiovascular risk engine: unit conversion, physiological validation and risk scores."""

__version__ = "0.1.0"
