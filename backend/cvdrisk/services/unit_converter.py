"""Unit Converter Service.

Bidirectional conversions between the clinical units accepted by the risk
calculators: lipids, Lp(a), ApoB, glucose, creatinine, HbA1c, height and
weight. Every multiplicative conversion is registered once with a single
factor and the reverse direction divides by the same factor, so each pair is
exactly reciprocal.

Unregistered unit pairs raise UnsupportedConversionError. Silently returning
the input would feed unconverted lipids into the risk equations.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any

from cvdrisk.core.errors import InvalidInputError, UnsupportedConversionError

logger = logging.getLogger(__name__)


class Quantity(str, Enum):
    """Clinical quantities with registered conversions."""

    CHOLESTEROL = "cholesterol"  # TC, HDL, LDL, non-HDL
    TRIGLYCERIDES = "triglycerides"
    LPA = "lpa"
    APOB = "apob"
    GLUCOSE = "glucose"
    CREATININE = "creatinine"
    HBA1C = "hba1c"
    HEIGHT = "height"
    WEIGHT = "weight"


@dataclass(frozen=True)
class ConversionFactor:
    """A multiplicative conversion: value_in_source * factor = value_in_target."""

    quantity: Quantity
    source_unit: str
    target_unit: str
    factor: float


# ============================================================================
# Conversion Registry
# ============================================================================

CONVERSION_FACTORS: list[ConversionFactor] = [
    ConversionFactor(Quantity.CHOLESTEROL, "mmol/L", "mg/dL", 38.67),
    ConversionFactor(Quantity.TRIGLYCERIDES, "mmol/L", "mg/dL", 88.57),
    ConversionFactor(Quantity.LPA, "mg/dL", "nmol/L", 2.5),
    ConversionFactor(Quantity.APOB, "g/L", "mg/dL", 100.0),
    ConversionFactor(Quantity.GLUCOSE, "mmol/L", "mg/dL", 18.02),
    ConversionFactor(Quantity.CREATININE, "mg/dL", "umol/L", 88.4),
    ConversionFactor(Quantity.HEIGHT, "in", "cm", 2.54),
    ConversionFactor(Quantity.WEIGHT, "kg", "lb", 2.20462),
]

# IFCC/NGSP master equation for HbA1c
_HBA1C_NGSP_OFFSET = 2.15
_HBA1C_IFCC_SLOPE = 10.929

CM_PER_INCH = 2.54
INCHES_PER_FOOT = 12

UNIT_NORMALIZATION: dict[str, str] = {
    "mg/dl": "mg/dL",
    "mg/100ml": "mg/dL",
    "mmol/l": "mmol/L",
    "nmol/l": "nmol/L",
    "g/l": "g/L",
    "umol/l": "umol/L",
    "µmol/l": "umol/L",
    "μmol/l": "umol/L",
    "micromol/l": "umol/L",
    "cm": "cm",
    "centimeters": "cm",
    "centimetres": "cm",
    "in": "in",
    "inch": "in",
    "inches": "in",
    "kg": "kg",
    "kgs": "kg",
    "kilograms": "kg",
    "lb": "lb",
    "lbs": "lb",
    "pounds": "lb",
    "%": "%",
    "percent": "%",
    "mmol/mol": "mmol/mol",
}


def _build_registry() -> dict[tuple[Quantity, str, str], Callable[[float], float]]:
    registry: dict[tuple[Quantity, str, str], Callable[[float], float]] = {}
    for conv in CONVERSION_FACTORS:
        factor = conv.factor
        registry[(conv.quantity, conv.source_unit, conv.target_unit)] = lambda v, f=factor: v * f
        registry[(conv.quantity, conv.target_unit, conv.source_unit)] = lambda v, f=factor: v / f

    registry[(Quantity.HBA1C, "%", "mmol/mol")] = (
        lambda v: (v - _HBA1C_NGSP_OFFSET) * _HBA1C_IFCC_SLOPE
    )
    registry[(Quantity.HBA1C, "mmol/mol", "%")] = (
        lambda v: v / _HBA1C_IFCC_SLOPE + _HBA1C_NGSP_OFFSET
    )
    return registry


_CONVERSIONS = _build_registry()

# Range-table measurement types and the (quantity, unit) they carry.
# Used by convert_units() for the "{analyte}_{unit}" key form.
MEASUREMENT_TYPE_UNITS: dict[str, tuple[Quantity, str]] = {
    "total_chol_mmol": (Quantity.CHOLESTEROL, "mmol/L"),
    "total_chol_mg": (Quantity.CHOLESTEROL, "mg/dL"),
    "hdl_mmol": (Quantity.CHOLESTEROL, "mmol/L"),
    "hdl_mg": (Quantity.CHOLESTEROL, "mg/dL"),
    "ldl_mmol": (Quantity.CHOLESTEROL, "mmol/L"),
    "ldl_mg": (Quantity.CHOLESTEROL, "mg/dL"),
    "non_hdl_mmol": (Quantity.CHOLESTEROL, "mmol/L"),
    "non_hdl_mg": (Quantity.CHOLESTEROL, "mg/dL"),
    "trig_mmol": (Quantity.TRIGLYCERIDES, "mmol/L"),
    "trig_mg": (Quantity.TRIGLYCERIDES, "mg/dL"),
    "lpa_mg": (Quantity.LPA, "mg/dL"),
    "lpa_nmol": (Quantity.LPA, "nmol/L"),
    "apob_g": (Quantity.APOB, "g/L"),
    "apob_mg": (Quantity.APOB, "mg/dL"),
    "glucose_mmol": (Quantity.GLUCOSE, "mmol/L"),
    "glucose_mg": (Quantity.GLUCOSE, "mg/dL"),
    "creatinine_umol": (Quantity.CREATININE, "umol/L"),
    "creatinine_mg": (Quantity.CREATININE, "mg/dL"),
    "height_cm": (Quantity.HEIGHT, "cm"),
    "height_in": (Quantity.HEIGHT, "in"),
    "weight_kg": (Quantity.WEIGHT, "kg"),
    "weight_lb": (Quantity.WEIGHT, "lb"),
}


# ============================================================================
# Conversion Functions
# ============================================================================


def normalize_unit(unit: str) -> str:
    """Normalize a unit string to its canonical spelling.

    Unknown units are returned stripped but otherwise untouched so the
    registry lookup can report them.
    """
    key = unit.strip().lower()
    return UNIT_NORMALIZATION.get(key, unit.strip())


def _require_number(value: Any, field: str = "value") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(field)
    if not math.isfinite(value):
        raise InvalidInputError(field)
    return float(value)


def _parse_quantity(quantity: Quantity | str) -> Quantity | None:
    if isinstance(quantity, Quantity):
        return quantity
    try:
        return Quantity(quantity.strip().lower())
    except ValueError:
        return None


def convert(
    value: float,
    quantity: Quantity | str,
    from_unit: str,
    to_unit: str,
) -> float:
    """Convert a value between two units of the same clinical quantity.

    Args:
        value: Numeric value in ``from_unit``.
        quantity: Quantity name (cholesterol, lpa, weight, ...).
        from_unit: Source unit, any registered spelling.
        to_unit: Target unit, any registered spelling.

    Returns:
        Value expressed in ``to_unit``. Unchanged if the units are equal.

    Raises:
        InvalidInputError: If value is not a finite number.
        UnsupportedConversionError: If no conversion is registered for the pair.
    """
    number = _require_number(value)
    source = normalize_unit(from_unit)
    target = normalize_unit(to_unit)

    if source == target:
        return number

    parsed = _parse_quantity(quantity)
    converter = _CONVERSIONS.get((parsed, source, target)) if parsed else None
    if converter is None:
        logger.warning(f"Unsupported conversion requested: {quantity} {from_unit} -> {to_unit}")
        raise UnsupportedConversionError(str(getattr(quantity, "value", quantity)), from_unit, to_unit)

    return converter(number)


def _analyte(measurement_type: str) -> str:
    return measurement_type.rsplit("_", 1)[0]


def convert_units(value: float, from_type: str, to_type: str) -> float:
    """Convert between two range-table measurement types.

    Types name both the analyte and the unit, e.g. ``total_chol_mmol`` to
    ``total_chol_mg`` or ``weight_lb`` to ``weight_kg``. Conversions across
    analytes (``hdl_mg`` to ``ldl_mmol``) are rejected.

    Raises:
        UnsupportedConversionError: If either type is unknown or the analytes differ.
    """
    if from_type == to_type:
        return _require_number(value)

    source = MEASUREMENT_TYPE_UNITS.get(from_type)
    target = MEASUREMENT_TYPE_UNITS.get(to_type)
    if source is None or target is None or _analyte(from_type) != _analyte(to_type):
        logger.warning(f"Unsupported measurement type conversion: {from_type} -> {to_type}")
        raise UnsupportedConversionError(_analyte(from_type), from_type, to_type)

    return convert(value, source[0], source[1], target[1])


def feet_inches_to_cm(feet: float, inches: float = 0) -> float:
    """Convert a height in feet and inches to centimeters."""
    feet_value = _require_number(feet, "feet")
    inch_value = _require_number(inches, "inches")
    if feet_value < 0 or inch_value < 0:
        raise InvalidInputError("height", "Height cannot be negative")
    return (feet_value * INCHES_PER_FOOT + inch_value) * CM_PER_INCH


def cm_to_feet_inches(cm: float) -> tuple[int, float]:
    """Convert centimeters to whole feet and remaining inches."""
    cm_value = _require_number(cm, "height")
    if cm_value < 0:
        raise InvalidInputError("height", "Height cannot be negative")
    total_inches = cm_value / CM_PER_INCH
    feet = int(total_inches // INCHES_PER_FOOT)
    return feet, total_inches - feet * INCHES_PER_FOOT


# ============================================================================
# Unit Converter Service
# ============================================================================


class UnitConverterService:
    """Service wrapper around the conversion registry.

    Usage:
        service = UnitConverterService()
        mg_dl = service.convert(5.2, "cholesterol", "mmol/L", "mg/dL")
        kg = service.convert_units(180, "weight_lb", "weight_kg")
    """

    def convert(
        self,
        value: float,
        quantity: Quantity | str,
        from_unit: str,
        to_unit: str,
    ) -> float:
        """Convert a value between units. See :func:`convert`."""
        return convert(value, quantity, from_unit, to_unit)

    def convert_units(self, value: float, from_type: str, to_type: str) -> float:
        """Convert between measurement types. See :func:`convert_units`."""
        return convert_units(value, from_type, to_type)

    def supported_conversions(self) -> list[dict[str, str]]:
        """List every registered (quantity, from, to) triple."""
        return [
            {"quantity": q.value, "from_unit": src, "to_unit": dst}
            for (q, src, dst) in _CONVERSIONS
        ]

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the conversion registry."""
        return {
            "total_conversions": len(_CONVERSIONS),
            "quantities": sorted({q.value for (q, _, _) in _CONVERSIONS}),
            "measurement_types": len(MEASUREMENT_TYPE_UNITS),
        }


# Shared instance for the API and CLI. The service holds no state,
# so separate instances behave identically.
_unit_converter_service: UnitConverterService | None = None
_unit_converter_lock = Lock()


def get_unit_converter_service() -> UnitConverterService:
    """Get the singleton UnitConverterService instance."""
    global _unit_converter_service

    if _unit_converter_service is None:
        with _unit_converter_lock:
            if _unit_converter_service is None:
                logger.info("Creating singleton UnitConverterService instance")
                _unit_converter_service = UnitConverterService()

    return _unit_converter_service


def reset_unit_converter_service() -> None:
    """Reset the singleton instance (for testing)."""
    global _unit_converter_service
    with _unit_converter_lock:
        _unit_converter_service = None
