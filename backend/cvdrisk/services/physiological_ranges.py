"""Physiological Range Table.

Static per-measurement thresholds used by the validator and the calculators:
absolute (physiologically possible) bounds, critical bounds, treatment targets,
risk thresholds and disease-stage cut-offs.

The table is built once at import time and is read-only afterwards. Each
definition checks ``min <= critical_min <= critical_max <= max`` on
construction, so a bad edit fails at import rather than at validation time.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from cvdrisk.core.errors import RangeConfigurationError

logger = logging.getLogger(__name__)


class MeasurementCategory(str, Enum):
    """Categories of measurements in the range table."""

    DEMOGRAPHIC = "demographic"
    VITAL = "vital"  # Blood pressure
    LIPID = "lipid"  # Cholesterol, triglycerides, Lp(a), ApoB
    ANTHROPOMETRIC = "anthropometric"  # Height, weight, BMI, waist
    METABOLIC = "metabolic"  # Glucose, HbA1c
    RENAL = "renal"  # Creatinine, eGFR
    RISK_SCORE = "risk_score"


@dataclass(frozen=True)
class RangeDefinition:
    """Thresholds for one measurement type."""

    key: str
    description: str
    unit: str
    category: MeasurementCategory
    min: float
    max: float
    critical_min: float
    critical_max: float
    target_min: float | None = None
    target_max: float | None = None
    warning_low: float | None = None
    warning_high: float | None = None
    high_risk_min: float | None = None
    high_risk_max: float | None = None
    diabetes_threshold: float | None = None
    pre_diabetes_min: float | None = None
    # BMI ladder
    underweight_max: float | None = None
    overweight_min: float | None = None
    obese_min: float | None = None
    morbidly_obese_min: float | None = None
    # CKD stages (eGFR upper bounds)
    ckd_stage3_max: float | None = None
    ckd_stage4_max: float | None = None
    ckd_stage5_max: float | None = None
    # Gender-specific upper thresholds
    male_high: float | None = None
    female_high: float | None = None
    note: str = ""

    def __post_init__(self) -> None:
        if not (self.min <= self.critical_min <= self.critical_max <= self.max):
            raise RangeConfigurationError(
                f"Range '{self.key}' must satisfy min <= critical_min <= critical_max <= max "
                f"(got {self.min}, {self.critical_min}, {self.critical_max}, {self.max})"
            )

    def gender_high(self, gender: str | None) -> float | None:
        """Gender-specific upper threshold, or None if not defined for gender."""
        if gender == "male":
            return self.male_high
        if gender == "female":
            return self.female_high
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting thresholds that are not defined."""
        data: dict[str, Any] = {
            "type": self.key,
            "description": self.description,
            "unit": self.unit,
            "category": self.category.value,
            "min": self.min,
            "max": self.max,
            "critical_min": self.critical_min,
            "critical_max": self.critical_max,
        }
        for name in (
            "target_min",
            "target_max",
            "warning_low",
            "warning_high",
            "high_risk_min",
            "high_risk_max",
            "diabetes_threshold",
            "pre_diabetes_min",
            "underweight_max",
            "overweight_min",
            "obese_min",
            "morbidly_obese_min",
            "ckd_stage3_max",
            "ckd_stage4_max",
            "ckd_stage5_max",
            "male_high",
            "female_high",
        ):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.note:
            data["note"] = self.note
        return data


# ============================================================================
# Range Definitions
# ============================================================================

_D = MeasurementCategory.DEMOGRAPHIC
_V = MeasurementCategory.VITAL
_L = MeasurementCategory.LIPID
_A = MeasurementCategory.ANTHROPOMETRIC
_M = MeasurementCategory.METABOLIC
_R = MeasurementCategory.RENAL
_S = MeasurementCategory.RISK_SCORE

RANGE_DEFINITIONS: list[RangeDefinition] = [
    # Demographics
    RangeDefinition(
        "age", "Age", "years", _D, 18, 100, 25, 85,
        note="Risk algorithms are validated for ages 25-84 (QRISK3) and 30-74 (Framingham)",
    ),
    # Blood pressure
    RangeDefinition("sbp", "Systolic blood pressure", "mmHg", _V, 70, 240, 90, 210),
    RangeDefinition("dbp", "Diastolic blood pressure", "mmHg", _V, 40, 140, 60, 120),
    # Total cholesterol
    RangeDefinition(
        "total_chol_mmol", "Total cholesterol", "mmol/L", _L, 1.0, 15.0, 2.5, 12.0,
        target_max=5.2,
    ),
    RangeDefinition(
        "total_chol_mg", "Total cholesterol", "mg/dL", _L, 40, 580, 100, 465,
        target_max=200,
    ),
    # HDL
    RangeDefinition(
        "hdl_mmol", "HDL cholesterol", "mmol/L", _L, 0.5, 4.0, 0.7, 3.0,
        target_min=1.0,
    ),
    RangeDefinition(
        "hdl_mg", "HDL cholesterol", "mg/dL", _L, 20, 155, 27, 116,
        target_min=40,
    ),
    # LDL
    RangeDefinition(
        "ldl_mmol", "LDL cholesterol", "mmol/L", _L, 0.5, 10.0, 1.0, 8.0,
        target_max=2.6, high_risk_min=4.9,
    ),
    RangeDefinition(
        "ldl_mg", "LDL cholesterol", "mg/dL", _L, 20, 400, 40, 300,
        target_max=100, high_risk_min=190,
    ),
    # Triglycerides
    RangeDefinition(
        "trig_mmol", "Triglycerides", "mmol/L", _L, 0.5, 15.0, 0.8, 10.0,
        target_max=1.7,
    ),
    RangeDefinition(
        "trig_mg", "Triglycerides", "mg/dL", _L, 40, 1300, 70, 900,
        target_max=150,
    ),
    # Non-HDL
    RangeDefinition(
        "non_hdl_mmol", "Non-HDL cholesterol", "mmol/L", _L, 0.5, 14.0, 1.5, 10.0,
        target_max=3.4,
    ),
    RangeDefinition(
        "non_hdl_mg", "Non-HDL cholesterol", "mg/dL", _L, 20, 530, 70, 400,
        target_max=130,
    ),
    # Lp(a)
    RangeDefinition(
        "lpa_mg", "Lipoprotein(a)", "mg/dL", _L, 0, 500, 0, 300,
        high_risk_min=50,
    ),
    RangeDefinition(
        "lpa_nmol", "Lipoprotein(a)", "nmol/L", _L, 0, 1000, 0, 750,
        high_risk_min=125,
    ),
    # ApoB
    RangeDefinition(
        "apob_g", "Apolipoprotein B", "g/L", _L, 0.2, 3.0, 0.4, 2.5,
        target_max=0.9, high_risk_max=0.8,
    ),
    RangeDefinition(
        "apob_mg", "Apolipoprotein B", "mg/dL", _L, 20, 300, 40, 250,
        target_max=90, high_risk_max=80,
    ),
    # Anthropometrics
    RangeDefinition(
        "bmi", "Body mass index", "kg/m²", _A, 8, 100, 12, 60,
        underweight_max=18.5, overweight_min=25, obese_min=30, morbidly_obese_min=40,
    ),
    RangeDefinition("height_cm", "Height", "cm", _A, 50, 272, 100, 250),
    RangeDefinition("height_in", "Height", "in", _A, 20, 107, 39, 98),
    RangeDefinition("weight_kg", "Weight", "kg", _A, 20, 300, 30, 250),
    RangeDefinition("weight_lb", "Weight", "lb", _A, 44, 661, 66, 550),
    RangeDefinition(
        "waist_circ_cm", "Waist circumference", "cm", _A, 40, 200, 50, 180,
        male_high=102, female_high=88,
    ),
    # Glycaemia
    RangeDefinition(
        "glucose_mmol", "Fasting glucose", "mmol/L", _M, 1.0, 40.0, 2.2, 30.0,
        diabetes_threshold=7.0, pre_diabetes_min=5.6,
    ),
    RangeDefinition(
        "glucose_mg", "Fasting glucose", "mg/dL", _M, 20, 720, 40, 540,
        diabetes_threshold=126, pre_diabetes_min=100,
    ),
    RangeDefinition(
        "hba1c", "HbA1c", "%", _M, 2.0, 20.0, 3.0, 15.0,
        diabetes_threshold=6.5, pre_diabetes_min=5.7,
    ),
    # Renal
    RangeDefinition(
        "creatinine_umol", "Serum creatinine", "µmol/L", _R, 20, 1500, 40, 1000,
        male_high=110, female_high=90,
    ),
    RangeDefinition(
        "creatinine_mg", "Serum creatinine", "mg/dL", _R, 0.2, 17.0, 0.4, 12.0,
        male_high=1.3, female_high=1.1,
    ),
    RangeDefinition(
        "egfr", "eGFR", "mL/min/1.73m²", _R, 0, 150, 5, 130,
        ckd_stage3_max=60, ckd_stage4_max=30, ckd_stage5_max=15,
    ),
    # Risk scores
    RangeDefinition("frs", "Framingham risk score", "%", _S, 0, 100, 0, 100),
    RangeDefinition("qrisk3", "QRISK3 score", "%", _S, 0, 100, 0, 100),
]

_RANGE_INDEX: MappingProxyType[str, RangeDefinition] = MappingProxyType(
    {r.key: r for r in RANGE_DEFINITIONS}
)

if len(_RANGE_INDEX) != len(RANGE_DEFINITIONS):
    raise RangeConfigurationError("Duplicate measurement type in range table")

logger.debug(f"Loaded {len(_RANGE_INDEX)} physiological range definitions")


# ============================================================================
# Lookup Functions
# ============================================================================


def get_range(measurement_type: str) -> RangeDefinition | None:
    """Get the range definition for a measurement type, or None if unknown."""
    return _RANGE_INDEX.get(measurement_type)


def list_types() -> list[str]:
    """List all registered measurement types in table order."""
    return [r.key for r in RANGE_DEFINITIONS]


def get_ranges_by_category(category: MeasurementCategory) -> list[RangeDefinition]:
    """Get all range definitions in a category."""
    return [r for r in RANGE_DEFINITIONS if r.category == category]
