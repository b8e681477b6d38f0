"""Physiological Validator Service.

Classifies measurements against the physiological range table and runs the
composite checks (blood pressure, cholesterol ratio, BMI, implausible value
combinations). Validation is advisory: results describe plausibility and never
raise for a bad value, so the calculators can still run on the raw inputs.

Result levels:
- invalid: malformed input or outside the absolute (possible) range
- critical: inside the absolute range but outside the critical range
- warning: target, risk-threshold or category breaches
- normal: none of the above
"""

import logging
import math
from dataclasses import dataclass, field
from threading import Lock
from typing import TYPE_CHECKING, Any

from cvdrisk.services.physiological_ranges import RangeDefinition, get_range, list_types

if TYPE_CHECKING:
    from cvdrisk.services.patient_input import PatientRiskInput

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of validating one measurement or composite."""

    is_valid: bool
    is_warning: bool = False
    is_critical: bool = False
    message: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "is_warning": self.is_warning,
            "is_critical": self.is_critical,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class PatientValidationReport:
    """Per-field and composite validation results for a whole patient."""

    fields: dict[str, ValidationResult] = field(default_factory=dict)
    composites: dict[str, ValidationResult] = field(default_factory=dict)
    implausible_combinations: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return all(r.is_valid for r in self.fields.values()) and all(
            r.is_valid for r in self.composites.values()
        )

    @property
    def has_warnings(self) -> bool:
        results = list(self.fields.values()) + list(self.composites.values())
        return any(r.is_warning for r in results) or bool(self.implausible_combinations)

    @property
    def has_critical(self) -> bool:
        results = list(self.fields.values()) + list(self.composites.values())
        return any(r.is_critical for r in results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "has_warnings": self.has_warnings,
            "has_critical": self.has_critical,
            "fields": {k: v.to_dict() for k, v in self.fields.items()},
            "composites": {k: v.to_dict() for k, v in self.composites.items()},
            "implausible_combinations": list(self.implausible_combinations),
        }


# ============================================================================
# Helpers
# ============================================================================


def _fmt(value: float) -> str:
    """Format a number the way it would be typed (45, not 45.0)."""
    return f"{value:g}"


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _clinical_warnings(
    measurement_type: str,
    value: float,
    rng: RangeDefinition,
    gender: str | None,
) -> list[str]:
    """Collect soft warnings for a value already inside its critical range."""
    warnings: list[str] = []
    desc = rng.description
    unit = rng.unit
    v = _fmt(value)

    if rng.warning_low is not None and value < rng.warning_low:
        warnings.append(f"{desc} value is low ({v} {unit} < {_fmt(rng.warning_low)} {unit})")
    if rng.warning_high is not None and value > rng.warning_high:
        warnings.append(f"{desc} value is high ({v} {unit} > {_fmt(rng.warning_high)} {unit})")

    if rng.target_max is not None and value > rng.target_max:
        warnings.append(
            f"{desc} exceeds recommended target ({v} {unit} > {_fmt(rng.target_max)} {unit})"
        )
    if rng.target_min is not None and value < rng.target_min:
        warnings.append(
            f"{desc} below recommended target ({v} {unit} < {_fmt(rng.target_min)} {unit})"
        )
    if rng.high_risk_min is not None and value >= rng.high_risk_min:
        warnings.append(
            f"{desc} in high risk range ({v} {unit} ≥ {_fmt(rng.high_risk_min)} {unit})"
        )
    if rng.high_risk_max is not None and value > rng.high_risk_max:
        warnings.append(
            f"{desc} exceeds high risk threshold ({v} {unit} > {_fmt(rng.high_risk_max)} {unit})"
        )

    # BMI ladder, most severe label wins
    if rng.underweight_max is not None and value < rng.underweight_max:
        warnings.append("Underweight")
    elif rng.obese_min is not None and value >= rng.obese_min:
        if rng.morbidly_obese_min is not None and value >= rng.morbidly_obese_min:
            warnings.append("Morbidly obese")
        else:
            warnings.append("Obese")
    elif rng.overweight_min is not None and value >= rng.overweight_min:
        warnings.append("Overweight")

    if rng.diabetes_threshold is not None:
        if value >= rng.diabetes_threshold:
            warnings.append(
                f"{desc} in diabetic range ({v} {unit} ≥ {_fmt(rng.diabetes_threshold)} {unit})"
            )
        elif rng.pre_diabetes_min is not None and value >= rng.pre_diabetes_min:
            warnings.append(
                f"{desc} in pre-diabetic range ({v} {unit} ≥ {_fmt(rng.pre_diabetes_min)} {unit})"
            )

    # CKD stage, most severe wins
    if rng.ckd_stage5_max is not None and value < rng.ckd_stage5_max:
        warnings.append("CKD Stage 5 (Kidney Failure)")
    elif rng.ckd_stage4_max is not None and value < rng.ckd_stage4_max:
        warnings.append("CKD Stage 4 (Severe)")
    elif rng.ckd_stage3_max is not None and value < rng.ckd_stage3_max:
        warnings.append("CKD Stage 3 (Moderate)")

    threshold = rng.gender_high(gender)
    if threshold is not None:
        if measurement_type == "waist_circ_cm":
            if value >= threshold:
                warnings.append(
                    f"Waist circumference indicates increased cardiovascular risk for {gender}s"
                )
        elif value > threshold:
            warnings.append(f"{desc} elevated for {gender}s")

    return warnings


# ============================================================================
# Validators
# ============================================================================


def validate_value(
    measurement_type: str,
    value: Any,
    gender: str | None = None,
) -> ValidationResult:
    """Validate a single measurement against its range definition.

    Args:
        measurement_type: Range table key (e.g. "sbp", "ldl_mmol", "bmi").
        value: The measured value.
        gender: "male" or "female" to enable gender-specific thresholds
            (waist circumference, creatinine). Anything else skips them.

    Returns:
        ValidationResult. Unknown measurement types are treated as valid.
    """
    rng = get_range(measurement_type)
    if rng is None:
        return ValidationResult(is_valid=True)

    if not _is_number(value):
        return ValidationResult(
            is_valid=False,
            message=f"{rng.description} must be a valid number",
            details={"type": "invalid_input"},
        )

    unit = rng.unit
    if value < rng.min or value > rng.max:
        return ValidationResult(
            is_valid=False,
            is_critical=True,
            message=(
                f"{rng.description} value of {_fmt(value)} {unit} is physiologically impossible "
                f"(valid range: {_fmt(rng.min)}-{_fmt(rng.max)} {unit})"
            ),
            details={"type": "out_of_absolute_range", "min": rng.min, "max": rng.max},
        )

    if value < rng.critical_min or value > rng.critical_max:
        return ValidationResult(
            is_valid=True,
            is_critical=True,
            message=(
                f"{rng.description} value of {_fmt(value)} {unit} is critically abnormal "
                f"(critical range: {_fmt(rng.critical_min)}-{_fmt(rng.critical_max)} {unit})"
            ),
            details={
                "type": "critical_value",
                "critical_min": rng.critical_min,
                "critical_max": rng.critical_max,
            },
        )

    if gender not in ("male", "female"):
        gender = None
    warnings = _clinical_warnings(measurement_type, value, rng, gender)
    if warnings:
        return ValidationResult(
            is_valid=True,
            is_warning=True,
            message="; ".join(warnings),
            details={"type": "warning", "warnings": warnings},
        )

    return ValidationResult(is_valid=True, details={"type": "normal"})


def classify_blood_pressure(sbp: float, dbp: float) -> str:
    """Blood pressure category.

    Stage 1 and Stage 2 are tested with OR, so a high diastolic can fall into
    a lower stage when the systolic is below that stage's cut-off
    (135/95 is Stage 1).
    """
    if sbp < 120 and dbp < 80:
        return "Normal"
    if sbp < 130 and dbp < 80:
        return "Elevated"
    if sbp < 140 or dbp < 90:
        return "Stage 1 Hypertension"
    if sbp < 180 or dbp < 120:
        return "Stage 2 Hypertension"
    return "Hypertensive Crisis"


def validate_blood_pressure(sbp: Any, dbp: Any) -> ValidationResult:
    """Validate a systolic/diastolic pair, pulse pressure and BP category."""
    sbp_result = validate_value("sbp", sbp)
    dbp_result = validate_value("dbp", dbp)

    is_valid = sbp_result.is_valid and dbp_result.is_valid
    is_warning = sbp_result.is_warning or dbp_result.is_warning
    is_critical = sbp_result.is_critical or dbp_result.is_critical

    messages = [m for m in (sbp_result.message, dbp_result.message) if m]

    if is_valid and sbp <= dbp:
        messages.append("SBP must be greater than DBP")
        return ValidationResult(
            is_valid=False,
            is_critical=True,
            message="; ".join(messages),
            details={"type": "invalid_bp_relationship"},
        )

    details: dict[str, Any] = {"sbp": sbp_result.details, "dbp": dbp_result.details}

    if is_valid:
        pulse_pressure = sbp - dbp
        details["pulse_pressure"] = pulse_pressure
        if pulse_pressure < 20:
            messages.append("Pulse pressure is very narrow (< 20 mmHg)")
            is_warning = True
        elif pulse_pressure > 100:
            messages.append("Pulse pressure is very wide (> 100 mmHg)")
            is_warning = True

        category = classify_blood_pressure(sbp, dbp)
        details["category"] = category
        if category == "Hypertensive Crisis":
            messages.append("Immediate medical attention may be required")
        if category != "Normal":
            messages.append(f"Blood pressure category: {category}")
            is_warning = True

    return ValidationResult(
        is_valid=is_valid,
        is_warning=is_warning,
        is_critical=is_critical,
        message="; ".join(messages) if messages else None,
        details=details,
    )


def validate_cholesterol_ratio(total: Any, hdl: Any) -> ValidationResult:
    """Validate the total/HDL cholesterol ratio (both in the same unit)."""
    if not _is_number(total) or not _is_number(hdl) or not total or not hdl:
        return ValidationResult(
            is_valid=False,
            message="Cannot calculate cholesterol ratio",
            details={"type": "invalid_input"},
        )

    ratio = total / hdl
    warnings: list[str] = []
    if ratio < 2.0:
        warnings.append("Cholesterol ratio is unusually low")
    elif ratio > 6.0:
        warnings.append("Cholesterol ratio indicates high cardiovascular risk")
    elif ratio > 5.0:
        warnings.append("Cholesterol ratio is elevated")

    return ValidationResult(
        is_valid=True,
        is_warning=bool(warnings),
        message="; ".join(warnings) if warnings else None,
        details={"type": "warning" if warnings else "normal", "ratio": ratio},
    )


def validate_bmi(weight_kg: Any, height_cm: Any) -> ValidationResult:
    """Compute BMI from weight (kg) and height (cm) and validate it."""
    if not _is_number(weight_kg) or not _is_number(height_cm) or not weight_kg or not height_cm:
        return ValidationResult(
            is_valid=False,
            message="Cannot calculate BMI",
            details={"type": "invalid_input"},
        )

    height_m = height_cm / 100
    return validate_value("bmi", weight_kg / (height_m * height_m))


def check_implausible_combinations(values: dict[str, float | None]) -> list[str]:
    """Flag combinations of values that are individually plausible but unlikely together.

    Expects lipids in mmol/L under ``total_chol``, ``hdl``, ``ldl``,
    ``triglycerides``; plus ``sbp``, ``dbp``, ``bmi`` and ``age``. Missing
    keys skip the checks that need them.
    """
    total = values.get("total_chol")
    hdl = values.get("hdl")
    ldl = values.get("ldl")
    trig = values.get("triglycerides")
    sbp = values.get("sbp")
    dbp = values.get("dbp")
    bmi = values.get("bmi")
    age = values.get("age")

    messages: list[str] = []
    if total is not None and hdl is not None:
        if total < hdl:
            messages.append("Total cholesterol is lower than HDL cholesterol")
        elif hdl > 0.8 * total:
            messages.append("HDL cholesterol is unusually high relative to total cholesterol")
    if total is not None and ldl is not None and total < ldl:
        messages.append("Total cholesterol is lower than LDL cholesterol")
    if sbp is not None and dbp is not None:
        if sbp < dbp:
            messages.append("Systolic blood pressure is lower than diastolic")
        elif sbp > 180 and dbp < 90:
            messages.append("Very wide pulse pressure: isolated systolic hypertension")
    if bmi is not None and total is not None and bmi > 40 and total < 3.0:
        messages.append("Very low total cholesterol is unusual with BMI above 40")
    if (
        age is not None
        and total is not None
        and trig is not None
        and age < 40
        and total > 8.0
        and trig < 1.0
    ):
        messages.append(
            "High cholesterol with low triglycerides in a younger patient "
            "may indicate familial hypercholesterolaemia"
        )
    return messages


# ============================================================================
# Physiological Validator Service
# ============================================================================


class PhysiologicalValidatorService:
    """Service wrapper for measurement and patient validation.

    Usage:
        validator = PhysiologicalValidatorService()
        result = validator.validate_value("ldl_mmol", 5.1)
        report = validator.validate_patient(patient)
    """

    def validate_value(
        self,
        measurement_type: str,
        value: Any,
        gender: str | None = None,
    ) -> ValidationResult:
        return validate_value(measurement_type, value, gender)

    def validate_blood_pressure(self, sbp: Any, dbp: Any) -> ValidationResult:
        return validate_blood_pressure(sbp, dbp)

    def validate_cholesterol_ratio(self, total: Any, hdl: Any) -> ValidationResult:
        return validate_cholesterol_ratio(total, hdl)

    def validate_bmi(self, weight_kg: Any, height_cm: Any) -> ValidationResult:
        return validate_bmi(weight_kg, height_cm)

    def validate_patient(self, patient: "PatientRiskInput") -> PatientValidationReport:
        """Validate every measurement a patient record carries.

        Each present field is checked against its unit-specific range type,
        followed by the BP, ratio and BMI composites and the combination
        checks. Absent fields are skipped.
        """
        report = PatientValidationReport()
        gender = patient.sex.value if patient.sex else None

        for measurement_type, value in patient.measurements().items():
            report.fields[measurement_type] = validate_value(measurement_type, value, gender)

        if patient.sbp is not None and patient.dbp is not None:
            report.composites["blood_pressure"] = validate_blood_pressure(patient.sbp, patient.dbp)
        if patient.total_chol is not None and patient.hdl is not None:
            report.composites["cholesterol_ratio"] = validate_cholesterol_ratio(
                patient.total_chol, patient.hdl
            )
        if patient.weight_kg is not None and patient.height_cm is not None:
            report.composites["bmi"] = validate_bmi(patient.weight_kg, patient.height_cm)

        report.implausible_combinations = check_implausible_combinations(
            {
                "total_chol": patient.total_chol_mmol,
                "hdl": patient.hdl_mmol,
                "ldl": patient.ldl_mmol,
                "triglycerides": patient.triglycerides_mmol,
                "sbp": patient.sbp,
                "dbp": patient.dbp,
                "bmi": patient.resolved_bmi,
                "age": patient.age,
            }
        )

        logger.debug(
            f"Validated patient: {len(report.fields)} fields, "
            f"{len(report.composites)} composites, "
            f"{len(report.implausible_combinations)} combination flags"
        )
        return report

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the range table."""
        types = list_types()
        return {"measurement_types": len(types), "types": types}


# Shared instance for the API and CLI. The service holds no state,
# so separate instances behave identically.
_validator_service: PhysiologicalValidatorService | None = None
_validator_lock = Lock()


def get_physiological_validator_service() -> PhysiologicalValidatorService:
    """Get the singleton PhysiologicalValidatorService instance."""
    global _validator_service

    if _validator_service is None:
        with _validator_lock:
            if _validator_service is None:
                logger.info("Creating singleton PhysiologicalValidatorService instance")
                _validator_service = PhysiologicalValidatorService()

    return _validator_service


def reset_physiological_validator_service() -> None:
    """Reset the singleton instance (for testing)."""
    global _validator_service
    with _validator_lock:
        _validator_service = None
