"""Risk Calculation Engine.

Computes 10-year cardiovascular risk with the Framingham and QRISK3 models,
applies the Lp(a) multiplicative modifier and assigns a risk category.

    modified_risk = base_risk * lpa_modifier
    category: < 10% low, 10-20% moderate, >= 20% high

Calculators raise MissingInputError when age, sex, blood pressure or the
lipids a model needs are absent; optional inputs fall back to documented
defaults (Townsend score, SBP variability, non-smoker, no diabetes). Physiological
plausibility is not checked here; see physiological_validator.
"""

import logging
import math
import statistics
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any

from cvdrisk.core.config import settings
from cvdrisk.core.errors import InvalidInputError, MissingInputError
from cvdrisk.services.framingham import (
    FRAMINGHAM_MAX_AGE,
    FRAMINGHAM_MIN_AGE,
    framingham_risk,
    framingham_terms,
)
from cvdrisk.services.patient_input import (
    DiabetesType,
    Ethnicity,
    LpaUnit,
    PatientRiskInput,
    Sex,
    SmokingStatus,
    parse_unit,
)
from cvdrisk.services.qrisk3 import (
    ETHNICITY_CODES,
    QRISK3_MAX_AGE,
    QRISK3_MIN_AGE,
    SMOKING_CODES,
    QRISK3Inputs,
    healthy_person_inputs,
    qrisk3_linear_predictor,
    qrisk3_risk,
)
from cvdrisk.services.unit_converter import Quantity, convert

logger = logging.getLogger(__name__)


class RiskCategory(str, Enum):
    """10-year risk categories."""

    LOW = "low"  # < 10%
    MODERATE = "moderate"  # 10% to < 20%
    HIGH = "high"  # >= 20%


class Algorithm(str, Enum):
    FRAMINGHAM = "framingham"
    QRISK3 = "qrisk3"


class Impact(str, Enum):
    """Relative weight of a contributing factor or calculator difference."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class Agreement(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


@dataclass
class ContributingFactor:
    """A patient characteristic that raises risk."""

    name: str
    impact: Impact
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "impact": self.impact.value, "description": self.description}


@dataclass
class RiskResult:
    """Result of a single risk calculation."""

    algorithm: Algorithm
    base_risk: float
    lpa_modifier: float
    modified_risk: float
    risk_category: RiskCategory
    contributing_factors: list[ContributingFactor] = field(default_factory=list)
    components: dict[str, Any] = field(default_factory=dict)
    notes: list[str] = field(default_factory=list)
    healthy_risk: float | None = None
    relative_risk: float | None = None

    @property
    def capped_risk(self) -> float:
        """Modified risk capped at 100% for display."""
        return min(self.modified_risk, 100.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm.value,
            "base_risk": self.base_risk,
            "lpa_modifier": self.lpa_modifier,
            "modified_risk": self.modified_risk,
            "capped_risk": self.capped_risk,
            "risk_category": self.risk_category.value,
            "contributing_factors": [f.to_dict() for f in self.contributing_factors],
            "components": self.components,
            "notes": list(self.notes),
            "healthy_risk": self.healthy_risk,
            "relative_risk": self.relative_risk,
        }


@dataclass
class CalculatorDifference:
    """One reason the two calculators can disagree."""

    factor: str
    description: str
    impact: Impact

    def to_dict(self) -> dict[str, str]:
        return {"factor": self.factor, "description": self.description, "impact": self.impact.value}


@dataclass
class CombinedRiskResult:
    """Side-by-side Framingham and QRISK3 results with a comparison."""

    framingham: RiskResult
    qrisk3: RiskResult
    absolute_difference: float
    relative_difference: float
    agreement: Agreement
    category_agreement: bool
    differences: list[CalculatorDifference]
    summary: str
    clinical_recommendation: str
    suggested_calculator: Algorithm
    rationale: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "framingham": self.framingham.to_dict(),
            "qrisk3": self.qrisk3.to_dict(),
            "absolute_difference": self.absolute_difference,
            "relative_difference": self.relative_difference,
            "agreement": self.agreement.value,
            "category_agreement": self.category_agreement,
            "differences": [d.to_dict() for d in self.differences],
            "summary": self.summary,
            "clinical_recommendation": self.clinical_recommendation,
            "suggested_calculator": self.suggested_calculator.value,
            "rationale": self.rationale,
        }


# ============================================================================
# Lp(a) Modifier and Risk Category
# ============================================================================

# (Lp(a) mg/dL, modifier); linear between points, flat outside
LPA_BREAKPOINTS: list[tuple[float, float]] = [
    (30.0, 1.0),
    (50.0, 1.3),
    (100.0, 1.6),
    (200.0, 2.0),
    (300.0, 3.0),
]

MODERATE_RISK_THRESHOLD = 10.0
HIGH_RISK_THRESHOLD = 20.0


def _require_finite(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInputError(name)
    return float(value)


def calculate_lpa_modifier(lpa: float, unit: LpaUnit | str = LpaUnit.MG_DL) -> float:
    """Risk multiplier for an Lp(a) level.

    Args:
        lpa: Lp(a) concentration.
        unit: "mg/dL" (default) or "nmol/L"; nmol/L is divided by 2.5 first.

    Returns:
        1.0 below 30 mg/dL, interpolated up to 3.0 at 300 mg/dL, 3.0 above.
    """
    value = _require_finite(lpa, "Lp(a)")
    if value < 0:
        raise InvalidInputError("Lp(a)", "Lp(a) cannot be negative")
    unit = parse_unit(unit, LpaUnit, "lpa_unit")
    if unit != LpaUnit.MG_DL:
        value = convert(value, Quantity.LPA, unit.value, LpaUnit.MG_DL.value)

    first_lpa, first_mod = LPA_BREAKPOINTS[0]
    last_lpa, last_mod = LPA_BREAKPOINTS[-1]
    if value <= first_lpa:
        return first_mod
    if value >= last_lpa:
        return last_mod

    for (lo, lo_mod), (hi, hi_mod) in zip(LPA_BREAKPOINTS, LPA_BREAKPOINTS[1:]):
        if value == hi:
            return hi_mod
        if lo < value < hi:
            return lo_mod + (value - lo) * (hi_mod - lo_mod) / (hi - lo)

    return last_mod


def get_risk_category(risk_percent: float) -> RiskCategory:
    """Category for a 10-year risk percentage. Boundaries go to the higher category."""
    value = _require_finite(risk_percent, "risk")
    if value < MODERATE_RISK_THRESHOLD:
        return RiskCategory.LOW
    if value < HIGH_RISK_THRESHOLD:
        return RiskCategory.MODERATE
    return RiskCategory.HIGH


# ============================================================================
# Input Resolution
# ============================================================================


def _require(value: Any, name: str, calculator: str) -> Any:
    if value is None:
        raise MissingInputError(name, calculator)
    return value


def _require_positive(value: float, name: str) -> float:
    if value <= 0:
        raise InvalidInputError(name, f"{name} must be greater than zero")
    return value


def sbp_variability(patient: PatientRiskInput) -> float:
    """Standard deviation of repeated SBP readings for QRISK3.

    An explicit ``sbp_sd`` wins; otherwise the sample SD of the last six
    readings when at least three are supplied; otherwise 0.
    """
    if patient.sbp_sd is not None:
        return patient.sbp_sd
    readings = list(patient.sbp_readings)[-6:]
    if len(readings) >= 3:
        return statistics.stdev(readings)
    return 0.0


def _age_note(algorithm: str, age: float, min_age: int, max_age: int) -> str | None:
    if min_age <= age <= max_age:
        return None
    logger.warning(f"{algorithm} applied outside its validated age range ({min_age}-{max_age})")
    return (
        f"{algorithm} is validated for ages {min_age}-{max_age}; "
        f"the estimate for age {age:g} is an extrapolation"
    )


def _apply_lpa(patient: PatientRiskInput) -> float:
    if patient.lpa is None:
        return 1.0
    return calculate_lpa_modifier(patient.lpa, patient.lpa_unit)


# ============================================================================
# Contributing Factors
# ============================================================================


def get_contributing_factors(patient: PatientRiskInput) -> list[ContributingFactor]:
    """Risk factors present in the patient record, most established first."""
    factors: list[ContributingFactor] = []

    age = patient.age
    if age is not None:
        if age >= 65:
            factors.append(ContributingFactor(
                "Advanced age", Impact.HIGH, "Age is a strong independent risk factor for CVD"
            ))
        elif age >= 55:
            factors.append(ContributingFactor(
                "Age", Impact.MODERATE, "Age is a significant risk factor for CVD"
            ))

    if patient.smoking not in (SmokingStatus.NON, SmokingStatus.EX):
        impact = {
            SmokingStatus.HEAVY: Impact.HIGH,
            SmokingStatus.MODERATE: Impact.MODERATE,
        }.get(patient.smoking, Impact.LOW)
        factors.append(ContributingFactor(
            "Smoking", impact, "Smoking significantly increases CVD risk"
        ))

    bmi = patient.resolved_bmi
    if bmi is not None:
        if bmi >= 30:
            factors.append(ContributingFactor(
                "Obesity", Impact.MODERATE, "BMI ≥30 kg/m² increases CVD risk"
            ))
        elif bmi >= 25:
            factors.append(ContributingFactor(
                "Overweight", Impact.LOW, "BMI 25-29.9 kg/m² slightly increases CVD risk"
            ))

    if patient.sbp is not None:
        if patient.sbp >= 160:
            factors.append(ContributingFactor(
                "Severe hypertension",
                Impact.HIGH,
                "Systolic BP ≥160 mmHg significantly increases CVD risk",
            ))
        elif patient.sbp >= 140:
            factors.append(ContributingFactor(
                "Hypertension", Impact.MODERATE, "Systolic BP 140-159 mmHg increases CVD risk"
            ))

    ratio = patient.resolved_cholesterol_ratio
    if ratio is not None:
        if ratio >= 6:
            factors.append(ContributingFactor(
                "Poor cholesterol ratio",
                Impact.HIGH,
                "Total:HDL cholesterol ratio ≥6 significantly increases risk",
            ))
        elif ratio >= 4.5:
            factors.append(ContributingFactor(
                "Elevated cholesterol ratio",
                Impact.MODERATE,
                "Total:HDL cholesterol ratio 4.5-5.9 increases risk",
            ))

    if patient.diabetes == DiabetesType.TYPE1:
        factors.append(ContributingFactor(
            "Type 1 diabetes", Impact.HIGH, "Type 1 diabetes significantly increases CVD risk"
        ))
    elif patient.diabetes == DiabetesType.TYPE2:
        factors.append(ContributingFactor(
            "Type 2 diabetes", Impact.HIGH, "Type 2 diabetes significantly increases CVD risk"
        ))

    flag_factors = [
        (patient.family_history, "Family history of CVD", Impact.MODERATE,
         "Premature CVD in first-degree relative increases risk"),
        (patient.atrial_fibrillation, "Atrial fibrillation", Impact.HIGH,
         "Atrial fibrillation substantially increases stroke risk"),
        (patient.chronic_kidney_disease, "Chronic kidney disease", Impact.HIGH,
         "CKD stages 3-5 significantly increases CVD risk"),
        (patient.rheumatoid_arthritis, "Rheumatoid arthritis", Impact.MODERATE,
         "Rheumatoid arthritis increases CVD risk"),
        (patient.sle, "Systemic lupus erythematosus", Impact.MODERATE,
         "SLE increases CVD risk"),
        (patient.migraine, "Migraine", Impact.LOW,
         "Migraine slightly increases stroke risk"),
        (patient.severe_mental_illness, "Severe mental illness", Impact.LOW,
         "Severe mental illness slightly increases CVD risk"),
        (patient.erectile_dysfunction and patient.sex == Sex.MALE, "Erectile dysfunction",
         Impact.MODERATE, "Erectile dysfunction is associated with increased CVD risk in men"),
        (patient.atypical_antipsychotics, "Atypical antipsychotics", Impact.LOW,
         "Atypical antipsychotics slightly increase CVD risk"),
        (patient.corticosteroids, "Corticosteroids", Impact.MODERATE,
         "Regular corticosteroid use increases CVD risk"),
    ]
    for present, name, impact, description in flag_factors:
        if present:
            factors.append(ContributingFactor(name, impact, description))

    lpa = patient.lpa_mg_dl
    if lpa is not None:
        if lpa >= 180:
            factors.append(ContributingFactor(
                "Very high Lp(a)", Impact.HIGH, "Lp(a) ≥180 mg/dL substantially increases CVD risk"
            ))
        elif lpa >= 50:
            factors.append(ContributingFactor(
                "Elevated Lp(a)", Impact.MODERATE, "Lp(a) ≥50 mg/dL increases CVD risk"
            ))
        elif lpa >= 30:
            factors.append(ContributingFactor(
                "Borderline Lp(a)", Impact.LOW, "Lp(a) 30-49 mg/dL slightly increases CVD risk"
            ))

    return factors


# ============================================================================
# Calculators
# ============================================================================


def calculate_framingham_risk_score(patient: PatientRiskInput) -> RiskResult:
    """Framingham 10-year general CVD risk.

    Requires age, sex, sbp, total_chol and hdl. Lipids in mmol/L are
    converted to mg/dL.

    Raises:
        MissingInputError: If a required field is absent.
        InvalidInputError: If a value cannot enter the model (non-positive).
    """
    name = "Framingham"
    age = _require_positive(_require(patient.age, "age", name), "age")
    sex = _require(patient.sex, "sex", name)
    sbp = _require_positive(_require(patient.sbp, "sbp", name), "sbp")
    _require(patient.total_chol, "total_chol", name)
    _require(patient.hdl, "hdl", name)
    total_mg = _require_positive(patient.total_chol_mg, "total_chol")
    hdl_mg = _require_positive(patient.hdl_mg, "hdl")

    terms = framingham_terms(
        sex=sex,
        age=age,
        total_chol_mg=total_mg,
        hdl_mg=hdl_mg,
        sbp=sbp,
        bp_treated=patient.bp_treated,
        smoker=patient.is_smoker,
        diabetic=patient.has_diabetes,
    )
    base_risk = framingham_risk(sex, terms)
    lpa_modifier = _apply_lpa(patient)
    modified_risk = base_risk * lpa_modifier

    notes = []
    age_note = _age_note(name, age, FRAMINGHAM_MIN_AGE, FRAMINGHAM_MAX_AGE)
    if age_note:
        notes.append(age_note)

    logger.debug(f"Framingham calculated: base={base_risk:.2f} modifier={lpa_modifier:.2f}")
    return RiskResult(
        algorithm=Algorithm.FRAMINGHAM,
        base_risk=base_risk,
        lpa_modifier=lpa_modifier,
        modified_risk=modified_risk,
        risk_category=get_risk_category(modified_risk),
        contributing_factors=get_contributing_factors(patient),
        components={
            "terms": terms,
            "total_chol_mg_dl": total_mg,
            "hdl_mg_dl": hdl_mg,
        },
        notes=notes,
    )


def _qrisk3_inputs(patient: PatientRiskInput) -> QRISK3Inputs:
    name = "QRISK3"
    age = _require_positive(_require(patient.age, "age", name), "age")
    sbp = _require_positive(_require(patient.sbp, "sbp", name), "sbp")
    bmi = _require_positive(_require(patient.resolved_bmi, "bmi", name), "bmi")
    if patient.cholesterol_ratio is not None:
        ratio = _require_positive(patient.cholesterol_ratio, "cholesterol_ratio")
    else:
        _require(patient.total_chol, "total_chol", name)
        _require(patient.hdl, "hdl", name)
        total = _require_positive(patient.total_chol_mmol, "total_chol")
        ratio = total / _require_positive(patient.hdl_mmol, "hdl")
    townsend = patient.townsend if patient.townsend is not None else settings.default_townsend

    return QRISK3Inputs(
        age=age,
        bmi=bmi,
        cholesterol_ratio=ratio,
        sbp=sbp,
        sbp_sd=sbp_variability(patient),
        townsend=townsend,
        ethnicity=patient.ethnicity,
        smoking=patient.smoking,
        diabetes=patient.diabetes,
        atrial_fibrillation=patient.atrial_fibrillation,
        atypical_antipsychotics=patient.atypical_antipsychotics,
        corticosteroids=patient.corticosteroids,
        # Impotence is a male-only term
        erectile_dysfunction=patient.erectile_dysfunction and patient.sex == Sex.MALE,
        migraine=patient.migraine,
        rheumatoid_arthritis=patient.rheumatoid_arthritis,
        chronic_kidney_disease=patient.chronic_kidney_disease,
        severe_mental_illness=patient.severe_mental_illness,
        sle=patient.sle,
        bp_treated=patient.bp_treated,
        family_history=patient.family_history,
    )


def calculate_qrisk3_score(patient: PatientRiskInput) -> RiskResult:
    """QRISK3 10-year CVD risk.

    Requires age, sex, sbp, BMI (or height and weight) and the total/HDL
    ratio (or both lipids). Also reports the risk of a healthy person of the
    same age, sex and ethnicity and the patient's relative risk.
    """
    sex = _require(patient.sex, "sex", "QRISK3")
    inputs = _qrisk3_inputs(patient)

    base_risk = min(max(qrisk3_risk(sex, inputs), 0.0), 100.0)
    healthy_risk = qrisk3_risk(sex, healthy_person_inputs(inputs))
    relative_risk = base_risk / healthy_risk if healthy_risk > 0 else None

    lpa_modifier = _apply_lpa(patient)
    modified_risk = base_risk * lpa_modifier

    notes = []
    age_note = _age_note("QRISK3", inputs.age, QRISK3_MIN_AGE, QRISK3_MAX_AGE)
    if age_note:
        notes.append(age_note)

    logger.debug(f"QRISK3 calculated: base={base_risk:.2f} modifier={lpa_modifier:.2f}")
    return RiskResult(
        algorithm=Algorithm.QRISK3,
        base_risk=base_risk,
        lpa_modifier=lpa_modifier,
        modified_risk=modified_risk,
        risk_category=get_risk_category(modified_risk),
        contributing_factors=get_contributing_factors(patient),
        components={
            "linear_predictor": qrisk3_linear_predictor(sex, inputs),
            "bmi": inputs.bmi,
            "cholesterol_ratio": inputs.cholesterol_ratio,
            "sbp_sd": inputs.sbp_sd,
            "townsend": inputs.townsend,
            "ethnicity_code": ETHNICITY_CODES[inputs.ethnicity],
            "smoking_code": SMOKING_CODES[inputs.smoking],
        },
        notes=notes,
        healthy_risk=healthy_risk,
        relative_risk=relative_risk,
    )


# ============================================================================
# Combined Assessment
# ============================================================================


def _agreement(absolute_difference: float) -> Agreement:
    if absolute_difference <= 3:
        return Agreement.HIGH
    if absolute_difference <= 7.5:
        return Agreement.MODERATE
    return Agreement.LOW


def _calculator_differences(patient: PatientRiskInput) -> list[CalculatorDifference]:
    differences: list[CalculatorDifference] = []
    if patient.ethnicity != Ethnicity.WHITE:
        differences.append(CalculatorDifference(
            "ethnicity", "QRISK3 accounts for ethnicity, while Framingham does not.", Impact.MODERATE
        ))
    qrisk_only = [
        (patient.atrial_fibrillation, "atrial_fibrillation", "atrial fibrillation", Impact.HIGH),
        (patient.rheumatoid_arthritis, "rheumatoid_arthritis", "rheumatoid arthritis", Impact.MODERATE),
        (patient.chronic_kidney_disease, "chronic_kidney_disease", "chronic kidney disease", Impact.HIGH),
    ]
    for present, factor, label, impact in qrisk_only:
        if present:
            differences.append(CalculatorDifference(
                factor, f"QRISK3 includes {label} as a risk factor, Framingham does not.", impact
            ))
    if patient.family_history:
        differences.append(CalculatorDifference(
            "family_history_weighting",
            "QRISK3 includes family history of CVD, Framingham does not.",
            Impact.MODERATE,
        ))
    differences.append(CalculatorDifference(
        "development_population",
        "Framingham was developed in a US population, while QRISK3 was developed in a UK population.",
        Impact.MODERATE,
    ))
    if patient.age is not None and patient.age < 40:
        differences.append(CalculatorDifference(
            "age_modeling", "Framingham and QRISK3 model younger ages differently.", Impact.LOW
        ))
    elif patient.age is not None and patient.age > 65:
        differences.append(CalculatorDifference(
            "age_modeling", "Framingham and QRISK3 model older ages differently.", Impact.MODERATE
        ))
    if patient.sex == Sex.FEMALE:
        differences.append(CalculatorDifference(
            "sex_modeling",
            "Framingham and QRISK3 model female risk factors differently.",
            Impact.MODERATE,
        ))
    return differences


def _summary(
    framingham_pct: float,
    qrisk_pct: float,
    abs_diff: float,
    agreement: Agreement,
    category_agreement: bool,
) -> str:
    head = f"Framingham ({framingham_pct:.1f}%) and QRISK3 ({qrisk_pct:.1f}%)"
    if agreement == Agreement.HIGH:
        tail = (
            "Both calculators agree on risk category."
            if category_agreement
            else "Despite similar scores, the calculators suggest different risk categories."
        )
        return f"{head} show high agreement with an absolute difference of {abs_diff:.1f}%. {tail}"
    if agreement == Agreement.MODERATE:
        tail = (
            "Both calculators agree on risk category despite some differences."
            if category_agreement
            else "The calculators suggest different risk categories, so clinical judgment is important."
        )
        return f"{head} show moderate agreement with an absolute difference of {abs_diff:.1f}%. {tail}"
    tail = (
        "Despite the large difference, both calculators agree on the overall risk category."
        if category_agreement
        else "The calculators suggest different risk categories, so careful clinical judgment is required."
    )
    return f"{head} show low agreement with a large difference of {abs_diff:.1f}%. {tail}"


CLINICAL_RECOMMENDATIONS: dict[Agreement, str] = {
    Agreement.HIGH: "Either calculator can be used confidently for risk assessment in this patient.",
    Agreement.MODERATE: (
        "Consider using QRISK3 for this patient as it includes more risk factors, "
        "but verify against Framingham."
    ),
    Agreement.LOW: (
        "Due to significant differences between calculators, consider factors not captured "
        "by either calculator and use clinical judgment. When in doubt, the higher risk "
        "estimate may be preferable for treatment decisions."
    ),
}


def suggest_calculator(
    patient: PatientRiskInput,
    framingham: RiskResult,
    qrisk3: RiskResult,
    agreement: Agreement,
) -> tuple[Algorithm, str]:
    """Score the two calculators for this patient; ties go to QRISK3."""
    qrisk_score = 0
    framingham_score = 0

    if patient.age is not None:
        if patient.age < 40:
            qrisk_score += 1
        elif patient.age > 75:
            qrisk_score += 2
    if patient.ethnicity != Ethnicity.WHITE:
        qrisk_score += 3

    qrisk_specific = (
        patient.atrial_fibrillation,
        patient.chronic_kidney_disease,
        patient.rheumatoid_arthritis,
        patient.sle,
        patient.migraine,
        patient.severe_mental_illness,
        patient.atypical_antipsychotics,
        patient.corticosteroids,
    )
    qrisk_score += 2 * sum(1 for present in qrisk_specific if present)

    if agreement == Agreement.HIGH:
        qrisk_score += 1
    elif agreement == Agreement.LOW:
        # Prefer the more conservative estimate
        if qrisk3.modified_risk > framingham.modified_risk:
            qrisk_score += 2
        else:
            framingham_score += 2

    if qrisk_score >= framingham_score:
        return (
            Algorithm.QRISK3,
            "QRISK3 is recommended because it accounts for more risk factors specific to this patient.",
        )
    return (
        Algorithm.FRAMINGHAM,
        "Framingham is recommended for this patient based on their specific risk profile.",
    )


def calculate_combined_risk(patient: PatientRiskInput) -> CombinedRiskResult:
    """Run both calculators and compare them."""
    framingham = calculate_framingham_risk_score(patient)
    qrisk3 = calculate_qrisk3_score(patient)

    f_pct = framingham.modified_risk
    q_pct = qrisk3.modified_risk
    abs_diff = abs(q_pct - f_pct)
    mean = (q_pct + f_pct) / 2
    rel_diff = abs_diff / mean * 100 if mean > 0 else 0.0

    agreement = _agreement(abs_diff)
    category_agreement = framingham.risk_category == qrisk3.risk_category
    suggested, rationale = suggest_calculator(patient, framingham, qrisk3, agreement)

    logger.debug(f"Combined risk: difference={abs_diff:.2f} agreement={agreement.value}")
    return CombinedRiskResult(
        framingham=framingham,
        qrisk3=qrisk3,
        absolute_difference=abs_diff,
        relative_difference=rel_diff,
        agreement=agreement,
        category_agreement=category_agreement,
        differences=_calculator_differences(patient),
        summary=_summary(f_pct, q_pct, abs_diff, agreement, category_agreement),
        clinical_recommendation=CLINICAL_RECOMMENDATIONS[agreement],
        suggested_calculator=suggested,
        rationale=rationale,
    )


# ============================================================================
# Risk Calculation Engine Service
# ============================================================================


class RiskCalculationEngine:
    """Service exposing the risk calculators.

    Holds no per-patient state; every call is independent.

    Usage:
        engine = RiskCalculationEngine()
        result = engine.calculate_qrisk3(patient)
        print(f"{result.modified_risk:.1f}% ({result.risk_category.value})")
    """

    def calculate_framingham(self, patient: PatientRiskInput) -> RiskResult:
        return calculate_framingham_risk_score(patient)

    def calculate_qrisk3(self, patient: PatientRiskInput) -> RiskResult:
        return calculate_qrisk3_score(patient)

    def calculate_combined(self, patient: PatientRiskInput) -> CombinedRiskResult:
        return calculate_combined_risk(patient)

    def calculate_lpa_modifier(self, lpa: float, unit: LpaUnit | str = LpaUnit.MG_DL) -> float:
        return calculate_lpa_modifier(lpa, unit)

    def get_risk_category(self, risk_percent: float) -> RiskCategory:
        return get_risk_category(risk_percent)

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the available calculators."""
        return {
            "algorithms": [a.value for a in Algorithm],
            "lpa_breakpoints": len(LPA_BREAKPOINTS),
            "category_thresholds": {
                "moderate": MODERATE_RISK_THRESHOLD,
                "high": HIGH_RISK_THRESHOLD,
            },
        }


# Shared instance for the API and CLI. The service holds no state,
# so separate instances behave identically.
_risk_engine: RiskCalculationEngine | None = None
_risk_engine_lock = Lock()


def get_risk_engine() -> RiskCalculationEngine:
    """Get the singleton RiskCalculationEngine instance."""
    global _risk_engine

    if _risk_engine is None:
        with _risk_engine_lock:
            if _risk_engine is None:
                logger.info("Creating singleton RiskCalculationEngine instance")
                _risk_engine = RiskCalculationEngine()

    return _risk_engine


def reset_risk_engine() -> None:
    """Reset the singleton instance (for testing)."""
    global _risk_engine
    with _risk_engine_lock:
        _risk_engine = None
