"""Risk calculation API endpoints."""

import logging
import time

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from cvdrisk.core.errors import RiskEngineError
from cvdrisk.services.patient_input import PatientRiskInput
from cvdrisk.services.risk_engine import CombinedRiskResult, RiskResult, get_risk_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/risk", tags=["Risk"])


# ============================================================================
# Request / Response Models
# ============================================================================


class PatientRiskRequest(BaseModel):
    """Patient data for a risk calculation."""

    age: float | None = Field(None, description="Age in years")
    sex: str | None = Field(None, description="male or female")
    ethnicity: str | None = Field(None, description="QRISK3 ethnicity category (default white)")

    sbp: float | None = Field(None, description="Systolic blood pressure (mmHg)")
    dbp: float | None = Field(None, description="Diastolic blood pressure (mmHg)")
    sbp_readings: list[float] = Field(
        default_factory=list, description="Repeated SBP readings for variability (3-6)"
    )
    sbp_sd: float | None = Field(None, description="Standard deviation of SBP readings")
    bp_treated: bool = Field(False, description="On blood pressure treatment")
    smoking: str | None = Field(None, description="non, ex, light, moderate or heavy")

    height_cm: float | None = Field(None, description="Height (cm)")
    weight_kg: float | None = Field(None, description="Weight (kg)")
    bmi: float | None = Field(None, description="BMI (kg/m²); derived from height and weight if absent")
    waist_cm: float | None = Field(None, description="Waist circumference (cm)")

    total_chol: float | None = Field(None, description="Total cholesterol")
    hdl: float | None = Field(None, description="HDL cholesterol")
    ldl: float | None = Field(None, description="LDL cholesterol")
    triglycerides: float | None = Field(None, description="Triglycerides")
    cholesterol_ratio: float | None = Field(None, description="Total/HDL ratio")
    lipid_unit: str = Field("mmol/L", description="mmol/L or mg/dL")

    diabetes: str | None = Field(None, description="none, type1 or type2")
    atrial_fibrillation: bool = False
    rheumatoid_arthritis: bool = False
    chronic_kidney_disease: bool = False
    family_history: bool = Field(False, description="CVD in a first-degree relative under 60")
    migraine: bool = False
    sle: bool = Field(False, description="Systemic lupus erythematosus")
    severe_mental_illness: bool = False
    erectile_dysfunction: bool = False
    atypical_antipsychotics: bool = False
    corticosteroids: bool = False

    townsend: float | None = Field(None, description="Townsend deprivation score")

    lpa: float | None = Field(None, description="Lipoprotein(a)")
    lpa_unit: str = Field("mg/dL", description="mg/dL or nmol/L")


class ContributingFactorResponse(BaseModel):
    name: str
    impact: str
    description: str


class RiskResultResponse(BaseModel):
    """Result of a single risk calculation."""

    algorithm: str = Field(..., description="framingham or qrisk3")
    base_risk: float = Field(..., description="10-year risk before the Lp(a) modifier (%)")
    lpa_modifier: float = Field(..., description="Lp(a) risk multiplier (>= 1.0)")
    modified_risk: float = Field(..., description="base_risk * lpa_modifier (%)")
    capped_risk: float = Field(..., description="modified_risk capped at 100 (%)")
    risk_category: str = Field(..., description="low, moderate or high")
    contributing_factors: list[ContributingFactorResponse] = Field(default_factory=list)
    components: dict = Field(default_factory=dict, description="Model terms and derived inputs")
    notes: list[str] = Field(default_factory=list, description="Validity notes")
    healthy_risk: float | None = Field(None, description="QRISK3 healthy-person risk (%)")
    relative_risk: float | None = Field(None, description="QRISK3 risk relative to healthy person")
    calculation_time_ms: float = Field(0.0, description="Time taken for calculation in ms")


class CalculatorDifferenceResponse(BaseModel):
    factor: str
    description: str
    impact: str


class CombinedRiskResponse(BaseModel):
    """Framingham and QRISK3 side by side."""

    framingham: RiskResultResponse
    qrisk3: RiskResultResponse
    absolute_difference: float
    relative_difference: float
    agreement: str = Field(..., description="high, moderate or low")
    category_agreement: bool
    differences: list[CalculatorDifferenceResponse]
    summary: str
    clinical_recommendation: str
    suggested_calculator: str
    rationale: str
    calculation_time_ms: float = Field(..., description="Time taken for calculation in ms")


# ============================================================================
# Helpers
# ============================================================================


def to_patient_input(request: PatientRiskRequest) -> PatientRiskInput:
    """Build the engine input, mapping engine errors to HTTP 422."""
    try:
        return PatientRiskInput.from_dict(request.model_dump())
    except RiskEngineError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


def _result_response(result: RiskResult, elapsed_ms: float = 0.0) -> RiskResultResponse:
    return RiskResultResponse(**result.to_dict(), calculation_time_ms=round(elapsed_ms, 2))


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/framingham",
    response_model=RiskResultResponse,
    summary="Framingham 10-year CVD risk",
    description="Calculate Framingham general cardiovascular risk with the Lp(a) modifier.",
)
async def framingham_risk(request: PatientRiskRequest) -> RiskResultResponse:
    """Calculate the Framingham risk score.

    Raises:
        HTTPException: 422 if required inputs are missing or invalid.
    """
    start_time = time.perf_counter()
    patient = to_patient_input(request)
    try:
        result = get_risk_engine().calculate_framingham(patient)
    except RiskEngineError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return _result_response(result, (time.perf_counter() - start_time) * 1000)


@router.post(
    "/qrisk3",
    response_model=RiskResultResponse,
    summary="QRISK3 10-year CVD risk",
    description="Calculate QRISK3 risk with healthy-person comparison and the Lp(a) modifier.",
)
async def qrisk3_risk(request: PatientRiskRequest) -> RiskResultResponse:
    """Calculate the QRISK3 score.

    Raises:
        HTTPException: 422 if required inputs are missing or invalid.
    """
    start_time = time.perf_counter()
    patient = to_patient_input(request)
    try:
        result = get_risk_engine().calculate_qrisk3(patient)
    except RiskEngineError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return _result_response(result, (time.perf_counter() - start_time) * 1000)


@router.post(
    "/combined",
    response_model=CombinedRiskResponse,
    summary="Compare Framingham and QRISK3",
    description="Run both calculators and report agreement, differences and a suggested calculator.",
)
async def combined_risk(request: PatientRiskRequest) -> CombinedRiskResponse:
    """Run both calculators and compare them.

    Raises:
        HTTPException: 422 if either calculator lacks required inputs.
    """
    start_time = time.perf_counter()
    patient = to_patient_input(request)
    try:
        combined: CombinedRiskResult = get_risk_engine().calculate_combined(patient)
    except RiskEngineError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    data = combined.to_dict()
    data["framingham"] = _result_response(combined.framingham)
    data["qrisk3"] = _result_response(combined.qrisk3)
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"Combined risk calculated in {elapsed_ms:.2f}ms")
    return CombinedRiskResponse(**data, calculation_time_ms=round(elapsed_ms, 2))
