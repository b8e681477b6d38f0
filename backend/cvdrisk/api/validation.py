"""Physiological validation API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from cvdrisk.api.risk import PatientRiskRequest, to_patient_input
from cvdrisk.services.physiological_ranges import RANGE_DEFINITIONS, get_range
from cvdrisk.services.physiological_validator import (
    ValidationResult,
    get_physiological_validator_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/validation", tags=["Validation"])


# ============================================================================
# Request / Response Models
# ============================================================================


class ValidationResultResponse(BaseModel):
    """Outcome of a plausibility check."""

    is_valid: bool = Field(..., description="False only for impossible or malformed values")
    is_warning: bool = Field(..., description="Target, risk-threshold or category breach")
    is_critical: bool = Field(..., description="Outside the critical range")
    message: str | None = Field(None, description="Human-readable explanation")
    details: dict | None = Field(None, description="Structured detail for display")


class ValueValidationRequest(BaseModel):
    type: str = Field(..., description="Measurement type, e.g. sbp, ldl_mmol, bmi")
    value: float | None = Field(..., description="Measured value")
    gender: str | None = Field(None, description="male or female for gender-specific thresholds")


class BloodPressureRequest(BaseModel):
    sbp: float = Field(..., description="Systolic blood pressure (mmHg)")
    dbp: float = Field(..., description="Diastolic blood pressure (mmHg)")


class CholesterolRatioRequest(BaseModel):
    total: float = Field(..., description="Total cholesterol")
    hdl: float = Field(..., description="HDL cholesterol, same unit as total")


class BMIRequest(BaseModel):
    weight_kg: float = Field(..., description="Weight (kg)")
    height_cm: float = Field(..., description="Height (cm)")


class PatientValidationResponse(BaseModel):
    is_valid: bool
    has_warnings: bool
    has_critical: bool
    fields: dict[str, ValidationResultResponse]
    composites: dict[str, ValidationResultResponse]
    implausible_combinations: list[str]


class RangeListResponse(BaseModel):
    ranges: list[dict] = Field(..., description="All range definitions")
    total_count: int = Field(..., description="Number of measurement types")


def _response(result: ValidationResult) -> ValidationResultResponse:
    return ValidationResultResponse(**result.to_dict())


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/value",
    response_model=ValidationResultResponse,
    summary="Validate a single measurement",
)
async def validate_value(request: ValueValidationRequest) -> ValidationResultResponse:
    """Validate one measurement against its physiological range.

    Unknown measurement types pass as valid.
    """
    service = get_physiological_validator_service()
    return _response(service.validate_value(request.type, request.value, request.gender))


@router.post(
    "/blood-pressure",
    response_model=ValidationResultResponse,
    summary="Validate a blood pressure pair",
)
async def validate_blood_pressure(request: BloodPressureRequest) -> ValidationResultResponse:
    service = get_physiological_validator_service()
    return _response(service.validate_blood_pressure(request.sbp, request.dbp))


@router.post(
    "/cholesterol-ratio",
    response_model=ValidationResultResponse,
    summary="Validate the total/HDL cholesterol ratio",
)
async def validate_cholesterol_ratio(request: CholesterolRatioRequest) -> ValidationResultResponse:
    service = get_physiological_validator_service()
    return _response(service.validate_cholesterol_ratio(request.total, request.hdl))


@router.post(
    "/bmi",
    response_model=ValidationResultResponse,
    summary="Calculate and validate BMI",
)
async def validate_bmi(request: BMIRequest) -> ValidationResultResponse:
    service = get_physiological_validator_service()
    return _response(service.validate_bmi(request.weight_kg, request.height_cm))


@router.post(
    "/patient",
    response_model=PatientValidationResponse,
    summary="Validate a whole patient record",
    description="Run every applicable range check, composite check and combination check.",
)
async def validate_patient(request: PatientRiskRequest) -> PatientValidationResponse:
    """Validate every measurement in a patient record.

    Validation is advisory; the response never blocks a risk calculation.
    """
    patient = to_patient_input(request)
    report = get_physiological_validator_service().validate_patient(patient)
    logger.info(
        f"Validated patient record: {len(report.fields)} fields, "
        f"{len(report.implausible_combinations)} implausible combinations"
    )
    return PatientValidationResponse(**report.to_dict())


@router.get(
    "/ranges",
    response_model=RangeListResponse,
    summary="List physiological ranges",
)
async def list_ranges() -> RangeListResponse:
    ranges = [r.to_dict() for r in RANGE_DEFINITIONS]
    return RangeListResponse(ranges=ranges, total_count=len(ranges))


@router.get(
    "/ranges/{measurement_type}",
    summary="Get one physiological range",
)
async def get_range_definition(measurement_type: str) -> dict:
    """Get the range definition for a measurement type.

    Raises:
        HTTPException: 404 if the type is not registered.
    """
    rng = get_range(measurement_type)
    if rng is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown measurement type '{measurement_type}'",
        )
    return rng.to_dict()
