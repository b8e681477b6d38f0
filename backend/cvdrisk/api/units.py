"""Unit conversion API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from cvdrisk.core.errors import RiskEngineError
from cvdrisk.services.unit_converter import get_unit_converter_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/units", tags=["Units"])


class ConversionRequest(BaseModel):
    """Either quantity + units, or a pair of measurement types."""

    value: float = Field(..., description="Value to convert")
    quantity: str | None = Field(None, description="cholesterol, triglycerides, lpa, apob, ...")
    from_unit: str | None = Field(None, description="Source unit, e.g. mmol/L")
    to_unit: str | None = Field(None, description="Target unit, e.g. mg/dL")
    from_type: str | None = Field(None, description="Source measurement type, e.g. total_chol_mmol")
    to_type: str | None = Field(None, description="Target measurement type, e.g. total_chol_mg")


class ConversionResponse(BaseModel):
    value: float = Field(..., description="Input value")
    converted: float = Field(..., description="Converted value")
    from_unit: str
    to_unit: str


class SupportedConversionsResponse(BaseModel):
    conversions: list[dict[str, str]]
    total_count: int


@router.post(
    "/convert",
    response_model=ConversionResponse,
    summary="Convert a clinical value between units",
)
async def convert_value(request: ConversionRequest) -> ConversionResponse:
    """Convert a value.

    Raises:
        HTTPException: 400 if neither form is complete, 422 if the pair is not supported.
    """
    service = get_unit_converter_service()
    try:
        if request.from_type and request.to_type:
            converted = service.convert_units(request.value, request.from_type, request.to_type)
            return ConversionResponse(
                value=request.value,
                converted=converted,
                from_unit=request.from_type,
                to_unit=request.to_type,
            )
        if request.quantity and request.from_unit and request.to_unit:
            converted = service.convert(
                request.value, request.quantity, request.from_unit, request.to_unit
            )
            return ConversionResponse(
                value=request.value,
                converted=converted,
                from_unit=request.from_unit,
                to_unit=request.to_unit,
            )
    except RiskEngineError as e:
        logger.info(f"Rejected conversion request: {e}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Provide either quantity, from_unit and to_unit, or from_type and to_type",
    )


@router.get(
    "/supported",
    response_model=SupportedConversionsResponse,
    summary="List supported conversions",
)
async def supported_conversions() -> SupportedConversionsResponse:
    conversions = get_unit_converter_service().supported_conversions()
    return SupportedConversionsResponse(conversions=conversions, total_count=len(conversions))
