"""Services for the CVD Risk Engine.

Services implement the clinical logic:
- UnitConverterService: clinical unit conversions
- PhysiologicalValidatorService: plausibility checks against the range table
- RiskCalculationEngine: Framingham and QRISK3 risk with the Lp(a) modifier
"""

from cvdrisk.services.patient_input import (
    DiabetesType,
    Ethnicity,
    LipidUnit,
    LpaUnit,
    PatientRiskInput,
    Sex,
    SmokingStatus,
)
from cvdrisk.services.physiological_ranges import (
    MeasurementCategory,
    RangeDefinition,
    get_range,
    list_types,
)
from cvdrisk.services.physiological_validator import (
    PatientValidationReport,
    PhysiologicalValidatorService,
    ValidationResult,
    get_physiological_validator_service,
    validate_blood_pressure,
    validate_bmi,
    validate_cholesterol_ratio,
    validate_value,
)
from cvdrisk.services.risk_engine import (
    CombinedRiskResult,
    RiskCalculationEngine,
    RiskCategory,
    RiskResult,
    calculate_combined_risk,
    calculate_framingham_risk_score,
    calculate_lpa_modifier,
    calculate_qrisk3_score,
    get_risk_category,
    get_risk_engine,
)
from cvdrisk.services.unit_converter import (
    Quantity,
    UnitConverterService,
    convert,
    convert_units,
    get_unit_converter_service,
)

__all__ = [
    # Patient input
    "DiabetesType",
    "Ethnicity",
    "LipidUnit",
    "LpaUnit",
    "PatientRiskInput",
    "Sex",
    "SmokingStatus",
    # Ranges
    "MeasurementCategory",
    "RangeDefinition",
    "get_range",
    "list_types",
    # Validation
    "PatientValidationReport",
    "PhysiologicalValidatorService",
    "ValidationResult",
    "get_physiological_validator_service",
    "validate_blood_pressure",
    "validate_bmi",
    "validate_cholesterol_ratio",
    "validate_value",
    # Risk
    "CombinedRiskResult",
    "RiskCalculationEngine",
    "RiskCategory",
    "RiskResult",
    "calculate_combined_risk",
    "calculate_framingham_risk_score",
    "calculate_lpa_modifier",
    "calculate_qrisk3_score",
    "get_risk_category",
    "get_risk_engine",
    # Units
    "Quantity",
    "UnitConverterService",
    "convert",
    "convert_units",
    "get_unit_converter_service",
]
