"""Patient risk input model.

``PatientRiskInput`` is the immutable bundle of demographics, vitals, lipids,
comorbidities and optional Lp(a) that the calculators read. Categorical fields
accept enum members or their string values (with a few common aliases) and
are normalised on construction; numeric fields are checked for finiteness.

Unit-dependent values (lipids, Lp(a)) are stored as supplied together with
their unit. The ``*_mmol`` / ``*_mg`` properties give the converted values.
"""

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from cvdrisk.core.errors import InvalidInputError
from cvdrisk.services.unit_converter import Quantity, convert, normalize_unit


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class Ethnicity(str, Enum):
    """QRISK3 ethnicity categories. Values match the QRISK3 category codes order."""

    WHITE = "white"
    INDIAN = "indian"
    PAKISTANI = "pakistani"
    BANGLADESHI = "bangladeshi"
    OTHER_ASIAN = "other_asian"
    BLACK_CARIBBEAN = "black_caribbean"
    BLACK_AFRICAN = "black_african"
    CHINESE = "chinese"
    OTHER = "other"


class SmokingStatus(str, Enum):
    NON = "non"
    EX = "ex"
    LIGHT = "light"  # < 10/day
    MODERATE = "moderate"  # 10-19/day
    HEAVY = "heavy"  # 20+/day


class DiabetesType(str, Enum):
    NONE = "none"
    TYPE1 = "type1"
    TYPE2 = "type2"


class LipidUnit(str, Enum):
    MMOL_L = "mmol/L"
    MG_DL = "mg/dL"


class LpaUnit(str, Enum):
    MG_DL = "mg/dL"
    NMOL_L = "nmol/L"


ETHNICITY_ALIASES: dict[str, Ethnicity] = {
    "white_or_not_stated": Ethnicity.WHITE,
    "not_stated": Ethnicity.WHITE,
    "caucasian": Ethnicity.WHITE,
    "south_asian": Ethnicity.INDIAN,
    "black": Ethnicity.BLACK_AFRICAN,
    "east_asian": Ethnicity.CHINESE,
    "hispanic": Ethnicity.OTHER,
    "latino": Ethnicity.OTHER,
    "middle_eastern": Ethnicity.OTHER,
    "arab": Ethnicity.OTHER,
}

SMOKING_ALIASES: dict[str, SmokingStatus] = {
    "never": SmokingStatus.NON,
    "no": SmokingStatus.NON,
    "non_smoker": SmokingStatus.NON,
    "former": SmokingStatus.EX,
    "ex_smoker": SmokingStatus.EX,
    "light_smoker": SmokingStatus.LIGHT,
    "moderate_smoker": SmokingStatus.MODERATE,
    "heavy_smoker": SmokingStatus.HEAVY,
    "current": SmokingStatus.MODERATE,
    "yes": SmokingStatus.MODERATE,
}

DIABETES_ALIASES: dict[str, DiabetesType] = {
    "no": DiabetesType.NONE,
    "type_1": DiabetesType.TYPE1,
    "t1": DiabetesType.TYPE1,
    "type_2": DiabetesType.TYPE2,
    "t2": DiabetesType.TYPE2,
}

SEX_ALIASES: dict[str, Sex] = {"m": Sex.MALE, "f": Sex.FEMALE}


def _key(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def parse_ethnicity(value: Ethnicity | str | None) -> Ethnicity:
    """Map an ethnicity label to its QRISK3 category. Unknown or absent -> white."""
    if isinstance(value, Ethnicity):
        return value
    if not value:
        return Ethnicity.WHITE
    key = _key(value)
    try:
        return Ethnicity(key)
    except ValueError:
        return ETHNICITY_ALIASES.get(key, Ethnicity.WHITE)


def parse_smoking(value: SmokingStatus | str | bool | None) -> SmokingStatus:
    """Map a smoking label to its category. Absent -> non-smoker.

    A bare boolean ``True`` means current smoker of unknown intensity and maps
    to moderate.
    """
    if isinstance(value, SmokingStatus):
        return value
    if value is None or value is False:
        return SmokingStatus.NON
    if value is True:
        return SmokingStatus.MODERATE
    key = _key(value)
    try:
        return SmokingStatus(key)
    except ValueError:
        if key in SMOKING_ALIASES:
            return SMOKING_ALIASES[key]
        raise InvalidInputError("smoking", f"Unknown smoking status: {value}") from None


def parse_diabetes(value: DiabetesType | str | bool | None) -> DiabetesType:
    """Map a diabetes label to its type. Absent -> none; ``True`` -> type 2."""
    if isinstance(value, DiabetesType):
        return value
    if value is None or value is False:
        return DiabetesType.NONE
    if value is True:
        return DiabetesType.TYPE2
    key = _key(value)
    try:
        return DiabetesType(key)
    except ValueError:
        if key in DIABETES_ALIASES:
            return DIABETES_ALIASES[key]
        raise InvalidInputError("diabetes", f"Unknown diabetes type: {value}") from None


def parse_sex(value: Sex | str | None) -> Sex | None:
    if value is None or isinstance(value, Sex):
        return value
    key = _key(value)
    try:
        return Sex(key)
    except ValueError:
        if key in SEX_ALIASES:
            return SEX_ALIASES[key]
        raise InvalidInputError("sex", f"Unknown sex: {value}") from None


def parse_unit(value: Any, unit_type: type[Enum], field: str) -> Any:
    """Map a unit spelling (``mg/dl``, ``MMOL/L``, ...) to a unit enum member."""
    if isinstance(value, unit_type):
        return value
    spelling = normalize_unit(value) if isinstance(value, str) else None
    for member in unit_type:
        if member.value == spelling:
            return member
    allowed = ", ".join(member.value for member in unit_type)
    raise InvalidInputError(field, f"Unknown {field}: {value} (expected {allowed})")


_NUMERIC_FIELDS = (
    "age",
    "sbp",
    "dbp",
    "sbp_sd",
    "height_cm",
    "weight_kg",
    "bmi",
    "waist_cm",
    "total_chol",
    "hdl",
    "ldl",
    "triglycerides",
    "cholesterol_ratio",
    "townsend",
    "lpa",
)


@dataclass(frozen=True)
class PatientRiskInput:
    """Inputs for one risk calculation.

    Required by both calculators: age, sex, sbp and either total_chol + hdl or
    cholesterol_ratio (QRISK3 only). Absence is reported by the calculator,
    not here.
    """

    age: float | None = None
    sex: Sex | None = None
    ethnicity: Ethnicity = Ethnicity.WHITE

    # Vitals
    sbp: float | None = None
    dbp: float | None = None
    sbp_readings: tuple[float, ...] = ()
    sbp_sd: float | None = None
    bp_treated: bool = False
    smoking: SmokingStatus = SmokingStatus.NON

    # Anthropometrics
    height_cm: float | None = None
    weight_kg: float | None = None
    bmi: float | None = None
    waist_cm: float | None = None

    # Lipids, all in lipid_unit
    total_chol: float | None = None
    hdl: float | None = None
    ldl: float | None = None
    triglycerides: float | None = None
    cholesterol_ratio: float | None = None
    lipid_unit: LipidUnit = LipidUnit.MMOL_L

    # Comorbidities and medications
    diabetes: DiabetesType = DiabetesType.NONE
    atrial_fibrillation: bool = False
    rheumatoid_arthritis: bool = False
    chronic_kidney_disease: bool = False
    family_history: bool = False
    migraine: bool = False
    sle: bool = False
    severe_mental_illness: bool = False
    erectile_dysfunction: bool = False
    atypical_antipsychotics: bool = False
    corticosteroids: bool = False

    townsend: float | None = None

    lpa: float | None = None
    lpa_unit: LpaUnit = LpaUnit.MG_DL

    def __post_init__(self) -> None:
        object.__setattr__(self, "sex", parse_sex(self.sex))
        object.__setattr__(self, "ethnicity", parse_ethnicity(self.ethnicity))
        object.__setattr__(self, "smoking", parse_smoking(self.smoking))
        object.__setattr__(self, "diabetes", parse_diabetes(self.diabetes))
        object.__setattr__(self, "lipid_unit", parse_unit(self.lipid_unit, LipidUnit, "lipid_unit"))
        object.__setattr__(self, "lpa_unit", parse_unit(self.lpa_unit, LpaUnit, "lpa_unit"))
        object.__setattr__(self, "sbp_readings", tuple(self.sbp_readings))

        for name in _NUMERIC_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInputError(name)
            if not math.isfinite(value):
                raise InvalidInputError(name)
        for reading in self.sbp_readings:
            if isinstance(reading, bool) or not isinstance(reading, (int, float)):
                raise InvalidInputError("sbp_readings")
            if not math.isfinite(reading):
                raise InvalidInputError("sbp_readings")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PatientRiskInput":
        """Build from a mapping, ignoring unknown keys and None values."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    # ------------------------------------------------------------------
    # Derived flags
    # ------------------------------------------------------------------

    @property
    def is_smoker(self) -> bool:
        """Current smoker (ex-smokers are not)."""
        return self.smoking in (SmokingStatus.LIGHT, SmokingStatus.MODERATE, SmokingStatus.HEAVY)

    @property
    def has_diabetes(self) -> bool:
        return self.diabetes != DiabetesType.NONE

    # ------------------------------------------------------------------
    # Unit-normalised values
    # ------------------------------------------------------------------

    def _lipid(self, value: float | None, quantity: Quantity, unit: LipidUnit) -> float | None:
        if value is None:
            return None
        return convert(value, quantity, self.lipid_unit.value, unit.value)

    @property
    def total_chol_mmol(self) -> float | None:
        return self._lipid(self.total_chol, Quantity.CHOLESTEROL, LipidUnit.MMOL_L)

    @property
    def total_chol_mg(self) -> float | None:
        return self._lipid(self.total_chol, Quantity.CHOLESTEROL, LipidUnit.MG_DL)

    @property
    def hdl_mmol(self) -> float | None:
        return self._lipid(self.hdl, Quantity.CHOLESTEROL, LipidUnit.MMOL_L)

    @property
    def hdl_mg(self) -> float | None:
        return self._lipid(self.hdl, Quantity.CHOLESTEROL, LipidUnit.MG_DL)

    @property
    def ldl_mmol(self) -> float | None:
        return self._lipid(self.ldl, Quantity.CHOLESTEROL, LipidUnit.MMOL_L)

    @property
    def triglycerides_mmol(self) -> float | None:
        return self._lipid(self.triglycerides, Quantity.TRIGLYCERIDES, LipidUnit.MMOL_L)

    @property
    def lpa_mg_dl(self) -> float | None:
        if self.lpa is None:
            return None
        return convert(self.lpa, Quantity.LPA, self.lpa_unit.value, LpaUnit.MG_DL.value)

    @property
    def resolved_bmi(self) -> float | None:
        """Explicit BMI, else weight / height², else None."""
        if self.bmi is not None:
            return self.bmi
        if self.height_cm and self.weight_kg:
            height_m = self.height_cm / 100
            return self.weight_kg / (height_m * height_m)
        return None

    @property
    def resolved_cholesterol_ratio(self) -> float | None:
        """Explicit total/HDL ratio, else computed from the lipids."""
        if self.cholesterol_ratio is not None:
            return self.cholesterol_ratio
        total = self.total_chol_mmol
        hdl = self.hdl_mmol
        if total is not None and hdl:
            return total / hdl
        return None

    def measurements(self) -> dict[str, float]:
        """Present numeric values keyed by their range-table measurement type."""
        suffix = "mmol" if self.lipid_unit == LipidUnit.MMOL_L else "mg"
        lpa_suffix = "mg" if self.lpa_unit == LpaUnit.MG_DL else "nmol"
        candidates: dict[str, float | None] = {
            "age": self.age,
            "sbp": self.sbp,
            "dbp": self.dbp,
            f"total_chol_{suffix}": self.total_chol,
            f"hdl_{suffix}": self.hdl,
            f"ldl_{suffix}": self.ldl,
            f"trig_{suffix}": self.triglycerides,
            f"lpa_{lpa_suffix}": self.lpa,
            "height_cm": self.height_cm,
            "weight_kg": self.weight_kg,
            "bmi": self.resolved_bmi,
            "waist_circ_cm": self.waist_cm,
        }
        return {k: v for k, v in candidates.items() if v is not None}
