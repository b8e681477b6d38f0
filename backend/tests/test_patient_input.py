"""Tests for the patient risk input model."""

import math

import pytest

from cvdrisk.core.errors import InvalidInputError
from cvdrisk.services.patient_input import (
    DiabetesType,
    Ethnicity,
    LipidUnit,
    LpaUnit,
    PatientRiskInput,
    Sex,
    SmokingStatus,
    parse_diabetes,
    parse_ethnicity,
    parse_sex,
    parse_smoking,
)


class TestParsers:
    """Test categorical parsing and aliases."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("indian", Ethnicity.INDIAN),
            ("Black Caribbean", Ethnicity.BLACK_CARIBBEAN),
            ("south-asian", Ethnicity.INDIAN),
            ("east_asian", Ethnicity.CHINESE),
            ("klingon", Ethnicity.WHITE),
            (None, Ethnicity.WHITE),
            ("", Ethnicity.WHITE),
        ],
    )
    def test_ethnicity(self, raw, expected):
        assert parse_ethnicity(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, SmokingStatus.NON),
            (False, SmokingStatus.NON),
            (True, SmokingStatus.MODERATE),
            ("never", SmokingStatus.NON),
            ("former", SmokingStatus.EX),
            ("HEAVY", SmokingStatus.HEAVY),
        ],
    )
    def test_smoking(self, raw, expected):
        assert parse_smoking(raw) == expected

    def test_unknown_smoking_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_smoking("sometimes")
        assert exc_info.value.field == "smoking"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, DiabetesType.NONE),
            (True, DiabetesType.TYPE2),
            ("type_1", DiabetesType.TYPE1),
            ("t2", DiabetesType.TYPE2),
        ],
    )
    def test_diabetes(self, raw, expected):
        assert parse_diabetes(raw) == expected

    def test_unknown_diabetes_rejected(self):
        with pytest.raises(InvalidInputError):
            parse_diabetes("gestational")

    def test_sex(self):
        assert parse_sex("M") == Sex.MALE
        assert parse_sex("female") == Sex.FEMALE
        assert parse_sex(None) is None
        with pytest.raises(InvalidInputError):
            parse_sex("x")


class TestPatientRiskInput:
    """Test construction, validation and derived values."""

    def test_defaults(self):
        patient = PatientRiskInput()
        assert patient.ethnicity == Ethnicity.WHITE
        assert patient.smoking == SmokingStatus.NON
        assert patient.diabetes == DiabetesType.NONE
        assert patient.lipid_unit == LipidUnit.MMOL_L
        assert patient.lpa_unit == LpaUnit.MG_DL
        assert not patient.is_smoker
        assert not patient.has_diabetes

    def test_string_enums_normalised(self):
        patient = PatientRiskInput(sex="f", smoking="light", lipid_unit="mg/dL", lpa_unit="nmol/L")
        assert patient.sex == Sex.FEMALE
        assert patient.is_smoker
        assert patient.lipid_unit == LipidUnit.MG_DL
        assert patient.lpa_unit == LpaUnit.NMOL_L

    @pytest.mark.parametrize(
        "raw,expected",
        [("mg/dl", LipidUnit.MG_DL), ("MMOL/L", LipidUnit.MMOL_L), (" mg/dL ", LipidUnit.MG_DL)],
    )
    def test_lipid_unit_spellings(self, raw, expected):
        assert PatientRiskInput(lipid_unit=raw).lipid_unit == expected

    def test_lpa_unit_spelling(self):
        assert PatientRiskInput(lpa_unit="nmol/l").lpa_unit == LpaUnit.NMOL_L

    @pytest.mark.parametrize("field,raw", [("lipid_unit", "g/L"), ("lpa_unit", "mmol/L"), ("lipid_unit", None)])
    def test_unknown_unit_rejected(self, field, raw):
        with pytest.raises(InvalidInputError) as exc_info:
            PatientRiskInput(**{field: raw})
        assert exc_info.value.field == field
        assert f"Unknown {field}" in str(exc_info.value)

    @pytest.mark.parametrize("bad", [math.nan, math.inf, "55", True])
    def test_non_finite_numeric_rejected(self, bad):
        with pytest.raises(InvalidInputError) as exc_info:
            PatientRiskInput(age=bad)
        assert exc_info.value.field == "age"

    def test_bad_reading_rejected(self):
        with pytest.raises(InvalidInputError):
            PatientRiskInput(sbp_readings=[120, math.nan, 130])

    def test_readings_stored_as_tuple(self):
        patient = PatientRiskInput(sbp_readings=[120, 125, 130])
        assert patient.sbp_readings == (120, 125, 130)

    def test_immutable(self):
        patient = PatientRiskInput(age=50)
        with pytest.raises(AttributeError):
            patient.age = 60

    def test_from_dict_ignores_unknown_and_none(self):
        patient = PatientRiskInput.from_dict({"age": 50, "nickname": "Bob", "sbp": None})
        assert patient.age == 50
        assert patient.sbp is None

    def test_lipid_conversion(self):
        patient = PatientRiskInput(total_chol=200, hdl=50, lipid_unit="mg/dL")
        assert patient.total_chol_mg == 200
        assert patient.total_chol_mmol == pytest.approx(200 / 38.67)
        assert patient.hdl_mmol == pytest.approx(50 / 38.67)

    def test_triglycerides_use_own_factor(self):
        patient = PatientRiskInput(triglycerides=177.14, lipid_unit="mg/dL")
        assert patient.triglycerides_mmol == pytest.approx(2.0)

    def test_lpa_nmol_to_mg(self):
        assert PatientRiskInput(lpa=125, lpa_unit="nmol/L").lpa_mg_dl == pytest.approx(50)

    def test_resolved_bmi(self):
        assert PatientRiskInput(height_cm=200, weight_kg=100).resolved_bmi == pytest.approx(25)
        assert PatientRiskInput(bmi=22, height_cm=200, weight_kg=100).resolved_bmi == 22
        assert PatientRiskInput(height_cm=200).resolved_bmi is None

    def test_resolved_cholesterol_ratio(self):
        assert PatientRiskInput(total_chol=5.0, hdl=1.25).resolved_cholesterol_ratio == pytest.approx(4.0)
        assert PatientRiskInput(cholesterol_ratio=3.5, total_chol=5.0, hdl=1.0).resolved_cholesterol_ratio == 3.5
        assert PatientRiskInput(total_chol=5.0).resolved_cholesterol_ratio is None

    def test_measurements_use_unit_specific_keys(self):
        patient = PatientRiskInput(
            age=50, total_chol=200, hdl=50, lipid_unit="mg/dL", lpa=100, lpa_unit="nmol/L"
        )
        measurements = patient.measurements()
        assert measurements["total_chol_mg"] == 200
        assert measurements["hdl_mg"] == 50
        assert measurements["lpa_nmol"] == 100
        assert "total_chol_mmol" not in measurements
        assert "sbp" not in measurements
