"""Tests for the Framingham general CVD model and calculator."""

import pytest

from cvdrisk.core.errors import InvalidInputError, MissingInputError
from cvdrisk.services.framingham import FRAMINGHAM_COEFFICIENTS, framingham_risk, framingham_terms
from cvdrisk.services.patient_input import PatientRiskInput, Sex
from cvdrisk.services.risk_engine import Algorithm, calculate_framingham_risk_score


def _patient(**overrides) -> PatientRiskInput:
    data = {
        "age": 55,
        "sex": "male",
        "sbp": 130,
        "total_chol": 200,
        "hdl": 50,
        "lipid_unit": "mg/dL",
    }
    data.update(overrides)
    return PatientRiskInput.from_dict(data)


# ============================================================================
# Model
# ============================================================================


class TestFraminghamModel:
    """Check the model against the published worked examples."""

    def test_published_female_example(self):
        # 61-year-old woman, TC 180, HDL 47, untreated SBP 124, smoker
        terms = framingham_terms(
            Sex.FEMALE, age=61, total_chol_mg=180, hdl_mg=47, sbp=124,
            bp_treated=False, smoker=True, diabetic=False,
        )
        assert framingham_risk(Sex.FEMALE, terms) == pytest.approx(10.48, abs=0.05)

    def test_published_male_example(self):
        # 53-year-old man, TC 161, HDL 55, treated SBP 125, diabetic
        terms = framingham_terms(
            Sex.MALE, age=53, total_chol_mg=161, hdl_mg=55, sbp=125,
            bp_treated=True, smoker=False, diabetic=True,
        )
        assert framingham_risk(Sex.MALE, terms) == pytest.approx(15.6, abs=0.1)

    def test_treated_sbp_uses_treated_coefficient(self):
        untreated = framingham_terms(Sex.MALE, 50, 200, 50, 140, False, False, False)
        treated = framingham_terms(Sex.MALE, 50, 200, 50, 140, True, False, False)
        assert treated["sbp"] > untreated["sbp"]

    def test_indicator_terms(self):
        terms = framingham_terms(Sex.FEMALE, 50, 200, 50, 120, False, True, True)
        coefs = FRAMINGHAM_COEFFICIENTS[Sex.FEMALE]
        assert terms["smoking"] == coefs.smoker
        assert terms["diabetes"] == coefs.diabetes

    def test_risk_clamped(self):
        terms = {"extreme": 30.0}
        assert framingham_risk(Sex.MALE, terms) == pytest.approx(100.0)
        assert framingham_risk(Sex.MALE, terms) <= 100.0


# ============================================================================
# Calculator
# ============================================================================


class TestFraminghamCalculator:
    """Test the patient-level Framingham calculator."""

    def test_reference_female(self):
        # Published D'Agostino 2008 worked example
        patient = PatientRiskInput.from_dict(
            {
                "age": 61,
                "sex": "female",
                "sbp": 124,
                "total_chol": 180,
                "hdl": 47,
                "lipid_unit": "mg/dL",
                "smoking": "moderate",
            }
        )
        result = calculate_framingham_risk_score(patient)
        assert result.base_risk == pytest.approx(10.484, abs=1e-3)

    def test_result_shape(self):
        result = calculate_framingham_risk_score(_patient())
        assert result.algorithm == Algorithm.FRAMINGHAM
        assert 0 <= result.base_risk <= 100
        assert result.lpa_modifier == 1.0
        assert result.modified_risk == result.base_risk * result.lpa_modifier
        assert set(result.components["terms"]) == {
            "age", "total_cholesterol", "hdl", "sbp", "smoking", "diabetes"
        }

    def test_mmol_and_mg_inputs_agree(self):
        mg = calculate_framingham_risk_score(_patient(total_chol=193.35, hdl=50.271))
        mmol = calculate_framingham_risk_score(
            _patient(total_chol=5.0, hdl=1.3, lipid_unit="mmol/L")
        )
        assert mg.base_risk == pytest.approx(mmol.base_risk)

    def test_lpa_modifier_applied(self):
        result = calculate_framingham_risk_score(_patient(lpa=100))
        assert result.lpa_modifier == pytest.approx(1.6)
        assert result.modified_risk == result.base_risk * result.lpa_modifier

    @pytest.mark.parametrize(
        "change",
        [
            {"age": 65},
            {"sbp": 160},
            {"smoking": "heavy"},
            {"diabetes": "type2"},
            {"bp_treated": True},
        ],
    )
    def test_risk_factors_do_not_decrease_risk(self, change):
        baseline = calculate_framingham_risk_score(_patient())
        changed = calculate_framingham_risk_score(_patient(**change))
        assert changed.base_risk >= baseline.base_risk

    def test_ex_smoker_not_counted(self):
        never = calculate_framingham_risk_score(_patient())
        ex = calculate_framingham_risk_score(_patient(smoking="ex"))
        assert ex.base_risk == never.base_risk

    @pytest.mark.parametrize("missing", ["age", "sex", "sbp", "total_chol", "hdl"])
    def test_missing_required_field(self, missing):
        data = {
            "age": 55,
            "sex": "male",
            "sbp": 130,
            "total_chol": 200,
            "hdl": 50,
            "lipid_unit": "mg/dL",
        }
        del data[missing]
        with pytest.raises(MissingInputError) as exc_info:
            calculate_framingham_risk_score(PatientRiskInput.from_dict(data))
        assert exc_info.value.field == missing
        assert "Framingham" in str(exc_info.value)

    def test_non_positive_value_rejected(self):
        with pytest.raises(InvalidInputError):
            calculate_framingham_risk_score(_patient(hdl=0))

    def test_age_outside_validated_range_adds_note(self):
        result = calculate_framingham_risk_score(_patient(age=80))
        assert any("30-74" in note for note in result.notes)

    def test_age_inside_range_has_no_note(self):
        assert calculate_framingham_risk_score(_patient()).notes == []
