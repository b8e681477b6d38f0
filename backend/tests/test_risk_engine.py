"""Tests for the Risk Calculation Engine.

Covers the Lp(a) modifier, risk categories, contributing factors and the
combined Framingham/QRISK3 assessment.
"""

import math

import pytest

from cvdrisk.core.errors import InvalidInputError, MissingInputError
from cvdrisk.services.patient_input import Ethnicity, PatientRiskInput
from cvdrisk.services.risk_engine import (
    CLINICAL_RECOMMENDATIONS,
    Agreement,
    Algorithm,
    Impact,
    RiskCalculationEngine,
    RiskCategory,
    RiskResult,
    calculate_combined_risk,
    calculate_lpa_modifier,
    get_contributing_factors,
    get_risk_category,
    get_risk_engine,
    reset_risk_engine,
    suggest_calculator,
)


def _patient(**overrides) -> PatientRiskInput:
    data = {
        "age": 55,
        "sex": "male",
        "sbp": 130,
        "total_chol": 5.5,
        "hdl": 1.3,
        "height_cm": 178,
        "weight_kg": 80,
    }
    data.update(overrides)
    return PatientRiskInput.from_dict(data)


def _result(algorithm: Algorithm, risk: float) -> RiskResult:
    return RiskResult(
        algorithm=algorithm,
        base_risk=risk,
        lpa_modifier=1.0,
        modified_risk=risk,
        risk_category=get_risk_category(risk),
    )


# ============================================================================
# Service Tests
# ============================================================================


class TestServiceInit:
    """Test engine singleton and stats."""

    def setup_method(self):
        """Reset singleton before each test."""
        reset_risk_engine()

    def test_singleton_pattern(self):
        assert get_risk_engine() is get_risk_engine()

    def test_singleton_reset(self):
        engine1 = get_risk_engine()
        reset_risk_engine()
        assert get_risk_engine() is not engine1

    def test_get_stats(self):
        stats = RiskCalculationEngine().get_stats()
        assert stats["algorithms"] == ["framingham", "qrisk3"]
        assert stats["category_thresholds"] == {"moderate": 10.0, "high": 20.0}

    def test_engine_delegates(self):
        engine = RiskCalculationEngine()
        assert engine.calculate_lpa_modifier(50) == pytest.approx(1.3)
        assert engine.get_risk_category(15) == RiskCategory.MODERATE
        assert engine.calculate_qrisk3(_patient()).algorithm == Algorithm.QRISK3

    def test_separate_instance_matches_shared(self):
        patient = _patient(lpa=80)
        shared = get_risk_engine().calculate_combined(patient)
        separate = RiskCalculationEngine().calculate_combined(patient)
        assert separate.to_dict() == shared.to_dict()


# ============================================================================
# Lp(a) Modifier
# ============================================================================


class TestLpaModifier:
    """Test the piecewise-linear Lp(a) modifier."""

    @pytest.mark.parametrize(
        "lpa,expected",
        [
            (0, 1.0),
            (30, 1.0),
            (40, 1.15),
            (50, 1.3),
            (75, 1.45),
            (100, 1.6),
            (150, 1.8),
            (200, 2.0),
            (250, 2.5),
            (300, 3.0),
            (1000, 3.0),
        ],
    )
    def test_breakpoints_and_interpolation(self, lpa, expected):
        assert calculate_lpa_modifier(lpa) == pytest.approx(expected)

    def test_monotonic(self):
        modifiers = [calculate_lpa_modifier(v) for v in range(0, 400, 5)]
        assert modifiers == sorted(modifiers)

    def test_nmol_divided_by_two_and_a_half(self):
        assert calculate_lpa_modifier(250, "nmol/L") == pytest.approx(calculate_lpa_modifier(100))

    def test_unit_spelling_normalised(self):
        assert calculate_lpa_modifier(250, "nmol/l") == pytest.approx(1.6)

    def test_unknown_unit_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            calculate_lpa_modifier(100, "g/L")
        assert exc_info.value.field == "lpa_unit"

    def test_negative_rejected(self):
        with pytest.raises(InvalidInputError):
            calculate_lpa_modifier(-1)

    @pytest.mark.parametrize("bad", [math.nan, math.inf, "50", None])
    def test_non_numeric_rejected(self, bad):
        with pytest.raises(InvalidInputError):
            calculate_lpa_modifier(bad)


# ============================================================================
# Risk Category
# ============================================================================


class TestRiskCategory:
    """Boundaries belong to the higher category."""

    @pytest.mark.parametrize(
        "risk,expected",
        [
            (0, RiskCategory.LOW),
            (9.99, RiskCategory.LOW),
            (10, RiskCategory.MODERATE),
            (19.99, RiskCategory.MODERATE),
            (20, RiskCategory.HIGH),
            (150, RiskCategory.HIGH),
        ],
    )
    def test_thresholds(self, risk, expected):
        assert get_risk_category(risk) == expected

    def test_nan_rejected(self):
        with pytest.raises(InvalidInputError):
            get_risk_category(math.nan)


# ============================================================================
# Results
# ============================================================================


class TestRiskResult:
    """Test result invariants shared by both calculators."""

    def test_modified_risk_not_clamped(self):
        result = RiskResult(
            algorithm=Algorithm.QRISK3,
            base_risk=50.0,
            lpa_modifier=3.0,
            modified_risk=150.0,
            risk_category=RiskCategory.HIGH,
        )
        assert result.modified_risk == 150.0
        assert result.capped_risk == 100.0
        assert result.to_dict()["capped_risk"] == 100.0

    def test_category_follows_modified_risk(self):
        engine = RiskCalculationEngine()
        result = engine.calculate_qrisk3(_patient(lpa=300))
        assert result.lpa_modifier == 3.0
        assert result.modified_risk == result.base_risk * 3.0
        assert result.risk_category == get_risk_category(result.modified_risk)

    def test_to_dict_serialises_enums(self):
        data = RiskCalculationEngine().calculate_framingham(_patient()).to_dict()
        assert data["algorithm"] == "framingham"
        assert data["risk_category"] in {"low", "moderate", "high"}


# ============================================================================
# Contributing Factors
# ============================================================================


class TestContributingFactors:
    """Test identification of risk factors present in the record."""

    def _names(self, patient):
        return {f.name for f in get_contributing_factors(patient)}

    def test_healthy_young_patient_has_none(self):
        patient = PatientRiskInput(age=40, sbp=118, bmi=22, total_chol=4.5, hdl=1.5)
        assert get_contributing_factors(patient) == []

    def test_age_bands(self):
        assert "Age" in self._names(PatientRiskInput(age=58))
        assert "Advanced age" in self._names(PatientRiskInput(age=70))

    def test_smoking_impact(self):
        factors = get_contributing_factors(PatientRiskInput(smoking="heavy"))
        assert factors[0].name == "Smoking"
        assert factors[0].impact == Impact.HIGH

    def test_ex_smoker_not_listed(self):
        assert "Smoking" not in self._names(PatientRiskInput(smoking="ex"))

    def test_clinical_flags(self):
        names = self._names(PatientRiskInput(
            diabetes="type1", atrial_fibrillation=True, chronic_kidney_disease=True
        ))
        assert {"Type 1 diabetes", "Atrial fibrillation", "Chronic kidney disease"} <= names

    def test_erectile_dysfunction_male_only(self):
        assert "Erectile dysfunction" in self._names(PatientRiskInput(sex="male", erectile_dysfunction=True))
        assert "Erectile dysfunction" not in self._names(PatientRiskInput(sex="female", erectile_dysfunction=True))

    @pytest.mark.parametrize(
        "lpa,name",
        [(35, "Borderline Lp(a)"), (60, "Elevated Lp(a)"), (200, "Very high Lp(a)")],
    )
    def test_lpa_bands(self, lpa, name):
        assert name in self._names(PatientRiskInput(lpa=lpa))

    def test_ratio_and_bp(self):
        names = self._names(PatientRiskInput(sbp=165, cholesterol_ratio=6.5))
        assert {"Severe hypertension", "Poor cholesterol ratio"} <= names


# ============================================================================
# Combined Assessment
# ============================================================================


class TestCombinedRisk:
    """Test the side-by-side comparison."""

    def test_comparison_arithmetic(self):
        combined = calculate_combined_risk(_patient())
        f = combined.framingham.modified_risk
        q = combined.qrisk3.modified_risk
        assert combined.absolute_difference == pytest.approx(abs(f - q))
        assert combined.relative_difference == pytest.approx(abs(f - q) / ((f + q) / 2) * 100)
        assert combined.category_agreement == (
            combined.framingham.risk_category == combined.qrisk3.risk_category
        )
        assert combined.clinical_recommendation == CLINICAL_RECOMMENDATIONS[combined.agreement]

    def test_agreement_bands(self):
        combined = calculate_combined_risk(_patient())
        diff = combined.absolute_difference
        if diff <= 3:
            assert combined.agreement == Agreement.HIGH
        elif diff <= 7.5:
            assert combined.agreement == Agreement.MODERATE
        else:
            assert combined.agreement == Agreement.LOW

    def test_summary_mentions_both_scores(self):
        combined = calculate_combined_risk(_patient())
        assert combined.summary.startswith(
            f"Framingham ({combined.framingham.modified_risk:.1f}%) and QRISK3"
        )
        assert "agreement" in combined.summary

    def test_population_difference_always_listed(self):
        combined = calculate_combined_risk(_patient())
        assert "development_population" in {d.factor for d in combined.differences}

    def test_patient_specific_differences(self):
        combined = calculate_combined_risk(_patient(
            sex="female", ethnicity="indian", atrial_fibrillation=True, age=70
        ))
        factors = {d.factor for d in combined.differences}
        assert {"ethnicity", "atrial_fibrillation", "age_modeling", "sex_modeling"} <= factors

    def test_non_white_patient_suggests_qrisk3(self):
        combined = calculate_combined_risk(_patient(ethnicity="bangladeshi"))
        assert combined.suggested_calculator == Algorithm.QRISK3

    def test_missing_framingham_input_propagates(self):
        with pytest.raises(MissingInputError):
            calculate_combined_risk(_patient(total_chol=None, hdl=None, cholesterol_ratio=4.0))

    def test_to_dict(self):
        data = calculate_combined_risk(_patient()).to_dict()
        assert data["framingham"]["algorithm"] == "framingham"
        assert data["suggested_calculator"] in {"framingham", "qrisk3"}


class TestSuggestCalculator:
    """Test the calculator recommendation scoring."""

    def test_tie_goes_to_qrisk3(self):
        patient = PatientRiskInput(age=55)
        suggested, _ = suggest_calculator(
            patient, _result(Algorithm.FRAMINGHAM, 12), _result(Algorithm.QRISK3, 8),
            Agreement.MODERATE,
        )
        assert suggested == Algorithm.QRISK3

    def test_low_agreement_prefers_higher_estimate(self):
        patient = PatientRiskInput(age=55)
        suggested, rationale = suggest_calculator(
            patient, _result(Algorithm.FRAMINGHAM, 30), _result(Algorithm.QRISK3, 15),
            Agreement.LOW,
        )
        assert suggested == Algorithm.FRAMINGHAM
        assert rationale.startswith("Framingham")

    def test_qrisk_specific_conditions_outweigh(self):
        patient = PatientRiskInput(age=55, rheumatoid_arthritis=True)
        suggested, _ = suggest_calculator(
            patient, _result(Algorithm.FRAMINGHAM, 30), _result(Algorithm.QRISK3, 15),
            Agreement.LOW,
        )
        assert suggested == Algorithm.QRISK3

    def test_ethnicity_scores_for_qrisk3(self):
        patient = PatientRiskInput(age=55, ethnicity=Ethnicity.CHINESE)
        suggested, _ = suggest_calculator(
            patient, _result(Algorithm.FRAMINGHAM, 30), _result(Algorithm.QRISK3, 15),
            Agreement.LOW,
        )
        assert suggested == Algorithm.QRISK3
