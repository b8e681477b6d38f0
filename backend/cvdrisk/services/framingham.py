"""Framingham general cardiovascular risk model.

Implements the sex-specific continuous model from D'Agostino et al.,
"General Cardiovascular Risk Profile for Use in Primary Care" (Circulation,
2008). Lipids are in mg/dL.

    risk = 1 - S0 ** exp(sum(beta_i * x_i) - mean)

where ``x`` is ln(age), ln(total cholesterol), ln(HDL), ln(SBP) (with a
separate coefficient when treated) plus the smoking and diabetes indicators.
"""

import math
from dataclasses import dataclass

from cvdrisk.services.patient_input import Sex

# Age range of the derivation cohort
FRAMINGHAM_MIN_AGE = 30
FRAMINGHAM_MAX_AGE = 74


@dataclass(frozen=True)
class FraminghamCoefficients:
    """One sex's coefficient set."""

    ln_age: float
    ln_total_chol: float
    ln_hdl: float
    ln_sbp_untreated: float
    ln_sbp_treated: float
    smoker: float
    diabetes: float
    baseline_survival: float
    mean_sum: float


FRAMINGHAM_COEFFICIENTS: dict[Sex, FraminghamCoefficients] = {
    Sex.FEMALE: FraminghamCoefficients(
        ln_age=2.32888,
        ln_total_chol=1.20904,
        ln_hdl=-0.70833,
        ln_sbp_untreated=2.76157,
        ln_sbp_treated=2.82263,
        smoker=0.52873,
        diabetes=0.69154,
        baseline_survival=0.95012,
        mean_sum=26.1931,
    ),
    Sex.MALE: FraminghamCoefficients(
        ln_age=3.06117,
        ln_total_chol=1.12370,
        ln_hdl=-0.93263,
        ln_sbp_untreated=1.93303,
        ln_sbp_treated=1.99881,
        smoker=0.65451,
        diabetes=0.57367,
        baseline_survival=0.88936,
        mean_sum=23.9802,
    ),
}


def framingham_terms(
    sex: Sex,
    age: float,
    total_chol_mg: float,
    hdl_mg: float,
    sbp: float,
    bp_treated: bool,
    smoker: bool,
    diabetic: bool,
) -> dict[str, float]:
    """Per-term contributions to the linear predictor."""
    c = FRAMINGHAM_COEFFICIENTS[sex]
    sbp_coef = c.ln_sbp_treated if bp_treated else c.ln_sbp_untreated
    return {
        "age": c.ln_age * math.log(age),
        "total_cholesterol": c.ln_total_chol * math.log(total_chol_mg),
        "hdl": c.ln_hdl * math.log(hdl_mg),
        "sbp": sbp_coef * math.log(sbp),
        "smoking": c.smoker if smoker else 0.0,
        "diabetes": c.diabetes if diabetic else 0.0,
    }


def framingham_risk(sex: Sex, terms: dict[str, float]) -> float:
    """10-year risk in percent, clamped to [0, 100]."""
    c = FRAMINGHAM_COEFFICIENTS[sex]
    linear = sum(terms.values()) - c.mean_sum
    risk = (1 - c.baseline_survival ** math.exp(linear)) * 100
    return min(max(risk, 0.0), 100.0)
