"""QRISK3 cardiovascular risk model (2017).

Coefficient tables for the published ``cvd_female_raw`` and ``cvd_male_raw``
algorithms, held as data so each term can be audited and tested on its own.

The linear predictor is

    a = ethnicity[eth] + smoking[smoke]
        + sum(continuous_k * centred_k)
        + sum(boolean_k * flag_k)
        + age_1 * sum(age1_interaction_k * feature_k)
        + age_2 * sum(age2_interaction_k * feature_k)

and the 10-year risk is ``100 * (1 - survivor ** exp(a))``. Continuous
covariates (age and BMI fractional polynomials, cholesterol ratio, SBP, SBP
variability, Townsend) are centred on the published means before use,
including inside the interaction terms.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field

from cvdrisk.services.patient_input import DiabetesType, Ethnicity, Sex, SmokingStatus

# Age range of the derivation cohort
QRISK3_MIN_AGE = 25
QRISK3_MAX_AGE = 84

ETHNICITY_CODES: dict[Ethnicity, int] = {
    Ethnicity.WHITE: 1,
    Ethnicity.INDIAN: 2,
    Ethnicity.PAKISTANI: 3,
    Ethnicity.BANGLADESHI: 4,
    Ethnicity.OTHER_ASIAN: 5,
    Ethnicity.BLACK_CARIBBEAN: 6,
    Ethnicity.BLACK_AFRICAN: 7,
    Ethnicity.CHINESE: 8,
    Ethnicity.OTHER: 9,
}

SMOKING_CODES: dict[SmokingStatus, int] = {
    SmokingStatus.NON: 0,
    SmokingStatus.EX: 1,
    SmokingStatus.LIGHT: 2,
    SmokingStatus.MODERATE: 3,
    SmokingStatus.HEAVY: 4,
}


@dataclass(frozen=True)
class QRISK3Inputs:
    """Covariates in the units the model expects (BMI kg/m², ratio unit-free)."""

    age: float
    bmi: float
    cholesterol_ratio: float
    sbp: float
    sbp_sd: float = 0.0
    townsend: float = 0.0
    ethnicity: Ethnicity = Ethnicity.WHITE
    smoking: SmokingStatus = SmokingStatus.NON
    diabetes: DiabetesType = DiabetesType.NONE
    atrial_fibrillation: bool = False
    atypical_antipsychotics: bool = False
    corticosteroids: bool = False
    erectile_dysfunction: bool = False
    migraine: bool = False
    rheumatoid_arthritis: bool = False
    chronic_kidney_disease: bool = False
    severe_mental_illness: bool = False
    sle: bool = False
    bp_treated: bool = False
    family_history: bool = False


@dataclass(frozen=True)
class QRISK3Coefficients:
    """One sex's coefficient set."""

    survivor: float
    ethnicity: tuple[float, ...]  # indexed by ethnicity code, slot 0 unused
    smoking: tuple[float, ...]  # indexed by smoking code
    age_1: Callable[[float], float]  # fractional polynomial of age/10
    age_2: Callable[[float], float]
    centres: dict[str, float]
    continuous: dict[str, float]
    boolean: dict[str, float]
    age_1_interactions: dict[str, float]
    age_2_interactions: dict[str, float] = field(default_factory=dict)


QRISK3_FEMALE = QRISK3Coefficients(
    survivor=0.988876402378082,
    ethnicity=(
        0.0,
        0.0,
        0.2804031433299542500000000,
        0.5629899414207539800000000,
        0.2959000085111651600000000,
        0.0727853798779825450000000,
        -0.1707213550885731700000000,
        -0.3937104331487497100000000,
        -0.3263249528353027200000000,
        -0.1712705688324178400000000,
    ),
    smoking=(
        0.0,
        0.1338683378654626200000000,
        0.5620085801243853700000000,
        0.6674959337750254700000000,
        0.8494817764483084700000000,
    ),
    age_1=lambda dage: dage ** -2,
    age_2=lambda dage: dage,
    centres={
        "age_1": 0.053274843841791,
        "age_2": 4.332503318786621,
        "bmi_1": 0.154946178197861,
        "bmi_2": 0.144462317228317,
        "rati": 3.476326465606690,
        "sbp": 123.130012512207030,
        "sbps5": 9.002537727355957,
        "town": 0.392308831214905,
    },
    continuous={
        "age_1": -8.1388109247726188000000000,
        "age_2": 0.7973337668969909800000000,
        "bmi_1": 0.2923609227546005200000000,
        "bmi_2": -4.1513300213837665000000000,
        "rati": 0.1533803582080255400000000,
        "sbp": 0.0131314884071034240000000,
        "sbps5": 0.0078894541014586095000000,
        "town": 0.0772237905885901080000000,
    },
    boolean={
        "AF": 1.5923354969269663000000000,
        "atypicalantipsy": 0.2523764207011555700000000,
        "corticosteroids": 0.5952072530460185100000000,
        "migraine": 0.3012672608703450000000000,
        "ra": 0.2136480343518194200000000,
        "renal": 0.6519456949384583300000000,
        "semi": 0.1255530805882017800000000,
        "sle": 0.7588093865426769300000000,
        "treatedhyp": 0.5093159368342300400000000,
        "type1": 1.7267977510537347000000000,
        "type2": 1.0688773244615468000000000,
        "fh_cvd": 0.4544531902089621300000000,
    },
    age_1_interactions={
        "smoke1": -4.7057161785851891000000000,
        "smoke2": -2.7430383403573337000000000,
        "smoke3": -0.8660808882939218200000000,
        "smoke4": 0.9024156236971064800000000,
        "AF": 19.9380348895465610000000000,
        "corticosteroids": -0.9840804523593628100000000,
        "migraine": 1.7634979587872999000000000,
        "renal": -3.5874047731694114000000000,
        "sle": 19.6903037386382920000000000,
        "treatedhyp": 11.8728097339218120000000000,
        "type1": -1.2444332714320747000000000,
        "type2": 6.8652342000009599000000000,
        "bmi_1": 23.8026234121417420000000000,
        "bmi_2": -71.1849476920870070000000000,
        "fh_cvd": 0.9946780794043512700000000,
        "sbp": 0.0341318423386154850000000,
        "town": -1.0301180802035639000000000,
    },
    age_2_interactions={
        "smoke1": -0.0755892446431930260000000,
        "smoke2": -0.1195119287486707400000000,
        "smoke3": -0.1036630639757192300000000,
        "smoke4": -0.1399185359171838900000000,
        "AF": -0.0761826510111625050000000,
        "corticosteroids": -0.1200536494674247200000000,
        "migraine": -0.0655869178986998590000000,
        "renal": -0.2268887308644250700000000,
        "sle": 0.0773479496790162730000000,
        "treatedhyp": 0.0009685782358817443600000,
        "type1": -0.2872406462448894900000000,
        "type2": -0.0971122525906954890000000,
        "bmi_1": 0.5236995893366442900000000,
        "bmi_2": 0.0457441901223237590000000,
        "fh_cvd": -0.0768850516984230380000000,
        "sbp": -0.0015082501423272358000000,
        "town": -0.0315934146749623290000000,
    },
)

QRISK3_MALE = QRISK3Coefficients(
    survivor=0.977268040180206,
    ethnicity=(
        0.0,
        0.0,
        0.2771924876030827900000000,
        0.4744636071493126800000000,
        0.5296172991968937100000000,
        0.0351001591862990170000000,
        -0.3580789966932791900000000,
        -0.4005648523216514000000000,
        -0.4152279288983017300000000,
        -0.2632134813474996700000000,
    ),
    smoking=(
        0.0,
        0.1912822286338898300000000,
        0.5524158819264555200000000,
        0.6383505302750607200000000,
        0.7898381988185801900000000,
    ),
    age_1=lambda dage: dage ** -1,
    age_2=lambda dage: dage ** 3,
    centres={
        "age_1": 0.234766781330109,
        "age_2": 77.284080505371094,
        "bmi_1": 0.149176135659218,
        "bmi_2": 0.141913309693336,
        "rati": 4.300998687744141,
        "sbp": 128.571578979492190,
        "sbps5": 8.756621360778809,
        "town": 0.526304900646210,
    },
    continuous={
        "age_1": -17.8397816660055750000000000,
        "age_2": 0.0022964880605765492000000,
        "bmi_1": 2.4562776660536358000000000,
        "bmi_2": -8.3011122314711354000000000,
        "rati": 0.1734019685632711100000000,
        "sbp": 0.0129101265425533050000000,
        "sbps5": 0.0102519142912904560000000,
        "town": 0.0332682012772872950000000,
    },
    boolean={
        "AF": 0.8820923692805465700000000,
        "atypicalantipsy": 0.1304687985517351300000000,
        "corticosteroids": 0.4548539975044554300000000,
        "impotence2": 0.2225185908670538300000000,
        "migraine": 0.2558417807415991300000000,
        "ra": 0.2097065801395656700000000,
        "renal": 0.7185326128827438400000000,
        "semi": 0.1213303988204716400000000,
        "sle": 0.4401572174457522000000000,
        "treatedhyp": 0.5165987108269547400000000,
        "type1": 1.2343425521675175000000000,
        "type2": 0.8594207143093222100000000,
        "fh_cvd": 0.5405546900939015600000000,
    },
    age_1_interactions={
        "smoke1": -0.2101113393351634600000000,
        "smoke2": 0.7526867644750319100000000,
        "smoke3": 0.9931588755640579100000000,
        "smoke4": 2.1331163414389076000000000,
        "AF": 3.4896675530623207000000000,
        "corticosteroids": 1.1708133653489108000000000,
        "impotence2": -1.5064009857454310000000000,
        "migraine": 2.3491159871402441000000000,
        "renal": -0.5065671632722369400000000,
        "treatedhyp": 6.5114581098532671000000000,
        "type1": 5.3379864878006531000000000,
        "type2": 3.6461817406221311000000000,
        "bmi_1": 31.0049529560338860000000000,
        "bmi_2": -111.2915718439164300000000000,
        "fh_cvd": 2.7808628508531887000000000,
        "sbp": 0.0188585244698658530000000,
        "town": -0.1007554870063731000000000,
    },
    age_2_interactions={
        "smoke1": -0.0004985487027532612100000,
        "smoke2": -0.0007987563331738541400000,
        "smoke3": -0.0008370618426625129600000,
        "smoke4": -0.0007840031915563728900000,
        "AF": -0.0003499560834063604900000,
        "corticosteroids": -0.0002496045095297166000000,
        "impotence2": -0.0011058218441227373000000,
        "migraine": 0.0001989644604147863100000,
        "renal": -0.0018325930166498813000000,
        "treatedhyp": 0.0006383805310416501300000,
        "type1": 0.0006409780808752897000000,
        "type2": -0.0002469569558886831500000,
        "bmi_1": 0.0050380102356322029000000,
        "bmi_2": -0.0130744830025243190000000,
        "fh_cvd": -0.0002479180990739603700000,
        "sbp": -0.0000127187419158845700000,
        "town": -0.0000932996423232728880000,
    },
)

QRISK3_COEFFICIENTS: dict[Sex, QRISK3Coefficients] = {
    Sex.FEMALE: QRISK3_FEMALE,
    Sex.MALE: QRISK3_MALE,
}


# ============================================================================
# Model Evaluation
# ============================================================================


def centred_covariates(sex: Sex, inputs: QRISK3Inputs) -> dict[str, float]:
    """Fractional-polynomial transforms and centring of continuous covariates."""
    c = QRISK3_COEFFICIENTS[sex]
    dage = inputs.age / 10
    dbmi = inputs.bmi / 10
    raw = {
        "age_1": c.age_1(dage),
        "age_2": c.age_2(dage),
        "bmi_1": dbmi ** -2,
        "bmi_2": dbmi ** -2 * math.log(dbmi),
        "rati": inputs.cholesterol_ratio,
        "sbp": inputs.sbp,
        "sbps5": inputs.sbp_sd,
        "town": inputs.townsend,
    }
    return {name: value - c.centres[name] for name, value in raw.items()}


def indicator_flags(inputs: QRISK3Inputs) -> dict[str, float]:
    """0/1 indicators keyed by coefficient name."""
    smoke = SMOKING_CODES[inputs.smoking]
    flags = {
        "AF": inputs.atrial_fibrillation,
        "atypicalantipsy": inputs.atypical_antipsychotics,
        "corticosteroids": inputs.corticosteroids,
        "impotence2": inputs.erectile_dysfunction,
        "migraine": inputs.migraine,
        "ra": inputs.rheumatoid_arthritis,
        "renal": inputs.chronic_kidney_disease,
        "semi": inputs.severe_mental_illness,
        "sle": inputs.sle,
        "treatedhyp": inputs.bp_treated,
        "type1": inputs.diabetes == DiabetesType.TYPE1,
        "type2": inputs.diabetes == DiabetesType.TYPE2,
        "fh_cvd": inputs.family_history,
    }
    for code in range(1, 5):
        flags[f"smoke{code}"] = smoke == code
    return {name: float(value) for name, value in flags.items()}


def qrisk3_linear_predictor(sex: Sex, inputs: QRISK3Inputs) -> float:
    """Sum of all model terms for one patient."""
    c = QRISK3_COEFFICIENTS[sex]
    centred = centred_covariates(sex, inputs)
    flags = indicator_flags(inputs)
    # Interactions draw on both the indicators and the centred covariates
    features = {**flags, **centred}

    a = c.ethnicity[ETHNICITY_CODES[inputs.ethnicity]]
    a += c.smoking[SMOKING_CODES[inputs.smoking]]
    a += sum(coef * centred[name] for name, coef in c.continuous.items())
    a += sum(coef * flags[name] for name, coef in c.boolean.items())
    a += centred["age_1"] * sum(
        coef * features[name] for name, coef in c.age_1_interactions.items()
    )
    a += centred["age_2"] * sum(
        coef * features[name] for name, coef in c.age_2_interactions.items()
    )
    return a


def qrisk3_risk(sex: Sex, inputs: QRISK3Inputs) -> float:
    """10-year risk in percent."""
    c = QRISK3_COEFFICIENTS[sex]
    return 100.0 * (1 - c.survivor ** math.exp(qrisk3_linear_predictor(sex, inputs)))


def healthy_person_inputs(inputs: QRISK3Inputs) -> QRISK3Inputs:
    """Same age, ethnicity and Townsend with BMI 25, SBP 125, ratio 4 and no risk factors."""
    return QRISK3Inputs(
        age=inputs.age,
        bmi=25.0,
        cholesterol_ratio=4.0,
        sbp=125.0,
        townsend=inputs.townsend,
        ethnicity=inputs.ethnicity,
    )
