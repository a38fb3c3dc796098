"""Projection feasibility metadata.

Summarizes how well the capped projection can meet the goals' peak
demand, and how hard the caps were pressing:

- load_state: demand fulfillment, penalized by clamp pressure
- intensity_balance: headroom left by the caps
- specificity: demand fulfillment with a small headroom credit
- execution_confidence: evidence confidence with a headroom credit

The components blend into a readiness score (0-100) and a band. This is
projection-level context; the independent difficulty classifier is the GDI.
"""

from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.enums import ReadinessBand
from plan_engine.planning.projection import ProjectionResult
from plan_engine.planning.readiness import clamp01
from plan_engine.planning.schemas.results import FeasibilityState, ReadinessComponents


def compute_feasibility(projection: ProjectionResult, confidence: float, calibration: CalibrationConfig) -> FeasibilityState:
    """Feasibility state of a projection.

    Args:
        projection: Projection result
        confidence: Evidence confidence from the bootstrapped state
        calibration: Engine calibration

    Returns:
        FeasibilityState with readiness score, band, limiters and
        uncertainty
    """
    params = calibration.feasibility
    summary = projection.constraint_summary
    weeks_count = max(1, len(projection.weeks))

    required = max((profile.required_peak_weekly_load for profile in projection.demand_model), default=0.0)
    feasible = summary.max_applied_load
    unmet = max(0.0, round(required - feasible, 1))
    unmet_ratio = 0.0 if required <= 0 else round(unmet / required, 3)
    clamp_pressure = clamp01((summary.pct_cap_clamp_weeks + summary.ctl_cap_clamp_weeks) / weeks_count)
    fulfillment = 1.0 if required <= 0 else clamp01(feasible / required)
    confidence = clamp01(confidence)

    load_state = clamp01(fulfillment * 0.75 + (1 - unmet_ratio) * 0.25 - clamp_pressure * 0.35)
    intensity_balance = clamp01(1 - clamp_pressure * 0.7 - min(0.12, summary.pct_cap_clamp_weeks * 0.04))
    specificity = clamp01(fulfillment * 0.85 + (1 - clamp_pressure) * 0.15)
    execution_confidence = clamp01(confidence * 0.8 + (1 - clamp_pressure) * 0.2)

    total_weight = (
        params.load_state_weight
        + params.intensity_balance_weight
        + params.specificity_weight
        + params.execution_confidence_weight
    )
    readiness_score = int(
        round(
            100
            * (
                load_state * params.load_state_weight
                + intensity_balance * params.intensity_balance_weight
                + specificity * params.specificity_weight
                + execution_confidence * params.execution_confidence_weight
            )
            / total_weight
        )
    )
    readiness_score = min(100, max(0, readiness_score))

    if readiness_score >= params.high_band_min:
        band = ReadinessBand.HIGH
    elif readiness_score >= params.medium_band_min:
        band = ReadinessBand.MEDIUM
    else:
        band = ReadinessBand.LOW

    limiters: list[str] = []
    if unmet > 0:
        limiters.append("required_growth_exceeds_caps")
    if summary.pct_cap_clamp_weeks > 0:
        limiters.append("load_ramp_cap_pressure")
    if summary.ctl_cap_clamp_weeks > 0:
        limiters.append("fitness_ramp_cap_pressure")
    if confidence < params.low_confidence_limiter_below:
        limiters.append("low_evidence_confidence")

    codes: list[str] = []
    if fulfillment < 0.85:
        codes.append("readiness_penalty_demand_gap")
    if clamp_pressure > 0.15:
        codes.append("readiness_penalty_clamp_pressure")
    if confidence >= 0.75:
        codes.append("readiness_credit_evidence_confidence_high")

    uncertainty = min(
        params.uncertainty_max,
        max(
            params.uncertainty_min,
            params.uncertainty_base
            + (1 - confidence) * params.uncertainty_confidence_coefficient
            + clamp_pressure * params.uncertainty_clamp_coefficient,
        ),
    )

    return FeasibilityState(
        readiness_score=readiness_score,
        readiness_band=band,
        components=ReadinessComponents(
            load_state=round(load_state, 3),
            intensity_balance=round(intensity_balance, 3),
            specificity=round(specificity, 3),
            execution_confidence=round(execution_confidence, 3),
        ),
        required_peak_weekly_load=round(required, 1),
        feasible_peak_weekly_load=round(feasible, 1),
        unmet_weekly_load=unmet,
        unmet_ratio=unmet_ratio,
        dominant_limiters=tuple(limiters),
        uncertainty_pct=round(uncertainty, 4),
        rationale_codes=tuple(codes),
    )
