"""Goal demand model.

Turns a goal's targets into the peak fitness the athlete needs on event
day. Each target contributes a candidate fitness:

- race: distance_base + log_coef * ln(1 + km), plus a pace boost for fast
  target speeds
- pace / power / HR thresholds: fixed per-kind fitness

A tier bias (rank x bias_per_rank) is added to every candidate. Candidates
are aggregated as ``max_share * max + (1 - max_share) * weighted_mean`` so
the hardest target dominates without ignoring the rest. The result is then
scaled for horizon pressure (short horizons need a sharper peak) and
clamped to the calibrated range.
"""

import math
from datetime import date

from plan_engine.planning.calibration import CalibrationConfig, DemandCalibration
from plan_engine.planning.enums import GoalDemandTier, ReadinessBand
from plan_engine.planning.invariants import DAYS_PER_WEEK
from plan_engine.planning.priority import weighted_mean
from plan_engine.planning.schemas.goals import (
    Goal,
    HrThresholdTarget,
    PaceThresholdTarget,
    PowerThresholdTarget,
    RacePerformanceTarget,
)
from plan_engine.planning.schemas.results import GoalDemandProfile

_TIER_RANK: dict[GoalDemandTier, int] = {
    GoalDemandTier.LOW: 0,
    GoalDemandTier.MEDIUM: 1,
    GoalDemandTier.HIGH: 2,
}


def event_week_index(goal: Goal, start_date: date) -> int:
    """Zero-based projection week containing the goal date."""
    return max(0, (goal.target_date - start_date).days // DAYS_PER_WEEK)


def goal_demand_tier(goal: Goal, calibration: DemandCalibration) -> GoalDemandTier:
    """Demand tier from targets: long races are high, threshold work medium."""
    race_km = [target.distance_m / 1000.0 for target in goal.targets if isinstance(target, RacePerformanceTarget)]
    if race_km and max(race_km) >= calibration.high_tier_min_km:
        return GoalDemandTier.HIGH
    if race_km and max(race_km) >= calibration.medium_tier_min_km:
        return GoalDemandTier.MEDIUM
    if any(not isinstance(target, RacePerformanceTarget) for target in goal.targets):
        return GoalDemandTier.MEDIUM
    return GoalDemandTier.LOW


def _candidates(goal: Goal, tier_bias: float, calibration: DemandCalibration) -> list[tuple[float, float]]:
    candidates: list[tuple[float, float]] = []
    for target in goal.targets:
        if isinstance(target, RacePerformanceTarget):
            km = target.distance_m / 1000.0
            kph = km / (target.target_time_s / 3600.0)
            boost = min(
                calibration.pace_boost_max,
                max(0.0, (kph - calibration.pace_reference_kph) * calibration.pace_boost_per_kph),
            )
            fitness = calibration.distance_base_fitness + calibration.distance_log_coefficient * math.log1p(km) + boost
            weight = 1.0 + min(calibration.race_weight_distance_max, km / calibration.race_weight_distance_km)
            if boost > 0:
                weight += calibration.race_paced_bonus
        elif isinstance(target, PaceThresholdTarget):
            fitness, weight = calibration.pace_threshold_fitness, calibration.pace_candidate_weight
        elif isinstance(target, PowerThresholdTarget):
            fitness, weight = calibration.power_threshold_fitness, calibration.power_candidate_weight
        elif isinstance(target, HrThresholdTarget):
            fitness, weight = calibration.hr_threshold_fitness, calibration.hr_candidate_weight
        else:
            raise TypeError(f"Unsupported target type: {type(target).__name__}")
        candidates.append((fitness + tier_bias, weight * target.weight))
    return candidates


def horizon_multiplier(weeks_to_event: float, calibration: DemandCalibration) -> float:
    """Peak sharpening for short horizons; relief for long ones."""
    pressure = (calibration.horizon_reference_weeks - weeks_to_event) / calibration.horizon_reference_weeks
    pressure = min(calibration.horizon_pressure_max, max(calibration.horizon_pressure_min, pressure))
    return 1.0 + pressure * calibration.horizon_multiplier_coefficient


def build_goal_demand_profile(goal: Goal, start_date: date, calibration: CalibrationConfig) -> GoalDemandProfile:
    """Required peak capability for one goal.

    Args:
        goal: Goal to profile
        start_date: Projection start date
        calibration: Engine calibration

    Returns:
        GoalDemandProfile with required peak fitness and steady-state
        weekly load, the event week and the last build week
    """
    params = calibration.demand
    tier = goal_demand_tier(goal, params)
    rank = _TIER_RANK[tier]
    codes: list[str] = []

    candidates = _candidates(goal, rank * params.tier_bias_per_rank, params)
    if candidates:
        peak = max(fitness for fitness, _ in candidates)
        mean = weighted_mean([fitness for fitness, _ in candidates], [weight for _, weight in candidates])
        intrinsic = params.max_share * peak + (1.0 - params.max_share) * mean
        codes.append("demand_from_targets")
    else:
        intrinsic = params.no_target_base_fitness + rank * params.no_target_per_rank
        codes.append("demand_no_targets_default")

    weeks_to_event = max(0.0, (goal.target_date - start_date).days / DAYS_PER_WEEK)
    multiplier = horizon_multiplier(weeks_to_event, params)
    if multiplier > 1.0:
        codes.append("demand_horizon_pressure")

    raw_required = intrinsic * multiplier
    required = min(params.max_required_fitness, max(params.min_required_fitness, raw_required))
    if required != raw_required:
        codes.append("demand_required_fitness_clamped")

    if weeks_to_event >= params.high_confidence_weeks:
        confidence = ReadinessBand.HIGH
    elif weeks_to_event >= params.medium_confidence_weeks:
        confidence = ReadinessBand.MEDIUM
    else:
        confidence = ReadinessBand.LOW

    event_week = event_week_index(goal, start_date)
    return GoalDemandProfile(
        goal_id=goal.id,
        demand_tier=tier,
        intrinsic_fitness=round(intrinsic, 2),
        horizon_multiplier=round(multiplier, 4),
        required_peak_fitness=round(required, 2),
        required_peak_weekly_load=round(required * DAYS_PER_WEEK, 1),
        demand_band_low=round(required * params.demand_band_low_factor, 2),
        demand_band_high=round(required * params.demand_band_high_factor, 2),
        demand_confidence=confidence,
        event_week=event_week,
        build_end_week=max(0, event_week - calibration.projection.taper_weeks - 1),
        rationale_codes=tuple(codes),
    )
