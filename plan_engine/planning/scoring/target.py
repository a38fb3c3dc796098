"""Target satisfaction scoring.

Each target is compared against a projected value:

- race_performance: finish time, lower is better
- pace_threshold: speed (m/s), higher is better
- power_threshold: watts, higher is better
- hr_threshold: lactate threshold heart rate, higher is better

The projected value is taken from a matching capability observation when
one exists (race results scaled to the target distance with Riegel's
exponent, then improved by the projected fitness gain). Otherwise it is
inferred from event readiness with a monotone map onto the activity's
plausibility ceiling:

    value = ceiling * (floor + (1 - floor) * (readiness / 100) ** shape)

The projection is a normal distribution with mean = projected value and

    sigma = mean * noise * (1 + spread_k * (1 - confidence)) * inferred_multiplier

Score = P(target satisfied) * demand_penalty, rounded to 0-100, where

    demand_penalty = 1 / (1 + k * (ratio - 1) ** 2)    for ratio > 1, else 1

and ratio is the demanded output over the plausibility ceiling.
"""

import math
from dataclasses import dataclass

from plan_engine.planning.calibration import CalibrationConfig, ScoringCalibration
from plan_engine.planning.enums import Activity, TargetKind
from plan_engine.planning.readiness import clamp01
from plan_engine.planning.schemas.evidence import CapabilityObservation
from plan_engine.planning.schemas.goals import (
    HrThresholdTarget,
    PaceThresholdTarget,
    PowerThresholdTarget,
    RacePerformanceTarget,
    Target,
)
from plan_engine.planning.schemas.results import TargetSatisfactionResult


@dataclass(frozen=True)
class ScoringContext:
    """Everything about the athlete a target score may depend on.

    Attributes:
        start_fitness: Fitness at the start of the projection
        event_fitness: Projected fitness entering the event week
        event_readiness: Projected readiness entering the event week
        confidence: Evidence confidence
        capabilities: Measured capabilities from the evidence summary
    """

    start_fitness: float
    event_fitness: float
    event_readiness: int
    confidence: float
    capabilities: tuple[CapabilityObservation, ...] = ()


@dataclass(frozen=True)
class Projection:
    value: float
    inferred: bool


def normal_cdf(z: float) -> float:
    """Standard normal cumulative distribution function."""
    return 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))


def demand_penalty(ratio: float, k: float) -> float:
    """Discount for targets demanding more than the plausibility ceiling."""
    if ratio <= 1.0:
        return 1.0
    return 1.0 / (1.0 + k * (ratio - 1.0) ** 2)


def speed_ceiling(activity: Activity, distance_m: float | None, calibration: ScoringCalibration) -> float:
    """Plausible maximum sustained speed (m/s) for an activity and distance."""
    reference = calibration.plausibility[activity]
    if distance_m is None:
        return reference.reference_speed_mps
    return reference.reference_speed_mps * (reference.reference_distance_m / distance_m) ** calibration.speed_ceiling_exponent


def readiness_fraction(readiness: float, floor_fraction: float, calibration: ScoringCalibration) -> float:
    """Monotone map from readiness (0-100) to a fraction of the ceiling."""
    normalized = clamp01(readiness / 100.0)
    return floor_fraction + (1.0 - floor_fraction) * normalized**calibration.inference_shape


def fitness_gain_factor(context: ScoringContext, calibration: ScoringCalibration) -> float:
    """Relative capability improvement from projected fitness gain."""
    gain = max(0.0, context.event_fitness - context.start_fitness)
    return min(calibration.fitness_gain_max, gain * calibration.fitness_gain_sensitivity)


def _latest_first(observation: CapabilityObservation) -> tuple[int, float]:
    ordinal = observation.observed_on.toordinal() if observation.observed_on is not None else 0
    return (-ordinal, -observation.value)


def _pick_race_observation(target: RacePerformanceTarget, capabilities: tuple[CapabilityObservation, ...]) -> CapabilityObservation | None:
    candidates = [
        observation
        for observation in capabilities
        if observation.kind == TargetKind.RACE_PERFORMANCE
        and observation.activity == target.activity
        and observation.distance_m is not None
    ]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda observation: (abs(math.log(observation.distance_m / target.distance_m)), *_latest_first(observation)),
    )


def _pick_observation(kind: TargetKind, activity: Activity | None, capabilities: tuple[CapabilityObservation, ...]) -> CapabilityObservation | None:
    candidates = [
        observation
        for observation in capabilities
        if observation.kind == kind and (activity is None or observation.activity == activity)
    ]
    if not candidates:
        return None
    return min(candidates, key=_latest_first)


def project_target_value(target: Target, context: ScoringContext, calibration: ScoringCalibration) -> Projection:
    """Mean projected value for a target, observed or inferred."""
    gain = fitness_gain_factor(context, calibration)
    fraction = readiness_fraction(context.event_readiness, calibration.inference_floor_fraction, calibration)

    if isinstance(target, RacePerformanceTarget):
        observation = _pick_race_observation(target, context.capabilities)
        if observation is not None and observation.distance_m is not None:
            scaled = observation.value * (target.distance_m / observation.distance_m) ** calibration.riegel_exponent
            return Projection(value=scaled * (1.0 - gain), inferred=False)
        speed = speed_ceiling(target.activity, target.distance_m, calibration) * fraction
        return Projection(value=target.distance_m / speed, inferred=True)

    if isinstance(target, PaceThresholdTarget):
        observation = _pick_observation(TargetKind.PACE_THRESHOLD, target.activity, context.capabilities)
        if observation is not None:
            return Projection(value=observation.value * (1.0 + gain), inferred=False)
        return Projection(value=speed_ceiling(target.activity, None, calibration) * fraction, inferred=True)

    if isinstance(target, PowerThresholdTarget):
        observation = _pick_observation(TargetKind.POWER_THRESHOLD, target.activity, context.capabilities)
        if observation is not None:
            return Projection(value=observation.value * (1.0 + gain), inferred=False)
        return Projection(value=calibration.power_ceiling_watts * fraction, inferred=True)

    if isinstance(target, HrThresholdTarget):
        # Threshold heart rate barely moves with fitness; no gain applied
        observation = _pick_observation(TargetKind.HR_THRESHOLD, None, context.capabilities)
        if observation is not None:
            return Projection(value=observation.value, inferred=False)
        hr_fraction = readiness_fraction(context.event_readiness, calibration.hr_inference_floor_fraction, calibration)
        return Projection(value=calibration.hr_ceiling_bpm * hr_fraction, inferred=True)

    raise TypeError(f"Unsupported target type: {type(target).__name__}")


def _target_terms(target: Target, calibration: ScoringCalibration) -> tuple[float, bool, float, float]:
    """(target value, lower_is_better, noise, demand ratio) for a target."""
    if isinstance(target, RacePerformanceTarget):
        demanded_speed = target.distance_m / target.target_time_s
        ratio = demanded_speed / speed_ceiling(target.activity, target.distance_m, calibration)
        return target.target_time_s, True, calibration.race_noise, ratio
    if isinstance(target, PaceThresholdTarget):
        ratio = target.target_speed_mps / speed_ceiling(target.activity, None, calibration)
        return target.target_speed_mps, False, calibration.pace_noise, ratio
    if isinstance(target, PowerThresholdTarget):
        return target.target_watts, False, calibration.power_noise, target.target_watts / calibration.power_ceiling_watts
    if isinstance(target, HrThresholdTarget):
        return target.target_lthr_bpm, False, calibration.hr_noise, target.target_lthr_bpm / calibration.hr_ceiling_bpm
    raise TypeError(f"Unsupported target type: {type(target).__name__}")


def score_target(target: Target, context: ScoringContext, calibration: CalibrationConfig) -> TargetSatisfactionResult:
    """Score one target against its projected distribution.

    Args:
        target: Target to score
        context: Athlete context for the goal
        calibration: Engine calibration

    Returns:
        TargetSatisfactionResult with an integer score in [0, 100]
    """
    params = calibration.scoring
    target_value, lower_is_better, noise, ratio = _target_terms(target, params)
    projection = project_target_value(target, context, params)
    confidence = clamp01(context.confidence)

    sigma = abs(projection.value) * noise * (1.0 + params.confidence_spread_k * (1.0 - confidence))
    if projection.inferred:
        sigma *= params.inferred_spread_multiplier

    if lower_is_better:
        margin = target_value - projection.value
    else:
        margin = projection.value - target_value
    probability = normal_cdf(margin / sigma) if sigma > 0 else (1.0 if margin >= 0 else 0.0)
    penalty = demand_penalty(ratio, params.demand_penalty_k)
    score = min(100, max(0, int(round(100.0 * probability * penalty))))

    codes = ["projection_inferred" if projection.inferred else "projection_observed"]
    if ratio > 1.0:
        codes.append("demand_above_plausible_cap")
    met = margin >= 0
    codes.append("target_met_or_exceeded" if met else "target_unmet")
    if confidence < calibration.bootstrap.low_confidence_below:
        codes.append("low_evidence_confidence")

    return TargetSatisfactionResult(
        kind=TargetKind(target.kind),
        score=score,
        weight=target.weight,
        unmet_gap=None if met else round(-margin, 3),
        projected_value=round(projection.value, 3),
        target_value=target_value,
        probability=round(clamp01(probability), 6),
        demand_penalty=round(penalty, 6),
        rationale_codes=tuple(codes),
    )
