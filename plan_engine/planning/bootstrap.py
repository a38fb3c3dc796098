"""State bootstrapper.

Derives the starting fitness/fatigue/form state and an evidence confidence
from the EvidenceSummary. Confidence is a continuous function of freshness,
sample count and data quality:

    freshness  = 0.5 ** (recency_days / half_life)
    samples    = 1 - exp(-activity_count_28d / saturation)
    confidence = freshness * samples * (q0 + (1 - q0) * data_quality)

There are no discrete evidence modes: ``history_state`` is carried as a
hint from the collaborator and never branches behaviour.

Fitness resolution order:
1. Explicit starting-state override
2. Upstream fitness estimate, decayed over the recency gap
3. 28-day weekly load average / 7, decayed over the recency gap
4. Zero ("never trained")

The bootstrapper never raises on missing or partial evidence.
"""

import math
from datetime import date

from plan_engine.metrics.training_load import decay_state
from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.enums import StateSource
from plan_engine.planning.readiness import clamp01, point_readiness
from plan_engine.planning.schemas.evidence import EvidenceSummary, StartingStateOverride
from plan_engine.planning.schemas.results import StateSnapshot


def _recency_days(evidence: EvidenceSummary, as_of: date) -> int | None:
    if evidence.last_activity_date is None:
        return None
    return max(0, (as_of - evidence.last_activity_date).days)


def evidence_confidence(evidence: EvidenceSummary, as_of: date, calibration: CalibrationConfig) -> float:
    """Continuous evidence confidence in [0, 1].

    Zero when there is no recency information or no samples; decays
    smoothly as evidence ages and as samples thin out.
    """
    recency = _recency_days(evidence, as_of)
    if recency is None:
        return 0.0

    params = calibration.bootstrap
    freshness = 0.5 ** (recency / params.recency_half_life_days)
    samples = 1.0 - math.exp(-evidence.activity_count_28d / params.sample_saturation)
    quality = params.quality_floor + (1.0 - params.quality_floor) * evidence.data_quality
    return clamp01(freshness * samples * quality)


def bootstrap_state(
    evidence: EvidenceSummary,
    as_of: date,
    calibration: CalibrationConfig,
    override: StartingStateOverride | None = None,
) -> StateSnapshot:
    """Build the starting StateSnapshot.

    Args:
        evidence: Evidence summary (possibly empty)
        as_of: Reference date for recency
        calibration: Engine calibration
        override: Optional explicit starting fitness/fatigue

    Returns:
        A valid StateSnapshot; low confidence when evidence is weak
    """
    params = calibration.bootstrap
    ctl_tau = calibration.load_model.fitness_time_constant_days
    atl_tau = calibration.load_model.fatigue_time_constant_days
    codes: list[str] = []

    recency = _recency_days(evidence, as_of)
    confidence = evidence_confidence(evidence, as_of, calibration)

    if evidence.last_activity_date is not None and evidence.last_activity_date > as_of:
        codes.append("evidence_after_as_of")

    # Fitness
    if override is not None and override.fitness is not None:
        fitness = override.fitness
        source = StateSource.OVERRIDE
        codes.append("starting_fitness_override")
    elif recency is not None and evidence.fitness_estimate is not None:
        fitness = decay_state(evidence.fitness_estimate, recency, ctl_tau)
        source = StateSource.EVIDENCE
        codes.append("fitness_from_estimate")
    elif recency is not None and evidence.weekly_load_avg_28d is not None:
        fitness = decay_state(evidence.weekly_load_avg_28d / 7.0, recency, ctl_tau)
        source = StateSource.EVIDENCE
        codes.append("fitness_from_weekly_load")
    else:
        fitness = 0.0
        source = StateSource.NEVER_TRAINED
        codes.append("no_usable_evidence")

    # Fatigue
    if override is not None and override.fatigue is not None:
        fatigue = override.fatigue
        codes.append("starting_fatigue_override")
    elif recency is not None and evidence.fatigue_estimate is not None:
        fatigue = decay_state(evidence.fatigue_estimate, recency, atl_tau)
    elif recency is not None and evidence.weekly_load_avg_7d is not None:
        fatigue = decay_state(evidence.weekly_load_avg_7d / 7.0, recency, atl_tau)
    else:
        fatigue = fitness
        if source != StateSource.NEVER_TRAINED:
            codes.append("fatigue_assumed_balanced")

    if recency is not None and recency > params.recency_half_life_days:
        codes.append("evidence_stale")
    if 0 < evidence.activity_count_28d < params.sample_saturation:
        codes.append("evidence_sparse")
    if confidence < params.low_confidence_below:
        codes.append("low_evidence_confidence")

    evidence_quality = evidence.data_quality if evidence.activity_count_28d > 0 else 0.0
    fitness = round(fitness, 2)
    fatigue = round(fatigue, 2)

    return StateSnapshot(
        fitness=fitness,
        fatigue=fatigue,
        form=round(fitness - fatigue, 2),
        readiness=point_readiness(fitness, fatigue, params),
        confidence=round(confidence, 4),
        evidence_quality=round(evidence_quality, 4),
        source=source,
        recency_days=recency,
        rationale_codes=tuple(codes),
    )
