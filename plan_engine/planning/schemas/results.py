"""Engine output models.

All results are frozen. Scores on the target level are integers 0-100;
goal and plan scores are floats 0-1.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from plan_engine.planning.enums import (
    ConflictCategory,
    ConflictSeverity,
    FeasibilityBand,
    GoalDemandTier,
    OverrideReason,
    PriorityTier,
    ReadinessBand,
    StateSource,
    TargetKind,
    WeekPattern,
)


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---- State ----


class StateSnapshot(_Result):
    """Bootstrapped starting state, threaded through every projection week.

    Attributes:
        fitness: CTL-equivalent
        fatigue: ATL-equivalent
        form: fitness - fatigue
        readiness: Point readiness 0-100
        confidence: Evidence confidence 0-1 (continuous)
        evidence_quality: Data quality of the evidence 0-1
        source: How fitness was obtained
        recency_days: Days between the last activity and as_of, if known
        rationale_codes: Machine tokens describing the derivation
    """

    fitness: float
    fatigue: float
    form: float
    readiness: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=1)
    evidence_quality: float = Field(ge=0, le=1)
    source: StateSource
    recency_days: int | None = None
    rationale_codes: tuple[str, ...] = ()


# ---- Projection ----


class GoalDemandProfile(_Result):
    """Required peak capability of one goal, expressed as fitness and load."""

    goal_id: str
    demand_tier: GoalDemandTier
    intrinsic_fitness: float
    horizon_multiplier: float
    required_peak_fitness: float
    required_peak_weekly_load: float
    demand_band_low: float
    demand_band_high: float
    demand_confidence: ReadinessBand
    event_week: int
    build_end_week: int
    rationale_codes: tuple[str, ...] = ()


class ProjectionWeek(_Result):
    """One simulated week.

    Attributes:
        index: Zero-based week index
        week_start: First day of the week
        pattern: Load rhythm for the week
        block_name: Plan block covering the week, if any
        block_baseline: Load from block structure after the pattern multiplier
        adaptation_floor: Load needed to keep adapting from current fitness
        demand_floor: Load needed to stay on pace for the upcoming goal peak
        requested_load: max(block_baseline, adaptation_floor, demand_floor)
        pct_cap_load: Ceiling from the weekly load ramp percentage cap
        ctl_cap_load: Ceiling from the weekly fitness ramp cap
        applied_load: Load after both caps
        fitness: Fitness at the end of the week
        fatigue: Fatigue at the end of the week
        form: Form at the end of the week
        fitness_ramp: Fitness change over the week
        pct_cap_clamped: Whether the percentage cap bound
        ctl_cap_clamped: Whether the fitness ramp cap bound
        demand_gap: max(0, demand_floor - applied_load)
        override_reason: Dominant reason applied load differs from baseline
        recovery_goal_ids: Goals whose recovery window covers this week
    """

    index: int
    week_start: date
    pattern: WeekPattern
    pattern_multiplier: float
    block_name: str | None = None
    block_baseline: float
    adaptation_floor: float
    demand_floor: float
    requested_load: float
    pct_cap_load: float
    ctl_cap_load: float
    applied_load: float
    fitness: float
    fatigue: float
    form: float
    fitness_ramp: float
    pct_cap_clamped: bool
    ctl_cap_clamped: bool
    demand_gap: float
    override_reason: OverrideReason
    recovery_goal_ids: tuple[str, ...] = ()


class GoalMarker(_Result):
    goal_id: str
    target_date: date
    week_index: int
    priority: float
    tier: PriorityTier
    required_peak_fitness: float
    projected_fitness: float
    projected_fatigue: float
    projected_readiness: int
    fitness_gap: float
    demand_gap: float


class ConstraintSummary(_Result):
    max_weekly_load_ramp_pct: float
    max_ctl_ramp_per_week: float
    post_goal_recovery_days: int
    pct_cap_clamp_weeks: int
    ctl_cap_clamp_weeks: int
    recovery_weeks: int
    max_requested_load: float
    max_applied_load: float


class ReadinessComponents(_Result):
    load_state: float
    intensity_balance: float
    specificity: float
    execution_confidence: float


class FeasibilityState(_Result):
    """Projection-level feasibility derived from caps and demand."""

    readiness_score: int = Field(ge=0, le=100)
    readiness_band: ReadinessBand
    components: ReadinessComponents
    required_peak_weekly_load: float
    feasible_peak_weekly_load: float
    unmet_weekly_load: float
    unmet_ratio: float
    dominant_limiters: tuple[str, ...] = ()
    uncertainty_pct: float
    rationale_codes: tuple[str, ...] = ()


class ProjectionChart(_Result):
    weeks: tuple[ProjectionWeek, ...]
    goal_markers: tuple[GoalMarker, ...]
    constraint_summary: ConstraintSummary
    feasibility: FeasibilityState
    inferred_state: StateSnapshot
    demand_model: tuple[GoalDemandProfile, ...]


# ---- Scoring ----


class TargetSatisfactionResult(_Result):
    """Attainment score of one target.

    Attributes:
        kind: Target variant
        score: Integer 0-100 (probability x demand penalty)
        weight: Declared target weight (default 1)
        unmet_gap: Shortfall of the projected value in the target's unit,
            None when the target is met
        projected_value: Mean of the projected distribution
        target_value: Threshold the projection is compared against
        probability: P(projection satisfies target)
        demand_penalty: Discount for physiologically implausible targets
        rationale_codes: Machine tokens explaining the score
    """

    kind: TargetKind
    score: int = Field(ge=0, le=100)
    weight: float
    unmet_gap: float | None = None
    projected_value: float
    target_value: float
    probability: float = Field(ge=0, le=1)
    demand_penalty: float = Field(ge=0, le=1)
    rationale_codes: tuple[str, ...] = ()


class GoalAssessmentResult(_Result):
    goal_id: str
    priority: float
    tier: PriorityTier
    priority_weight: float
    score: float = Field(ge=0, le=1)
    target_results: tuple[TargetSatisfactionResult, ...] = ()
    conflict_notes: tuple[str, ...] = ()
    rationale_codes: tuple[str, ...] = ()


class TierSummary(_Result):
    mean: float | None = None
    count: int = 0


class PlanScoreResult(_Result):
    score: float = Field(ge=0, le=1)
    tiers: dict[PriorityTier, TierSummary]


# ---- GDI ----


class GdiComponents(_Result):
    performance_gap: float = Field(ge=0, le=1)
    load_gap: float = Field(ge=0, le=1)
    timeline_pressure: float = Field(ge=0, le=1)
    sparsity_penalty: float = Field(ge=0, le=1)


class GdiResult(_Result):
    goal_id: str
    components: GdiComponents
    index: float = Field(ge=0, le=1)
    band: FeasibilityBand
    rationale_codes: tuple[str, ...] = ()


class PlanGdiResult(_Result):
    index: float = Field(ge=0, le=1)
    band: FeasibilityBand
    goals: tuple[GdiResult, ...]


# ---- Conflicts ----


class ConflictItem(_Result):
    """A blocking or advisory issue found in the plan.

    Attributes:
        code: Stable machine code
        severity: blocking or warning
        category: Override scope; invariant conflicts are never overridable
        overridable: Whether an override policy may clear this conflict
        message: Human-readable summary
        field_paths: Request fields implicated
        suggestions: Suggested remediations
        goal_ids: Goals implicated
    """

    code: str
    severity: ConflictSeverity
    category: ConflictCategory
    overridable: bool
    message: str
    field_paths: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()
    goal_ids: tuple[str, ...] = ()
