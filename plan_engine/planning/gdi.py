"""Goal Difficulty Index.

An independent feasibility classifier; it does not reuse attainment
scores. Per goal:

    gdi = 0.45 * performance_gap + 0.35 * load_gap
        + 0.20 * timeline_pressure + sparsity_penalty

Each component is clamped to [0, 1] and so is the composite.

- performance_gap: mean relative shortfall of *current* capability versus
  each target, over a full-scale shortfall
- load_gap: unmet share of the required peak fitness at the event
- timeline_pressure: 1 - available_weeks / needed_weeks, where needed weeks
  is the larger of the ramp time at the fitness cap and the tier minimum
- sparsity_penalty: sparsity_max * (1 - confidence)

Bands are fixed: <0.30 feasible, <0.50 stretch, <0.75 aggressive,
<0.95 nearly_impossible, else infeasible.

A goal whose projected event fitness falls short of its required peak is
floored at 0.30, so a demand gap is never reported as feasible. A plan with
any such goal is floored the same way.
"""

from datetime import date

from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.enums import FeasibilityBand
from plan_engine.planning.invariants import (
    DAYS_PER_WEEK,
    GDI_AGGRESSIVE_BELOW,
    GDI_FEASIBLE_BELOW,
    GDI_NEARLY_IMPOSSIBLE_BELOW,
    GDI_STRETCH_BELOW,
)
from plan_engine.planning.priority import priority_weight, weighted_mean
from plan_engine.planning.readiness import clamp01
from plan_engine.planning.schemas.goals import Goal, HrThresholdTarget, PaceThresholdTarget, PowerThresholdTarget, RacePerformanceTarget
from plan_engine.planning.schemas.results import (
    GdiComponents,
    GdiResult,
    GoalDemandProfile,
    GoalMarker,
    PlanGdiResult,
    StateSnapshot,
)
from plan_engine.planning.scoring.target import ScoringContext, project_target_value

DEMAND_GAP_FLOOR_CODE = "demand_gap_unmet"


def feasibility_band(index: float) -> FeasibilityBand:
    """Map a GDI value to its fixed band."""
    if index < GDI_FEASIBLE_BELOW:
        return FeasibilityBand.FEASIBLE
    if index < GDI_STRETCH_BELOW:
        return FeasibilityBand.STRETCH
    if index < GDI_AGGRESSIVE_BELOW:
        return FeasibilityBand.AGGRESSIVE
    if index < GDI_NEARLY_IMPOSSIBLE_BELOW:
        return FeasibilityBand.NEARLY_IMPOSSIBLE
    return FeasibilityBand.INFEASIBLE


def performance_gap(goal: Goal, current: ScoringContext, calibration: CalibrationConfig) -> float:
    """Weighted relative shortfall of current capability, scaled to [0, 1]."""
    if not goal.targets:
        return 0.0

    shortfalls: list[float] = []
    weights: list[float] = []
    for target in goal.targets:
        projected = project_target_value(target, current, calibration.scoring).value
        if isinstance(target, RacePerformanceTarget):
            # Compare as speeds: shortfall = 1 - current_speed / required_speed
            shortfall = 1.0 - target.target_time_s / projected
        elif isinstance(target, PaceThresholdTarget):
            shortfall = 1.0 - projected / target.target_speed_mps
        elif isinstance(target, PowerThresholdTarget):
            shortfall = 1.0 - projected / target.target_watts
        elif isinstance(target, HrThresholdTarget):
            shortfall = 1.0 - projected / target.target_lthr_bpm
        else:
            raise TypeError(f"Unsupported target type: {type(target).__name__}")
        shortfalls.append(max(0.0, shortfall))
        weights.append(target.weight)

    return clamp01(weighted_mean(shortfalls, weights) / calibration.gdi.performance_gap_full_scale)


def timeline_pressure(
    profile: GoalDemandProfile,
    start_fitness: float,
    start_date: date,
    target_date: date,
    max_ctl_ramp_per_week: float,
    calibration: CalibrationConfig,
) -> float:
    """Share of the needed build time that the horizon does not provide."""
    available_weeks = max(0.0, (target_date - start_date).days / DAYS_PER_WEEK)
    fitness_needed = max(0.0, profile.required_peak_fitness - start_fitness)
    if fitness_needed <= 0:
        ramp_weeks = 0.0
    elif max_ctl_ramp_per_week <= 0:
        return 1.0
    else:
        ramp_weeks = fitness_needed / max_ctl_ramp_per_week
    needed_weeks = max(ramp_weeks, float(calibration.gdi.min_build_weeks[profile.demand_tier]))
    if needed_weeks <= 0:
        return 0.0
    return clamp01(1.0 - available_weeks / needed_weeks)


def compute_goal_gdi(
    goal: Goal,
    profile: GoalDemandProfile,
    marker: GoalMarker,
    state: StateSnapshot,
    start_date: date,
    max_ctl_ramp_per_week: float,
    capabilities_context: ScoringContext,
    calibration: CalibrationConfig,
) -> GdiResult:
    """GDI for one goal.

    Args:
        goal: Goal to classify
        profile: Goal demand profile
        marker: Projection marker at the goal's event
        state: Bootstrapped starting state
        start_date: Projection start date
        max_ctl_ramp_per_week: Normalized fitness ramp cap
        capabilities_context: Scoring context describing current capability
        calibration: Engine calibration

    Returns:
        GdiResult with components, index and band
    """
    params = calibration.gdi
    required = profile.required_peak_fitness

    components = GdiComponents(
        performance_gap=round(performance_gap(goal, capabilities_context, calibration), 6),
        load_gap=round(clamp01((required - marker.projected_fitness) / required) if required > 0 else 0.0, 6),
        timeline_pressure=round(
            timeline_pressure(profile, state.fitness, start_date, goal.target_date, max_ctl_ramp_per_week, calibration),
            6,
        ),
        sparsity_penalty=round(clamp01(params.sparsity_max * (1.0 - state.confidence)), 6),
    )
    index = clamp01(
        params.performance_weight * components.performance_gap
        + params.load_weight * components.load_gap
        + params.timeline_weight * components.timeline_pressure
        + components.sparsity_penalty
    )
    codes: list[str] = []
    if marker.fitness_gap > 0:
        # an unmet demand is never classified feasible
        index = max(index, GDI_FEASIBLE_BELOW)
        codes.append(DEMAND_GAP_FLOOR_CODE)
    index = round(index, 6)
    return GdiResult(
        goal_id=goal.id,
        components=components,
        index=index,
        band=feasibility_band(index),
        rationale_codes=tuple(codes),
    )


def compute_plan_gdi(goals: tuple[Goal, ...], results: list[GdiResult], calibration: CalibrationConfig) -> PlanGdiResult:
    """Priority-weighted plan GDI using the shared weight function."""
    weights = [priority_weight(goal.priority, calibration.priority) for goal in goals]
    index = clamp01(weighted_mean([result.index for result in results], weights))
    if any(DEMAND_GAP_FLOOR_CODE in result.rationale_codes for result in results):
        index = max(index, GDI_FEASIBLE_BELOW)
    index = round(index, 6)
    return PlanGdiResult(index=index, band=feasibility_band(index), goals=tuple(results))
