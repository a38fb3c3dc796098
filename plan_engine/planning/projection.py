"""Weekly projection engine.

For every week t the engine composes a requested load

    requested = max(block_baseline(t), adaptation_floor(t), demand_floor(t))

and clamps it through two hard caps in a fixed order:

    1. weekly load ramp %:   pct_cap = floor1(prev_applied * (1 + pct / 100))
    2. weekly fitness ramp:  ctl_cap = floor1(largest load whose one-week
                                               fitness increase == cap)

    applied = min(requested, pct_cap, ctl_cap)

Both ceilings are rounded down to 0.1 so rounding can never push applied
load past a cap. The first week's percentage cap is taken relative to the
ramp reference ``max(7 * starting_fitness, baseline_weekly_load)``.

demand_floor(t) is the load that moves fitness onto a straight line from the
starting fitness to each upcoming goal's required peak, reached at the end
of that goal's last build week. It is zero in taper, recovery and event
weeks. Whatever the caps refuse is reported as demand_gap; it is never
dropped and never raised.
"""

import math
from dataclasses import dataclass
from datetime import timedelta

from plan_engine.metrics.training_load import max_weekly_load_for_ramp, step_state, weekly_load_for_target
from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.demand import build_goal_demand_profile
from plan_engine.planning.enums import OverrideReason, WeekPattern
from plan_engine.planning.errors import InvariantViolationError
from plan_engine.planning.invariants import CAP_TOLERANCE, DAYS_PER_WEEK
from plan_engine.planning.logging import log_invariant_failure
from plan_engine.planning.priority import priority_tier
from plan_engine.planning.readiness import point_readiness
from plan_engine.planning.schemas.creation import NormalizedCreationConfig
from plan_engine.planning.schemas.goals import MinimalPlan
from plan_engine.planning.schemas.results import (
    ConstraintSummary,
    GoalDemandProfile,
    GoalMarker,
    ProjectionWeek,
    StateSnapshot,
)
from plan_engine.planning.week_pattern import recovery_windows, resolve_week_context


@dataclass(frozen=True)
class ProjectionResult:
    """Weeks plus the per-goal and per-plan summaries derived from them."""

    weeks: tuple[ProjectionWeek, ...]
    goal_markers: tuple[GoalMarker, ...]
    constraint_summary: ConstraintSummary
    demand_model: tuple[GoalDemandProfile, ...]


def floor1(value: float) -> float:
    """Round down to one decimal."""
    return math.floor(value * 10.0) / 10.0


def horizon_weeks(plan: MinimalPlan) -> int:
    """Number of whole weeks from start_date through the resolved end date."""
    return (plan.resolved_end_date - plan.start_date).days // DAYS_PER_WEEK + 1


def _demand_floor(
    week_index: int,
    fitness_prev: float,
    start_fitness: float,
    profiles: tuple[GoalDemandProfile, ...],
    fitness_tau: float,
) -> float:
    floor = 0.0
    for profile in profiles:
        if week_index > profile.build_end_week or week_index >= profile.event_week:
            continue
        progress = (week_index + 1) / (profile.build_end_week + 1)
        target_fitness = start_fitness + (profile.required_peak_fitness - start_fitness) * progress
        floor = max(floor, weekly_load_for_target(fitness_prev, target_fitness, fitness_tau))
    return floor


def _override_reason(
    pattern: WeekPattern,
    clamped: bool,
    block_baseline: float,
    adaptation_floor: float,
    demand_floor: float,
) -> OverrideReason:
    if clamped:
        return OverrideReason.RAMP_CAP
    if pattern == WeekPattern.RECOVERY:
        return OverrideReason.RECOVERY
    if demand_floor > max(block_baseline, adaptation_floor):
        return OverrideReason.DEMAND_FLOOR
    if adaptation_floor > block_baseline:
        return OverrideReason.ADAPTATION_FLOOR
    return OverrideReason.NONE


def assert_caps_respected(weeks: tuple[ProjectionWeek, ...], config: NormalizedCreationConfig) -> None:
    """Re-verify both ramp caps on every projected week.

    Raises:
        InvariantViolationError: If any week's applied load or fitness ramp
            exceeds its cap
    """
    violations: list[str] = []
    for week in weeks:
        if week.applied_load > week.pct_cap_load + CAP_TOLERANCE:
            violations.append(f"week {week.index}: applied {week.applied_load} > pct cap {week.pct_cap_load}")
        if week.applied_load > week.ctl_cap_load + CAP_TOLERANCE:
            violations.append(f"week {week.index}: applied {week.applied_load} > fitness ramp cap load {week.ctl_cap_load}")
        if week.fitness_ramp > config.max_ctl_ramp_per_week + CAP_TOLERANCE:
            violations.append(f"week {week.index}: fitness ramp {week.fitness_ramp} > {config.max_ctl_ramp_per_week}")
    if violations:
        err = InvariantViolationError("CAP_INVARIANT_VIOLATED", violations)
        log_invariant_failure(err, {"weeks": len(weeks), "violations": len(violations)})
        raise err


def project_plan(
    plan: MinimalPlan,
    config: NormalizedCreationConfig,
    state: StateSnapshot,
    calibration: CalibrationConfig,
) -> ProjectionResult:
    """Simulate the plan week by week under the ramp caps.

    Args:
        plan: Plan shape (dates, blocks, goals)
        config: Normalized creation config (caps, baseline, recovery days)
        state: Bootstrapped starting state
        calibration: Engine calibration

    Returns:
        ProjectionResult with weeks, goal markers, constraint summary and
        the demand model

    Raises:
        InvariantViolationError: If the post-condition cap check fails
    """
    fitness_tau = calibration.load_model.fitness_time_constant_days
    fatigue_tau = calibration.load_model.fatigue_time_constant_days
    projection_params = calibration.projection

    profiles = tuple(build_goal_demand_profile(goal, plan.start_date, calibration) for goal in plan.goals)
    windows = recovery_windows(plan.goals, config.post_goal_recovery_days)

    fitness = state.fitness
    fatigue = state.fatigue
    previous_applied = max(DAYS_PER_WEEK * state.fitness, config.baseline_weekly_load)

    weeks: list[ProjectionWeek] = []
    # State entering each week, used for event-day readiness
    entering: list[tuple[float, float]] = []

    for index in range(horizon_weeks(plan)):
        week_start = plan.start_date + timedelta(days=index * DAYS_PER_WEEK)
        context = resolve_week_context(
            week_start,
            plan.start_date,
            plan.blocks,
            plan.goals,
            windows,
            projection_params,
        )
        entering.append((fitness, fatigue))

        midpoint = context.block.load_midpoint if context.block is not None else None
        base_load = midpoint if midpoint is not None else config.baseline_weekly_load
        block_baseline = base_load * context.multiplier
        adaptation_floor = DAYS_PER_WEEK * fitness * (1.0 + projection_params.adaptation_margin) * context.multiplier
        demand_floor = 0.0
        if not context.demand_suppressed:
            demand_floor = _demand_floor(index, fitness, state.fitness, profiles, fitness_tau)

        requested = round(max(block_baseline, adaptation_floor, demand_floor), 1)

        pct_cap_load = floor1(previous_applied * (1.0 + config.max_weekly_load_ramp_pct / 100.0))
        ctl_cap_load = floor1(max_weekly_load_for_ramp(fitness, config.max_ctl_ramp_per_week, fitness_tau))

        applied = requested
        pct_clamped = applied > pct_cap_load
        if pct_clamped:
            applied = pct_cap_load
        ctl_clamped = applied > ctl_cap_load
        if ctl_clamped:
            applied = ctl_cap_load
        applied = max(0.0, applied)

        next_fitness = step_state(fitness, applied, fitness_tau)
        next_fatigue = step_state(fatigue, applied, fatigue_tau)
        fitness_ramp = next_fitness - fitness

        weeks.append(
            ProjectionWeek(
                index=index,
                week_start=week_start,
                pattern=context.pattern,
                pattern_multiplier=round(context.multiplier, 4),
                block_name=context.block.name if context.block is not None else None,
                block_baseline=round(block_baseline, 1),
                adaptation_floor=round(adaptation_floor, 1),
                demand_floor=round(demand_floor, 1),
                requested_load=requested,
                pct_cap_load=pct_cap_load,
                ctl_cap_load=ctl_cap_load,
                applied_load=applied,
                fitness=round(next_fitness, 2),
                fatigue=round(next_fatigue, 2),
                form=round(next_fitness - next_fatigue, 2),
                fitness_ramp=round(fitness_ramp, 6),
                pct_cap_clamped=pct_clamped,
                ctl_cap_clamped=ctl_clamped,
                demand_gap=round(max(0.0, demand_floor - applied), 1),
                override_reason=_override_reason(
                    context.pattern,
                    pct_clamped or ctl_clamped,
                    block_baseline,
                    adaptation_floor,
                    demand_floor,
                ),
                recovery_goal_ids=context.recovery_goal_ids,
            )
        )

        fitness = next_fitness
        fatigue = next_fatigue
        previous_applied = applied

    frozen_weeks = tuple(weeks)
    assert_caps_respected(frozen_weeks, config)

    markers = []
    for goal, profile in zip(plan.goals, profiles, strict=True):
        event_index = min(profile.event_week, len(frozen_weeks) - 1)
        event_fitness, event_fatigue = entering[event_index]
        last_build = frozen_weeks[min(profile.build_end_week, len(frozen_weeks) - 1)]
        markers.append(
            GoalMarker(
                goal_id=goal.id,
                target_date=goal.target_date,
                week_index=profile.event_week,
                priority=goal.priority,
                tier=priority_tier(goal.priority, calibration.priority),
                required_peak_fitness=profile.required_peak_fitness,
                projected_fitness=round(event_fitness, 2),
                projected_fatigue=round(event_fatigue, 2),
                projected_readiness=point_readiness(event_fitness, event_fatigue, calibration.bootstrap),
                fitness_gap=round(max(0.0, profile.required_peak_fitness - event_fitness), 2),
                demand_gap=last_build.demand_gap if profile.event_week > 0 else 0.0,
            )
        )

    summary = ConstraintSummary(
        max_weekly_load_ramp_pct=config.max_weekly_load_ramp_pct,
        max_ctl_ramp_per_week=config.max_ctl_ramp_per_week,
        post_goal_recovery_days=config.post_goal_recovery_days,
        pct_cap_clamp_weeks=sum(1 for week in frozen_weeks if week.pct_cap_clamped),
        ctl_cap_clamp_weeks=sum(1 for week in frozen_weeks if week.ctl_cap_clamped),
        recovery_weeks=sum(1 for week in frozen_weeks if week.pattern == WeekPattern.RECOVERY),
        max_requested_load=max(week.requested_load for week in frozen_weeks),
        max_applied_load=max(week.applied_load for week in frozen_weeks),
    )

    return ProjectionResult(
        weeks=frozen_weeks,
        goal_markers=tuple(markers),
        constraint_summary=summary,
        demand_model=profiles,
    )
