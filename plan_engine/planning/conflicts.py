"""Conflict detection and override resolution.

detect_conflicts is a pure function of the plan, the normalized config, the
projection and the scored state. Every conflict code has a fixed severity
and category:

Blocking
- invariant:   applied_load_exceeds_pct_cap, ctl_ramp_exceeds_cap
               (never overridable)
- recovery:    post_goal_recovery_overlaps_next_goal
- constraints: weekly_load_floor_exceeds_cap, min_sessions_exceeds_max,
               min_sessions_exceeds_available_days,
               max_sessions_exceeds_available_days,
               baseline_below_floor, baseline_above_cap
- horizon:     goal_outside_plan_horizon

Warning
- demand_gap_at_event, insufficient_build_time,
  demand_exceeds_weekly_load_cap, target_demand_implausible,
  low_evidence_confidence, locked_value_overrides_user_value

Blocking conflicts stop a commit unless an OverridePolicy names their
category with a reason. Invariant conflicts stop it regardless.
"""


from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.enums import ConflictCategory, ConflictSeverity
from plan_engine.planning.errors import BlockingConflictError, InvariantViolationError
from plan_engine.planning.invariants import CAP_TOLERANCE
from plan_engine.planning.logging import log_invariant_failure
from plan_engine.planning.projection import ProjectionResult
from plan_engine.planning.schemas.creation import NormalizedConfigResult
from plan_engine.planning.schemas.goals import MinimalPlan
from plan_engine.planning.schemas.requests import OverridePolicy
from plan_engine.planning.schemas.results import (
    ConflictItem,
    GoalAssessmentResult,
    StateSnapshot,
)
from plan_engine.planning.week_pattern import recovery_windows

# code -> (severity, category)
CONFLICT_CODES: dict[str, tuple[ConflictSeverity, ConflictCategory]] = {
    "applied_load_exceeds_pct_cap": (ConflictSeverity.BLOCKING, ConflictCategory.INVARIANT),
    "ctl_ramp_exceeds_cap": (ConflictSeverity.BLOCKING, ConflictCategory.INVARIANT),
    "post_goal_recovery_overlaps_next_goal": (ConflictSeverity.BLOCKING, ConflictCategory.RECOVERY),
    "weekly_load_floor_exceeds_cap": (ConflictSeverity.BLOCKING, ConflictCategory.CONSTRAINTS),
    "min_sessions_exceeds_max": (ConflictSeverity.BLOCKING, ConflictCategory.CONSTRAINTS),
    "min_sessions_exceeds_available_days": (ConflictSeverity.BLOCKING, ConflictCategory.CONSTRAINTS),
    "max_sessions_exceeds_available_days": (ConflictSeverity.BLOCKING, ConflictCategory.CONSTRAINTS),
    "baseline_below_floor": (ConflictSeverity.BLOCKING, ConflictCategory.CONSTRAINTS),
    "baseline_above_cap": (ConflictSeverity.BLOCKING, ConflictCategory.CONSTRAINTS),
    "goal_outside_plan_horizon": (ConflictSeverity.BLOCKING, ConflictCategory.HORIZON),
    "demand_gap_at_event": (ConflictSeverity.WARNING, ConflictCategory.DEMAND),
    "insufficient_build_time": (ConflictSeverity.WARNING, ConflictCategory.HORIZON),
    "demand_exceeds_weekly_load_cap": (ConflictSeverity.WARNING, ConflictCategory.DEMAND),
    "target_demand_implausible": (ConflictSeverity.WARNING, ConflictCategory.DEMAND),
    "low_evidence_confidence": (ConflictSeverity.WARNING, ConflictCategory.EVIDENCE),
    "locked_value_overrides_user_value": (ConflictSeverity.WARNING, ConflictCategory.CONFIG),
}


def make_conflict(
    code: str,
    message: str,
    field_paths: list[str] | tuple[str, ...] = (),
    suggestions: list[str] | tuple[str, ...] = (),
    goal_ids: list[str] | tuple[str, ...] = (),
) -> ConflictItem:
    """Build a ConflictItem with the fixed severity and category of its code."""
    severity, category = CONFLICT_CODES[code]
    return ConflictItem(
        code=code,
        severity=severity,
        category=category,
        overridable=severity == ConflictSeverity.BLOCKING and category != ConflictCategory.INVARIANT,
        message=message,
        field_paths=tuple(field_paths),
        suggestions=tuple(suggestions),
        goal_ids=tuple(goal_ids),
    )


def _invariant_conflicts(projection: ProjectionResult, max_ctl_ramp: float) -> list[ConflictItem]:
    conflicts: list[ConflictItem] = []
    pct_weeks = [week.index for week in projection.weeks if week.applied_load > week.pct_cap_load + CAP_TOLERANCE]
    ctl_weeks = [
        week.index
        for week in projection.weeks
        if week.applied_load > week.ctl_cap_load + CAP_TOLERANCE or week.fitness_ramp > max_ctl_ramp + CAP_TOLERANCE
    ]
    if pct_weeks:
        conflicts.append(
            make_conflict(
                "applied_load_exceeds_pct_cap",
                f"Applied load exceeds the weekly ramp cap in weeks {pct_weeks}.",
                field_paths=["creation_config.max_weekly_load_ramp_pct"],
            )
        )
    if ctl_weeks:
        conflicts.append(
            make_conflict(
                "ctl_ramp_exceeds_cap",
                f"Fitness ramp exceeds the weekly fitness ramp cap in weeks {ctl_weeks}.",
                field_paths=["creation_config.max_ctl_ramp_per_week"],
            )
        )
    return conflicts


def _constraint_conflicts(normalized: NormalizedConfigResult) -> list[ConflictItem]:
    config = normalized.config
    conflicts: list[ConflictItem] = []
    available = len(config.available_days)

    if config.weekly_load_floor > config.weekly_load_cap:
        conflicts.append(
            make_conflict(
                "weekly_load_floor_exceeds_cap",
                "Weekly load floor is above the weekly load cap.",
                field_paths=["creation_config.weekly_load_floor", "creation_config.weekly_load_cap"],
                suggestions=["Lower the weekly load floor", "Raise the weekly load cap"],
            )
        )
    if config.min_sessions_per_week > config.max_sessions_per_week:
        conflicts.append(
            make_conflict(
                "min_sessions_exceeds_max",
                "Minimum sessions per week is above the maximum.",
                field_paths=["creation_config.min_sessions_per_week", "creation_config.max_sessions_per_week"],
                suggestions=["Lower the minimum sessions per week", "Raise the maximum sessions per week"],
            )
        )
    if config.min_sessions_per_week > available:
        conflicts.append(
            make_conflict(
                "min_sessions_exceeds_available_days",
                f"Minimum sessions per week ({config.min_sessions_per_week}) exceeds available days ({available}).",
                field_paths=["creation_config.min_sessions_per_week", "creation_config.available_days"],
                suggestions=["Add available training days", "Lower the minimum sessions per week"],
            )
        )
    if config.max_sessions_per_week > available:
        conflicts.append(
            make_conflict(
                "max_sessions_exceeds_available_days",
                f"Maximum sessions per week ({config.max_sessions_per_week}) exceeds available days ({available}).",
                field_paths=["creation_config.max_sessions_per_week", "creation_config.available_days"],
                suggestions=["Add available training days", "Lower the maximum sessions per week"],
            )
        )
    if config.baseline_weekly_load < config.weekly_load_floor:
        conflicts.append(
            make_conflict(
                "baseline_below_floor",
                "Baseline weekly load is below the weekly load floor.",
                field_paths=["creation_config.baseline_weekly_load", "creation_config.weekly_load_floor"],
                suggestions=["Raise the baseline weekly load", "Lower the weekly load floor"],
            )
        )
    if config.baseline_weekly_load > config.weekly_load_cap:
        conflicts.append(
            make_conflict(
                "baseline_above_cap",
                "Baseline weekly load is above the weekly load cap.",
                field_paths=["creation_config.baseline_weekly_load", "creation_config.weekly_load_cap"],
                suggestions=["Lower the baseline weekly load", "Raise the weekly load cap"],
            )
        )
    for field in normalized.lock_overrides:
        conflicts.append(
            make_conflict(
                "locked_value_overrides_user_value",
                f"Locked value for {field} overrides a different user value.",
                field_paths=[f"creation_config.locked.{field}", f"creation_config.user.{field}"],
                suggestions=["Unlock the field to apply the new value"],
            )
        )
    return conflicts


def _goal_conflicts(
    plan: MinimalPlan,
    normalized: NormalizedConfigResult,
    projection: ProjectionResult,
    calibration: CalibrationConfig,
) -> list[ConflictItem]:
    config = normalized.config
    conflicts: list[ConflictItem] = []
    end_date = plan.resolved_end_date
    ordered = sorted(enumerate(plan.goals), key=lambda item: (item[1].target_date, item[1].id))
    goal_paths = {goal.id: f"plan.goals[{index}]" for index, goal in enumerate(plan.goals)}

    for index, goal in enumerate(plan.goals):
        if goal.target_date < plan.start_date or goal.target_date > end_date:
            conflicts.append(
                make_conflict(
                    "goal_outside_plan_horizon",
                    f"Goal {goal.id} on {goal.target_date.isoformat()} is outside the plan horizon.",
                    field_paths=[f"plan.goals[{index}].target_date", "plan.end_date"],
                    suggestions=["Move the goal date inside the plan", "Extend the plan end date"],
                    goal_ids=[goal.id],
                )
            )

    windows = {window.goal_id: window for window in recovery_windows(plan.goals, config.post_goal_recovery_days)}
    for position, (_, goal) in enumerate(ordered):
        window = windows.get(goal.id)
        if window is None:
            continue
        for _, later in ordered[position + 1 :]:
            if window.contains(later.target_date):
                conflicts.append(
                    make_conflict(
                        "post_goal_recovery_overlaps_next_goal",
                        f"Recovery after goal {goal.id} overlaps goal {later.id}.",
                        field_paths=[
                            f"{goal_paths[later.id]}.target_date",
                            "creation_config.post_goal_recovery_days",
                        ],
                        suggestions=[
                            "Move the later goal past the recovery window",
                            f"Reduce post-goal recovery below {(later.target_date - goal.target_date).days} days",
                        ],
                        goal_ids=[goal.id, later.id],
                    )
                )

    for profile, marker in zip(projection.demand_model, projection.goal_markers, strict=True):
        path = goal_paths[profile.goal_id]
        if marker.fitness_gap > 0:
            conflicts.append(
                make_conflict(
                    "demand_gap_at_event",
                    f"Projected fitness {marker.projected_fitness} at goal {profile.goal_id} "
                    f"is below the required {profile.required_peak_fitness}.",
                    field_paths=[f"{path}.targets", "creation_config.max_ctl_ramp_per_week"],
                    suggestions=["Move the goal later", "Relax the targets", "Raise the ramp caps"],
                    goal_ids=[profile.goal_id],
                )
            )
        min_weeks = calibration.gdi.min_build_weeks[profile.demand_tier]
        available_weeks = (marker.target_date - plan.start_date).days / 7
        if 0 <= available_weeks < min_weeks:
            conflicts.append(
                make_conflict(
                    "insufficient_build_time",
                    f"Goal {profile.goal_id} has {available_weeks:.1f} weeks to build; {min_weeks} are recommended.",
                    field_paths=[f"{path}.target_date"],
                    suggestions=["Move the goal later", "Lower the goal's demand"],
                    goal_ids=[profile.goal_id],
                )
            )
        if profile.required_peak_weekly_load > config.weekly_load_cap:
            conflicts.append(
                make_conflict(
                    "demand_exceeds_weekly_load_cap",
                    f"Goal {profile.goal_id} needs about {profile.required_peak_weekly_load} weekly load; "
                    f"the cap is {config.weekly_load_cap}.",
                    field_paths=["creation_config.weekly_load_cap", f"{path}.targets"],
                    suggestions=["Raise the weekly load cap", "Relax the targets"],
                    goal_ids=[profile.goal_id],
                )
            )
    return conflicts


def _scoring_conflicts(
    plan: MinimalPlan,
    assessments: tuple[GoalAssessmentResult, ...] | list[GoalAssessmentResult],
    state: StateSnapshot,
    calibration: CalibrationConfig,
) -> list[ConflictItem]:
    conflicts: list[ConflictItem] = []
    goal_paths = {goal.id: f"plan.goals[{index}]" for index, goal in enumerate(plan.goals)}
    for assessment in assessments:
        implausible = [
            position
            for position, result in enumerate(assessment.target_results)
            if "demand_above_plausible_cap" in result.rationale_codes
        ]
        if implausible:
            conflicts.append(
                make_conflict(
                    "target_demand_implausible",
                    f"Goal {assessment.goal_id} has targets above plausible physiological limits.",
                    field_paths=[f"{goal_paths[assessment.goal_id]}.targets[{position}]" for position in implausible],
                    suggestions=["Relax the target"],
                    goal_ids=[assessment.goal_id],
                )
            )
    if state.confidence < calibration.bootstrap.low_confidence_below:
        conflicts.append(
            make_conflict(
                "low_evidence_confidence",
                f"Evidence confidence is {state.confidence:.2f}; projections rely on conservative defaults.",
                field_paths=["evidence", "starting_state"],
                suggestions=["Sync recent activities", "Provide a starting fitness override"],
            )
        )
    return conflicts


def detect_conflicts(
    plan: MinimalPlan,
    normalized: NormalizedConfigResult,
    projection: ProjectionResult,
    assessments: tuple[GoalAssessmentResult, ...] | list[GoalAssessmentResult],
    state: StateSnapshot,
    calibration: CalibrationConfig,
) -> tuple[ConflictItem, ...]:
    """Find blocking and advisory conflicts.

    Args:
        plan: Plan shape
        normalized: Normalized config and lock overrides
        projection: Projection result
        assessments: Goal assessments (target rationale codes)
        state: Bootstrapped starting state
        calibration: Engine calibration

    Returns:
        Conflicts ordered blocking first, then by code and goal ids
    """
    conflicts = [
        *_invariant_conflicts(projection, normalized.config.max_ctl_ramp_per_week),
        *_constraint_conflicts(normalized),
        *_goal_conflicts(plan, normalized, projection, calibration),
        *_scoring_conflicts(plan, assessments, state, calibration),
    ]
    severity_order = {ConflictSeverity.BLOCKING: 0, ConflictSeverity.WARNING: 1}
    return tuple(sorted(conflicts, key=lambda item: (severity_order[item.severity], item.code, item.goal_ids, item.field_paths)))


def goal_conflict_notes(conflicts: tuple[ConflictItem, ...], goal_id: str) -> tuple[str, ...]:
    """Conflict codes that implicate a goal, deduplicated in order."""
    notes: list[str] = []
    for conflict in conflicts:
        if goal_id in conflict.goal_ids and conflict.code not in notes:
            notes.append(conflict.code)
    return tuple(notes)




def resolve_blocking_conflicts(
    conflicts: tuple[ConflictItem, ...],
    policy: OverridePolicy | None,
) -> tuple[ConflictItem, ...]:
    """Apply an override policy to blocking conflicts.

    Args:
        conflicts: Conflicts from detect_conflicts
        policy: Optional override policy

    Returns:
        The blocking conflicts the policy overrode, for audit

    Raises:
        InvariantViolationError: If any invariant conflict is present
        BlockingConflictError: If blocking conflicts remain uncovered
    """
    blocking = [conflict for conflict in conflicts if conflict.severity == ConflictSeverity.BLOCKING]

    invariant = [conflict for conflict in blocking if not conflict.overridable]
    if invariant:
        err = InvariantViolationError("NON_OVERRIDABLE_CONFLICT", [conflict.code for conflict in invariant])
        log_invariant_failure(err, {"conflicts": len(invariant)})
        raise err

    allowed: set[ConflictCategory] = set()
    if policy is not None and policy.allow_blocking_conflicts:
        allowed = set(policy.categories)

    uncovered = [conflict for conflict in blocking if conflict.category not in allowed]
    if uncovered:
        raise BlockingConflictError(uncovered)

    return tuple(blocking)


