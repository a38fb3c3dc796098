"""Weekly load rhythm and post-goal recovery windows.

Each projection week gets exactly one pattern, resolved in this order:

1. event     - a goal date falls inside the week
2. recovery  - a goal's post-goal recovery window overlaps the week, or the
               week sits in a recovery block
3. taper     - the week is in a taper block, or within taper_weeks before
               an upcoming event
4. deload    - every deload_every_weeks-th week of a block
5. ramp      - otherwise, cycling through the ramp wave

The goal-demand floor is suppressed in event, recovery and taper weeks.
"""

from dataclasses import dataclass
from datetime import date, timedelta

from plan_engine.planning.calibration import ProjectionCalibration
from plan_engine.planning.enums import BlockPhase, WeekPattern
from plan_engine.planning.invariants import DAYS_PER_WEEK
from plan_engine.planning.schemas.goals import Goal, PlanBlock

_DEMAND_SUPPRESSED = frozenset({WeekPattern.EVENT, WeekPattern.RECOVERY, WeekPattern.TAPER})


@dataclass(frozen=True)
class RecoveryWindow:
    """Days after a goal reserved for recovery (inclusive bounds)."""

    goal_id: str
    start: date
    end: date

    def overlap_days(self, start: date, end: date) -> int:
        latest_start = max(self.start, start)
        earliest_end = min(self.end, end)
        return max(0, (earliest_end - latest_start).days + 1)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class WeekContext:
    pattern: WeekPattern
    multiplier: float
    block: PlanBlock | None
    recovery_goal_ids: tuple[str, ...]
    recovery_coverage: float

    @property
    def demand_suppressed(self) -> bool:
        return self.pattern in _DEMAND_SUPPRESSED


def recovery_windows(goals: tuple[Goal, ...] | list[Goal], recovery_days: int) -> list[RecoveryWindow]:
    """Recovery window for every goal, ordered by goal date then id."""
    if recovery_days <= 0:
        return []
    ordered = sorted(goals, key=lambda goal: (goal.target_date, goal.id))
    return [
        RecoveryWindow(
            goal_id=goal.id,
            start=goal.target_date + timedelta(days=1),
            end=goal.target_date + timedelta(days=recovery_days),
        )
        for goal in ordered
    ]


def find_block(blocks: tuple[PlanBlock, ...], day: date) -> PlanBlock | None:
    for block in blocks:
        if block.start_date <= day <= block.end_date:
            return block
    return None


def resolve_week_context(
    week_start: date,
    plan_start: date,
    blocks: tuple[PlanBlock, ...],
    goals: tuple[Goal, ...],
    windows: list[RecoveryWindow],
    calibration: ProjectionCalibration,
) -> WeekContext:
    """Resolve pattern, multiplier and recovery coverage for one week.

    Args:
        week_start: First day of the week
        plan_start: First day of the projection
        blocks: Plan blocks
        goals: Plan goals
        windows: Post-goal recovery windows
        calibration: Projection calibration

    Returns:
        WeekContext for the week
    """
    week_end = week_start + timedelta(days=DAYS_PER_WEEK - 1)
    block = find_block(blocks, week_start)

    recovery_goal_ids: list[str] = []
    coverage = 0.0
    for window in windows:
        overlap = window.overlap_days(week_start, week_end)
        if overlap > 0:
            recovery_goal_ids.append(window.goal_id)
            coverage = max(coverage, overlap / DAYS_PER_WEEK)

    def context(pattern: WeekPattern, multiplier: float) -> WeekContext:
        return WeekContext(
            pattern=pattern,
            multiplier=multiplier,
            block=block,
            recovery_goal_ids=tuple(recovery_goal_ids),
            recovery_coverage=round(coverage, 4),
        )

    if any(week_start <= goal.target_date <= week_end for goal in goals):
        return context(WeekPattern.EVENT, calibration.event_multiplier)

    if block is not None and block.phase == BlockPhase.RECOVERY:
        coverage = 1.0
        return context(WeekPattern.RECOVERY, 1.0 - calibration.recovery_reduction)

    if recovery_goal_ids:
        return context(WeekPattern.RECOVERY, 1.0 - calibration.recovery_reduction * coverage)

    if block is not None and block.phase == BlockPhase.TAPER:
        return context(WeekPattern.TAPER, calibration.taper_multiplier)

    for goal in goals:
        days_to_goal = (goal.target_date - week_end).days
        if 0 < days_to_goal <= calibration.taper_weeks * DAYS_PER_WEEK:
            return context(WeekPattern.TAPER, calibration.taper_multiplier)

    anchor = block.start_date if block is not None else plan_start
    index_in_block = max(0, (week_start - anchor).days // DAYS_PER_WEEK)
    if (index_in_block + 1) % calibration.deload_every_weeks == 0:
        return context(WeekPattern.DELOAD, calibration.deload_multiplier)

    wave = calibration.ramp_wave
    return context(WeekPattern.RAMP, wave[index_in_block % len(wave)])
