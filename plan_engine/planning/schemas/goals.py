"""Goal, target and plan-shape input models.

Targets are a tagged union on ``kind``. Each variant carries the physical
quantity it constrains plus an optional positive weight; an absent,
non-finite or non-positive weight is treated as 1.
"""

import math
from datetime import date
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from plan_engine.planning.enums import Activity, BlockPhase
from plan_engine.planning.invariants import MAX_PRIORITY, MIN_PRIORITY


class _TargetBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    weight: float = 1.0

    @field_validator("weight", mode="before")
    @classmethod
    def default_invalid_weight(cls, value: object) -> float:
        """Absent, non-numeric, non-finite or non-positive weights become 1."""
        if isinstance(value, bool) or not isinstance(value, int | float):
            return 1.0
        if not math.isfinite(value) or value <= 0:
            return 1.0
        return float(value)


class RacePerformanceTarget(_TargetBase):
    """Finish a race distance within a target time.

    Attributes:
        distance_m: Race distance in meters
        target_time_s: Target finish time in seconds (lower is better)
        activity: Activity the race is performed in
    """

    kind: Literal["race_performance"] = "race_performance"
    distance_m: float = Field(gt=0)
    target_time_s: float = Field(gt=0)
    activity: Activity = Activity.RUN


class PaceThresholdTarget(_TargetBase):
    """Reach a threshold speed (higher is better).

    Attributes:
        target_speed_mps: Threshold speed in meters per second
        activity: Activity the threshold applies to
        test_duration_s: Duration of the threshold test, if any
    """

    kind: Literal["pace_threshold"] = "pace_threshold"
    target_speed_mps: float = Field(gt=0)
    activity: Activity = Activity.RUN
    test_duration_s: float | None = Field(default=None, gt=0)


class PowerThresholdTarget(_TargetBase):
    """Reach a threshold power in watts (higher is better)."""

    kind: Literal["power_threshold"] = "power_threshold"
    target_watts: float = Field(gt=0)
    activity: Activity = Activity.BIKE
    test_duration_s: float | None = Field(default=None, gt=0)


class HrThresholdTarget(_TargetBase):
    """Reach a lactate threshold heart rate in bpm (higher is better)."""

    kind: Literal["hr_threshold"] = "hr_threshold"
    target_lthr_bpm: float = Field(gt=0)


Target = Annotated[
    RacePerformanceTarget | PaceThresholdTarget | PowerThresholdTarget | HrThresholdTarget,
    Field(discriminator="kind"),
]


class Goal(BaseModel):
    """A dated goal with a priority and zero or more targets.

    Attributes:
        id: Identifier, unique within a plan
        name: Display name
        target_date: Event date
        priority: Importance on a continuous 0-10 scale (higher = more important)
        activity: Primary activity of the goal
        targets: Performance targets; may be empty
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    target_date: date
    priority: float = Field(ge=MIN_PRIORITY, le=MAX_PRIORITY)
    activity: Activity = Activity.RUN
    targets: tuple[Target, ...] = ()


class PlanBlock(BaseModel):
    """A periodization block with an optional weekly load range."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    phase: BlockPhase = BlockPhase.BUILD
    start_date: date
    end_date: date
    target_weekly_load_min: float | None = Field(default=None, ge=0)
    target_weekly_load_max: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_ranges(self) -> "PlanBlock":
        if self.end_date < self.start_date:
            raise ValueError(f"block {self.name!r} ends before it starts")
        if (self.target_weekly_load_min is None) != (self.target_weekly_load_max is None):
            raise ValueError(f"block {self.name!r} must set both load bounds or neither")
        if self.target_weekly_load_min is not None and self.target_weekly_load_max is not None and self.target_weekly_load_min > self.target_weekly_load_max:
            raise ValueError(f"block {self.name!r} load min exceeds max")
        return self

    @property
    def load_midpoint(self) -> float | None:
        if self.target_weekly_load_min is None or self.target_weekly_load_max is None:
            return None
        return (self.target_weekly_load_min + self.target_weekly_load_max) / 2


class MinimalPlan(BaseModel):
    """Plan shape supplied by the caller.

    Attributes:
        start_date: First day of the projection
        end_date: Last day of the projection; defaults to the latest goal date
        blocks: Optional periodization blocks
        goals: One or more goals
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    start_date: date
    end_date: date | None = None
    blocks: tuple[PlanBlock, ...] = ()
    goals: tuple[Goal, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_shape(self) -> "MinimalPlan":
        ids = [goal.id for goal in self.goals]
        duplicates = sorted({goal_id for goal_id in ids if ids.count(goal_id) > 1})
        if duplicates:
            raise ValueError(f"duplicate goal ids: {duplicates}")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date is before start_date")
        return self

    @property
    def resolved_end_date(self) -> date:
        if self.end_date is not None:
            return self.end_date
        return max(max(goal.target_date for goal in self.goals), self.start_date)
