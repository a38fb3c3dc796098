"""Evidence summary supplied by the ingestion collaborator.

The engine never fetches evidence itself; everything it needs about the
athlete's recent history arrives in an EvidenceSummary that has already
been resolved by the caller.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from plan_engine.planning.enums import Activity, HistoryState, TargetKind
from plan_engine.planning.invariants import MAX_STARTING_FATIGUE_OVERRIDE, MAX_STARTING_FITNESS_OVERRIDE


class CapabilityObservation(BaseModel):
    """A measured capability the scorer can project forward.

    Attributes:
        kind: Target kind this observation informs
        activity: Activity the observation was made in
        value: Observed value. Seconds for race results, m/s for pace,
            watts for power, bpm for heart rate.
        distance_m: Race distance for race results
        observed_on: Date the observation was made
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: TargetKind
    activity: Activity = Activity.RUN
    value: float = Field(gt=0)
    distance_m: float | None = Field(default=None, gt=0)
    observed_on: date | None = None


class EvidenceSummary(BaseModel):
    """Normalized recent-history signals.

    Every field is optional; an empty summary describes an athlete with no
    usable history.

    Attributes:
        history_state: Availability state reported by the collaborator
        last_activity_date: Date of the most recent recorded activity
        activity_count_28d: Activities recorded in the last 28 days
        weekly_load_avg_28d: Mean weekly load over the last 28 days
        weekly_load_avg_7d: Load over the last 7 days
        fitness_estimate: Fitness on last_activity_date, if computed upstream
        fatigue_estimate: Fatigue on last_activity_date, if computed upstream
        data_quality: Share of activities with usable load streams (0-1)
        capabilities: Measured capabilities
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    history_state: HistoryState = HistoryState.NONE
    last_activity_date: date | None = None
    activity_count_28d: int = Field(default=0, ge=0)
    weekly_load_avg_28d: float | None = Field(default=None, ge=0)
    weekly_load_avg_7d: float | None = Field(default=None, ge=0)
    fitness_estimate: float | None = Field(default=None, ge=0)
    fatigue_estimate: float | None = Field(default=None, ge=0)
    data_quality: float = Field(default=0.5, ge=0, le=1)
    capabilities: tuple[CapabilityObservation, ...] = ()


class StartingStateOverride(BaseModel):
    """Explicit starting state supplied by the user."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    fitness: float | None = Field(default=None, ge=0, le=MAX_STARTING_FITNESS_OVERRIDE)
    fatigue: float | None = Field(default=None, ge=0, le=MAX_STARTING_FATIGUE_OVERRIDE)
