"""Creation configuration models.

A creation config arrives as layers: values the user locked, values the
user set, system suggestions, and the names of suggestions the user
accepted. Normalization collapses the layers into a single
NormalizedCreationConfig plus a provenance record per field.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from plan_engine.planning.enums import OptimizationProfile, ProvenanceSource, SuggestionProfile, Weekday
from plan_engine.planning.invariants import (
    MAX_CTL_RAMP_PER_WEEK_BOUND,
    MAX_POST_GOAL_RECOVERY_DAYS_BOUND,
    MAX_WEEKLY_LOAD_RAMP_PCT_BOUND,
)


class CreationConfigValues(BaseModel):
    """One layer of creation config values. Unset fields are None."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    optimization_profile: OptimizationProfile | None = None
    max_weekly_load_ramp_pct: float | None = Field(default=None, ge=0, le=MAX_WEEKLY_LOAD_RAMP_PCT_BOUND)
    max_ctl_ramp_per_week: float | None = Field(default=None, ge=0, le=MAX_CTL_RAMP_PER_WEEK_BOUND)
    post_goal_recovery_days: int | None = Field(default=None, ge=0, le=MAX_POST_GOAL_RECOVERY_DAYS_BOUND)
    baseline_weekly_load: float | None = Field(default=None, ge=0)
    weekly_load_floor: float | None = Field(default=None, ge=0)
    weekly_load_cap: float | None = Field(default=None, ge=0)
    min_sessions_per_week: int | None = Field(default=None, ge=0, le=14)
    max_sessions_per_week: int | None = Field(default=None, ge=0, le=14)
    available_days: tuple[Weekday, ...] | None = None
    max_session_duration_minutes: int | None = Field(default=None, gt=0, le=1440)

    @field_validator("available_days")
    @classmethod
    def dedupe_days(cls, value: tuple[Weekday, ...] | None) -> tuple[Weekday, ...] | None:
        """Order available days Monday-first and drop duplicates."""
        if value is None:
            return None
        order = list(Weekday)
        return tuple(sorted(set(value), key=order.index))


CONFIG_FIELDS: tuple[str, ...] = tuple(CreationConfigValues.model_fields)


class CreationConfigInput(BaseModel):
    """Layered creation config as submitted by the caller.

    Attributes:
        locked: Values the user pinned; always win
        user: Values the user set
        suggested: System suggestions
        accepted_suggestions: Field names whose suggestion the user accepted
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    locked: CreationConfigValues = CreationConfigValues()
    user: CreationConfigValues = CreationConfigValues()
    suggested: CreationConfigValues = CreationConfigValues()
    accepted_suggestions: tuple[str, ...] = ()

    @field_validator("accepted_suggestions")
    @classmethod
    def validate_field_names(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = sorted(set(value) - set(CONFIG_FIELDS))
        if unknown:
            raise ValueError(f"unknown config fields in accepted_suggestions: {unknown}")
        return tuple(sorted(set(value)))


class FieldProvenance(BaseModel):
    """Where a normalized field value came from."""

    model_config = ConfigDict(frozen=True)

    source: ProvenanceSource
    confidence: float


class NormalizedCreationConfig(BaseModel):
    """Fully resolved creation config. Every field has a value."""

    model_config = ConfigDict(frozen=True)

    optimization_profile: OptimizationProfile
    max_weekly_load_ramp_pct: float
    max_ctl_ramp_per_week: float
    post_goal_recovery_days: int
    baseline_weekly_load: float
    weekly_load_floor: float
    weekly_load_cap: float
    min_sessions_per_week: int
    max_sessions_per_week: int
    available_days: tuple[Weekday, ...]
    max_session_duration_minutes: int


class NormalizedConfigResult(BaseModel):
    """Normalization output: config, provenance, and lock/user disagreements."""

    model_config = ConfigDict(frozen=True)

    config: NormalizedCreationConfig
    provenance: dict[str, FieldProvenance]
    lock_overrides: tuple[str, ...] = ()
    suggested: CreationConfigValues = CreationConfigValues()


class CreationSuggestions(BaseModel):
    """Creation values the engine suggests from the athlete's evidence.

    Attributes:
        values: Suggested values; unset fields have no suggestion
        profile: History profile the suggestions were derived under
        confidence: Confidence attached to accepted suggestions
        rationale_codes: Why the suggestions look the way they do
    """

    model_config = ConfigDict(frozen=True)

    values: CreationConfigValues = CreationConfigValues()
    profile: SuggestionProfile
    confidence: float = Field(ge=0, le=1)
    rationale_codes: tuple[str, ...] = ()
