"""Request and response envelopes for preview and commit."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator

from plan_engine.planning.enums import ConflictCategory
from plan_engine.planning.schemas.creation import CreationConfigInput, CreationConfigValues, FieldProvenance, NormalizedCreationConfig
from plan_engine.planning.schemas.evidence import EvidenceSummary, StartingStateOverride
from plan_engine.planning.schemas.goals import MinimalPlan
from plan_engine.planning.schemas.results import (
    ConflictItem,
    GoalAssessmentResult,
    PlanGdiResult,
    PlanScoreResult,
    ProjectionChart,
)


class PlanCreationRequest(BaseModel):
    """Input shared by preview and commit.

    Attributes:
        plan: Minimal plan description (dates, blocks, goals)
        creation_config: Layered creation config
        evidence: Evidence summary resolved by the caller
        starting_state: Optional explicit starting fitness/fatigue
        as_of: Reference date for evidence recency; the only time input
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    plan: MinimalPlan
    creation_config: CreationConfigInput = CreationConfigInput()
    evidence: EvidenceSummary = EvidenceSummary()
    starting_state: StartingStateOverride | None = None
    as_of: date


class OverridePolicy(BaseModel):
    """Auditable permission to commit despite blocking conflicts.

    Attributes:
        allow_blocking_conflicts: Must be True for the policy to apply
        categories: Conflict categories the override covers
        reason: Human-readable justification, recorded with the plan
        approved_by: Optional identity of the approver
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_blocking_conflicts: bool = False
    categories: tuple[ConflictCategory, ...] = ()
    reason: str = ""
    approved_by: str | None = None

    @model_validator(mode="after")
    def validate_scope(self) -> "OverridePolicy":
        if ConflictCategory.INVARIANT in self.categories:
            raise ValueError("invariant conflicts cannot be overridden")
        if self.allow_blocking_conflicts:
            if not self.reason.strip():
                raise ValueError("an override requires a reason")
            if not self.categories:
                raise ValueError("an override must name at least one conflict category")
        return self


class PreviewResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    normalized_config: NormalizedCreationConfig
    provenance: dict[str, FieldProvenance]
    suggested_config: CreationConfigValues = CreationConfigValues()
    projection: ProjectionChart
    goal_assessments: tuple[GoalAssessmentResult, ...]
    plan_score: PlanScoreResult
    gdi: PlanGdiResult
    conflicts: tuple[ConflictItem, ...]
    snapshot_token: str
    calibration_version: str


class CommitResult(PreviewResult):
    plan_id: str
    overridden_conflicts: tuple[ConflictItem, ...] = ()
    override_reason: str | None = Field(default=None)
