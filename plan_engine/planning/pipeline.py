"""Preview and commit orchestration.

Preview runs the whole engine and hands back a snapshot token:

    normalize -> bootstrap -> project -> feasibility -> score -> gdi
              -> conflicts -> snapshot

Commit re-runs the identical computation from the same request, refuses to
persist if the recomputed token differs from the presented one, applies
the override policy to blocking conflicts, and only then writes the plan.
Preview never writes anything.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger

from plan_engine.planning.bootstrap import bootstrap_state
from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.conflicts import detect_conflicts, goal_conflict_notes, resolve_blocking_conflicts
from plan_engine.planning.enums import ConflictSeverity
from plan_engine.planning.feasibility import compute_feasibility
from plan_engine.planning.gdi import compute_goal_gdi, compute_plan_gdi
from plan_engine.planning.normalize import normalize_creation_config
from plan_engine.planning.observability import EngineStage, StageStatus, log_event, log_stage_event, timing
from plan_engine.planning.projection import project_plan
from plan_engine.planning.repository import PlanRepository
from plan_engine.planning.schemas.requests import CommitResult, OverridePolicy, PlanCreationRequest, PreviewResult
from plan_engine.planning.schemas.results import ProjectionChart, StateSnapshot
from plan_engine.planning.scoring.aggregate import assess_goal, score_plan
from plan_engine.planning.scoring.target import ScoringContext
from plan_engine.planning.snapshot import build_snapshot_token, verify_snapshot_token
from plan_engine.planning.suggestions import derive_creation_suggestions


@contextmanager
def _stage(stage: EngineStage, plan_id: str | None = None) -> Iterator[None]:
    log_stage_event(stage, StageStatus.START, plan_id)
    try:
        with timing(f"engine.stage.{stage.value}"):
            yield
    except Exception as e:
        log_stage_event(stage, StageStatus.FAIL, plan_id, {"error": str(e)})
        raise
    log_stage_event(stage, StageStatus.SUCCESS, plan_id)


def _current_context(state: StateSnapshot, request: PlanCreationRequest) -> ScoringContext:
    """Scoring context describing capability today, with no projected gain."""
    return ScoringContext(
        start_fitness=state.fitness,
        event_fitness=state.fitness,
        event_readiness=state.readiness,
        confidence=state.confidence,
        capabilities=request.evidence.capabilities,
    )


def _evaluate(request: PlanCreationRequest, calibration: CalibrationConfig) -> PreviewResult:
    plan = request.plan

    with _stage(EngineStage.NORMALIZE):
        suggestions = derive_creation_suggestions(request.evidence, request.as_of, calibration)
        normalized = normalize_creation_config(request.creation_config, calibration, suggestions)
    config = normalized.config

    with _stage(EngineStage.BOOTSTRAP):
        state = bootstrap_state(request.evidence, request.as_of, calibration, request.starting_state)

    with _stage(EngineStage.PROJECTION):
        projection = project_plan(plan, config, state, calibration)
        feasibility = compute_feasibility(projection, state.confidence, calibration)

    with _stage(EngineStage.SCORING):
        assessments = [
            assess_goal(
                goal,
                marker,
                ScoringContext(
                    start_fitness=state.fitness,
                    event_fitness=marker.projected_fitness,
                    event_readiness=marker.projected_readiness,
                    confidence=state.confidence,
                    capabilities=request.evidence.capabilities,
                ),
                calibration,
            )
            for goal, marker in zip(plan.goals, projection.goal_markers, strict=True)
        ]

    with _stage(EngineStage.GDI):
        current = _current_context(state, request)
        gdi_results = [
            compute_goal_gdi(
                goal,
                profile,
                marker,
                state,
                plan.start_date,
                config.max_ctl_ramp_per_week,
                current,
                calibration,
            )
            for goal, profile, marker in zip(plan.goals, projection.demand_model, projection.goal_markers, strict=True)
        ]
        gdi = compute_plan_gdi(plan.goals, gdi_results, calibration)

    with _stage(EngineStage.CONFLICTS):
        conflicts = detect_conflicts(plan, normalized, projection, assessments, state, calibration)
        assessments = [
            assessment.model_copy(update={"conflict_notes": goal_conflict_notes(conflicts, assessment.goal_id)})
            for assessment in assessments
        ]
        plan_score = score_plan(assessments, calibration)

    with _stage(EngineStage.SNAPSHOT):
        token = build_snapshot_token(
            request,
            normalized,
            state,
            projection.constraint_summary,
            feasibility,
            projection.demand_model,
            calibration,
        )

    return PreviewResult(
        normalized_config=config,
        provenance=normalized.provenance,
        suggested_config=normalized.suggested,
        projection=ProjectionChart(
            weeks=projection.weeks,
            goal_markers=projection.goal_markers,
            constraint_summary=projection.constraint_summary,
            feasibility=feasibility,
            inferred_state=state,
            demand_model=projection.demand_model,
        ),
        goal_assessments=tuple(assessments),
        plan_score=plan_score,
        gdi=gdi,
        conflicts=conflicts,
        snapshot_token=token,
        calibration_version=calibration.version,
    )


def preview_plan(request: PlanCreationRequest, calibration: CalibrationConfig) -> PreviewResult:
    """Run the engine without persisting anything.

    Args:
        request: Validated plan creation request
        calibration: Engine calibration

    Returns:
        PreviewResult including the snapshot token a commit must present

    Raises:
        InvariantViolationError: If the projection breaks a hard cap
    """
    with timing("engine.preview"):
        result = _evaluate(request, calibration)
    log_event(
        "plan_previewed",
        goals=len(result.goal_assessments),
        weeks=len(result.projection.weeks),
        plan_score=result.plan_score.score,
        gdi_band=result.gdi.band.value,
        blocking=sum(1 for item in result.conflicts if item.severity == ConflictSeverity.BLOCKING),
        warnings=sum(1 for item in result.conflicts if item.severity == ConflictSeverity.WARNING),
    )
    return result


def commit_plan(
    request: PlanCreationRequest,
    snapshot_token: str,
    calibration: CalibrationConfig,
    repository: PlanRepository,
    override: OverridePolicy | None = None,
) -> CommitResult:
    """Recompute, verify parity, resolve conflicts and persist.

    Args:
        request: The same request that produced the preview
        snapshot_token: Token returned by preview
        calibration: Engine calibration
        repository: Destination for the committed plan
        override: Optional policy covering blocking conflict categories

    Returns:
        CommitResult with the new plan id and any overridden conflicts

    Raises:
        StaleSnapshotError: If the recomputed token differs
        InvariantViolationError: If an invariant conflict is present
        BlockingConflictError: If blocking conflicts are not covered
    """
    with timing("engine.commit"):
        preview = _evaluate(request, calibration)
        verify_snapshot_token(preview.snapshot_token, snapshot_token)
        overridden = resolve_blocking_conflicts(preview.conflicts, override)

        plan_id = str(uuid.uuid4())
        result = CommitResult(
            **dict(preview),
            plan_id=plan_id,
            overridden_conflicts=overridden,
            override_reason=override.reason if overridden and override is not None else None,
        )

        with _stage(EngineStage.PERSIST, plan_id):
            repository.save(result)

    if overridden:
        logger.warning(
            "blocking_conflicts_overridden",
            plan_id=plan_id,
            codes=[item.code for item in overridden],
            reason=result.override_reason,
            approved_by=override.approved_by if override is not None else None,
        )
    log_event("plan_committed", plan_id=plan_id, plan_score=result.plan_score.score, gdi_band=result.gdi.band.value)
    return result
