"""Goal and plan score aggregation.

Goal score = weighted mean of target scores (target weights, default 1),
scaled to 0-1. A goal without targets falls back to its projected event
readiness / 100.

Plan score = priority-weighted mean of goal scores, using the shared
priority_weight function. Tier means are reported alongside but never
enter the weighted mean.
"""

from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.enums import PriorityTier
from plan_engine.planning.priority import priority_tier, priority_weight, weighted_mean
from plan_engine.planning.schemas.goals import Goal
from plan_engine.planning.schemas.results import (
    GoalAssessmentResult,
    GoalMarker,
    PlanScoreResult,
    TierSummary,
)
from plan_engine.planning.scoring.target import ScoringContext, score_target


def assess_goal(
    goal: Goal,
    marker: GoalMarker,
    context: ScoringContext,
    calibration: CalibrationConfig,
    conflict_notes: tuple[str, ...] = (),
) -> GoalAssessmentResult:
    """Score every target of a goal and aggregate them.

    Args:
        goal: Goal to assess
        marker: Projection marker for the goal's event
        context: Scoring context built from the projection and evidence
        calibration: Engine calibration
        conflict_notes: Conflict codes that implicate this goal

    Returns:
        GoalAssessmentResult with a 0-1 score
    """
    target_results = tuple(score_target(target, context, calibration) for target in goal.targets)

    if target_results:
        score = weighted_mean(
            [result.score / 100.0 for result in target_results],
            [result.weight for result in target_results],
        )
        codes: tuple[str, ...] = ()
    else:
        score = marker.projected_readiness / 100.0
        codes = ("no_targets_readiness_fallback",)

    return GoalAssessmentResult(
        goal_id=goal.id,
        priority=goal.priority,
        tier=priority_tier(goal.priority, calibration.priority),
        priority_weight=round(priority_weight(goal.priority, calibration.priority), 6),
        score=round(min(1.0, max(0.0, score)), 6),
        target_results=target_results,
        conflict_notes=conflict_notes,
        rationale_codes=codes,
    )


def score_plan(assessments: tuple[GoalAssessmentResult, ...] | list[GoalAssessmentResult], calibration: CalibrationConfig) -> PlanScoreResult:
    """Priority-weighted plan score with per-tier reporting."""
    weights = [priority_weight(assessment.priority, calibration.priority) for assessment in assessments]
    score = weighted_mean([assessment.score for assessment in assessments], weights)

    tiers: dict[PriorityTier, TierSummary] = {}
    for tier in PriorityTier:
        members = [assessment.score for assessment in assessments if assessment.tier == tier]
        tiers[tier] = TierSummary(
            mean=round(sum(members) / len(members), 6) if members else None,
            count=len(members),
        )

    return PlanScoreResult(score=round(min(1.0, max(0.0, score)), 6), tiers=tiers)
