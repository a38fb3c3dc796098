"""Tests for target satisfaction scoring and goal/plan aggregation."""

from datetime import date

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from plan_engine.planning.enums import Activity, PriorityTier, TargetKind
from plan_engine.planning.priority import priority_tier, priority_weight
from plan_engine.planning.schemas.evidence import CapabilityObservation
from plan_engine.planning.schemas.goals import (
    Goal,
    HrThresholdTarget,
    PaceThresholdTarget,
    PowerThresholdTarget,
    RacePerformanceTarget,
)
from plan_engine.planning.schemas.results import GoalAssessmentResult, GoalMarker
from plan_engine.planning.scoring.aggregate import assess_goal, score_plan
from plan_engine.planning.scoring.target import ScoringContext, demand_penalty, normal_cdf, score_target

TEN_K = CapabilityObservation(kind=TargetKind.RACE_PERFORMANCE, activity=Activity.RUN, value=2400.0, distance_m=10000)


def _context(**overrides) -> ScoringContext:
    values = {
        "start_fitness": 50.0,
        "event_fitness": 70.0,
        "event_readiness": 70,
        "confidence": 0.8,
        "capabilities": (TEN_K,),
    }
    values.update(overrides)
    return ScoringContext(**values)


def _marker(readiness: int = 64) -> GoalMarker:
    return GoalMarker(
        goal_id="g",
        target_date=date(2026, 3, 30),
        week_index=12,
        priority=5,
        tier=PriorityTier.B,
        required_peak_fitness=80.0,
        projected_fitness=70.0,
        projected_fatigue=65.0,
        projected_readiness=readiness,
        fitness_gap=10.0,
        demand_gap=0.0,
    )


def test_normal_cdf_reference_points():
    assert normal_cdf(0.0) == pytest.approx(0.5)
    assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-3)
    assert normal_cdf(-1.96) == pytest.approx(0.025, abs=1e-3)


def test_demand_penalty_only_above_ceiling():
    assert demand_penalty(0.8, 4.0) == 1.0
    assert demand_penalty(1.0, 4.0) == 1.0
    assert demand_penalty(1.5, 4.0) == pytest.approx(0.5)


def test_observed_race_projection_uses_riegel_and_gain(calibration):
    """A 40:00 10k projects to a ~1:29 half before fitness gain."""
    target = RacePerformanceTarget(distance_m=21097.5, target_time_s=6000)
    result = score_target(target, _context(), calibration)
    riegel = 2400.0 * (21097.5 / 10000) ** 1.06
    assert result.projected_value == pytest.approx(riegel * (1 - 20 * 0.004), abs=0.01)
    assert "projection_observed" in result.rationale_codes
    assert "target_met_or_exceeded" in result.rationale_codes
    assert result.unmet_gap is None
    assert result.score >= 90


def test_race_lower_time_is_harder(calibration):
    easy = score_target(RacePerformanceTarget(distance_m=21097.5, target_time_s=6300), _context(), calibration)
    hard = score_target(RacePerformanceTarget(distance_m=21097.5, target_time_s=4800), _context(), calibration)
    assert easy.score > hard.score
    assert hard.unmet_gap is not None and hard.unmet_gap > 0


def test_implausible_target_is_penalized(calibration):
    """A 1:50 marathon demands more than the plausible running ceiling."""
    result = score_target(RacePerformanceTarget(distance_m=42195, target_time_s=6600), _context(), calibration)
    assert "demand_above_plausible_cap" in result.rationale_codes
    assert result.demand_penalty < 1.0
    assert result.score <= 5


def test_inferred_projection_without_observation(calibration):
    result = score_target(PowerThresholdTarget(target_watts=250), _context(), calibration)
    assert "projection_inferred" in result.rationale_codes
    assert 0 < result.projected_value < 500


def test_hr_threshold_not_adjusted_for_fitness_gain(calibration):
    hr = CapabilityObservation(kind=TargetKind.HR_THRESHOLD, value=170.0)
    result = score_target(HrThresholdTarget(target_lthr_bpm=168), _context(capabilities=(hr,)), calibration)
    assert result.projected_value == 170.0
    assert "target_met_or_exceeded" in result.rationale_codes


def test_pace_threshold_higher_is_better(calibration):
    pace = CapabilityObservation(kind=TargetKind.PACE_THRESHOLD, value=4.0)
    slow = score_target(PaceThresholdTarget(target_speed_mps=3.5), _context(capabilities=(pace,)), calibration)
    fast = score_target(PaceThresholdTarget(target_speed_mps=4.8), _context(capabilities=(pace,)), calibration)
    assert slow.score > fast.score


def test_lower_confidence_widens_uncertainty(calibration):
    """With the target just met, less confidence pulls the score toward 50."""
    target = PaceThresholdTarget(target_speed_mps=4.2)
    pace = CapabilityObservation(kind=TargetKind.PACE_THRESHOLD, value=4.0)
    confident = score_target(target, _context(capabilities=(pace,), confidence=1.0), calibration)
    unsure = score_target(target, _context(capabilities=(pace,), confidence=0.1), calibration)
    assert confident.score > unsure.score >= 50


target_strategy = st.one_of(
    st.builds(
        RacePerformanceTarget,
        distance_m=st.floats(min_value=400, max_value=100000),
        target_time_s=st.floats(min_value=60, max_value=40000),
    ),
    st.builds(PaceThresholdTarget, target_speed_mps=st.floats(min_value=0.5, max_value=12)),
    st.builds(PowerThresholdTarget, target_watts=st.floats(min_value=50, max_value=800)),
    st.builds(HrThresholdTarget, target_lthr_bpm=st.floats(min_value=100, max_value=220)),
)


@settings(max_examples=200, deadline=None)
@given(
    target=target_strategy,
    start_fitness=st.floats(min_value=0, max_value=150),
    gain=st.floats(min_value=0, max_value=60),
    readiness=st.integers(min_value=0, max_value=100),
    confidence=st.floats(min_value=0, max_value=1),
    observed=st.booleans(),
)
def test_target_score_is_bounded(calibration, target, start_fitness, gain, readiness, confidence, observed):
    context = ScoringContext(
        start_fitness=start_fitness,
        event_fitness=start_fitness + gain,
        event_readiness=readiness,
        confidence=confidence,
        capabilities=(TEN_K,) if observed else (),
    )
    result = score_target(target, context, calibration)
    assert 0 <= result.score <= 100
    assert 0.0 <= result.probability <= 1.0


def test_goal_without_targets_falls_back_to_readiness(calibration):
    goal = Goal(id="g", target_date=date(2026, 3, 30), priority=5)
    assessment = assess_goal(goal, _marker(readiness=64), _context(), calibration)
    assert assessment.score == 0.64
    assert assessment.rationale_codes == ("no_targets_readiness_fallback",)


def test_goal_score_weights_targets(calibration):
    easy = PaceThresholdTarget(target_speed_mps=1.0, weight=3)
    hard = PowerThresholdTarget(target_watts=790, weight=1)
    goal = Goal(id="g", target_date=date(2026, 3, 30), priority=5, targets=(easy, hard))
    assessment = assess_goal(goal, _marker(), _context(), calibration)
    easy_score, hard_score = (result.score / 100 for result in assessment.target_results)
    assert assessment.score == pytest.approx((3 * easy_score + hard_score) / 4, abs=1e-6)


def test_invalid_target_weight_defaults_to_one():
    assert PaceThresholdTarget(target_speed_mps=4.0, weight=-2).weight == 1.0
    assert PaceThresholdTarget(target_speed_mps=4.0, weight=float("nan")).weight == 1.0


def _assessment(goal_id: str, priority: float, score: float, calibration) -> GoalAssessmentResult:
    return GoalAssessmentResult(
        goal_id=goal_id,
        priority=priority,
        tier=priority_tier(priority, calibration.priority),
        priority_weight=priority_weight(priority, calibration.priority),
        score=score,
    )


@given(low=st.floats(min_value=0, max_value=10), high=st.floats(min_value=0, max_value=10))
def test_priority_weight_is_monotone(calibration, low, high):
    low, high = sorted((low, high))
    assert 0 < priority_weight(low, calibration.priority) <= priority_weight(high, calibration.priority)


@given(
    base=st.floats(min_value=0, max_value=9),
    bump=st.floats(min_value=0, max_value=1),
    strong=st.floats(min_value=0.5, max_value=1),
    weak=st.floats(min_value=0, max_value=0.5),
)
def test_raising_priority_of_stronger_goal_never_lowers_plan_score(calibration, base, bump, strong, weak):
    before = score_plan(
        [_assessment("a", base, strong, calibration), _assessment("b", 5, weak, calibration)],
        calibration,
    )
    after = score_plan(
        [_assessment("a", base + bump, strong, calibration), _assessment("b", 5, weak, calibration)],
        calibration,
    )
    assert after.score >= before.score - 1e-6


def test_equal_priorities_weigh_equally(calibration):
    result = score_plan([_assessment("a", 6, 0.9, calibration), _assessment("b", 6, 0.3, calibration)], calibration)
    assert result.score == pytest.approx(0.6)


def test_tier_summary_reports_every_tier(calibration):
    result = score_plan(
        [_assessment("a", 9, 0.8, calibration), _assessment("b", 8, 0.6, calibration), _assessment("c", 2, 0.4, calibration)],
        calibration,
    )
    assert result.tiers[PriorityTier.A].count == 2
    assert result.tiers[PriorityTier.A].mean == pytest.approx(0.7)
    assert result.tiers[PriorityTier.B].count == 0
    assert result.tiers[PriorityTier.B].mean is None
    assert result.tiers[PriorityTier.C].mean == pytest.approx(0.4)
