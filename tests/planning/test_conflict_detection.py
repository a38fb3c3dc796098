"""Tests for conflict detection and override resolution."""

import pytest
from pydantic import ValidationError

from plan_engine.planning.conflicts import CONFLICT_CODES, make_conflict, resolve_blocking_conflicts
from plan_engine.planning.enums import ConflictCategory, ConflictSeverity
from plan_engine.planning.errors import BlockingConflictError, InvariantViolationError, MalformedInputError
from plan_engine.planning.pipeline import preview_plan
from plan_engine.planning.schemas.requests import OverridePolicy
from plan_engine.planning.validate import parse_override_policy


def _codes(result) -> set[str]:
    return {conflict.code for conflict in result.conflicts}


def test_marathon_scenario_has_only_warnings(calibration, marathon_request):
    result = preview_plan(marathon_request, calibration)
    assert all(conflict.severity == ConflictSeverity.WARNING for conflict in result.conflicts)
    assert {
        "demand_gap_at_event",
        "insufficient_build_time",
        "demand_exceeds_weekly_load_cap",
        "low_evidence_confidence",
    } <= _codes(result)
    assessment = result.goal_assessments[0]
    assert "demand_gap_at_event" in assessment.conflict_notes


def test_session_constraints_block(calibration, make_request):
    request = make_request(
        creation_config={"user": {"min_sessions_per_week": 5, "max_sessions_per_week": 4, "available_days": ["mon", "wed"]}}
    )
    result = preview_plan(request, calibration)
    blocking = {conflict.code for conflict in result.conflicts if conflict.severity == ConflictSeverity.BLOCKING}
    assert blocking == {
        "min_sessions_exceeds_max",
        "min_sessions_exceeds_available_days",
        "max_sessions_exceeds_available_days",
    }
    # Blocking conflicts come first
    assert result.conflicts[0].severity == ConflictSeverity.BLOCKING


def test_load_bounds_block(calibration, make_request):
    request = make_request(
        creation_config={"user": {"weekly_load_floor": 300, "weekly_load_cap": 250, "baseline_weekly_load": 100}}
    )
    codes = _codes(preview_plan(request, calibration))
    assert {"weekly_load_floor_exceeds_cap", "baseline_below_floor"} <= codes
    assert "baseline_above_cap" not in codes


def test_recovery_overlap_blocks(calibration, make_request, make_goal):
    plan = {
        "start_date": "2026-01-05",
        "goals": [
            make_goal(id="tune_up", target_date="2026-03-26", priority=4, targets=[]),
            make_goal(id="marathon", target_date="2026-03-29"),
        ],
    }
    result = preview_plan(make_request(plan=plan), calibration)
    overlap = [conflict for conflict in result.conflicts if conflict.code == "post_goal_recovery_overlaps_next_goal"]
    assert len(overlap) == 1
    assert overlap[0].goal_ids == ("tune_up", "marathon")
    assert overlap[0].category == ConflictCategory.RECOVERY
    assert overlap[0].overridable


def test_goal_outside_horizon_blocks(calibration, make_request, make_goal):
    plan = {"start_date": "2026-01-05", "end_date": "2026-03-01", "goals": [make_goal()]}
    result = preview_plan(make_request(plan=plan), calibration)
    outside = [conflict for conflict in result.conflicts if conflict.code == "goal_outside_plan_horizon"]
    assert len(outside) == 1
    assert outside[0].field_paths[0] == "plan.goals[0].target_date"


def test_implausible_target_warns(calibration, make_request, make_goal):
    goal = make_goal(targets=[{"kind": "race_performance", "distance_m": 42195, "target_time_s": 6000}])
    result = preview_plan(make_request(plan={"start_date": "2026-01-05", "goals": [goal]}), calibration)
    implausible = [conflict for conflict in result.conflicts if conflict.code == "target_demand_implausible"]
    assert implausible[0].field_paths == ("plan.goals[0].targets[0]",)


def test_locked_value_warns(calibration, make_request):
    request = make_request(
        creation_config={"locked": {"max_ctl_ramp_per_week": 2}, "user": {"max_ctl_ramp_per_week": 3}}
    )
    assert "locked_value_overrides_user_value" in _codes(preview_plan(request, calibration))


def test_invariant_conflicts_are_never_overridable():
    for code, (severity, category) in CONFLICT_CODES.items():
        conflict = make_conflict(code, "message")
        if category == ConflictCategory.INVARIANT:
            assert not conflict.overridable
        assert conflict.overridable == (severity == ConflictSeverity.BLOCKING and category != ConflictCategory.INVARIANT)


def test_resolve_raises_on_invariant_even_with_policy():
    policy = OverridePolicy(allow_blocking_conflicts=True, categories=(ConflictCategory.CONSTRAINTS,), reason="coach approved")
    conflicts = (make_conflict("ctl_ramp_exceeds_cap", "ramp"), make_conflict("baseline_above_cap", "cap"))
    with pytest.raises(InvariantViolationError) as exc_info:
        resolve_blocking_conflicts(conflicts, policy)
    assert exc_info.value.details == ["ctl_ramp_exceeds_cap"]


def test_resolve_requires_matching_category():
    conflicts = (make_conflict("baseline_above_cap", "cap"), make_conflict("goal_outside_plan_horizon", "horizon"))
    policy = OverridePolicy(allow_blocking_conflicts=True, categories=(ConflictCategory.CONSTRAINTS,), reason="known")
    with pytest.raises(BlockingConflictError) as exc_info:
        resolve_blocking_conflicts(conflicts, policy)
    assert [conflict.code for conflict in exc_info.value.conflicts] == ["goal_outside_plan_horizon"]


def test_resolve_returns_overridden_conflicts():
    conflicts = (make_conflict("baseline_above_cap", "cap"), make_conflict("low_evidence_confidence", "weak"))
    policy = OverridePolicy(allow_blocking_conflicts=True, categories=(ConflictCategory.CONSTRAINTS,), reason="known")
    overridden = resolve_blocking_conflicts(conflicts, policy)
    assert [conflict.code for conflict in overridden] == ["baseline_above_cap"]


def test_resolve_without_blocking_needs_no_policy():
    assert resolve_blocking_conflicts((make_conflict("low_evidence_confidence", "weak"),), None) == ()


def test_override_policy_validation():
    with pytest.raises(ValidationError):
        OverridePolicy(allow_blocking_conflicts=True, categories=(ConflictCategory.RECOVERY,), reason=" ")
    with pytest.raises(ValidationError):
        OverridePolicy(allow_blocking_conflicts=True, reason="no categories")
    with pytest.raises(MalformedInputError) as exc_info:
        parse_override_policy({"allow_blocking_conflicts": True, "categories": ["invariant"], "reason": "please"})
    assert exc_info.value.code == "MALFORMED_INPUT"
