"""Tests for the capped weekly projection."""

from datetime import date, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from plan_engine.planning.bootstrap import bootstrap_state
from plan_engine.planning.demand import build_goal_demand_profile
from plan_engine.planning.enums import GoalDemandTier, OverrideReason, WeekPattern
from plan_engine.planning.invariants import CAP_TOLERANCE
from plan_engine.planning.normalize import normalize_creation_config
from plan_engine.planning.projection import horizon_weeks, project_plan
from plan_engine.planning.schemas.creation import CreationConfigInput
from plan_engine.planning.schemas.evidence import EvidenceSummary, StartingStateOverride
from plan_engine.planning.schemas.goals import MinimalPlan


def _project(request, calibration):
    config = normalize_creation_config(request.creation_config, calibration).config
    state = bootstrap_state(request.evidence, request.as_of, calibration, request.starting_state)
    return project_plan(request.plan, config, state, calibration), state


def test_marathon_demand_profile(calibration, marathon_request):
    goal = marathon_request.plan.goals[0]
    profile = build_goal_demand_profile(goal, marathon_request.plan.start_date, calibration)
    assert profile.demand_tier == GoalDemandTier.HIGH
    assert 100 < profile.required_peak_fitness < 110
    assert profile.event_week == 12
    assert profile.build_end_week == 10
    assert profile.required_peak_weekly_load == round(profile.required_peak_fitness * 7, 1)


def test_marathon_projection_starts_from_zero(calibration, marathon_request):
    projection, state = _project(marathon_request, calibration)
    assert state.fitness == 0.0
    assert horizon_weeks(marathon_request.plan) == 13
    assert len(projection.weeks) == 13
    assert projection.weeks[0].fitness_ramp <= 3 + CAP_TOLERANCE


def test_demand_floor_rises_through_build_weeks(calibration, marathon_request):
    """Fitness lags the demand line under the caps, so the floor keeps rising."""
    projection, _ = _project(marathon_request, calibration)
    profile = projection.demand_model[0]
    floors = [week.demand_floor for week in projection.weeks[: profile.build_end_week + 1]]
    assert all(floor > 0 for floor in floors)
    assert floors == sorted(floors)


def test_demand_floor_suppressed_in_taper_and_event_weeks(calibration, marathon_request):
    projection, _ = _project(marathon_request, calibration)
    taper, event = projection.weeks[11], projection.weeks[12]
    assert taper.pattern == WeekPattern.TAPER
    assert event.pattern == WeekPattern.EVENT
    assert taper.demand_floor == 0.0
    assert event.demand_floor == 0.0


def test_clamped_weeks_report_demand_gap(calibration, marathon_request):
    projection, _ = _project(marathon_request, calibration)
    build_weeks = projection.weeks[:11]
    assert all(week.ctl_cap_clamped or week.pct_cap_clamped for week in build_weeks)
    assert all(week.override_reason == OverrideReason.RAMP_CAP for week in build_weeks)
    assert all(week.demand_gap == pytest.approx(week.demand_floor - week.applied_load, abs=0.11) for week in build_weeks)
    marker = projection.goal_markers[0]
    assert marker.fitness_gap > 50
    assert marker.demand_gap > 0


def test_deload_weeks_follow_cadence(calibration, marathon_request):
    projection, _ = _project(marathon_request, calibration)
    assert [week.index for week in projection.weeks if week.pattern == WeekPattern.DELOAD] == [3, 7]


def test_recovery_week_after_goal(calibration, make_request, make_goal):
    first = make_goal(id="half", target_date="2026-02-01", priority=5, targets=[])
    second = make_goal(id="marathon", target_date="2026-03-29")
    request = make_request(plan={"start_date": "2026-01-05", "goals": [first, second]})
    projection, _ = _project(request, calibration)
    recovery = [week for week in projection.weeks if week.pattern == WeekPattern.RECOVERY]
    assert recovery
    assert recovery[0].recovery_goal_ids == ("half",)
    assert recovery[0].demand_floor == 0.0


def test_block_midpoint_sets_baseline(calibration, make_request, make_goal):
    plan = {
        "start_date": "2026-01-05",
        "goals": [make_goal()],
        "blocks": [
            {
                "name": "base",
                "phase": "base",
                "start_date": "2026-01-05",
                "end_date": "2026-02-01",
                "target_weekly_load_min": 200,
                "target_weekly_load_max": 300,
            }
        ],
    }
    request = make_request(plan=plan, starting_state={"fitness": 40, "fatigue": 40})
    projection, _ = _project(request, calibration)
    first = projection.weeks[0]
    assert first.block_name == "base"
    assert first.block_baseline == round(250 * first.pattern_multiplier, 1)


@settings(max_examples=60, deadline=None)
@given(
    fitness=st.floats(min_value=0, max_value=150),
    fatigue=st.floats(min_value=0, max_value=150),
    baseline=st.floats(min_value=0, max_value=600),
    pct=st.floats(min_value=0, max_value=20),
    ctl=st.floats(min_value=0, max_value=8),
    weeks_out=st.integers(min_value=0, max_value=30),
    distance=st.sampled_from([5000, 10000, 21097.5, 42195]),
)
def test_applied_load_never_exceeds_caps(calibration, fitness, fatigue, baseline, pct, ctl, weeks_out, distance):
    """Whatever the demand, applied load and fitness ramp stay within both caps."""
    start = date(2026, 1, 5)
    plan = MinimalPlan.model_validate(
        {
            "start_date": start,
            "goals": [
                {
                    "id": "g",
                    "target_date": start + timedelta(weeks=weeks_out, days=2),
                    "priority": 7,
                    "targets": [{"kind": "race_performance", "distance_m": distance, "target_time_s": distance / 5.0}],
                }
            ],
        }
    )
    config = normalize_creation_config(
        CreationConfigInput.model_validate(
            {"user": {"baseline_weekly_load": baseline, "max_weekly_load_ramp_pct": pct, "max_ctl_ramp_per_week": ctl}}
        ),
        calibration,
    ).config
    state = bootstrap_state(
        EvidenceSummary(),
        start,
        calibration,
        StartingStateOverride(fitness=fitness, fatigue=fatigue),
    )
    projection = project_plan(plan, config, state, calibration)

    previous = max(7 * state.fitness, baseline)
    for week in projection.weeks:
        assert week.applied_load <= week.pct_cap_load + CAP_TOLERANCE
        assert week.applied_load <= week.ctl_cap_load + CAP_TOLERANCE
        assert week.pct_cap_load <= previous * (1 + pct / 100) + CAP_TOLERANCE
        assert week.fitness_ramp <= ctl + CAP_TOLERANCE
        assert week.applied_load >= 0
        previous = week.applied_load
