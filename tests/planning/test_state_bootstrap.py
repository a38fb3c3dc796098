"""Tests for the state bootstrapper and evidence confidence."""

from datetime import date, timedelta

from hypothesis import given
from hypothesis import strategies as st

from plan_engine.planning.bootstrap import bootstrap_state, evidence_confidence
from plan_engine.planning.enums import StateSource
from plan_engine.planning.schemas.evidence import EvidenceSummary, StartingStateOverride

AS_OF = date(2026, 1, 5)


def test_never_trained_starts_at_zero(calibration):
    state = bootstrap_state(EvidenceSummary(), AS_OF, calibration)
    assert state.fitness == 0.0
    assert state.fatigue == 0.0
    assert state.source == StateSource.NEVER_TRAINED
    assert state.confidence == 0.0
    assert "no_usable_evidence" in state.rationale_codes
    assert "low_evidence_confidence" in state.rationale_codes


def test_rich_evidence_uses_decayed_estimate(calibration, rich_request):
    state = bootstrap_state(rich_request.evidence, rich_request.as_of, calibration)
    assert state.source == StateSource.EVIDENCE
    assert "fitness_from_estimate" in state.rationale_codes
    assert 55 < state.fitness < 62
    assert state.recency_days == 2
    assert state.confidence > 0.7
    assert state.form == round(state.fitness - state.fatigue, 2)


def test_weekly_load_average_fallback(calibration):
    evidence = EvidenceSummary(last_activity_date=AS_OF, activity_count_28d=10, weekly_load_avg_28d=350.0)
    state = bootstrap_state(evidence, AS_OF, calibration)
    assert state.fitness == 50.0
    assert "fitness_from_weekly_load" in state.rationale_codes
    assert "fatigue_assumed_balanced" in state.rationale_codes


def test_override_wins_over_evidence(calibration, rich_request):
    override = StartingStateOverride(fitness=80.0, fatigue=70.0)
    state = bootstrap_state(rich_request.evidence, rich_request.as_of, calibration, override)
    assert state.fitness == 80.0
    assert state.fatigue == 70.0
    assert state.source == StateSource.OVERRIDE


def test_evidence_after_as_of_is_flagged(calibration):
    evidence = EvidenceSummary(last_activity_date=AS_OF + timedelta(days=3), activity_count_28d=5, weekly_load_avg_28d=140.0)
    state = bootstrap_state(evidence, AS_OF, calibration)
    assert "evidence_after_as_of" in state.rationale_codes
    assert state.recency_days == 0


@given(
    recency=st.integers(min_value=0, max_value=180),
    extra_days=st.integers(min_value=1, max_value=60),
    count=st.integers(min_value=1, max_value=40),
    quality=st.floats(min_value=0, max_value=1),
)
def test_confidence_decays_with_age(calibration, recency, extra_days, count, quality):
    """Older evidence is never more trusted than fresher evidence."""
    fresh = EvidenceSummary(last_activity_date=AS_OF - timedelta(days=recency), activity_count_28d=count, data_quality=quality)
    stale = fresh.model_copy(update={"last_activity_date": AS_OF - timedelta(days=recency + extra_days)})
    fresh_confidence = evidence_confidence(fresh, AS_OF, calibration)
    stale_confidence = evidence_confidence(stale, AS_OF, calibration)
    assert 0.0 <= stale_confidence <= fresh_confidence <= 1.0
