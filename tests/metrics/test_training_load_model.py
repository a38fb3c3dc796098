"""Tests for the fitness/fatigue load model."""

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from plan_engine.metrics.training_load import (
    decay_factor,
    decay_state,
    max_weekly_load_for_ramp,
    step_state,
    weekly_load_for_target,
)


def _daily_ewma(values: list[float], tau_days: float, initial: float) -> list[float]:
    """Reference day-by-day EWMA the weekly closed form must agree with."""
    alpha = 1.0 - math.exp(-1.0 / tau_days)
    result = []
    current = initial
    for value in values:
        current = alpha * value + (1.0 - alpha) * current
        result.append(current)
    return result


def test_weekly_step_matches_daily_ewma():
    """Stepping a week of evenly spread load equals seven daily EWMA updates."""
    daily = _daily_ewma([30.0] * 7, tau_days=42, initial=50.0)
    assert step_state(50.0, 210.0, tau_days=42) == pytest.approx(daily[-1], rel=1e-12)


def test_decay_factor_for_one_week():
    assert decay_factor(42) == pytest.approx(math.exp(-7 / 42))
    assert decay_factor(7, days=7) == pytest.approx(math.exp(-1))


def test_decay_state_without_elapsed_days_is_identity():
    assert decay_state(40.0, 0, 42) == 40.0
    assert decay_state(40.0, 42, 42) == pytest.approx(40.0 * math.exp(-1))


@given(
    value=st.floats(min_value=0, max_value=200),
    target=st.floats(min_value=0, max_value=200),
)
def test_weekly_load_for_target_inverts_step(value, target):
    """Where the target is reachable, the inverse load lands exactly on it."""
    load = weekly_load_for_target(value, target, tau_days=42)
    assert load >= 0
    if load > 0:
        assert step_state(value, load, tau_days=42) == pytest.approx(target, abs=1e-6)


@given(
    value=st.floats(min_value=0, max_value=200),
    cap=st.floats(min_value=0, max_value=8),
)
def test_max_load_for_ramp_hits_cap(value, cap):
    load = max_weekly_load_for_ramp(value, cap, tau_days=42)
    assert step_state(value, load, tau_days=42) - value == pytest.approx(cap, abs=1e-6)


def test_unreachable_target_maps_to_zero_load():
    """Dropping faster than rest allows is impossible; the load floors at zero."""
    assert weekly_load_for_target(100.0, 0.0, tau_days=42) == 0.0
