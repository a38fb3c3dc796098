"""Training load model (fitness and fatigue).

Fitness (CTL-equivalent) and fatigue (ATL-equivalent) are exponentially
weighted moving averages of daily load with time constants tau:

    alpha = 1 - exp(-1 / tau)
    x[i] = alpha * load[i] + (1 - alpha) * x[i-1]

The projection works in whole weeks with load spread evenly over the days
of the week. For a constant daily load d over n days the recursion has the
closed form

    x_n = d + (x_0 - d) * k,    k = (1 - alpha) ** n = exp(-n / tau)

which is used both to step the state forward and to invert it (the largest
weekly load that keeps a fitness ramp within a cap).

Properties:
- Deterministic: Same input always produces same output
- Pure: No I/O, no clock
"""

from __future__ import annotations

import math

from plan_engine.planning.invariants import DAYS_PER_WEEK


def decay_factor(tau_days: float, days: float = DAYS_PER_WEEK) -> float:
    """Fraction of the previous state retained after ``days`` days.

    Args:
        tau_days: Time constant in days (e.g., 42 for fitness, 7 for fatigue)
        days: Number of days elapsed

    Returns:
        k = (1 - alpha) ** days with alpha = 1 - exp(-1 / tau)
    """
    return math.exp(-days / tau_days)


def decay_state(value: float, days: float, tau_days: float) -> float:
    """Decay a state value over a period of zero load."""
    if days <= 0:
        return value
    return value * decay_factor(tau_days, days)


def step_state(value: float, weekly_load: float, tau_days: float, days: int = DAYS_PER_WEEK) -> float:
    """Advance one EWMA state by one week of evenly spread load.

    Args:
        value: State at the start of the week
        weekly_load: Total load applied over the week
        tau_days: Time constant in days
        days: Days in the week

    Returns:
        State at the end of the week
    """
    daily_load = weekly_load / days
    k = decay_factor(tau_days, days)
    return daily_load + (value - daily_load) * k


def weekly_load_for_target(value: float, target: float, tau_days: float, days: int = DAYS_PER_WEEK) -> float:
    """Weekly load that moves a state from ``value`` to ``target`` in one week.

    Inverse of step_state. Never negative: a target below what pure rest
    reaches is unreachable and maps to zero load.
    """
    k = decay_factor(tau_days, days)
    daily_load = value + (target - value) / (1.0 - k)
    return max(0.0, daily_load * days)


def max_weekly_load_for_ramp(value: float, ramp_cap: float, tau_days: float, days: int = DAYS_PER_WEEK) -> float:
    """Largest weekly load whose one-week state increase equals ``ramp_cap``.

    Args:
        value: State at the start of the week
        ramp_cap: Maximum allowed increase over the week
        tau_days: Time constant in days
        days: Days in the week

    Returns:
        Weekly load ceiling (unrounded)
    """
    return weekly_load_for_target(value, value + ramp_cap, tau_days, days)
