"""Priority weighting shared by every aggregator.

Goal scores, the plan score and plan-level GDI all weight goals with the
same monotonic function of priority:

    weight(p) = epsilon + (p / 10) ** gamma

Equal priorities therefore always exert equal optimization pressure, and a
higher priority never receives a lower weight. Tiers (A/B/C) are derived
from priority for reporting only and never enter a weighted mean.
"""

from plan_engine.planning.calibration import PriorityCalibration
from plan_engine.planning.enums import PriorityTier
from plan_engine.planning.invariants import MAX_PRIORITY, MIN_PRIORITY


def priority_weight(priority: float, calibration: PriorityCalibration) -> float:
    """Map a 0-10 priority to an aggregation weight.

    Out-of-range priorities are clamped to the scale first.

    Args:
        priority: Goal priority (higher = more important)
        calibration: Priority calibration (epsilon, gamma)

    Returns:
        Strictly positive weight, non-decreasing in priority
    """
    clamped = min(MAX_PRIORITY, max(MIN_PRIORITY, priority))
    return calibration.epsilon + (clamped / MAX_PRIORITY) ** calibration.gamma


def priority_tier(priority: float, calibration: PriorityCalibration) -> PriorityTier:
    """Reporting tier for a priority."""
    if priority >= calibration.tier_a_min:
        return PriorityTier.A
    if priority >= calibration.tier_b_min:
        return PriorityTier.B
    return PriorityTier.C


def weighted_mean(values: list[float], weights: list[float]) -> float:
    """Weighted mean; zero total weight yields 0.0."""
    total_weight = sum(weights)
    if total_weight <= 0:
        return 0.0
    return sum(value * weight for value, weight in zip(values, weights, strict=True)) / total_weight
