"""Point readiness from a fitness/fatigue state.

Readiness blends three signals, each in [0, 1]:

- form: closeness of form to a target form within a tolerance
- fitness: fitness relative to a reference fitness
- fatigue: penalty for fatigue in excess of fitness

The blend is scaled to an integer 0-100.
"""

from plan_engine.planning.calibration import BootstrapCalibration


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def point_readiness(fitness: float, fatigue: float, calibration: BootstrapCalibration) -> int:
    """Readiness 0-100 for a single state.

    Args:
        fitness: Fitness (CTL-equivalent)
        fatigue: Fatigue (ATL-equivalent)
        calibration: Bootstrap calibration with target form and weights

    Returns:
        Integer readiness in [0, 100]; non-decreasing in fitness when
        fatigue tracks fitness
    """
    fitness = max(0.0, fitness)
    fatigue = max(0.0, fatigue)
    current_form = fitness - fatigue

    form_signal = clamp01(1.0 - abs(current_form - calibration.target_form) / calibration.form_tolerance)
    fitness_signal = clamp01(fitness / calibration.reference_fitness)
    overflow = max(0.0, fatigue - fitness)
    fatigue_signal = clamp01(1.0 - overflow / max(1.0, calibration.reference_fitness * calibration.fatigue_overflow_scale))

    total_weight = calibration.form_weight + calibration.fitness_weight + calibration.fatigue_weight
    if total_weight <= 0:
        return 0
    blended = (
        form_signal * calibration.form_weight
        + fitness_signal * calibration.fitness_weight
        + fatigue_signal * calibration.fatigue_weight
    ) / total_weight
    return int(round(clamp01(blended) * 100))
