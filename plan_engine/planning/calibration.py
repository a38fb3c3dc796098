"""Versioned calibration for the plan engine.

All tunable constants (time constants, demand model coefficients, scoring
noise, GDI weights) live in one immutable CalibrationConfig. It is loaded
from YAML under ``plan_engine/data/calibration/<version>.yaml`` and passed
explicitly into every computational function. Nothing in the engine reads
calibration from module state.

The full calibration content participates in the snapshot token, so a plan
previewed under one calibration cannot be committed under another.
"""

from functools import lru_cache
from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from plan_engine.planning.enums import Activity, GoalDemandTier, OptimizationProfile, SuggestionProfile, Weekday

CALIBRATION_DIR = Path(__file__).parent.parent / "data" / "calibration"


class CalibrationError(RuntimeError):
    """Raised when a calibration file is missing or invalid."""


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class LoadModelCalibration(_Frozen):
    fitness_time_constant_days: float = Field(gt=0)
    fatigue_time_constant_days: float = Field(gt=0)


class PriorityCalibration(_Frozen):
    """Shared priority weight ``epsilon + (p/10) ** gamma`` and tier cutoffs."""

    epsilon: float = Field(gt=0)
    gamma: float = Field(gt=0)
    tier_a_min: float
    tier_b_min: float

    @model_validator(mode="after")
    def validate_tiers(self) -> "PriorityCalibration":
        if self.tier_b_min > self.tier_a_min:
            raise ValueError("tier_b_min must not exceed tier_a_min")
        return self


class BootstrapCalibration(_Frozen):
    recency_half_life_days: float = Field(gt=0)
    sample_saturation: float = Field(gt=0)
    quality_floor: float = Field(ge=0, le=1)
    target_form: float
    form_tolerance: float = Field(gt=0)
    reference_fitness: float = Field(gt=0)
    fatigue_overflow_scale: float = Field(gt=0)
    form_weight: float = Field(ge=0)
    fitness_weight: float = Field(ge=0)
    fatigue_weight: float = Field(ge=0)
    low_confidence_below: float = Field(ge=0, le=1)


class RampProfile(_Frozen):
    max_weekly_load_ramp_pct: float = Field(ge=0)
    max_ctl_ramp_per_week: float = Field(ge=0)
    post_goal_recovery_days: int = Field(ge=0)


class CreationDefaults(_Frozen):
    optimization_profile: OptimizationProfile
    baseline_weekly_load: float = Field(ge=0)
    weekly_load_floor: float = Field(ge=0)
    weekly_load_cap: float = Field(ge=0)
    min_sessions_per_week: int = Field(ge=0)
    max_sessions_per_week: int = Field(ge=0)
    available_days: tuple[Weekday, ...]
    max_session_duration_minutes: int = Field(gt=0)
    user_confidence: float = Field(ge=0, le=1)
    suggested_confidence: float = Field(ge=0, le=1)
    default_confidence: float = Field(ge=0, le=1)


class SuggestionCalibration(_Frozen):
    rich_min_confidence: float = Field(ge=0, le=1)
    no_data_confidence_max: float = Field(ge=0, le=1)
    mixed_confidence_min: float = Field(ge=0, le=1)
    mixed_confidence_max: float = Field(ge=0, le=1)
    rich_confidence_min: float = Field(ge=0, le=1)
    floor_fraction: float = Field(ge=0, le=1)
    cap_multiplier: dict[SuggestionProfile, float]
    session_min_fraction: float = Field(gt=0)
    session_max_fraction: float = Field(gt=0)
    available_days: dict[SuggestionProfile, tuple[Weekday, ...]]
    max_session_duration_minutes: dict[SuggestionProfile, int]
    optimization_profile: dict[SuggestionProfile, OptimizationProfile]


class DemandCalibration(_Frozen):
    distance_base_fitness: float
    distance_log_coefficient: float
    pace_reference_kph: float
    pace_boost_per_kph: float
    pace_boost_max: float
    pace_threshold_fitness: float
    power_threshold_fitness: float
    hr_threshold_fitness: float
    tier_bias_per_rank: float
    max_share: float = Field(ge=0, le=1)
    no_target_base_fitness: float
    no_target_per_rank: float
    high_tier_min_km: float
    medium_tier_min_km: float
    race_weight_distance_km: float = Field(gt=0)
    race_weight_distance_max: float
    race_paced_bonus: float
    power_candidate_weight: float = Field(gt=0)
    pace_candidate_weight: float = Field(gt=0)
    hr_candidate_weight: float = Field(gt=0)
    horizon_reference_weeks: float = Field(gt=0)
    horizon_pressure_min: float
    horizon_pressure_max: float
    horizon_multiplier_coefficient: float
    min_required_fitness: float = Field(gt=0)
    max_required_fitness: float = Field(gt=0)
    demand_band_low_factor: float = Field(gt=0)
    demand_band_high_factor: float = Field(gt=0)
    high_confidence_weeks: int
    medium_confidence_weeks: int


class ProjectionCalibration(_Frozen):
    adaptation_margin: float = Field(ge=0)
    taper_weeks: int = Field(ge=0)
    deload_every_weeks: int = Field(gt=0)
    ramp_wave: tuple[float, ...] = Field(min_length=1)
    event_multiplier: float = Field(gt=0)
    taper_multiplier: float = Field(gt=0)
    deload_multiplier: float = Field(gt=0)
    recovery_reduction: float = Field(ge=0, lt=1)


class FeasibilityCalibration(_Frozen):
    load_state_weight: float
    intensity_balance_weight: float
    specificity_weight: float
    execution_confidence_weight: float
    high_band_min: int
    medium_band_min: int
    uncertainty_min: float
    uncertainty_max: float
    uncertainty_base: float
    uncertainty_confidence_coefficient: float
    uncertainty_clamp_coefficient: float
    low_confidence_limiter_below: float


class PlausibilityReference(_Frozen):
    reference_speed_mps: float = Field(gt=0)
    reference_distance_m: float = Field(gt=0)


class ScoringCalibration(_Frozen):
    race_noise: float = Field(gt=0)
    pace_noise: float = Field(gt=0)
    power_noise: float = Field(gt=0)
    hr_noise: float = Field(gt=0)
    confidence_spread_k: float = Field(ge=0)
    inferred_spread_multiplier: float = Field(ge=1)
    riegel_exponent: float = Field(gt=0)
    fitness_gain_sensitivity: float = Field(ge=0)
    fitness_gain_max: float = Field(ge=0)
    inference_floor_fraction: float = Field(ge=0, lt=1)
    inference_shape: float = Field(gt=0)
    hr_inference_floor_fraction: float = Field(ge=0, lt=1)
    demand_penalty_k: float = Field(ge=0)
    plausibility: dict[Activity, PlausibilityReference]
    speed_ceiling_exponent: float = Field(ge=0)
    power_ceiling_watts: float = Field(gt=0)
    hr_ceiling_bpm: float = Field(gt=0)

    @model_validator(mode="after")
    def validate_plausibility(self) -> "ScoringCalibration":
        missing = [activity.value for activity in Activity if activity not in self.plausibility]
        if missing:
            raise ValueError(f"plausibility missing activities: {missing}")
        return self


class GdiCalibration(_Frozen):
    performance_weight: float = Field(ge=0)
    load_weight: float = Field(ge=0)
    timeline_weight: float = Field(ge=0)
    sparsity_max: float = Field(ge=0, le=1)
    performance_gap_full_scale: float = Field(gt=0)
    min_build_weeks: dict[GoalDemandTier, int]


class CalibrationConfig(_Frozen):
    """Immutable, versioned set of engine constants."""

    version: str
    load_model: LoadModelCalibration
    priority: PriorityCalibration
    bootstrap: BootstrapCalibration
    profiles: dict[OptimizationProfile, RampProfile]
    creation_defaults: CreationDefaults
    suggestions: SuggestionCalibration
    demand: DemandCalibration
    projection: ProjectionCalibration
    feasibility: FeasibilityCalibration
    scoring: ScoringCalibration
    gdi: GdiCalibration

    @model_validator(mode="after")
    def validate_profiles(self) -> "CalibrationConfig":
        missing = [profile.value for profile in OptimizationProfile if profile not in self.profiles]
        if missing:
            raise ValueError(f"profiles missing: {missing}")
        return self


@lru_cache(maxsize=16)
def _load_from_dir(resolved_dir: str, version: str) -> CalibrationConfig:
    path = Path(resolved_dir) / f"{version}.yaml"
    if not path.exists():
        raise CalibrationError(f"Calibration file not found: {path}")

    with path.open() as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise CalibrationError(f"Invalid calibration format in {path}")

    try:
        config = CalibrationConfig.model_validate(raw)
    except ValidationError as e:
        raise CalibrationError(f"Invalid calibration {version}: {e}") from e

    if config.version != version:
        raise CalibrationError(f"Calibration file {path.name} declares version {config.version!r}")

    logger.info("calibration_loaded", version=version, path=str(path))
    return config


def load_calibration(version: str = "v1", directory: Path | str | None = None) -> CalibrationConfig:
    """Load and validate a calibration version from YAML.

    Results are cached per (directory, version). The returned object is
    frozen, so sharing it across requests is safe.

    Args:
        version: Calibration file stem (e.g., "v1")
        directory: Optional directory to read from instead of the bundled one

    Returns:
        Validated CalibrationConfig

    Raises:
        CalibrationError: If the file is missing, unreadable, or invalid
    """
    base_dir = Path(directory) if directory is not None else CALIBRATION_DIR
    return _load_from_dir(str(base_dir.resolve()), version)
