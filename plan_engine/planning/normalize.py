"""Creation config normalization with per-field provenance.

Each field resolves by a fixed precedence:

    user_locked > user_set > suggested_accepted > default

Suggestions that the user did not accept are ignored. When the request
carries no suggested values, the suggested layer is filled from the
evidence-derived CreationSuggestions and accepted values take their
confidence. Ramp-cap defaults
come from the selected optimization profile, which is itself resolved
first by the same precedence.
"""

from typing import Any

from loguru import logger

from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.enums import OptimizationProfile, ProvenanceSource
from plan_engine.planning.schemas.creation import (
    CONFIG_FIELDS,
    CreationConfigInput,
    CreationSuggestions,
    FieldProvenance,
    NormalizedConfigResult,
    NormalizedCreationConfig,
)


def _pick(config_input: CreationConfigInput, field: str) -> tuple[Any, ProvenanceSource] | None:
    locked = getattr(config_input.locked, field)
    if locked is not None:
        return locked, ProvenanceSource.USER_LOCKED

    user = getattr(config_input.user, field)
    if user is not None:
        return user, ProvenanceSource.USER_SET

    if field in config_input.accepted_suggestions:
        suggested = getattr(config_input.suggested, field)
        if suggested is not None:
            return suggested, ProvenanceSource.SUGGESTED_ACCEPTED

    return None


def _source_confidence(source: ProvenanceSource, calibration: CalibrationConfig, suggested_confidence: float) -> float:
    defaults = calibration.creation_defaults
    if source in {ProvenanceSource.USER_LOCKED, ProvenanceSource.USER_SET}:
        return defaults.user_confidence
    if source == ProvenanceSource.SUGGESTED_ACCEPTED:
        return suggested_confidence
    return defaults.default_confidence


def normalize_creation_config(
    config_input: CreationConfigInput,
    calibration: CalibrationConfig,
    suggestions: CreationSuggestions | None = None,
) -> NormalizedConfigResult:
    """Collapse layered creation config into one resolved config.

    Args:
        config_input: Layered config from the request
        calibration: Calibration supplying defaults and profiles
        suggestions: Evidence-derived suggestions; they fill the suggested
            layer only when the request carries no suggested values

    Returns:
        NormalizedConfigResult with the config, per-field provenance, and
        the names of fields where a locked value overrode a different user
        value
    """
    suggested_confidence = calibration.creation_defaults.suggested_confidence
    if suggestions is not None and not config_input.suggested.model_dump(exclude_none=True):
        config_input = config_input.model_copy(update={"suggested": suggestions.values})
        suggested_confidence = suggestions.confidence

    values: dict[str, Any] = {}
    provenance: dict[str, FieldProvenance] = {}

    picked_profile = _pick(config_input, "optimization_profile")
    if picked_profile is None:
        profile = calibration.creation_defaults.optimization_profile
        profile_source = ProvenanceSource.DEFAULT
    else:
        profile = OptimizationProfile(picked_profile[0])
        profile_source = picked_profile[1]
    values["optimization_profile"] = profile
    provenance["optimization_profile"] = FieldProvenance(
        source=profile_source,
        confidence=_source_confidence(profile_source, calibration, suggested_confidence),
    )

    ramp_profile = calibration.profiles[profile]
    defaults = calibration.creation_defaults.model_dump()
    defaults.update(ramp_profile.model_dump())

    for field in CONFIG_FIELDS:
        if field == "optimization_profile":
            continue
        picked = _pick(config_input, field)
        if picked is None:
            value, source = defaults[field], ProvenanceSource.DEFAULT
        else:
            value, source = picked
        values[field] = value
        provenance[field] = FieldProvenance(source=source, confidence=_source_confidence(source, calibration, suggested_confidence))

    lock_overrides = tuple(
        field
        for field in CONFIG_FIELDS
        if getattr(config_input.locked, field) is not None
        and getattr(config_input.user, field) is not None
        and getattr(config_input.locked, field) != getattr(config_input.user, field)
    )

    config = NormalizedCreationConfig(**values)
    logger.debug(
        "creation_config_normalized",
        profile=profile.value,
        defaulted=sum(1 for item in provenance.values() if item.source == ProvenanceSource.DEFAULT),
        lock_overrides=len(lock_overrides),
    )
    return NormalizedConfigResult(
        config=config,
        provenance=provenance,
        lock_overrides=lock_overrides,
        suggested=config_input.suggested,
    )
