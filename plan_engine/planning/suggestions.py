"""Creation suggestions derived from recent evidence.

Suggestions fill the ``suggested`` layer of a creation config when the
caller supplies none. They only take effect for fields the user lists in
``accepted_suggestions``.

The evidence is sorted into one of three profiles:

- no_data: no recent load history; nothing is suggested and the
  calibration defaults apply
- rich_data: rich history with confidence at or above
  ``rich_min_confidence``; tighter load range, more training days
- mixed: everything else; wider load range, more rest

Load suggestions centre on the 28-day weekly average:

    baseline = avg_28d
    floor    = baseline * floor_fraction
    cap      = baseline * cap_multiplier[profile]

Session counts scale the mean weekly session count and are limited to the
suggested training days.
"""

import math
from datetime import date

from loguru import logger

from plan_engine.planning.bootstrap import evidence_confidence
from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.enums import HistoryState, SuggestionProfile
from plan_engine.planning.schemas.creation import CreationConfigValues, CreationSuggestions
from plan_engine.planning.schemas.evidence import EvidenceSummary

MIN_SUGGESTED_SESSIONS = 2
MAX_SUGGESTED_SESSIONS = 7


def suggestion_profile(evidence: EvidenceSummary, confidence: float, calibration: CalibrationConfig) -> SuggestionProfile:
    if (
        evidence.history_state == HistoryState.NONE
        or evidence.activity_count_28d == 0
        or evidence.weekly_load_avg_28d is None
    ):
        return SuggestionProfile.NO_DATA
    if evidence.history_state == HistoryState.RICH and confidence >= calibration.suggestions.rich_min_confidence:
        return SuggestionProfile.RICH_DATA
    return SuggestionProfile.MIXED


def _suggestion_confidence(profile: SuggestionProfile, signal: float, calibration: CalibrationConfig) -> float:
    params = calibration.suggestions
    if profile == SuggestionProfile.NO_DATA:
        return min(signal, params.no_data_confidence_max)
    if profile == SuggestionProfile.RICH_DATA:
        return max(signal, params.rich_confidence_min)
    return min(params.mixed_confidence_max, max(params.mixed_confidence_min, signal))


def _session_range(activity_count_28d: int, day_count: int, calibration: CalibrationConfig) -> tuple[int, int]:
    params = calibration.suggestions
    weekly_sessions = activity_count_28d / 4
    low = min(MAX_SUGGESTED_SESSIONS, max(MIN_SUGGESTED_SESSIONS, math.floor(weekly_sessions * params.session_min_fraction)))
    high = min(MAX_SUGGESTED_SESSIONS, max(low + 1, math.ceil(weekly_sessions * params.session_max_fraction)))
    high = min(high, day_count)
    return min(low, high), high


def derive_creation_suggestions(
    evidence: EvidenceSummary,
    as_of: date,
    calibration: CalibrationConfig,
) -> CreationSuggestions:
    """Suggest creation values from an evidence summary.

    Args:
        evidence: Evidence summary (possibly empty)
        as_of: Reference date for evidence recency
        calibration: Engine calibration

    Returns:
        CreationSuggestions; empty values for the no_data profile
    """
    signal = evidence_confidence(evidence, as_of, calibration)
    profile = suggestion_profile(evidence, signal, calibration)
    confidence = round(_suggestion_confidence(profile, signal, calibration), 3)

    if profile == SuggestionProfile.NO_DATA:
        return CreationSuggestions(profile=profile, confidence=confidence, rationale_codes=("no_recent_history",))

    params = calibration.suggestions
    baseline = round(evidence.weekly_load_avg_28d or 0.0)
    days = params.available_days[profile]
    min_sessions, max_sessions = _session_range(evidence.activity_count_28d, len(days), calibration)
    values = CreationConfigValues(
        optimization_profile=params.optimization_profile[profile],
        baseline_weekly_load=baseline,
        weekly_load_floor=round(baseline * params.floor_fraction),
        weekly_load_cap=round(baseline * params.cap_multiplier[profile]),
        min_sessions_per_week=min_sessions,
        max_sessions_per_week=max_sessions,
        available_days=days,
        max_session_duration_minutes=params.max_session_duration_minutes[profile],
    )

    codes = [f"history_{evidence.history_state.value}"]
    if signal < calibration.bootstrap.low_confidence_below:
        codes.append("low_evidence_confidence")
    logger.debug(
        "creation_suggestions_derived",
        profile=profile.value,
        confidence=confidence,
        baseline=baseline,
    )
    return CreationSuggestions(values=values, profile=profile, confidence=confidence, rationale_codes=tuple(codes))
