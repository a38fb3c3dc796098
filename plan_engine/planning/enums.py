"""Canonical enums for the plan engine.

All enums are string-based to keep JSON payloads, snapshot tokens and
persisted plans stable.
"""

from enum import StrEnum


# -----------------------------
# Activities and targets
# -----------------------------
class Activity(StrEnum):
    """Activity category a goal or target belongs to."""

    RUN = "run"
    BIKE = "bike"
    SWIM = "swim"
    OTHER = "other"


class TargetKind(StrEnum):
    """Discriminator for target variants."""

    RACE_PERFORMANCE = "race_performance"
    PACE_THRESHOLD = "pace_threshold"
    POWER_THRESHOLD = "power_threshold"
    HR_THRESHOLD = "hr_threshold"


class GoalDemandTier(StrEnum):
    """Physiological demand tier of a goal, derived from its targets."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# -----------------------------
# Creation config
# -----------------------------
class OptimizationProfile(StrEnum):
    """Trade-off between goal outcome and load sustainability."""

    OUTCOME_FIRST = "outcome_first"
    BALANCED = "balanced"
    SUSTAINABLE = "sustainable"


class SuggestionProfile(StrEnum):
    """How much history backs the derived creation suggestions."""

    NO_DATA = "no_data"
    MIXED = "mixed"
    RICH_DATA = "rich_data"


class ProvenanceSource(StrEnum):
    """Where a normalized config value came from.

    Declaration order is precedence order: earlier members win.
    """

    USER_LOCKED = "user_locked"
    USER_SET = "user_set"
    SUGGESTED_ACCEPTED = "suggested_accepted"
    DEFAULT = "default"


class Weekday(StrEnum):
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"
    SUN = "sun"


# -----------------------------
# Evidence and state
# -----------------------------
class HistoryState(StrEnum):
    """History availability reported by the evidence collaborator."""

    NONE = "none"
    SPARSE = "sparse"
    STALE = "stale"
    RICH = "rich"


class StateSource(StrEnum):
    """How the starting fitness was obtained."""

    OVERRIDE = "override"
    EVIDENCE = "evidence"
    NEVER_TRAINED = "never_trained"


# -----------------------------
# Projection
# -----------------------------
class BlockPhase(StrEnum):
    BASE = "base"
    BUILD = "build"
    PEAK = "peak"
    TAPER = "taper"
    RECOVERY = "recovery"


class WeekPattern(StrEnum):
    """Load rhythm assigned to a projection week."""

    RAMP = "ramp"
    DELOAD = "deload"
    TAPER = "taper"
    EVENT = "event"
    RECOVERY = "recovery"


class OverrideReason(StrEnum):
    """Why applied load differs from the block baseline."""

    NONE = "none"
    DEMAND_FLOOR = "demand_floor"
    ADAPTATION_FLOOR = "adaptation_floor"
    RAMP_CAP = "ramp_cap"
    RECOVERY = "recovery"


class ReadinessBand(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# -----------------------------
# Scoring and feasibility
# -----------------------------
class PriorityTier(StrEnum):
    """Reporting bucket derived from priority. Never used for weighting."""

    A = "A"
    B = "B"
    C = "C"


class FeasibilityBand(StrEnum):
    FEASIBLE = "feasible"
    STRETCH = "stretch"
    AGGRESSIVE = "aggressive"
    NEARLY_IMPOSSIBLE = "nearly_impossible"
    INFEASIBLE = "infeasible"


# -----------------------------
# Conflicts
# -----------------------------
class ConflictSeverity(StrEnum):
    BLOCKING = "blocking"
    WARNING = "warning"


class ConflictCategory(StrEnum):
    """Override scope of a conflict. INVARIANT is never overridable."""

    INVARIANT = "invariant"
    RECOVERY = "recovery"
    CONSTRAINTS = "constraints"
    HORIZON = "horizon"
    DEMAND = "demand"
    EVIDENCE = "evidence"
    CONFIG = "config"
