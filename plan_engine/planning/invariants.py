"""Plan engine invariants - single source of truth.

These are contract constants, not calibration: changing any of them changes
what callers are promised. Tunable constants live in the versioned
CalibrationConfig instead.

Rule: caps are hard. No projection, override policy, or downstream consumer
may produce a week whose applied load exceeds either ramp cap.
"""

# Absolute bounds for user-configurable safety caps
MAX_WEEKLY_LOAD_RAMP_PCT_BOUND = 20.0
MAX_CTL_RAMP_PER_WEEK_BOUND = 8.0
MAX_POST_GOAL_RECOVERY_DAYS_BOUND = 28

# Starting state override bounds
MAX_STARTING_FITNESS_OVERRIDE = 250.0
MAX_STARTING_FATIGUE_OVERRIDE = 200.0

# Priority scale
MIN_PRIORITY = 0.0
MAX_PRIORITY = 10.0

# Days per projection week
DAYS_PER_WEEK = 7

# Floating point slack when re-verifying caps
CAP_TOLERANCE = 1e-6

# GDI feasibility band upper bounds (exclusive), in order
GDI_FEASIBLE_BELOW = 0.30
GDI_STRETCH_BELOW = 0.50
GDI_AGGRESSIVE_BELOW = 0.75
GDI_NEARLY_IMPOSSIBLE_BELOW = 0.95
