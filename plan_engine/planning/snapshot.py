"""Preview/commit parity guard.

The snapshot token is a sha256 over a canonical JSON rendering of every
input and derived value that decides what a commit would persist. Commit
recomputes the token from the same request and refuses to persist if it
differs from the token the preview handed out.
"""

import hashlib
import hmac
import json
from typing import Any

from pydantic import BaseModel

from plan_engine.planning.calibration import CalibrationConfig
from plan_engine.planning.errors import StaleSnapshotError
from plan_engine.planning.schemas.creation import NormalizedConfigResult
from plan_engine.planning.schemas.requests import PlanCreationRequest
from plan_engine.planning.schemas.results import (
    ConstraintSummary,
    FeasibilityState,
    GoalDemandProfile,
    StateSnapshot,
)

FLOAT_PRECISION = 6


def _canonical(value: Any) -> Any:
    """Round floats and normalize containers so equal inputs hash equally."""
    if isinstance(value, BaseModel):
        return _canonical(value.model_dump(mode="json"))
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        rounded = round(value, FLOAT_PRECISION)
        # -0.0 and 0.0 must hash the same
        return 0.0 if rounded == 0 else rounded
    if isinstance(value, dict):
        return {str(key): _canonical(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_canonical(item) for item in value]
    return value


def canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(_canonical(payload), sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def build_snapshot_token(
    request: PlanCreationRequest,
    normalized: NormalizedConfigResult,
    state: StateSnapshot,
    constraint_summary: ConstraintSummary,
    feasibility: FeasibilityState,
    demand_model: tuple[GoalDemandProfile, ...],
    calibration: CalibrationConfig,
) -> str:
    """Hash the preview state into a hex token.

    The whole request is hashed, so any change to a scored input (plan,
    creation config, evidence including capabilities, starting state,
    as_of) makes an earlier token stale. So does any change to the
    calibration content, even under an unchanged version name.

    Args:
        request: The plan creation request
        normalized: Normalized config with provenance
        state: Bootstrapped starting state
        constraint_summary: Projection constraint summary
        feasibility: Projection feasibility state
        demand_model: Per-goal demand profiles
        calibration: Active calibration

    Returns:
        64-character hex sha256 digest
    """
    payload = {
        "request": request,
        "normalized_config": normalized.config,
        "provenance": normalized.provenance,
        "state": state,
        "constraint_summary": constraint_summary,
        "feasibility": feasibility,
        "demand_model": list(demand_model),
        "calibration": calibration,
    }
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def verify_snapshot_token(expected: str, presented: str) -> None:
    """Compare tokens in constant time.

    Raises:
        StaleSnapshotError: If the presented token does not match
    """
    if not hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8")):
        raise StaleSnapshotError(expected=expected, presented=presented)
