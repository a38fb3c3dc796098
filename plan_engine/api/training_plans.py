"""Training plan creation endpoints.

POST /training-plans/preview runs the engine and returns the full preview
with a snapshot token. POST /training-plans/commit re-runs it, verifies the
token and persists. GET /training-plans/{plan_id} returns a committed plan.

Error mapping:
- MalformedInputError -> 422
- BlockingConflictError, StaleSnapshotError -> 409
- InvariantViolationError -> 409 when it is a non-overridable conflict at
  commit, 500 when the engine itself broke a cap
"""

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from loguru import logger
from pydantic import BaseModel, ConfigDict

from plan_engine.config.settings import settings
from plan_engine.db.session import get_session_factory
from plan_engine.planning.calibration import CalibrationConfig, load_calibration
from plan_engine.planning.errors import (
    BlockingConflictError,
    InvariantViolationError,
    MalformedInputError,
    PlanEngineError,
    StaleSnapshotError,
)
from plan_engine.planning.pipeline import commit_plan, preview_plan
from plan_engine.planning.repository import PlanRepository, SqlAlchemyPlanRepository
from plan_engine.planning.schemas.requests import CommitResult, PreviewResult
from plan_engine.planning.validate import parse_creation_request, parse_override_policy

router = APIRouter(prefix="/training-plans", tags=["training-plans"])


class CommitPlanBody(BaseModel):
    """Commit request body. Nested payloads are validated by the engine."""

    model_config = ConfigDict(extra="forbid")

    request: dict[str, Any]
    snapshot_token: str
    override: dict[str, Any] | None = None


def get_calibration() -> CalibrationConfig:
    return load_calibration(settings.calibration_version, settings.calibration_dir)


@lru_cache(maxsize=1)
def get_repository() -> PlanRepository:
    return SqlAlchemyPlanRepository(get_session_factory())


def _error_detail(err: PlanEngineError) -> dict[str, Any]:
    detail: dict[str, Any] = {"code": err.code, "details": err.details}
    if isinstance(err, BlockingConflictError):
        detail["conflicts"] = [conflict.model_dump(mode="json") for conflict in err.conflicts]
    return detail


@router.post("/preview", response_model=PreviewResult)
def post_preview(
    payload: dict[str, Any] = Body(...),
    calibration: CalibrationConfig = Depends(get_calibration),
) -> PreviewResult:
    """Preview a plan without persisting it.

    Returns:
        PreviewResult with projection, scores, GDI, conflicts and token

    Raises:
        HTTPException: 422 on malformed input, 500 on invariant failure
    """
    try:
        request = parse_creation_request(payload)
        return preview_plan(request, calibration)
    except MalformedInputError as e:
        logger.info("Preview rejected: malformed input", details=len(e.details))
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=_error_detail(e)) from e
    except InvariantViolationError as e:
        logger.exception("Preview failed: invariant violation", code=e.code)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=_error_detail(e)) from e


@router.post("/commit", response_model=CommitResult, status_code=status.HTTP_201_CREATED)
def post_commit(
    body: CommitPlanBody,
    calibration: CalibrationConfig = Depends(get_calibration),
    repository: PlanRepository = Depends(get_repository),
) -> CommitResult:
    """Commit a previewed plan.

    Raises:
        HTTPException: 422 on malformed input, 409 on stale token or
            unresolved conflicts, 500 on engine invariant failure
    """
    try:
        request = parse_creation_request(body.request)
        override = parse_override_policy(body.override)
        return commit_plan(request, body.snapshot_token, calibration, repository, override)
    except MalformedInputError as e:
        logger.info("Commit rejected: malformed input", details=len(e.details))
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=_error_detail(e)) from e
    except (StaleSnapshotError, BlockingConflictError) as e:
        logger.info("Commit rejected", code=e.code)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_error_detail(e)) from e
    except InvariantViolationError as e:
        if e.code == "NON_OVERRIDABLE_CONFLICT":
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_error_detail(e)) from e
        logger.exception("Commit failed: invariant violation", code=e.code)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=_error_detail(e)) from e


@router.get("/{plan_id}", response_model=CommitResult)
def get_plan(plan_id: str, repository: PlanRepository = Depends(get_repository)) -> CommitResult:
    """Fetch a committed plan.

    Raises:
        HTTPException: 404 if the plan does not exist
    """
    result = repository.get(plan_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Plan {plan_id} not found")
    return result
