"""Invariant failure observability.

Call this before re-raising InvariantViolationError.
"""

from loguru import logger

from plan_engine.planning.errors import PlanEngineError


def log_invariant_failure(err: PlanEngineError, context: dict[str, str | int | float | bool | None]) -> None:
    """Log an invariant failure with context.

    Args:
        err: The error that occurred
        context: Additional context dictionary for logging
    """
    logger.error(
        "PLAN_ENGINE_INVARIANT_FAILED",
        code=err.code,
        details=err.details,
        **context,
    )
