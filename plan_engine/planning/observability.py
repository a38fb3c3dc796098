"""Observability for the plan engine pipeline.

This module provides:
- Structured event logging
- Stage events (start/success/fail)
- Stage-level timing

Logging never feeds back into computation; identical inputs produce
identical results regardless of log configuration.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum

from loguru import logger


class EngineStage(StrEnum):
    """Canonical engine stage enum."""

    NORMALIZE = "normalize"
    BOOTSTRAP = "bootstrap"
    PROJECTION = "projection"
    SCORING = "scoring"
    GDI = "gdi"
    CONFLICTS = "conflicts"
    SNAPSHOT = "snapshot"
    PERSIST = "persist"


class StageStatus(StrEnum):
    START = "start"
    SUCCESS = "success"
    FAIL = "fail"


def log_event(
    event: str,
    **fields: str | int | float | bool | None,
) -> None:
    """Log a structured engine event.

    Every engine event has the same shape: a snake_case name plus keyword
    fields bound into the record's extra dict.

    Args:
        event: Event name (e.g., "engine_stage", "plan_committed")
        **fields: Structured fields attached to the record
    """
    logger.info(event, **fields)


def log_stage_event(
    stage: EngineStage,
    status: StageStatus | str,
    plan_id: str | None = None,
    meta: dict[str, str | int | float | bool | None] | None = None,
) -> None:
    """Log a stage transition.

    Args:
        stage: Engine stage
        status: Stage status; plain strings are coerced to StageStatus
        plan_id: Plan identifier, known only once a commit assigns one
        meta: Extra fields, e.g. the error message on failure

    Raises:
        ValueError: If status is not a StageStatus value
    """
    fields = {"stage": stage.value, "status": StageStatus(status).value, **(meta or {})}
    if plan_id:
        fields["plan_id"] = plan_id
    log_event("engine_stage", **fields)


@contextmanager
def timing(metric_name: str) -> Iterator[None]:
    """Log the wall time spent inside the block.

    Args:
        metric_name: Metric name (e.g., "engine.preview")
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        log_event(
            "engine_timing",
            metric=metric_name,
            duration_seconds=round(time.perf_counter() - started, 6),
        )
