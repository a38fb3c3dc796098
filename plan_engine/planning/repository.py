"""Persistence for committed training plans.

The pipeline only sees the PlanRepository protocol. The SQLAlchemy
implementation stores headline metadata in columns and the full
CommitResult as JSON; the in-memory implementation backs tests and the
CLI's dry runs.
"""

from typing import Protocol

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from plan_engine.db.models import TrainingPlanRecord
from plan_engine.db.session import session_scope
from plan_engine.planning.schemas.requests import CommitResult


class PlanRepository(Protocol):
    """Storage for committed plans."""

    def save(self, result: CommitResult) -> None: ...

    def get(self, plan_id: str) -> CommitResult | None: ...


class InMemoryPlanRepository:
    """Dict-backed repository. Not shared across processes."""

    def __init__(self) -> None:
        self._plans: dict[str, CommitResult] = {}

    def save(self, result: CommitResult) -> None:
        if result.plan_id in self._plans:
            raise ValueError(f"Plan {result.plan_id} already exists")
        self._plans[result.plan_id] = result

    def get(self, plan_id: str) -> CommitResult | None:
        return self._plans.get(plan_id)

    def __len__(self) -> int:
        return len(self._plans)


class SqlAlchemyPlanRepository:
    """Repository backed by the training_plans table.

    Args:
        session_factory: Session factory bound to the target database
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def save(self, result: CommitResult) -> None:
        """Insert a committed plan.

        Args:
            result: Commit result to persist

        Raises:
            sqlalchemy.exc.IntegrityError: If the plan id already exists
        """
        plan = result.projection
        record = TrainingPlanRecord(
            id=result.plan_id,
            snapshot_token=result.snapshot_token,
            calibration_version=result.calibration_version,
            start_date=plan.weeks[0].week_start,
            end_date=plan.weeks[-1].week_start,
            goal_count=len(result.goal_assessments),
            plan_score=result.plan_score.score,
            gdi_index=result.gdi.index,
            gdi_band=result.gdi.band.value,
            override_reason=result.override_reason,
            payload=result.model_dump(mode="json"),
        )
        with session_scope(self._session_factory) as db:
            db.add(record)
        logger.info(
            "training_plan_saved",
            plan_id=result.plan_id,
            goals=len(result.goal_assessments),
            overridden=len(result.overridden_conflicts),
        )

    def get(self, plan_id: str) -> CommitResult | None:
        with session_scope(self._session_factory) as db:
            record = db.execute(select(TrainingPlanRecord).where(TrainingPlanRecord.id == plan_id)).scalar_one_or_none()
            if record is None:
                return None
            return CommitResult.model_validate(record.payload)
