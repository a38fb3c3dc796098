from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import JSON, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class TrainingPlanRecord(Base):
    """Committed training plan.

    Architecture: metadata columns for fast queries, payload for the full
    committed result. Do NOT query inside payload.

    Stores:
    - id: Plan ID (string UUID)
    - snapshot_token: Token the commit was accepted under
    - calibration_version: Calibration the plan was computed with
    - start_date / end_date: Plan horizon
    - goal_count: Number of goals in the plan
    - plan_score / gdi_index: Headline numbers
    - gdi_band: Plan-level feasibility band
    - override_reason: Justification when blocking conflicts were overridden
    - payload: Full CommitResult JSON
    """

    __tablename__ = "training_plans"

    id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    snapshot_token: Mapped[str] = mapped_column(String(64), nullable=False)
    calibration_version: Mapped[str] = mapped_column(String, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    goal_count: Mapped[int] = mapped_column(Integer, nullable=False)
    plan_score: Mapped[float] = mapped_column(Float, nullable=False)
    gdi_index: Mapped[float] = mapped_column(Float, nullable=False)
    gdi_band: Mapped[str] = mapped_column(String, nullable=False)
    override_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("idx_training_plans_token", "snapshot_token"),)
