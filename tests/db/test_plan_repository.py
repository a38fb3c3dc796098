"""Tests for committed plan persistence."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from plan_engine.db.models import TrainingPlanRecord
from plan_engine.planning.pipeline import commit_plan, preview_plan
from plan_engine.planning.repository import InMemoryPlanRepository, SqlAlchemyPlanRepository


@pytest.fixture
def committed(calibration, marathon_request):
    token = preview_plan(marathon_request, calibration).snapshot_token
    return commit_plan(marathon_request, token, calibration, InMemoryPlanRepository())


def test_sqlalchemy_round_trip(session_factory, committed):
    repository = SqlAlchemyPlanRepository(session_factory)
    repository.save(committed)

    fetched = repository.get(committed.plan_id)
    assert fetched is not None
    assert fetched.model_dump(mode="json") == committed.model_dump(mode="json")


def test_sqlalchemy_stores_headline_columns(session_factory, committed):
    SqlAlchemyPlanRepository(session_factory).save(committed)

    with session_factory() as db:
        record = db.execute(select(TrainingPlanRecord)).scalar_one()
    assert record.id == committed.plan_id
    assert record.snapshot_token == committed.snapshot_token
    assert record.calibration_version == "v1"
    assert record.goal_count == 1
    assert record.gdi_band == committed.gdi.band.value
    assert record.start_date == committed.projection.weeks[0].week_start
    assert record.override_reason is None


def test_sqlalchemy_rejects_duplicate_id(session_factory, committed):
    repository = SqlAlchemyPlanRepository(session_factory)
    repository.save(committed)
    with pytest.raises(IntegrityError):
        repository.save(committed)


def test_unknown_plan_returns_none(session_factory):
    assert SqlAlchemyPlanRepository(session_factory).get("missing") is None


def test_in_memory_rejects_duplicate_id(committed):
    repository = InMemoryPlanRepository()
    repository.save(committed)
    with pytest.raises(ValueError, match="already exists"):
        repository.save(committed)
    assert repository.get(committed.plan_id) is committed
