"""Root conftest for all tests.

This file makes shared fixtures available across all test modules:
calibration, request builders for the never-trained marathon scenario
and a rich-evidence athlete, and an in-memory SQLite session factory.
"""

from collections.abc import Callable, Iterator
from datetime import date, timedelta
from typing import Any

import pytest
from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from plan_engine.db.models import Base
from plan_engine.db.session import create_db_engine
from plan_engine.planning.calibration import CalibrationConfig, load_calibration
from plan_engine.planning.schemas.requests import PlanCreationRequest

PLAN_START = date(2026, 1, 5)
MARATHON_DATE = PLAN_START + timedelta(weeks=12)


@pytest.fixture(autouse=True)
def silence_logs():
    """Keep loguru quiet during tests; engine output never depends on logs."""
    logger.remove()
    yield


@pytest.fixture(scope="session")
def calibration() -> CalibrationConfig:
    return load_calibration("v1")


def marathon_goal(**overrides: Any) -> dict[str, Any]:
    goal: dict[str, Any] = {
        "id": "marathon",
        "name": "Spring marathon",
        "target_date": MARATHON_DATE.isoformat(),
        "priority": 8,
        "activity": "run",
        "targets": [{"kind": "race_performance", "distance_m": 42195, "target_time_s": 10800}],
    }
    goal.update(overrides)
    return goal


@pytest.fixture
def marathon_payload() -> dict[str, Any]:
    """Never-trained athlete, 12 weeks to a sub-3 marathon, balanced caps (7 %/3)."""
    return {
        "plan": {"start_date": PLAN_START.isoformat(), "goals": [marathon_goal()]},
        "creation_config": {"user": {"max_weekly_load_ramp_pct": 7, "max_ctl_ramp_per_week": 3}},
        "as_of": PLAN_START.isoformat(),
    }


@pytest.fixture
def rich_evidence() -> dict[str, Any]:
    return {
        "history_state": "rich",
        "last_activity_date": (PLAN_START - timedelta(days=2)).isoformat(),
        "activity_count_28d": 22,
        "weekly_load_avg_28d": 420.0,
        "weekly_load_avg_7d": 450.0,
        "fitness_estimate": 62.0,
        "fatigue_estimate": 66.0,
        "data_quality": 0.9,
        "capabilities": [
            {
                "kind": "race_performance",
                "activity": "run",
                "value": 2520.0,
                "distance_m": 10000,
                "observed_on": (PLAN_START - timedelta(days=30)).isoformat(),
            },
            {"kind": "pace_threshold", "activity": "run", "value": 4.1},
            {"kind": "hr_threshold", "activity": "run", "value": 172.0},
        ],
    }


@pytest.fixture
def make_request(marathon_payload: dict[str, Any]) -> Callable[..., PlanCreationRequest]:
    """Factory building a validated request from the marathon payload.

    Keyword arguments replace top-level payload sections (plan, creation_config,
    evidence, starting_state, as_of).
    """

    def _make(**sections: Any) -> PlanCreationRequest:
        payload = {**marathon_payload, **sections}
        return PlanCreationRequest.model_validate(payload)

    return _make


@pytest.fixture
def marathon_request(make_request) -> PlanCreationRequest:
    return make_request()


@pytest.fixture
def rich_request(make_request, rich_evidence) -> PlanCreationRequest:
    return make_request(evidence=rich_evidence)


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def make_goal() -> Callable[..., dict[str, Any]]:
    """Factory for goal payloads based on the marathon goal."""
    return marathon_goal
