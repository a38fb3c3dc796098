"""Tests for the training plan HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from plan_engine.api.training_plans import get_repository
from plan_engine.main import app
from plan_engine.planning.repository import InMemoryPlanRepository


@pytest.fixture
def repository():
    return InMemoryPlanRepository()


@pytest.fixture
def client(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_preview_returns_token(client, marathon_payload):
    response = client.post("/training-plans/preview", json=marathon_payload)
    assert response.status_code == 200
    body = response.json()
    assert len(body["snapshot_token"]) == 64
    assert len(body["projection"]["weeks"]) == 13
    assert body["gdi"]["band"] == "infeasible"


def test_preview_rejects_malformed_input(client, marathon_payload):
    payload = {**marathon_payload, "plan": {"start_date": "2026-01-05", "goals": []}}
    response = client.post("/training-plans/preview", json=payload)
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "MALFORMED_INPUT"


def test_commit_then_fetch(client, repository, marathon_payload):
    token = client.post("/training-plans/preview", json=marathon_payload).json()["snapshot_token"]

    response = client.post("/training-plans/commit", json={"request": marathon_payload, "snapshot_token": token})
    assert response.status_code == 201
    plan_id = response.json()["plan_id"]
    assert len(repository) == 1

    fetched = client.get(f"/training-plans/{plan_id}")
    assert fetched.status_code == 200
    assert fetched.json()["snapshot_token"] == token


def test_commit_with_stale_token(client, repository, marathon_payload):
    response = client.post("/training-plans/commit", json={"request": marathon_payload, "snapshot_token": "0" * 64})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "STALE_SNAPSHOT"
    assert len(repository) == 0


def test_commit_with_uncovered_blocking_conflicts(client, marathon_payload):
    payload = {**marathon_payload, "creation_config": {"user": {"min_sessions_per_week": 5}}}
    token = client.post("/training-plans/preview", json=payload).json()["snapshot_token"]

    response = client.post("/training-plans/commit", json={"request": payload, "snapshot_token": token})
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "BLOCKING_CONFLICTS"
    assert {item["code"] for item in detail["conflicts"]} == {
        "min_sessions_exceeds_max",
        "min_sessions_exceeds_available_days",
    }


def test_commit_with_invariant_override_is_malformed(client, marathon_payload):
    token = client.post("/training-plans/preview", json=marathon_payload).json()["snapshot_token"]
    override = {"allow_blocking_conflicts": True, "categories": ["invariant"], "reason": "ship it"}

    response = client.post(
        "/training-plans/commit",
        json={"request": marathon_payload, "snapshot_token": token, "override": override},
    )
    assert response.status_code == 422


def test_unknown_plan_is_404(client):
    assert client.get("/training-plans/does-not-exist").status_code == 404
