"""Tests for the plan-engine CLI."""

import json

import pytest
from typer.testing import CliRunner

from cli import cli as cli_module
from cli.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_log_setup(monkeypatch):
    monkeypatch.setattr(cli_module, "_setup_logging", lambda debug=False: None)


@pytest.fixture
def request_file(tmp_path, marathon_payload):
    path = tmp_path / "request.json"
    path.write_text(json.dumps(marathon_payload), encoding="utf-8")
    return path


def test_calibration_command():
    result = runner.invoke(app, ["calibration"])
    assert result.exit_code == 0
    assert '"version"' in result.stdout


def test_preview_summary(request_file):
    result = runner.invoke(app, ["preview", str(request_file)])
    assert result.exit_code == 0
    assert "marathon" in result.stdout
    assert "demand_gap_at_event" in result.stdout


def test_preview_json(request_file):
    result = runner.invoke(app, ["preview", str(request_file), "--json"])
    assert result.exit_code == 0
    assert "snapshot_token" in result.stdout


def test_preview_malformed_request(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"plan": {"start_date": "2026-01-05", "goals": []}}), encoding="utf-8")
    result = runner.invoke(app, ["preview", str(path)])
    assert result.exit_code == 1
    assert "MALFORMED_INPUT" in result.stdout


def test_preview_unreadable_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    result = runner.invoke(app, ["preview", str(path)])
    assert result.exit_code == 1
