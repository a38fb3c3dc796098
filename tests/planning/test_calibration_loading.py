"""Tests for versioned calibration loading."""

import pytest
import yaml
from pydantic import ValidationError

from plan_engine.planning.calibration import CalibrationError, load_calibration
from plan_engine.planning.enums import GoalDemandTier, OptimizationProfile


def test_bundled_calibration_loads(calibration):
    assert calibration.version == "v1"
    assert calibration.load_model.fitness_time_constant_days == 42
    assert calibration.load_model.fatigue_time_constant_days == 7
    assert set(calibration.profiles) == set(OptimizationProfile)
    assert set(calibration.gdi.min_build_weeks) == set(GoalDemandTier)


def test_calibration_is_cached_per_version():
    assert load_calibration("v1") is load_calibration("v1")


def test_calibration_is_frozen(calibration):
    with pytest.raises(ValidationError):
        calibration.priority.gamma = 2.0


def test_missing_version_raises(tmp_path):
    with pytest.raises(CalibrationError):
        load_calibration("v1", directory=tmp_path)


def test_version_mismatch_raises(tmp_path):
    """A file must declare the version it is loaded under."""
    source = load_calibration("v1").model_dump(mode="json")
    source["version"] = "v0"
    (tmp_path / "v2.yaml").write_text(yaml.safe_dump(source))
    with pytest.raises(CalibrationError) as exc_info:
        load_calibration("v2", directory=tmp_path)
    assert "declares version" in str(exc_info.value)


def test_invalid_calibration_raises(tmp_path):
    (tmp_path / "broken.yaml").write_text("version: broken\nload_model: {}\n")
    with pytest.raises(CalibrationError):
        load_calibration("broken", directory=tmp_path)


def test_cache_key_uses_resolved_directory(tmp_path, monkeypatch):
    source = load_calibration("v1").model_dump(mode="json")
    (tmp_path / "v1.yaml").write_text(yaml.safe_dump(source))
    monkeypatch.chdir(tmp_path)

    absolute = load_calibration("v1", directory=tmp_path)
    assert load_calibration("v1", directory=".") is absolute
    assert absolute is not load_calibration("v1")
    assert absolute == load_calibration("v1")
