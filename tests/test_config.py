"""Tests for configuration module."""

from __future__ import annotations

import pytest

from athlete_core.config import _PROFILES, Settings, get_settings, training_config
from athlete_core.models import DEFAULT_HR_ZONES


def test_settings_defaults():
    s = Settings()
    assert s.app_env == "dev"
    assert s.resting_hr == 59
    assert s.max_hr == 190
    assert s.ctl_time_constant == 42
    assert s.atl_time_constant == 7
    assert s.auto_match_threshold == 0.7


def test_settings_frozen():
    s = Settings()
    with pytest.raises(AttributeError):
        s.max_hr = 200


@pytest.mark.parametrize("threshold", [0.0, 1.5, -0.2])
def test_settings_rejects_bad_threshold(threshold):
    with pytest.raises(ValueError):
        Settings(auto_match_threshold=threshold)


def test_settings_rejects_non_positive_time_constant():
    with pytest.raises(ValueError):
        Settings(atl_time_constant=0)


def test_profiles_exist():
    assert set(_PROFILES) == {"dev", "staging", "production"}
    assert _PROFILES["dev"]["log_level"] == "DEBUG"


def test_dev_settings_without_overrides(monkeypatch):
    for var in ("APP_ENV", "LOG_LEVEL", "RESTING_HR", "AUTO_MATCH_THRESHOLD"):
        monkeypatch.delenv(var, raising=False)
    s = get_settings()
    assert s.app_env == "dev"
    assert s.log_level == "DEBUG"
    assert s.resting_hr == 59


def test_production_profile_tighter_match_threshold(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("AUTO_MATCH_THRESHOLD", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    s = get_settings()
    assert s.auto_match_threshold == 0.75
    assert s.log_level == "WARNING"


def test_get_settings_uses_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("RESTING_HR", "48")
    monkeypatch.setenv("MAX_HR", "184")
    monkeypatch.setenv("AUTO_MATCH_THRESHOLD", "0.8")
    s = get_settings()
    assert s.app_env == "staging"
    assert s.resting_hr == 48
    assert s.max_hr == 184
    assert s.auto_match_threshold == 0.8


def test_unknown_env_falls_back_to_dev_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "qa")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    s = get_settings()
    assert s.app_env == "qa"
    assert s.log_level == "DEBUG"


def test_training_config_from_settings():
    cfg = training_config(Settings(resting_hr=50, max_hr=200))
    assert cfg.resting_hr == 50
    assert cfg.max_hr == 200
    assert cfg.hr.zones == DEFAULT_HR_ZONES
    assert "running" in cfg.pace_sports


def test_training_config_rejects_inverted_hr():
    with pytest.raises(ValueError):
        training_config(Settings(resting_hr=190, max_hr=150))
