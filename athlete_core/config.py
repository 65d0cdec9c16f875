"""Runtime settings for the training core.

A per-environment profile (``APP_ENV`` = dev | staging | production) supplies
defaults; individual environment variables override single fields.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields

from athlete_core.models import DEFAULT_HR_ZONES, HRZoneConfig, TrainingConfig


@dataclass(frozen=True)
class Settings:
    """Immutable settings, passed explicitly into the services that need them."""

    app_env: str = "dev"
    log_level: str = "INFO"

    # athlete physiology, bpm
    resting_hr: int = 59
    max_hr: int = 190

    # fitness-fatigue model, days
    ctl_time_constant: int = 42
    atl_time_constant: int = 7
    streak_lookback_days: int = 30

    auto_match_threshold: float = 0.7

    def __post_init__(self):
        if self.ctl_time_constant <= 0 or self.atl_time_constant <= 0:
            raise ValueError("fitness model time constants must be positive")
        if not 0.0 < self.auto_match_threshold <= 1.0:
            raise ValueError(f"auto_match_threshold must be in (0, 1], got {self.auto_match_threshold}")


_PROFILES: dict[str, dict] = {
    "dev": {"log_level": "DEBUG"},
    "staging": {"log_level": "INFO"},
    "production": {"log_level": "WARNING", "auto_match_threshold": 0.75},
}

_ENV_OVERRIDES: dict[str, str] = {
    "LOG_LEVEL": "log_level",
    "RESTING_HR": "resting_hr",
    "MAX_HR": "max_hr",
    "CTL_TIME_CONSTANT": "ctl_time_constant",
    "ATL_TIME_CONSTANT": "atl_time_constant",
    "STREAK_LOOKBACK_DAYS": "streak_lookback_days",
    "AUTO_MATCH_THRESHOLD": "auto_match_threshold",
}

_PARSERS = {"int": int, "float": float, "str": str}
_FIELD_TYPES = {f.name: _PARSERS[f.type] for f in fields(Settings)}


def get_settings() -> Settings:
    """Resolve Settings for the current environment; unknown APP_ENV uses the dev profile."""
    app_env = os.getenv("APP_ENV", "dev")
    values = dict(_PROFILES.get(app_env, _PROFILES["dev"]))
    for var, name in _ENV_OVERRIDES.items():
        raw = os.getenv(var)
        if raw is not None:
            values[name] = _FIELD_TYPES[name](raw)
    return Settings(app_env=app_env, **values)


def training_config(settings: Settings | None = None) -> TrainingConfig:
    """HR-zone and sport configuration for the athlete described by settings."""
    settings = settings or get_settings()
    return TrainingConfig(
        hr=HRZoneConfig(
            resting_hr=settings.resting_hr,
            max_hr=settings.max_hr,
            zones=DEFAULT_HR_ZONES,
        ),
    )
