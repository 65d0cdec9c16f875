"""Heart-rate zone lookup and sport classification helpers.

Zones are [min, max) bands of percent max HR. The policy is closed: anything
below the lowest band is zone 1, anything at or above the top band is zone 5.
"""

from __future__ import annotations

from athlete_core.models import DEFAULT_TRAINING_CONFIG, HRZoneConfig, TrainingConfig


def zone_for(heart_rate_bpm: float, config: HRZoneConfig | TrainingConfig = DEFAULT_TRAINING_CONFIG) -> int:
    """Return the zone number (1-5) containing heart_rate_bpm."""
    hr_config = config.hr if isinstance(config, TrainingConfig) else config
    hr_percent = heart_rate_bpm / hr_config.max_hr * 100

    for zone in hr_config.zones:
        if zone.min_percent <= hr_percent < zone.max_percent:
            return zone.zone

    return 1 if hr_percent < hr_config.zones[0].min_percent else 5


def zone_thresholds(config: HRZoneConfig | TrainingConfig = DEFAULT_TRAINING_CONFIG) -> dict[int, dict[str, int]]:
    """Zone number -> {"min": bpm, "max": bpm} for the configured max HR."""
    hr_config = config.hr if isinstance(config, TrainingConfig) else config
    return {
        z.zone: {
            "min": round(z.min_percent / 100 * hr_config.max_hr),
            "max": round(z.max_percent / 100 * hr_config.max_hr),
        }
        for z in hr_config.zones
    }


def _matches_any(sport: str, sports: tuple[str, ...]) -> bool:
    lowered = (sport or "").lower()
    return any(s.lower() in lowered for s in sports)


def is_pace_sport(sport: str, config: TrainingConfig = DEFAULT_TRAINING_CONFIG) -> bool:
    """Sports reported as pace (min/km)."""
    return _matches_any(sport, config.pace_sports)


def is_speed_sport(sport: str, config: TrainingConfig = DEFAULT_TRAINING_CONFIG) -> bool:
    """Sports reported as speed (km/h)."""
    return _matches_any(sport, config.speed_sports)
