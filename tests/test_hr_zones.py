"""Tests for HR-zone lookup and sport classification."""

from __future__ import annotations

import pytest

from athlete_core.models import HRZone, HRZoneConfig, TrainingConfig
from athlete_core.services.hr_zones import is_pace_sport, is_speed_sport, zone_for, zone_thresholds

CONFIG = HRZoneConfig(resting_hr=59, max_hr=190)


def test_zone_boundaries_are_half_open():
    # 60% of 190 = 114 bpm
    assert zone_for(113, CONFIG) == 1
    assert zone_for(115, CONFIG) == 2
    assert zone_for(153, CONFIG) == 4


def test_zone_below_lowest_band_is_zone1():
    assert zone_for(40, CONFIG) == 1
    assert zone_for(0, CONFIG) == 1


def test_zone_at_or_above_max_is_zone5():
    assert zone_for(190, CONFIG) == 5
    assert zone_for(230, CONFIG) == 5


def test_zone_total_and_monotonic():
    zones = [zone_for(hr, CONFIG) for hr in range(0, 260)]
    assert all(1 <= z <= 5 for z in zones)
    assert zones == sorted(zones)


def test_zone_accepts_training_config():
    assert zone_for(160, TrainingConfig(hr=CONFIG)) == zone_for(160, CONFIG)


def test_zone_thresholds_rounded_bpm():
    t = zone_thresholds(CONFIG)
    assert t[1] == {"min": 95, "max": 114}
    assert t[5]["max"] == 190


def test_hr_zone_config_rejects_gaps():
    zones = (
        HRZone(1, "a", 50, 60),
        HRZone(2, "b", 61, 70),
        HRZone(3, "c", 70, 80),
        HRZone(4, "d", 80, 90),
        HRZone(5, "e", 90, 100),
    )
    with pytest.raises(ValueError):
        HRZoneConfig(zones=zones)


def test_hr_zone_config_requires_five_zones():
    with pytest.raises(ValueError):
        HRZoneConfig(zones=(HRZone(1, "a", 50, 100),))


def test_pace_and_speed_sports():
    cfg = TrainingConfig()
    assert is_pace_sport("Trail_Running", cfg)
    assert is_pace_sport("run", cfg)
    assert not is_pace_sport("cycling", cfg)
    assert is_speed_sport("road_cycling", cfg)
    assert is_speed_sport("swimming", cfg)
    assert is_speed_sport("swim", cfg)
    assert not is_speed_sport("", cfg)
