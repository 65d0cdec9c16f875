"""Tests for telemetry analysis: distance resolution, HR statistics, zones and laps."""

from __future__ import annotations

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from athlete_core.models import HRZoneConfig, TrainingConfig
from athlete_core.services.telemetry import (
    TelemetryValidationError,
    analyze_decoded_activity,
    extract_activity_metrics,
    extract_lap_metrics,
    haversine_km,
    heart_rate_stats,
    normalize_sport,
)

CONFIG = TrainingConfig(hr=HRZoneConfig(resting_hr=60, max_hr=190))
START = datetime(2024, 3, 10, 7, 30)


def _session(**kw):
    base = {"start_time": START, "sport": "running", "total_elapsed_time": 3000, "total_timer_time": 3000}
    base.update(kw)
    return base


# --- Distance fallback chain ---

def test_session_distance_wins():
    m = extract_activity_metrics(_session(total_distance=10.123, avg_speed=20), [], config=CONFIG)
    assert m.distance == 10.12


def test_activity_summary_distance_used_when_session_has_none():
    m = extract_activity_metrics(_session(), [], activity={"total_distance": 7.5}, config=CONFIG)
    assert m.distance == 7.5


def test_distance_from_avg_speed_and_timer():
    m = extract_activity_metrics(
        _session(sport="cycling", avg_speed=10, total_timer_time=3600, total_elapsed_time=3600),
        [], config=CONFIG,
    )
    assert m.distance == 10.0


def test_speed_distance_uses_timer_not_elapsed():
    paused = extract_activity_metrics(
        _session(sport="cycling", avg_speed=10, total_timer_time=3600, total_elapsed_time=4500),
        [], config=CONFIG,
    )
    assert paused.distance == 10.0
    assert paused.duration == 75.0
    no_timer = extract_activity_metrics(
        _session(sport="cycling", avg_speed=10, total_timer_time=None, total_elapsed_time=3600),
        [], config=CONFIG,
    )
    assert no_timer.distance == 0.0


def test_distance_from_enhanced_speed():
    m = extract_activity_metrics(
        _session(enhanced_avg_speed=12, total_timer_time=1800), [], config=CONFIG,
    )
    assert m.distance == 6.0


def test_distance_from_gps_track():
    samples = [
        {"timestamp": START, "lat": 51.0, "lng": -0.1},
        {"timestamp": START, "position_lat": 51.01, "position_long": -0.1},
    ]
    m = extract_activity_metrics(_session(), samples, config=CONFIG)
    assert m.distance == pytest.approx(1.11, abs=0.01)


def test_distance_from_last_sample():
    samples = [{"distance": 1.0}, {"distance": 4.567}]
    m = extract_activity_metrics(_session(), samples, config=CONFIG)
    assert m.distance == 4.57


def test_distance_zero_when_no_source():
    m = extract_activity_metrics(_session(), [], config=CONFIG)
    assert m.distance == 0.0
    assert m.avg_pace is None


def test_haversine_one_degree_latitude():
    assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)


# --- HR statistics ---

def test_hr_drift_needs_six_samples():
    _, _, drift = heart_rate_stats([140, 141, 142, 150, 151])
    assert drift is None


def test_hr_drift_first_vs_last_third():
    avg, mx, drift = heart_rate_stats([140, 140, 147, 147, 154, 154])
    assert drift == pytest.approx(10.0)
    assert avg == 147
    assert mx == 154


def test_hr_stats_ignore_non_positive_readings():
    avg, mx, drift = heart_rate_stats([0, 140, 141, 0])
    assert avg == 141  # 140.5 rounds half up
    assert mx == 141
    assert drift is None


def test_hr_stats_empty():
    assert heart_rate_stats([]) == (None, None, None)


# --- Full extraction ---

def test_extract_duration_pace_and_load():
    samples = [{"heart_rate": hr} for hr in (120, 120, 170, 170)]
    m = extract_activity_metrics(_session(total_distance=10.0), samples, config=CONFIG, file_name="run.fit")
    assert m.date == date(2024, 3, 10)
    assert m.sport == "run"
    assert m.duration == 50.0
    assert m.avg_pace == 5.0
    assert m.avg_hr == 145
    assert m.training_load > 0
    # 4 samples over 50 min -> 12.5 min each
    assert m.zone2_minutes == 25.0
    assert m.zone4_minutes == 25.0
    assert sum(m.zone_minutes) <= m.duration + 0.1


def test_no_hr_samples_means_zero_zones_and_load():
    m = extract_activity_metrics(_session(total_distance=5.0), [], config=CONFIG)
    assert m.zone_minutes == (0.0, 0.0, 0.0, 0.0, 0.0)
    assert m.training_load == 0.0
    assert m.avg_hr is None
    assert m.hr_drift is None


def test_elapsed_time_preferred_over_timer():
    m = extract_activity_metrics(_session(total_elapsed_time=3600, total_timer_time=3000), [], config=CONFIG)
    assert m.duration == 60.0


def test_missing_start_time_raises():
    with pytest.raises(TelemetryValidationError):
        extract_activity_metrics({"sport": "running", "total_elapsed_time": 600}, [], config=CONFIG)


def test_start_time_falls_back_to_activity_timestamp():
    m = extract_activity_metrics(
        {"sport": "cycling", "total_elapsed_time": 600},
        [], activity={"timestamp": "2024-05-01T06:00:00"}, config=CONFIG,
    )
    assert m.date == date(2024, 5, 1)
    assert m.sport == "bike"


def test_activity_id_is_deterministic():
    a = extract_activity_metrics(_session(), [], config=CONFIG, file_name="a.fit")
    b = extract_activity_metrics(_session(), [], config=CONFIG, file_name="a.fit")
    c = extract_activity_metrics(_session(), [], config=CONFIG, file_name="b.fit")
    assert a.activity_id == b.activity_id
    assert a.activity_id != c.activity_id
    assert a.activity_id.startswith("2024-03-10_run_")


@pytest.mark.parametrize("raw,expected", [
    ("Road_Cycling", "bike"),
    ("TRAIL_RUNNING", "run"),
    ("lap_swimming", "swim"),
    ("hiking", "hike"),
    ("Kayaking", "Kayaking"),
    ("E-Bike Ride", "E-Bike Ride"),
    (None, "unknown"),
])
def test_normalize_sport(raw, expected):
    assert normalize_sport(raw) == expected


# --- Laps ---

def test_lap_metrics_numbered_with_distance_chain():
    laps = [
        {"start_time": START, "total_elapsed_time": 300, "total_distance": 1.0, "avg_heart_rate": 150},
        {"start_time": START, "total_elapsed_time": 360, "total_timer_time": 360, "avg_speed": 10},
        {"start_time": START, "total_timer_time": 720, "enhanced_avg_speed": 5},
    ]
    result = extract_lap_metrics(laps, date(2024, 3, 10), "act-1", "run", CONFIG)
    assert [lap.lap_number for lap in result] == [1, 2, 3]
    assert [lap.lap_distance for lap in result] == [1.0, 1.0, 1.0]
    assert result[0].avg_pace == 5.0
    assert result[0].avg_hr == 150
    assert result[0].end_time == datetime(2024, 3, 10, 7, 35)
    assert all(lap.activity_id == "act-1" for lap in result)


def test_lap_pace_only_for_pace_sports():
    laps = [{"total_elapsed_time": 600, "total_distance": 5.0}]
    assert extract_lap_metrics(laps, date(2024, 3, 10), None, "bike", CONFIG)[0].avg_pace is None


# --- Decoded containers ---

def test_analyze_decoded_activity():
    decoded = {
        "sessions": [_session(total_distance=10.0)],
        "laps": [{"total_elapsed_time": 1500, "total_distance": 5.0}, {"total_elapsed_time": 1500, "total_distance": 5.0}],
        "records": [{"heart_rate": 150} for _ in range(10)],
        "file_name": "morning.fit",
    }
    metrics, laps = analyze_decoded_activity(decoded, config=CONFIG)
    assert metrics.distance == 10.0
    assert metrics.file_name == "morning.fit"
    assert metrics.hr_drift == 0.0
    assert len(laps) == 2
    assert laps[0].activity_id == metrics.activity_id


def test_analyze_decoded_activity_uses_nested_session():
    decoded = {"activity": [{"total_distance": 3.0, "sessions": [_session()]}]}
    metrics, _ = analyze_decoded_activity(decoded, config=CONFIG)
    assert metrics.distance == 3.0


def test_analyze_decoded_activity_malformed_timestamp():
    with pytest.raises(ValidationError):
        analyze_decoded_activity({"sessions": [{"start_time": "not-a-date"}]}, config=CONFIG)


def test_analyze_decoded_activity_without_session():
    with pytest.raises(TelemetryValidationError):
        analyze_decoded_activity({"records": []}, config=CONFIG)
