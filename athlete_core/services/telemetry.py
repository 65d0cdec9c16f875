"""Telemetry analysis: turn decoded sessions, laps and samples into activity metrics.

Inputs are the decoder's output already converted to km, km/h and seconds.
Missing sensor streams degrade to None/0; only a missing start time is fatal
for an activity.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from datetime import timedelta
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from athlete_core.config import training_config
from athlete_core.models import (
    ActivityMetrics,
    HRZoneDistribution,
    LapMetrics,
    TrainingConfig,
)
from athlete_core.services.hr_zones import is_pace_sport, zone_for
from athlete_core.services.training_load import trimp
from athlete_core.validators import (
    DecodedActivity,
    RawActivitySummary,
    RawLap,
    RawSession,
    RawTelemetrySample,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
# Below this many HR samples the first/last thirds are too small to compare.
MIN_DRIFT_SAMPLES = 6

SPORT_MAP: dict[str, str] = {
    "cycling": "bike",
    "bike": "bike",
    "road_cycling": "bike",
    "mountain_biking": "bike",
    "running": "run",
    "run": "run",
    "trail_running": "run",
    "track_running": "run",
    "treadmill_running": "run",
    "swimming": "swim",
    "lap_swimming": "swim",
    "open_water": "swim",
    "swim": "swim",
    "walking": "walk",
    "walk": "walk",
    "hiking": "hike",
    "hike": "hike",
}

_NON_SPORT_CHARS = re.compile(r"[^a-z_]")


class TelemetryValidationError(ValueError):
    """Decoded telemetry is missing a required field or is malformed."""


def normalize_sport(raw_sport: Optional[str]) -> str:
    """Map a decoder sport token onto the internal taxonomy; unknown tokens are kept as given."""
    if not raw_sport:
        return "unknown"
    key = _NON_SPORT_CHARS.sub("", raw_sport.lower())
    return SPORT_MAP.get(key, raw_sport)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two fixes, in km."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def gps_distance_km(samples: Iterable[RawTelemetrySample]) -> float:
    """Cumulative distance over consecutive samples that carry a GPS fix."""
    fixes = [
        (s.position_lat, s.position_long)
        for s in samples
        if s.position_lat is not None and s.position_long is not None
    ]
    return sum(haversine_km(*a, *b) for a, b in zip(fixes, fixes[1:]))


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def resolve_distance(
    session: RawSession,
    samples: list[RawTelemetrySample],
    activity: Optional[RawActivitySummary] = None,
) -> float:
    """Best available distance in km, 2 decimals.

    Tried in order, each only if the previous one gave nothing positive:
    session total, activity summary total, avg speed x timer, enhanced avg
    speed x timer, GPS track, distance on the final sample.
    """
    timer = session.total_timer_time or 0

    candidates = (
        lambda: session.total_distance,
        lambda: activity.total_distance if activity else None,
        lambda: session.avg_speed * timer / 3600 if session.avg_speed else None,
        lambda: session.enhanced_avg_speed * timer / 3600 if session.enhanced_avg_speed else None,
        lambda: gps_distance_km(samples),
        lambda: samples[-1].distance if samples else None,
    )
    for candidate in candidates:
        distance = _positive(candidate())
        if distance is not None:
            return round(distance, 2)
    return 0.0


def heart_rate_stats(hr_values: list[float]) -> tuple[Optional[int], Optional[int], Optional[float]]:
    """(avg, max, drift %) over positive HR readings.

    Drift compares the mean of the first third with the mean of the last
    third and needs at least MIN_DRIFT_SAMPLES readings.
    """
    valid = [hr for hr in hr_values if hr and hr > 0]
    if not valid:
        return None, None, None

    avg_hr = int(math.floor(sum(valid) / len(valid) + 0.5))
    max_hr = int(max(valid))

    drift = None
    if len(valid) >= MIN_DRIFT_SAMPLES:
        third = len(valid) // 3
        first_avg = sum(valid[:third]) / third
        last_avg = sum(valid[-third:]) / third
        drift = round((last_avg - first_avg) / first_avg * 100, 1)

    return avg_hr, max_hr, drift


def zone_distribution(
    hr_values: list[float],
    duration_min: float,
    config: TrainingConfig,
) -> HRZoneDistribution:
    """Split duration across zones, one uniform time slice per valid HR sample."""
    valid = [hr for hr in hr_values if hr and hr > 0]
    if not valid:
        return HRZoneDistribution(total_time=duration_min)

    slice_min = duration_min / len(valid)
    minutes = {z: 0.0 for z in range(1, 6)}
    for hr in valid:
        minutes[zone_for(hr, config)] += slice_min

    return HRZoneDistribution(
        zone1=round(minutes[1], 1),
        zone2=round(minutes[2], 1),
        zone3=round(minutes[3], 1),
        zone4=round(minutes[4], 1),
        zone5=round(minutes[5], 1),
        total_time=duration_min,
    )


def activity_id_for(start_key: str, sport: str, duration_min: float, file_name: Optional[str]) -> str:
    digest = hashlib.sha1(f"{start_key}|{duration_min}|{file_name or ''}".encode()).hexdigest()
    return f"{start_key[:10]}_{sport}_{digest[:6]}"


def _pace(duration_min: float, distance_km: float, sport: str, config: TrainingConfig) -> Optional[float]:
    if distance_km > 0 and is_pace_sport(sport, config):
        return round(duration_min / distance_km, 2)
    return None


def _coerce(model, value):
    if value is None or isinstance(value, model):
        return value
    return model.model_validate(value)


def extract_activity_metrics(
    session: RawSession | dict[str, Any],
    samples: Iterable[RawTelemetrySample | dict[str, Any]] = (),
    *,
    activity: RawActivitySummary | dict[str, Any] | None = None,
    config: TrainingConfig | None = None,
    file_name: str | None = None,
) -> ActivityMetrics:
    """Derive ActivityMetrics from one session and its sample stream."""
    config = config or training_config()
    session = _coerce(RawSession, session)
    activity = _coerce(RawActivitySummary, activity)
    samples = [_coerce(RawTelemetrySample, s) for s in samples]

    start = session.start_time or (activity.timestamp if activity else None)
    if start is None:
        raise TelemetryValidationError("session has no start time")

    elapsed = session.total_elapsed_time or session.total_timer_time or 0
    duration = round(elapsed / 60, 1)
    distance = resolve_distance(session, samples, activity)
    sport = normalize_sport(session.sport)

    hr_values = [s.heart_rate for s in samples if s.heart_rate is not None]
    avg_hr, max_hr, drift = heart_rate_stats(hr_values)
    zones = zone_distribution(hr_values, duration, config)

    load = trimp(avg_hr, duration, config.resting_hr, config.max_hr) if avg_hr else 0.0

    avg_speed = session.avg_speed or session.enhanced_avg_speed
    if not avg_speed and distance > 0 and duration > 0:
        avg_speed = distance / (duration / 60)

    metrics = ActivityMetrics(
        date=start.date(),
        sport=sport,
        sub_sport=session.sub_sport,
        duration=duration,
        distance=distance,
        activity_id=activity_id_for(start.isoformat(), sport, duration, file_name),
        avg_hr=avg_hr,
        max_hr=max_hr,
        hr_drift=drift,
        zone1_minutes=zones.zone1,
        zone2_minutes=zones.zone2,
        zone3_minutes=zones.zone3,
        zone4_minutes=zones.zone4,
        zone5_minutes=zones.zone5,
        training_load=load,
        calories=session.total_calories,
        total_ascent=session.total_ascent,
        total_descent=session.total_descent,
        avg_speed=round(avg_speed, 2) if avg_speed else None,
        max_speed=session.max_speed,
        avg_pace=_pace(duration, distance, sport, config),
        avg_power=session.avg_power,
        max_power=session.max_power,
        avg_cadence=session.avg_cadence,
        file_name=file_name,
    )
    logger.debug(
        "Extracted %s activity %s: %.1f min, %.2f km, load %.1f",
        sport, metrics.activity_id, duration, distance, load,
    )
    return metrics


def _lap_distance(lap: RawLap) -> float:
    timer = lap.total_timer_time or 0
    for candidate in (
        lap.total_distance,
        lap.avg_speed * timer / 3600 if lap.avg_speed else None,
        lap.enhanced_avg_speed * timer / 3600 if lap.enhanced_avg_speed else None,
    ):
        if _positive(candidate) is not None:
            return round(candidate, 2)
    return 0.0


def extract_lap_metrics(
    laps: Iterable[RawLap | dict[str, Any]],
    activity_date,
    activity_id: str | None,
    sport: str,
    config: TrainingConfig | None = None,
) -> list[LapMetrics]:
    """Per-lap metrics in source order, numbered from 1."""
    config = config or training_config()
    results = []
    for number, lap in enumerate((_coerce(RawLap, lap) for lap in laps), start=1):
        seconds = lap.total_elapsed_time or lap.total_timer_time or 0
        duration = round(seconds / 60, 1)
        distance = _lap_distance(lap)
        end_time = lap.timestamp
        if end_time is None and lap.start_time is not None:
            end_time = lap.start_time + timedelta(seconds=seconds)

        results.append(LapMetrics(
            date=activity_date,
            lap_number=number,
            lap_duration=duration,
            lap_distance=distance,
            activity_id=activity_id,
            avg_hr=lap.avg_heart_rate,
            max_hr=lap.max_heart_rate,
            avg_speed=lap.avg_speed or lap.enhanced_avg_speed,
            max_speed=lap.max_speed,
            avg_pace=_pace(duration, distance, sport, config),
            elevation_gain=lap.total_ascent,
            elevation_loss=lap.total_descent,
            avg_power=lap.avg_power,
            max_power=lap.max_power,
            normalized_power=lap.normalized_power,
            start_time=lap.start_time,
            end_time=end_time,
        ))
    return results


def analyze_decoded_activity(
    decoded: DecodedActivity | dict[str, Any],
    config: TrainingConfig | None = None,
    file_name: str | None = None,
) -> tuple[ActivityMetrics, list[LapMetrics]]:
    """Validate a decoded container and extract activity and lap metrics.

    Raises pydantic.ValidationError for malformed fields and
    TelemetryValidationError when there is no usable session.
    """
    config = config or training_config()
    if not isinstance(decoded, DecodedActivity):
        try:
            decoded = DecodedActivity.model_validate(decoded)
        except ValidationError:
            logger.warning("Decoded telemetry failed validation: %s", file_name)
            raise

    session = decoded.primary_session
    if session is None:
        raise TelemetryValidationError("decoded telemetry contains no session")

    metrics = extract_activity_metrics(
        session,
        decoded.records,
        activity=decoded.activity,
        config=config,
        file_name=file_name or decoded.file_name,
    )
    laps = extract_lap_metrics(decoded.laps, metrics.date, metrics.activity_id, metrics.sport, config)
    return metrics, laps
