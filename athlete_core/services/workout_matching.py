"""Workout matching: reconcile completed activities with open planned workouts.

A candidate is any open planned workout on the activity's calendar day. Each
candidate gets a weighted confidence:
- date match 0.2, sport match 0.4
- duration and distance closeness 0.2 each, 1 / (1 + 5 * relative difference)

Components the plan does not specify (missing or zero target) are left out of
both the score and the maximum. Only a sport match at or above the configured
threshold is auto-matched; everything else becomes an unplanned workout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from athlete_core.config import get_settings
from athlete_core.logging_config import log_context
from athlete_core.models import (
    ActivityMetrics,
    HRZoneDistribution,
    MatchDifferences,
    PlannedWorkout,
    TrainingPlanEntry,
    WorkoutMatchResult,
)
from athlete_core.services.telemetry import normalize_sport
from athlete_core.validators import ActivityInput, PlannedWorkoutInput

logger = logging.getLogger(__name__)

DATE_WEIGHT = 0.2
SPORT_WEIGHT = 0.4
DURATION_WEIGHT = 0.2
DISTANCE_WEIGHT = 0.2
# Relative difference sensitivity: 20% off scores 0.5 on that component.
CLOSENESS_SLOPE = 5.0
# Volume closeness credited when the plan sets neither a duration nor a distance target.
NO_TARGET_CLOSENESS = 0.5


def _closeness(actual: float, planned: float) -> float:
    return 1.0 / (1.0 + CLOSENESS_SLOPE * abs(actual - planned) / planned)


def _closeness_reason(label: str, actual: float, planned: float) -> str:
    pct = abs(actual - planned) / planned * 100
    for bound in (5, 15, 30):
        if pct <= bound:
            return f"{label} within {bound}% of plan"
    return f"{label} differs by {round(pct)}%"


def score_candidate(
    activity: ActivityMetrics,
    planned: PlannedWorkout,
    threshold: float | None = None,
) -> WorkoutMatchResult:
    """Score one planned workout against an activity."""
    if threshold is None:
        threshold = get_settings().auto_match_threshold

    sport_match = normalize_sport(activity.sport) == normalize_sport(planned.sport)
    date_match = activity.date == planned.date
    reasons = [
        "Sport matches" if sport_match else f"Sport differs ({activity.sport} vs {planned.sport})",
        "Date matches" if date_match else "Date differs",
    ]

    score = (DATE_WEIGHT if date_match else 0.0) + (SPORT_WEIGHT if sport_match else 0.0)
    closeness: list[float] = []

    duration_diff = None
    if planned.duration_min:
        closeness.append(_closeness(activity.duration, planned.duration_min))
        duration_diff = round(activity.duration - planned.duration_min, 2)
        reasons.append(_closeness_reason("Duration", activity.duration, planned.duration_min))

    distance_diff = None
    if planned.distance_km:
        closeness.append(_closeness(activity.distance, planned.distance_km))
        distance_diff = round(activity.distance - planned.distance_km, 2)
        reasons.append(_closeness_reason("Distance", activity.distance, planned.distance_km))

    # the volume share is split over whichever targets the plan sets
    volume = sum(closeness) / len(closeness) if closeness else NO_TARGET_CLOSENESS
    score += (DURATION_WEIGHT + DISTANCE_WEIGHT) * volume

    confidence = round(score, 3)
    return WorkoutMatchResult(
        workout=planned,
        confidence=confidence,
        reasons=tuple(reasons),
        differences=MatchDifferences(
            sport_match=sport_match,
            date_match=date_match,
            duration_diff=duration_diff,
            distance_diff=distance_diff,
        ),
        auto_match=sport_match and date_match and confidence >= threshold,
    )


def find_best_match(
    activity: ActivityMetrics,
    open_workouts: Iterable[PlannedWorkout],
    threshold: float | None = None,
) -> Optional[WorkoutMatchResult]:
    """Highest-confidence open workout of the activity's sport on its day, or None.

    Workouts on another date or of another sport are never candidates.
    """
    sport = normalize_sport(activity.sport)
    candidates = [
        w for w in open_workouts
        if w.is_open and w.date == activity.date and normalize_sport(w.sport) == sport
    ]
    if not candidates:
        return None
    results = [score_candidate(activity, w, threshold) for w in candidates]
    return max(results, key=lambda r: r.confidence)


@dataclass(frozen=True)
class ReconcileOutcome:
    activity: ActivityMetrics
    workout: PlannedWorkout  # the completed planned workout or a new unplanned one
    match: Optional[WorkoutMatchResult] = None
    consumed_id: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.consumed_id is not None


def unplanned_workout(activity: ActivityMetrics) -> PlannedWorkout:
    return PlannedWorkout(
        id=f"unplanned-{activity.date.isoformat()}-{activity.sport}-{activity.activity_id or 'activity'}",
        date=activity.date,
        sport=activity.sport,
        name=f"Unplanned {activity.sport}",
        duration_min=activity.duration,
        distance_km=activity.distance,
        status="unplanned",
        actual=activity,
        matched_activity_id=activity.activity_id,
    )


def reconcile_activity(
    activity: ActivityMetrics,
    open_workouts: Iterable[PlannedWorkout],
    threshold: float | None = None,
) -> ReconcileOutcome:
    """Complete the best-matching planned workout, or record the activity as unplanned."""
    match = find_best_match(activity, open_workouts, threshold)
    if match is not None and match.auto_match:
        completed = replace(
            match.workout,
            status="completed",
            actual=activity,
            matched_activity_id=activity.activity_id,
        )
        logger.info(
            "Matched activity %s to planned workout %s (confidence %.2f)",
            activity.activity_id, match.workout.id, match.confidence,
        )
        return ReconcileOutcome(activity=activity, workout=completed, match=match, consumed_id=match.workout.id)

    if match is not None:
        logger.info(
            "Activity %s below auto-match threshold (best %s at %.2f); recording as unplanned",
            activity.activity_id, match.workout.id, match.confidence,
        )
    return ReconcileOutcome(activity=activity, workout=unplanned_workout(activity), match=match)


@dataclass
class BatchMatchResult:
    outcomes: list[ReconcileOutcome] = field(default_factory=list)
    matched: int = 0
    unplanned: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def _as_activity(item: ActivityMetrics | dict[str, Any]) -> ActivityMetrics:
    if isinstance(item, ActivityMetrics):
        return item
    return ActivityInput.model_validate(item).to_metrics()


def _as_workout(item: PlannedWorkout | dict[str, Any]) -> PlannedWorkout:
    if isinstance(item, PlannedWorkout):
        return item
    return PlannedWorkoutInput.model_validate(item).to_workout()


def reconcile_batch(
    activities: Iterable[ActivityMetrics | dict[str, Any]],
    open_workouts: Iterable[PlannedWorkout | dict[str, Any]],
    threshold: float | None = None,
) -> BatchMatchResult:
    """Reconcile activities in order; a matched workout leaves the open pool.

    Malformed activities are counted as failed and do not stop the batch.
    Malformed planned workouts are reported in errors and left out of the pool.
    """
    if threshold is None:
        threshold = get_settings().auto_match_threshold
    result = BatchMatchResult()

    pool: list[PlannedWorkout] = []
    for index, item in enumerate(open_workouts):
        try:
            pool.append(_as_workout(item))
        except (ValidationError, ValueError) as e:
            message = f"Invalid planned workout {index + 1}: {e}"
            logger.warning("%s", message, extra=log_context(workout=index + 1))
            result.errors.append(message)

    for index, item in enumerate(activities):
        try:
            activity = _as_activity(item)
            outcome = reconcile_activity(activity, pool, threshold)
        except (ValidationError, ValueError) as e:
            message = f"Error matching activity {index + 1}: {e}"
            logger.warning("%s", message, extra=log_context(activity=index + 1))
            result.errors.append(message)
            result.failed += 1
            continue

        result.outcomes.append(outcome)
        if outcome.matched:
            result.matched += 1
            pool = [w for w in pool if w.id != outcome.consumed_id]
        else:
            result.unplanned += 1

    logger.info(
        "Reconciled batch: %d matched, %d unplanned, %d failed",
        result.matched, result.unplanned, result.failed,
    )
    return result


# ---------------------------------------------------------------------------
# Planned vs actual comparison
# ---------------------------------------------------------------------------

# expected fatigue ceiling -> share of planned minutes per zone
_PLANNED_ZONE_SHARES = (
    (40, (0.3, 0.7, 0.0, 0.0, 0.0)),
    (65, (0.2, 0.6, 0.2, 0.0, 0.0)),
    (85, (0.1, 0.4, 0.3, 0.2, 0.0)),
    (100, (0.05, 0.25, 0.3, 0.3, 0.1)),
)


@dataclass(frozen=True)
class WorkoutComparison:
    planned_duration: float
    actual_duration: float
    duration_difference: float
    duration_percent: float
    planned_fatigue: int
    actual_fatigue: float
    intensity_difference: float
    planned_zones: HRZoneDistribution
    actual_zones: HRZoneDistribution
    zone_variances: tuple[float, ...]
    zone_compliance: float
    training_load_variance: float
    hr_drift: Optional[float]
    adherence_score: int
    category: str
    feedback: tuple[str, ...]


def estimate_planned_zones(duration_min: float, expected_fatigue: int) -> HRZoneDistribution:
    shares = next((s for ceiling, s in _PLANNED_ZONE_SHARES if expected_fatigue <= ceiling), _PLANNED_ZONE_SHARES[-1][1])
    return HRZoneDistribution(*(duration_min * s for s in shares), total_time=duration_min)


def adherence_category(score: float) -> str:
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"


def _feedback(duration_percent: float, intensity_difference: float, zone_compliance: float) -> tuple[str, ...]:
    lines = []
    if abs(duration_percent) <= 5:
        lines.append("Duration matched plan perfectly")
    elif duration_percent > 5:
        lines.append(f"Workout was {round(duration_percent)}% longer than planned")
    else:
        lines.append(f"Workout was {round(abs(duration_percent))}% shorter than planned")

    if abs(intensity_difference) <= 5:
        lines.append("Intensity matched plan well")
    elif intensity_difference > 5:
        lines.append("Workout was more intense than planned")
    else:
        lines.append("Workout was less intense than planned")

    if zone_compliance >= 80:
        lines.append("Excellent heart rate zone distribution")
    elif zone_compliance >= 60:
        lines.append("Good heart rate zone distribution")
    else:
        lines.append("Heart rate zones deviated from plan")
    return tuple(lines)


def compare_workout(
    planned: PlannedWorkout | TrainingPlanEntry,
    actual: ActivityMetrics,
) -> WorkoutComparison:
    """Duration, intensity and zone adherence of an activity against its plan."""
    planned_duration = float(planned.duration_min or 0)
    planned_fatigue = planned.expected_fatigue or 0
    duration_difference = actual.duration - planned_duration
    duration_percent = duration_difference / planned_duration * 100 if planned_duration > 0 else 0.0

    planned_zones = estimate_planned_zones(planned_duration, planned_fatigue)
    planned_minutes = (planned_zones.zone1, planned_zones.zone2, planned_zones.zone3, planned_zones.zone4, planned_zones.zone5)
    variances = tuple(a - p for a, p in zip(actual.zone_minutes, planned_minutes))
    total_planned = sum(planned_minutes)
    zone_compliance = (
        max(0.0, 100 - sum(abs(v) for v in variances) / total_planned * 100) if total_planned > 0 else 100.0
    )

    # rough TRIMP -> 0-100 fatigue conversion
    actual_fatigue = min(100.0, max(0.0, actual.training_load / 5))
    intensity_difference = actual_fatigue - planned_fatigue

    duration_score = max(0.0, 100 - abs(duration_percent))
    intensity_score = max(0.0, 100 - abs(intensity_difference) * 2)
    score = round(duration_score * 0.3 + intensity_score * 0.4 + zone_compliance * 0.3)

    return WorkoutComparison(
        planned_duration=planned_duration,
        actual_duration=actual.duration,
        duration_difference=round(duration_difference, 1),
        duration_percent=round(duration_percent, 1),
        planned_fatigue=planned_fatigue,
        actual_fatigue=round(actual_fatigue, 1),
        intensity_difference=round(intensity_difference, 1),
        planned_zones=planned_zones,
        actual_zones=HRZoneDistribution(*actual.zone_minutes, total_time=actual.duration),
        zone_variances=tuple(round(v, 1) for v in variances),
        zone_compliance=round(zone_compliance, 1),
        training_load_variance=round(actual.training_load - planned_fatigue * 5, 1),
        hr_drift=actual.hr_drift,
        adherence_score=score,
        category=adherence_category(score),
        feedback=_feedback(duration_percent, intensity_difference, zone_compliance),
    )
