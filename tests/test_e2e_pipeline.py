"""Integration tests: decoded telemetry -> metrics -> fitness form, and plan -> matching."""

from __future__ import annotations

from datetime import date

import pytest

from athlete_core.config import Settings
from athlete_core.models import ActivityMetrics, AthleteProfile, MacroPlan, Mesocycle, PlannedWorkout
from athlete_core.services.analytics import calculate_dashboard_metrics
from athlete_core.services.fitness_form import compute_fitness_form
from athlete_core.services.imports import process_batch
from athlete_core.services.periodization import generate_plan, to_planned_workouts
from athlete_core.services.workout_matching import (
    compare_workout,
    find_best_match,
    reconcile_activity,
    reconcile_batch,
)

MONDAY = date(2024, 3, 4)


def _decoded(day: int, sport: str = "cycling", seconds: int = 2640, km: float = 20.0, name: str | None = None) -> dict:
    start = f"2024-03-{day:02d}T07:00:00"
    return {
        "file_name": name or f"ride-{day}.fit",
        "sessions": [{"start_time": start, "sport": sport, "total_elapsed_time": seconds, "total_distance": km}],
        "laps": [
            {"start_time": start, "total_elapsed_time": seconds / 2, "total_distance": km / 2},
            {"start_time": f"2024-03-{day:02d}T07:22:00", "total_elapsed_time": seconds / 2, "total_distance": km / 2},
        ],
        "records": [{"heart_rate": 130 + i} for i in range(12)],
    }


def test_telemetry_to_fitness_form():
    batch = [
        _decoded(4),
        _decoded(5),
        _decoded(6),
        _decoded(6),  # same file re-uploaded
        {"file_name": "empty.fit", "records": [{"heart_rate": 120}]},
    ]
    result = process_batch(batch)
    assert result.activities_processed == 3
    assert result.activities_skipped == 2
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Error processing empty.fit")
    assert len(result.laps) == 6

    first = result.activities[0]
    assert first.sport == "bike"
    assert first.duration == 44.0
    assert first.distance == 20.0
    assert first.training_load > 0
    assert first.activity_id.startswith("2024-03-04_bike_")

    today = date(2024, 3, 6)
    form = compute_fitness_form(result.activities, today=today, settings=Settings())
    assert len(form.history) == 3
    assert form.ctl > 0
    assert form.atl > form.ctl
    assert form.tsb < 0

    dashboard = calculate_dashboard_metrics(result.activities, today=today, settings=Settings())
    assert dashboard.current_streak == 3
    assert dashboard.fitness_form == form


def test_plan_to_matched_workouts():
    week = ("bike", "rest", "run", "rest", "swim", "rest", "rest")
    plan = MacroPlan(
        start_date=MONDAY,
        mesocycles=(Mesocycle("Base", "base", 1, week),),
        athlete=AthleteProfile(age=35, fitness_level="intermediate"),
    )
    entries = generate_plan(plan)
    assert len(entries) == 7
    planned = to_planned_workouts(entries)
    assert [p.sport for p in planned] == ["bike", "run", "swim"]
    assert planned[0].duration_min == 45.0

    metrics = process_batch([_decoded(4)]).activities
    result = reconcile_batch(metrics, planned, threshold=0.7)
    assert result.matched == 1
    outcome = result.outcomes[0]
    assert outcome.consumed_id == planned[0].id
    assert outcome.workout.status == "completed"
    assert outcome.match.differences.duration_diff == -1.0

    comparison = compare_workout(planned[0], metrics[0])
    assert comparison.duration_percent < 5


def test_unplanned_activity_after_slot_consumed():
    planned = [{"id": "p1", "date": "2024-03-04", "sport": "run", "duration_min": 45, "distance_km": 8.0}]
    activities = [
        {"date": "2024-03-04", "sport": "run", "duration": 44, "distance": 8.1, "activity_id": "a1"},
        {"date": "2024-03-04", "sport": "run", "duration": 45, "distance": 8.0, "activity_id": "a2"},
    ]
    result = reconcile_batch(activities, planned, threshold=0.7)
    first, second = result.outcomes
    assert first.matched
    assert first.match.differences.duration_diff == -1.0
    assert abs(first.match.differences.distance_diff - 0.1) < 1e-9
    assert not second.matched
    assert second.workout.id == "unplanned-2024-03-04-run-a2"


def test_reference_run_matches_its_plan():
    activity = ActivityMetrics(date=date(2024, 1, 15), sport="run", duration=44, distance=8.1, activity_id="run-0115")
    planned = PlannedWorkout(id="plan-0115", date=date(2024, 1, 15), sport="run", duration_min=45, distance_km=8.0)

    match = find_best_match(activity, [planned], threshold=0.7)
    assert match is not None
    assert match.auto_match
    assert match.confidence > 0.9
    assert "Sport matches" in match.reasons
    assert "Date matches" in match.reasons
    assert match.differences.duration_diff == -1.0
    assert match.differences.distance_diff == pytest.approx(0.1)

    outcome = reconcile_activity(activity, [planned], threshold=0.7)
    assert outcome.consumed_id == "plan-0115"
    assert outcome.workout.actual is activity


def test_plan_on_another_day_is_never_matched():
    activity = ActivityMetrics(date=date(2024, 1, 15), sport="run", duration=45, distance=8.0, activity_id="run-0115")
    tomorrow = PlannedWorkout(id="plan-0116", date=date(2024, 1, 16), sport="run", duration_min=45, distance_km=8.0)

    assert find_best_match(activity, [tomorrow], threshold=0.1) is None
    outcome = reconcile_activity(activity, [tomorrow], threshold=0.1)
    assert outcome.workout.status == "unplanned"
    assert outcome.consumed_id is None
