"""Static workout catalog used by the periodization planner.

Each entry is a reusable workout shape (type + tag) with its nominal duration,
fatigue score and recovery impact. An optional phase restricts the entry to
mesocycles of that phase; unrestricted entries fit any phase.
"""

from __future__ import annotations

import math

from athlete_core.models import WorkoutTemplate

WORKOUT_LIBRARY: tuple[WorkoutTemplate, ...] = (
    # Running
    WorkoutTemplate("run", "zone1", "Easy recovery run, conversational pace", 25, 25, "low", "recovery"),
    WorkoutTemplate("run", "zone2", "Aerobic base run, comfortable effort", 35, 45, "low"),
    WorkoutTemplate("run", "zone3", "Tempo run, comfortably hard effort", 30, 65, "medium"),
    WorkoutTemplate("run", "threshold", "Lactate threshold intervals", 40, 75, "high", "build"),
    WorkoutTemplate("run", "strides", "Easy run with 4-6 x 20s strides", 35, 50, "medium"),
    WorkoutTemplate("run", "intervals", "VO2max intervals, 3-5 min efforts", 45, 85, "high", "build"),
    # Cycling
    WorkoutTemplate("bike", "zone1", "Recovery spin, very easy effort", 30, 20, "restorative", "recovery"),
    WorkoutTemplate("bike", "zone2", "Aerobic base ride, conversational", 45, 45, "low"),
    WorkoutTemplate("bike", "zone3", "Tempo ride, moderate effort", 40, 60, "medium"),
    WorkoutTemplate("bike", "threshold", "FTP intervals, sustained efforts", 50, 80, "high", "build"),
    WorkoutTemplate("bike", "intervals", "High-intensity intervals", 45, 85, "high", "build"),
    # Bricks
    WorkoutTemplate("brick", "zone2", "Easy brick: 25 min bike + 10 min run", 40, 55, "medium"),
    WorkoutTemplate("brick", "zone3", "Race pace brick: 30 min bike + 15 min run", 50, 70, "high", "build"),
    WorkoutTemplate("brick", "threshold", "Hard brick: Threshold bike + tempo run", 60, 85, "high", "peak"),
    # Strength and mobility
    WorkoutTemplate("strength", "strength", "Core strength + bodyweight exercises", 30, 30, "low"),
    WorkoutTemplate("strength", "strength", "Full body strength training", 45, 40, "medium"),
    WorkoutTemplate("mobility", "mobility", "Yoga flow for recovery", 20, 10, "restorative"),
    WorkoutTemplate("mobility", "mobility", "Dynamic stretching + foam rolling", 15, 5, "restorative"),
    # Rest
    WorkoutTemplate("rest", "zone1", "Complete rest or gentle walk", 0, 0, "restorative"),
    # Swimming
    WorkoutTemplate("swim", "zone2", "Aerobic swim, steady pace", 35, 40, "low"),
    WorkoutTemplate("swim", "threshold", "Swim intervals, race pace", 45, 70, "medium", "build"),
)

# (duration, fatigue) multipliers per fitness level
FITNESS_LEVEL_MULTIPLIERS: dict[str, tuple[float, float]] = {
    "beginner": (0.7, 0.8),
    "intermediate": (1.0, 1.0),
    "advanced": (1.3, 1.1),
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (31.5 -> 32).

    The 6-decimal pre-round absorbs float noise such as 45 * 0.7 == 31.499999999999996.
    """
    return int(math.floor(round(value, 6) + 0.5))


def workouts_by_type(workout_type: str, library=WORKOUT_LIBRARY) -> list[WorkoutTemplate]:
    return [w for w in library if w.type == workout_type]


def workouts_by_phase(phase: str, library=WORKOUT_LIBRARY) -> list[WorkoutTemplate]:
    return [w for w in library if w.phase is None or w.phase == phase]


def workout_by_type_and_tag(workout_type: str, tag: str, library=WORKOUT_LIBRARY) -> WorkoutTemplate | None:
    return next((w for w in library if w.type == workout_type and w.tag == tag), None)


def recovery_workouts(library=WORKOUT_LIBRARY) -> list[WorkoutTemplate]:
    return [w for w in library if w.recovery_impact == "restorative" or w.fatigue_score <= 20]


def easy_workouts(library=WORKOUT_LIBRARY) -> list[WorkoutTemplate]:
    return [w for w in library if w.fatigue_score <= 50 and w.recovery_impact != "high"]


def hard_workouts(library=WORKOUT_LIBRARY) -> list[WorkoutTemplate]:
    return [w for w in library if w.fatigue_score >= 70]


def adjust_for_fitness_level(workout: WorkoutTemplate, fitness_level: str) -> WorkoutTemplate:
    """Scale duration and fatigue for the athlete's level; fatigue is capped at 100."""
    duration_mult, fatigue_mult = FITNESS_LEVEL_MULTIPLIERS[fitness_level]
    return WorkoutTemplate(
        type=workout.type,
        tag=workout.tag,
        description=workout.description,
        duration_min=round_half_up(workout.duration_min * duration_mult),
        fatigue_score=min(100, round_half_up(workout.fatigue_score * fatigue_mult)),
        recovery_impact=workout.recovery_impact,
        phase=workout.phase,
    )
