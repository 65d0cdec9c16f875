"""Periodization planner: macro plan -> mesocycles -> dated daily workouts.

Mesocycles run back to back from the plan start. Within a mesocycle each week
gets a progression multiplier (build weeks then a lighter recovery week), and
each day's template slot is resolved against the workout catalog by phase.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Iterable, Sequence

from athlete_core.logging_config import log_context
from athlete_core.models import (
    MacroPlan,
    Mesocycle,
    PlannedWorkout,
    TrainingPlanEntry,
    WorkoutTemplate,
)
from athlete_core.services.workout_library import (
    WORKOUT_LIBRARY,
    adjust_for_fitness_level,
    round_half_up,
    workout_by_type_and_tag,
    workouts_by_type,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def weekly_progression_multiplier(week_index: int, total_weeks: int) -> float:
    """Load multiplier for week_index (0-based) of a total_weeks mesocycle."""
    if total_weeks <= 2:
        return 1.0
    if total_weeks == 3:
        return (1.0, 1.15, 0.85)[week_index] if week_index < 3 else 1.0
    if total_weeks == 4:
        # 3-week build + 1 recovery week
        return (1.0, 1.1, 1.2, 0.7)[week_index] if week_index < 4 else 1.0
    if (week_index + 1) % 4 == 0:
        return 0.75
    return min(1.25, 1.0 + week_index * 0.05)


def select_workout_for_phase(candidates: Sequence[WorkoutTemplate], phase: str) -> WorkoutTemplate:
    """Pick the candidate that best fits the phase; falls back to the first candidate."""
    def first(predicate):
        return next((w for w in candidates if predicate(w)), None)

    if phase == "base":
        choice = first(lambda w: w.tag == "zone2") or first(lambda w: w.fatigue_score <= 50)
    elif phase == "build":
        choice = (
            first(lambda w: w.tag == "threshold")
            or first(lambda w: w.tag == "intervals")
            or first(lambda w: w.fatigue_score >= 60)
        )
    elif phase == "peak":
        choice = (
            first(lambda w: w.tag == "threshold")
            or first(lambda w: w.type == "brick")
            or first(lambda w: w.fatigue_score >= 70)
        )
    elif phase == "taper":
        choice = (
            first(lambda w: w.tag == "strides")
            or first(lambda w: w.duration_min <= 30)
            or first(lambda w: w.fatigue_score <= 40)
        )
    elif phase == "recovery":
        choice = (
            first(lambda w: w.tag == "zone1")
            or first(lambda w: w.recovery_impact == "restorative")
            or first(lambda w: w.fatigue_score <= 30)
        )
    else:
        choice = None
    return choice or candidates[0]


def workout_for_slot(slot: str, phase: str, library=WORKOUT_LIBRARY) -> WorkoutTemplate | None:
    """Resolve a template slot ("run", "rest", ...) to a catalog workout for the phase."""
    if slot == "rest":
        return workout_by_type_and_tag("rest", "zone1", library)

    of_type = workouts_by_type(slot, library)
    candidates = [w for w in of_type if w.phase is None or w.phase == phase]
    if not candidates:
        return of_type[0] if of_type else None
    return select_workout_for_phase(candidates, phase)


def adjust_workout(
    workout: WorkoutTemplate,
    mesocycle: Mesocycle,
    week_multiplier: float,
    fitness_level: str,
) -> WorkoutTemplate:
    """Apply fitness level, then mesocycle volume x week progression, then intensity."""
    adjusted = adjust_for_fitness_level(workout, fitness_level)
    volume = mesocycle.volume_multiplier or 1.0
    intensity = mesocycle.intensity_multiplier or 1.0
    return WorkoutTemplate(
        type=adjusted.type,
        tag=adjusted.tag,
        description=adjusted.description,
        duration_min=round_half_up(adjusted.duration_min * volume * week_multiplier),
        fatigue_score=min(100, round_half_up(adjusted.fatigue_score * intensity)),
        recovery_impact=adjusted.recovery_impact,
        phase=adjusted.phase,
    )


def mesocycle_slug(name: str) -> str:
    return _WHITESPACE.sub("-", name.lower())


def generate_plan(macro_plan: MacroPlan, library=WORKOUT_LIBRARY) -> list[TrainingPlanEntry]:
    """Expand a macro plan into one entry per day (days with no resolvable workout are skipped)."""
    entries: list[TrainingPlanEntry] = []
    level = macro_plan.athlete.fitness_level
    block_start = macro_plan.start_date

    for mesocycle in macro_plan.mesocycles:
        slug = mesocycle_slug(mesocycle.name)
        for week in range(mesocycle.weeks):
            multiplier = weekly_progression_multiplier(week, mesocycle.weeks)
            for day, slot in enumerate(mesocycle.template):
                current = block_start + timedelta(days=week * 7 + day)
                base = workout_for_slot(slot or "rest", mesocycle.phase, library)
                if base is None:
                    logger.warning(
                        "No %s workout in catalog for %s (%s); skipping %s",
                        slot, mesocycle.name, mesocycle.phase, current,
                        extra=log_context(mesocycle=mesocycle.name),
                    )
                    continue

                workout = adjust_workout(base, mesocycle, multiplier, level)
                entries.append(TrainingPlanEntry(
                    date=current,
                    workout_type=workout.type,
                    description=f"{mesocycle.name}: {workout.description}",
                    expected_fatigue=workout.fatigue_score,
                    duration_min=workout.duration_min,
                    workout_id=f"{slug}-{workout.type}-{workout.tag}",
                    mesocycle=mesocycle.name,
                    phase=mesocycle.phase,
                    week=week + 1,
                ))
        block_start += timedelta(days=mesocycle.weeks * 7)

    logger.info(
        "Generated %d plan entries over %d weeks (%s)",
        len(entries), macro_plan.total_weeks, level,
    )
    return entries


def to_planned_workouts(entries: Iterable[TrainingPlanEntry]) -> list[PlannedWorkout]:
    """Open planned workouts for every non-rest entry, ready for activity matching."""
    return [
        PlannedWorkout(
            id=f"{e.date.isoformat()}-{e.workout_id}",
            date=e.date,
            sport=e.workout_type,
            name=e.description,
            duration_min=float(e.duration_min) if e.duration_min else None,
            expected_fatigue=e.expected_fatigue,
            description=e.description,
            status="completed" if e.completed else "planned",
        )
        for e in entries
        if e.workout_type != "rest"
    ]
