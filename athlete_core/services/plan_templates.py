"""Pre-built weekly and mesocycle templates for common triathlon goals."""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date

from athlete_core.models import AthleteProfile, MacroPlan, Mesocycle

# Phase -> fitness level -> 7 day slots, Monday first
WEEKLY_TEMPLATES: dict[str, dict[str, tuple[str, ...]]] = {
    "base": {
        "beginner": ("rest", "run", "bike", "rest", "strength", "run", "mobility"),
        "intermediate": ("bike", "run", "rest", "strength", "bike", "run", "mobility"),
        "advanced": ("run", "bike", "strength", "brick", "rest", "run", "mobility"),
    },
    "build": {
        "beginner": ("rest", "run", "bike", "strength", "rest", "brick", "mobility"),
        "intermediate": ("run", "brick", "bike", "rest", "run", "strength", "mobility"),
        "advanced": ("run", "brick", "bike", "strength", "brick", "run", "mobility"),
    },
    "peak": {
        "beginner": ("rest", "brick", "bike", "rest", "run", "strength", "mobility"),
        "intermediate": ("brick", "run", "bike", "rest", "brick", "strength", "mobility"),
        "advanced": ("brick", "run", "brick", "bike", "rest", "run", "mobility"),
    },
    "taper": {
        "beginner": ("rest", "run", "rest", "bike", "rest", "mobility", "rest"),
        "intermediate": ("rest", "run", "bike", "rest", "brick", "mobility", "rest"),
        "advanced": ("run", "rest", "bike", "rest", "brick", "mobility", "rest"),
    },
    "recovery": {
        "beginner": ("rest", "mobility", "rest", "mobility", "rest", "mobility", "rest"),
        "intermediate": ("mobility", "run", "rest", "bike", "rest", "mobility", "rest"),
        "advanced": ("run", "mobility", "bike", "rest", "strength", "mobility", "rest"),
    },
}

MESOCYCLE_TEMPLATES: dict[str, tuple[Mesocycle, ...]] = {
    # 750m swim, 20km bike, 5km run
    "sprintTriathlon": (
        Mesocycle("Base Building", "base", 4,
                  ("bike", "run", "rest", "strength", "bike", "run", "mobility"),
                  "Build aerobic endurance and establish training rhythm", 1.0),
        Mesocycle("Brick Introduction", "base", 4,
                  ("run", "bike", "strength", "brick", "rest", "run", "mobility"),
                  "Add brick training and build weekly volume", 1.1),
        Mesocycle("Speed Development", "build", 4,
                  ("run", "brick", "bike", "rest", "run", "strength", "mobility"),
                  "Develop lactate threshold and race pace", 1.0, 1.2),
        Mesocycle("Race Simulation", "peak", 2,
                  ("brick", "run", "rest", "bike", "mobility", "brick", "rest"),
                  "Practice race scenarios and transitions", 0.9, 1.1),
        Mesocycle("Taper", "taper", 2,
                  ("rest", "run", "bike", "rest", "brick", "mobility", "rest"),
                  "Freshen legs while maintaining fitness", 0.6, 0.8),
    ),
    # 1500m swim, 40km bike, 10km run
    "olympicTriathlon": (
        Mesocycle("Aerobic Base I", "base", 6,
                  ("bike", "run", "rest", "strength", "bike", "run", "mobility"),
                  "Build large aerobic base for longer distances", 1.0),
        Mesocycle("Aerobic Base II", "base", 6,
                  ("run", "bike", "strength", "brick", "rest", "bike", "mobility"),
                  "Add volume and introduce longer brick sessions", 1.2),
        Mesocycle("Threshold Build I", "build", 4,
                  ("run", "brick", "bike", "rest", "run", "strength", "mobility"),
                  "Develop lactate threshold across all disciplines", 1.1, 1.1),
        Mesocycle("Threshold Build II", "build", 4,
                  ("brick", "run", "bike", "strength", "brick", "run", "mobility"),
                  "Race-specific intensities and longer bricks", 1.0, 1.3),
        Mesocycle("Peak Preparation", "peak", 3,
                  ("brick", "run", "rest", "bike", "brick", "strength", "mobility"),
                  "Fine-tune race fitness and practice fueling", 0.9, 1.2),
        Mesocycle("Final Taper", "taper", 3,
                  ("rest", "run", "bike", "rest", "brick", "mobility", "rest"),
                  "Peak freshness for race day", 0.5, 0.7),
    ),
    "offSeason": (
        Mesocycle("Active Recovery", "recovery", 4,
                  ("rest", "mobility", "rest", "run", "rest", "bike", "mobility"),
                  "Mental and physical recovery from racing", 0.4),
        Mesocycle("Strength Focus", "base", 6,
                  ("strength", "run", "rest", "strength", "bike", "run", "mobility"),
                  "Build strength and address limiters", 0.7),
        Mesocycle("Aerobic Development", "base", 8,
                  ("bike", "run", "strength", "bike", "rest", "run", "mobility"),
                  "Build large aerobic engine for next season", 1.0),
    ),
    # 4-8 weeks out
    "quickRacePrep": (
        Mesocycle("Base & Build", "build", 4,
                  ("run", "bike", "rest", "brick", "strength", "run", "mobility"),
                  "Rapidly build fitness for upcoming race", 1.0, 1.1),
        Mesocycle("Intensity Focus", "peak", 3,
                  ("brick", "run", "bike", "rest", "brick", "strength", "mobility"),
                  "Sharpen race-specific fitness", 0.9, 1.3),
        Mesocycle("Race Taper", "taper", 1,
                  ("rest", "run", "rest", "bike", "rest", "mobility", "rest"),
                  "Final preparation and recovery", 0.5, 0.6),
    ),
}

TEMPLATE_DESCRIPTIONS = {
    "sprintTriathlon": "Complete 16-week plan for sprint distance triathlon (750m/20km/5km)",
    "olympicTriathlon": "Comprehensive 26-week plan for Olympic distance triathlon (1500m/40km/10km)",
    "offSeason": "Off-season base building and recovery plan (18 weeks)",
    "quickRacePrep": "Rapid race preparation for short-notice events (8 weeks)",
}

VOLUME_ADJUSTMENTS = {"beginner": 0.8, "intermediate": 1.0, "advanced": 1.2}
INTENSITY_ADJUSTMENTS = {"beginner": 0.9, "intermediate": 1.0, "advanced": 1.1}

# Weekly training hours across all levels
HOURS_PER_WEEK = (3, 12)


def available_templates() -> list[str]:
    return list(MESOCYCLE_TEMPLATES)


def template_description(name: str) -> str:
    return TEMPLATE_DESCRIPTIONS.get(name, "Custom training template")


def adjust_mesocycle_for_level(mesocycle: Mesocycle, fitness_level: str) -> Mesocycle:
    """Swap in the level's weekly template for the phase and scale the multipliers."""
    return replace(
        mesocycle,
        template=WEEKLY_TEMPLATES[mesocycle.phase][fitness_level],
        volume_multiplier=(mesocycle.volume_multiplier or 1.0) * VOLUME_ADJUSTMENTS[fitness_level],
        intensity_multiplier=(mesocycle.intensity_multiplier or 1.0) * INTENSITY_ADJUSTMENTS[fitness_level],
    )


def create_macro_plan_from_template(
    name: str,
    start_date: date,
    event_date: date | None,
    athlete_age: int,
    fitness_level: str,
) -> MacroPlan:
    """Build a macro plan from a named template. Unknown names raise KeyError."""
    if name not in MESOCYCLE_TEMPLATES:
        raise KeyError(f"Training template '{name}' not found")
    athlete = AthleteProfile(age=athlete_age, fitness_level=fitness_level)
    return MacroPlan(
        start_date=start_date,
        event_date=event_date,
        mesocycles=tuple(adjust_mesocycle_for_level(m, fitness_level) for m in MESOCYCLE_TEMPLATES[name]),
        athlete=athlete,
    )


def create_custom_mesocycle(name: str, phase: str, weeks: int, goal: str, fitness_level: str) -> Mesocycle:
    templates = WEEKLY_TEMPLATES[phase]
    return Mesocycle(
        name=name,
        phase=phase,
        weeks=weeks,
        template=templates.get(fitness_level, templates["intermediate"]),
        goal=goal,
        volume_multiplier=1.0,
        intensity_multiplier=1.0,
    )


def create_sample_triathlon_plan(
    start_date: date,
    event_date: date,
    athlete_age: int,
    fitness_level: str,
) -> MacroPlan:
    """Macro plan sized to the weeks until the event.

    16+ weeks get a two-base/two-build/taper plan, 8+ weeks a three-block plan
    and anything shorter a single race-prep block.
    """
    total_weeks = math.ceil((event_date - start_date).days / 7)
    beginner = fitness_level == "beginner"

    if total_weeks >= 16:
        mesocycles = (
            Mesocycle("Base I", "base", 4,
                      ("bike", "run", "rest", "strength", "bike", "run", "mobility"),
                      "Build aerobic endurance and establish routine",
                      volume_multiplier=0.8 if beginner else 1.0),
            Mesocycle("Base II", "base", 4,
                      ("run", "bike", "strength", "brick", "rest", "run", "mobility"),
                      "Add volume and introduce brick training",
                      volume_multiplier=0.9 if beginner else 1.1),
            Mesocycle("Build I", "build", 4,
                      ("run", "brick", "bike", "rest", "run", "strength", "mobility"),
                      "Develop lactate threshold and speed", 1.0, 1.1),
            Mesocycle("Build II", "build", 3,
                      ("brick", "run", "bike", "rest", "brick", "strength", "mobility"),
                      "Race-specific training and brick focus", 1.1, 1.2),
            Mesocycle("Taper", "taper", max(1, total_weeks - 15),
                      ("rest", "run", "bike", "rest", "brick", "mobility", "rest"),
                      "Freshen legs and prepare for race", 0.6, 0.8),
        )
    elif total_weeks >= 8:
        mesocycles = (
            Mesocycle("Base Build", "base", math.floor(total_weeks * 0.5),
                      ("run", "bike", "rest", "brick", "strength", "run", "mobility"),
                      "Build aerobic base and introduce brick training"),
            Mesocycle("Intensity", "build", math.floor(total_weeks * 0.3),
                      ("brick", "run", "bike", "rest", "brick", "strength", "mobility"),
                      "Develop race-specific fitness", intensity_multiplier=1.2),
            Mesocycle("Peak & Taper", "taper", math.ceil(total_weeks * 0.2),
                      ("rest", "run", "bike", "rest", "brick", "mobility", "rest"),
                      "Peak fitness and race preparation", volume_multiplier=0.7),
        )
    else:
        mesocycles = (
            Mesocycle("Race Prep", "taper" if total_weeks <= 2 else "build", max(1, total_weeks),
                      ("run", "bike", "rest", "brick", "strength", "run", "mobility"),
                      "Prepare for upcoming event"),
        )

    return MacroPlan(
        start_date=start_date,
        event_date=event_date,
        mesocycles=mesocycles,
        athlete=AthleteProfile(age=athlete_age, fitness_level=fitness_level),
    )


def estimate_training_time(name: str) -> dict:
    """Total weeks and the min/max hour range for a named template."""
    mesocycles = MESOCYCLE_TEMPLATES.get(name)
    if not mesocycles:
        return {"total_weeks": 0, "hours_per_week": {"min": 0, "max": 0}, "total_hours": {"min": 0, "max": 0}}
    total_weeks = sum(m.weeks for m in mesocycles)
    low, high = HOURS_PER_WEEK
    return {
        "total_weeks": total_weeks,
        "hours_per_week": {"min": low, "max": high},
        "total_hours": {"min": total_weeks * low, "max": total_weeks * high},
    }
