"""Fitness / fatigue / form model (CTL / ATL / TSB).

Exponentially weighted averages of daily training load:
- CTL (fitness): ctl += (load - ctl) / 42
- ATL (fatigue): atl += (load - atl) / 7
- TSB (form): CTL - ATL

The recurrence is order-dependent, so the series is always re-derived from the
first activity as a single fold over a gap-free daily series.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from itertools import accumulate
from typing import Iterable

from athlete_core.config import Settings, get_settings
from athlete_core.models import (
    ActivityMetrics,
    DailyTrainingLoad,
    FitnessFormPoint,
    FitnessFormState,
)
from athlete_core.services.training_load import build_daily_loads

logger = logging.getLogger(__name__)

# CTL_change compares against the value this many days before the final day.
CTL_CHANGE_WINDOW_DAYS = 7


def form_status(tsb: float) -> str:
    """Classify form from Training Stress Balance."""
    if tsb > 25:
        return "fresh"
    if 5 <= tsb <= 25:
        return "optimal"
    if -10 <= tsb < 5:
        return "productive"
    if -30 <= tsb < -10:
        return "overreaching"
    if tsb < -30:
        return "high_risk"
    return "maintaining"


def _check_series(daily_loads: list[DailyTrainingLoad]) -> None:
    for prev, cur in zip(daily_loads, daily_loads[1:]):
        if cur.day - prev.day != timedelta(days=1):
            raise ValueError(
                f"daily load series must be consecutive and ordered: {prev.day} -> {cur.day}"
            )


def _fold(
    daily_loads: list[DailyTrainingLoad],
    ctl_time_constant: int,
    atl_time_constant: int,
) -> list[tuple[float, float]]:
    def step(state: tuple[float, float], entry: DailyTrainingLoad) -> tuple[float, float]:
        ctl, atl = state
        return (
            ctl + (entry.load - ctl) / ctl_time_constant,
            atl + (entry.load - atl) / atl_time_constant,
        )

    # drop the (0, 0) seed so states line up with days
    return list(accumulate(daily_loads, step, initial=(0.0, 0.0)))[1:]


def run_fitness_model(
    daily_loads: list[DailyTrainingLoad],
    ctl_time_constant: int = 42,
    atl_time_constant: int = 7,
) -> list[FitnessFormPoint]:
    """Fold an ordered, gap-free daily series into per-day CTL/ATL/TSB points.

    Raises ValueError when days are missing or out of order.
    """
    _check_series(daily_loads)
    states = _fold(daily_loads, ctl_time_constant, atl_time_constant)
    return _points(daily_loads, states)


def _points(daily_loads: list[DailyTrainingLoad], states: list[tuple[float, float]]) -> list[FitnessFormPoint]:
    return [
        FitnessFormPoint(
            day=entry.day,
            daily_load=entry.load,
            ctl=round(ctl, 1),
            atl=round(atl, 1),
            tsb=round(ctl - atl, 1),
        )
        for entry, (ctl, atl) in zip(daily_loads, states)
    ]


def compute_fitness_form(
    activities: Iterable[ActivityMetrics],
    today: date | None = None,
    settings: Settings | None = None,
) -> FitnessFormState:
    """Current fitness/fatigue/form derived from the full activity history."""
    settings = settings or get_settings()
    today = today or date.today()
    daily_loads = build_daily_loads(activities, end=today)
    if not daily_loads:
        return FitnessFormState(ctl=0.0, atl=0.0, tsb=0.0, ctl_change=0.0, status=form_status(0.0))

    states = _fold(daily_loads, settings.ctl_time_constant, settings.atl_time_constant)
    ctl, atl = states[-1]
    tsb = ctl - atl
    # before the series start CTL is 0
    ctl_week_ago = states[-1 - CTL_CHANGE_WINDOW_DAYS][0] if len(states) > CTL_CHANGE_WINDOW_DAYS else 0.0

    history = tuple(_points(daily_loads, states))
    state = FitnessFormState(
        ctl=round(ctl, 1),
        atl=round(atl, 1),
        tsb=round(tsb, 1),
        ctl_change=round(ctl - ctl_week_ago, 1),
        status=form_status(tsb),
        history=history,
    )
    logger.debug("Fitness form on %s: CTL %.1f ATL %.1f TSB %.1f (%s)", today, ctl, atl, tsb, state.status)
    return state
