"""Training load metrics: TRIMP and the daily load series.

TRIMP (Training Impulse) weights session duration by the fraction of heart
rate reserve used, exponentially, so hard minutes count more than easy ones.
The daily series is the input to the fitness/fatigue model and must be
gap-free: rest days are explicit zero entries.

Reference: Banister (1991).
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from athlete_core.models import ActivityMetrics, DailyTrainingLoad

# Male weighting factor; 1.67 is used for female athletes.
TRIMP_EXPONENT = 1.92


def trimp(
    avg_hr: float,
    duration_min: float,
    resting_hr: float,
    max_hr: float,
    gender_factor: float = TRIMP_EXPONENT,
) -> float:
    """Banister TRIMP: duration * HRR * e^(gender_factor * HRR), 1 decimal.

    An average HR at or below resting HR carries no load.
    """
    if max_hr <= resting_hr:
        return 0.0
    hrr = (avg_hr - resting_hr) / (max_hr - resting_hr)
    if hrr <= 0:
        return 0.0
    load = duration_min * hrr * math.exp(gender_factor * hrr)
    return round(max(0.0, load), 1)


def sum_training_load(activities: Iterable[ActivityMetrics]) -> float:
    return sum(a.training_load for a in activities)


def build_daily_loads(
    activities: Iterable[ActivityMetrics],
    end: date | None = None,
) -> list[DailyTrainingLoad]:
    """Sum training load per calendar day, gap-filled from the first activity to end.

    end defaults to today. Activities after end are ignored; the result is in
    chronological order with one entry per day.
    """
    end = end or date.today()
    loads_by_date: dict[date, float] = defaultdict(float)
    for activity in activities:
        if activity.date <= end:
            loads_by_date[activity.date] += float(activity.training_load)

    if not loads_by_date:
        return []

    start = min(loads_by_date)
    span = (end - start).days + 1
    return [
        DailyTrainingLoad(day=day, load=round(loads_by_date.get(day, 0.0), 1))
        for day in (start + timedelta(days=i) for i in range(span))
    ]


def week_recovery_score(week_activities: list[ActivityMetrics]) -> float:
    """Recovery score for a 7-day block: more rest days and lower load score higher."""
    if not week_activities:
        return 100.0
    avg_load = sum_training_load(week_activities) / 7
    rest_days = 7 - len({a.date for a in week_activities})
    return round(min(100.0, rest_days * 20 + max(0.0, 40 - avg_load)), 1)
