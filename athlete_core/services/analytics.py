"""Dashboard analytics: fatigue risk, readiness, streaks and chart-ready series.

Provides the heuristics shown alongside the fitness/form state:
- Fatigue risk and readiness from the last 7 days of training load
- Current and longest training streaks
- HR drift trend across drift-bearing activities
- Injury risk flags (volume jumps, load, missing rest, intensity ratio)
- Weekly totals and load trend, as plain data and as a pandas DataFrame

All windows are calendar based and anchored on ``today`` (inclusive).
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

import pandas as pd

from athlete_core.config import Settings, get_settings
from athlete_core.models import ActivityMetrics, FitnessFormState, HRZoneDistribution
from athlete_core.services.fitness_form import compute_fitness_form
from athlete_core.services.training_load import sum_training_load, week_recovery_score

RECENT_WINDOW_DAYS = 7
REST_LOOKBACK_DAYS = 14
CHART_HISTORY_DAYS = 30
COMPARISON_WEEKS = 8


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _between(activities: Iterable[ActivityMetrics], start: date, end: date) -> list[ActivityMetrics]:
    return [a for a in activities if start <= a.date <= end]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ChartData:
    training_load_history: list[dict] = field(default_factory=list)
    weekly_load_comparison: list[dict] = field(default_factory=list)
    hr_trend_data: list[dict] = field(default_factory=list)
    zone_progress_data: list[dict] = field(default_factory=list)


@dataclass
class DashboardMetrics:
    current_fatigue_risk: str = "low"
    readiness_score: int = 85
    weekly_training_load: float = 0.0
    weekly_zone_distribution: HRZoneDistribution = field(default_factory=HRZoneDistribution)
    training_load_trend: str = "stable"
    current_streak: int = 0
    longest_streak: int = 0
    hr_drift_trend: str = "insufficient_data"
    volume_change_percent: float = 0.0
    injury_risk_factors: list[str] = field(default_factory=list)
    fitness_form: FitnessFormState | None = None
    chart_data: ChartData = field(default_factory=ChartData)


# ---------------------------------------------------------------------------
# Risk and readiness
# ---------------------------------------------------------------------------

def fatigue_risk(recent: list[ActivityMetrics]) -> str:
    """low / moderate / high from the last 7 days of load and zone 4-5 minutes."""
    if not recent:
        return "low"
    avg_daily_load = sum_training_load(recent) / RECENT_WINDOW_DAYS
    high_intensity = sum(a.high_intensity_minutes for a in recent)
    if avg_daily_load > 100 or high_intensity > 120:
        return "high"
    if avg_daily_load > 60 or high_intensity > 60:
        return "moderate"
    return "low"


def days_since_rest(activities: Iterable[ActivityMetrics], today: date) -> int:
    """Consecutive days back from today with an activity, capped at 14."""
    active_days = {a.date for a in activities}
    for offset in range(REST_LOOKBACK_DAYS):
        if today - timedelta(days=offset) not in active_days:
            return offset
    return REST_LOOKBACK_DAYS


def readiness_score(
    recent: list[ActivityMetrics],
    history: list[ActivityMetrics],
    today: date,
) -> int:
    """Readiness 0-100: starts at 100, penalized for load spikes, no rest and high drift."""
    if not recent:
        return 85

    score = 100
    span_days = (today - min(a.date for a in history)).days + 1
    weekly_average = sum_training_load(history) / max(1.0, span_days / 7)
    recent_load = sum_training_load(recent)
    if recent_load > weekly_average * 1.5:
        score -= 20
    elif recent_load > weekly_average * 1.2:
        score -= 10

    no_rest = days_since_rest(history, today)
    if no_rest >= 7:
        score -= 15
    elif no_rest > 4:
        score -= 10

    drifts = [a.hr_drift for a in recent if a.hr_drift is not None]
    if drifts and sum(drifts) / len(drifts) > 10:
        score -= 15

    return max(0, min(100, score))


def injury_risk_factors(history: list[ActivityMetrics], today: date) -> list[str]:
    recent = _between(history, today - timedelta(days=6), today)
    previous = _between(history, today - timedelta(days=13), today - timedelta(days=7))
    risks = []

    if volume_change_percent(recent, previous) > 25:
        risks.append("High volume increase (>25%)")
    if sum_training_load(recent) > 500:
        risks.append("High weekly training load")
    if days_since_rest(history, today) > 6:
        risks.append("No rest days in over 6 days")

    total_minutes = sum(a.duration for a in recent)
    high_intensity = sum(a.high_intensity_minutes for a in recent)
    if total_minutes > 0 and high_intensity / total_minutes > 0.3:
        risks.append("High intensity ratio (>30%)")

    return risks


# ---------------------------------------------------------------------------
# Streaks and trends
# ---------------------------------------------------------------------------

def current_streak(activities: Iterable[ActivityMetrics], today: date, lookback_days: int = 30) -> int:
    """Consecutive active days ending today, bounded by lookback_days."""
    active_days = {a.date for a in activities}
    streak = 0
    while streak < lookback_days and today - timedelta(days=streak) in active_days:
        streak += 1
    return streak


def longest_streak(activities: Iterable[ActivityMetrics]) -> int:
    days = sorted({a.date for a in activities})
    if not days:
        return 0
    longest = run = 1
    for prev, cur in zip(days, days[1:]):
        run = run + 1 if (cur - prev).days == 1 else 1
        longest = max(longest, run)
    return longest


def hr_drift_trend(activities: list[ActivityMetrics]) -> str:
    """Compare the mean drift of the last 3 drift-bearing activities with the 3 before."""
    drifts = [a.hr_drift for a in sorted(activities, key=lambda a: a.date) if a.hr_drift is not None]
    if len(drifts) < 6:
        return "insufficient_data"
    recent = sum(drifts[-3:]) / 3
    older = sum(drifts[-6:-3]) / 3
    if recent <= older - 2:
        return "improving"
    if recent >= older + 2:
        return "declining"
    return "stable"


def volume_change_percent(current: list[ActivityMetrics], previous: list[ActivityMetrics]) -> float:
    current_volume = sum(a.duration for a in current)
    previous_volume = sum(a.duration for a in previous)
    if previous_volume == 0:
        return 100.0 if current_volume > 0 else 0.0
    return round((current_volume - previous_volume) / previous_volume * 100, 1)


def training_load_trend(history: list[ActivityMetrics], today: date) -> str:
    """increasing / stable / decreasing: last 7 days against the 7 before (needs 14 activities)."""
    if len(history) < 14:
        return "stable"
    this_week = sum_training_load(_between(history, today - timedelta(days=6), today))
    last_week = sum_training_load(_between(history, today - timedelta(days=13), today - timedelta(days=7)))
    change = (this_week - last_week) / last_week * 100 if last_week > 0 else 0.0
    if change > 15:
        return "increasing"
    if change < -15:
        return "decreasing"
    return "stable"


def zone_totals(activities: Iterable[ActivityMetrics]) -> HRZoneDistribution:
    totals = [0.0] * 5
    for a in activities:
        totals = [t + m for t, m in zip(totals, a.zone_minutes)]
    rounded = [round(t, 1) for t in totals]
    return HRZoneDistribution(*rounded, total_time=round(sum(totals), 1))


# ---------------------------------------------------------------------------
# Chart series
# ---------------------------------------------------------------------------

def chart_data(history: list[ActivityMetrics], today: date) -> ChartData:
    window = [a for a in history if a.date >= today - timedelta(days=CHART_HISTORY_DAYS)]

    daily_load: dict[date, float] = defaultdict(float)
    daily_zones: dict[date, list[float]] = defaultdict(lambda: [0.0] * 5)
    for a in window:
        daily_load[a.date] += a.training_load
        daily_zones[a.date] = [t + m for t, m in zip(daily_zones[a.date], a.zone_minutes)]

    weekly = []
    for i in range(COMPARISON_WEEKS - 1, -1, -1):
        start = _week_start(today - timedelta(days=i * 7))
        week_activities = _between(history, start, start + timedelta(days=6))
        weekly.append({
            "week": f"{start.month}/{start.day}",
            "load": round(sum_training_load(week_activities), 1),
            "recovery": week_recovery_score(week_activities),
        })

    return ChartData(
        training_load_history=[
            {"date": d.isoformat(), "load": round(load, 1)} for d, load in sorted(daily_load.items())
        ],
        weekly_load_comparison=weekly,
        hr_trend_data=[
            {"date": a.date.isoformat(), "avg_hr": a.avg_hr, "max_hr": a.max_hr}
            for a in sorted(window, key=lambda a: a.date)
            if a.avg_hr and a.max_hr
        ],
        zone_progress_data=[
            {"date": d.isoformat(), "zones": [round(z, 1) for z in zones]}
            for d, zones in sorted(daily_zones.items())
        ],
    )


# ---------------------------------------------------------------------------
# Dashboard bundle
# ---------------------------------------------------------------------------

def calculate_dashboard_metrics(
    activities: Iterable[ActivityMetrics],
    today: date | None = None,
    settings: Settings | None = None,
) -> DashboardMetrics:
    """Everything the dashboard shows, derived from the activity history."""
    settings = settings or get_settings()
    today = today or date.today()
    history = sorted(
        (a for a in activities if a.date and a.training_load > 0 and a.date <= today),
        key=lambda a: a.date,
    )
    if not history:
        return DashboardMetrics()

    recent = _between(history, today - timedelta(days=RECENT_WINDOW_DAYS - 1), today)
    week_start = _week_start(today)
    current_week = _between(history, week_start, week_start + timedelta(days=6))
    previous_week = _between(history, week_start - timedelta(days=7), week_start - timedelta(days=1))

    return DashboardMetrics(
        current_fatigue_risk=fatigue_risk(recent),
        readiness_score=readiness_score(recent, history, today),
        weekly_training_load=round(sum_training_load(current_week), 1),
        weekly_zone_distribution=zone_totals(current_week),
        training_load_trend=training_load_trend(history, today),
        current_streak=current_streak(history, today, settings.streak_lookback_days),
        longest_streak=longest_streak(history),
        hr_drift_trend=hr_drift_trend(history),
        volume_change_percent=volume_change_percent(current_week, previous_week),
        injury_risk_factors=injury_risk_factors(history, today),
        fitness_form=compute_fitness_form(history, today=today, settings=settings),
        chart_data=chart_data(history, today),
    )


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def activity_summary(activities: Iterable[ActivityMetrics]) -> dict:
    """Totals across activities plus a per-sport count."""
    activities = list(activities)
    with_hr = [a.avg_hr for a in activities if a.avg_hr]
    return {
        "total_activities": len(activities),
        "total_distance": round(sum(a.distance for a in activities), 1),
        "total_duration": _round_half_up(sum(a.duration for a in activities)),
        "total_training_load": _round_half_up(sum_training_load(activities)),
        "average_hr": _round_half_up(sum(with_hr) / len(with_hr)) if with_hr else 0,
        "sport_breakdown": dict(Counter(a.sport for a in activities)),
    }


def weekly_summary(activities: Iterable[ActivityMetrics]) -> pd.DataFrame:
    """Aggregate activities into weekly totals of duration, load, and session count.

    Returns a DataFrame with columns: week, duration_min, load_score, sessions.
    """
    rows = [
        {"date": a.date, "duration_min": a.duration, "load_score": a.training_load}
        for a in activities
    ]
    if not rows:
        return pd.DataFrame(columns=["week", "duration_min", "load_score", "sessions"])
    d = pd.DataFrame(rows)
    d["date"] = pd.to_datetime(d["date"])
    d["week"] = d["date"].dt.to_period("W").astype(str)
    out = d.groupby("week", as_index=False).agg(
        duration_min=("duration_min", "sum"),
        load_score=("load_score", "sum"),
        sessions=("date", "count"),
    )
    return out


def trend_analysis(
    activities: Iterable[ActivityMetrics],
    weeks: int = 4,
    today: date | None = None,
) -> dict:
    """Monday-based weekly loads for the last ``weeks`` weeks with week-over-week change.

    The overall trend compares the first and last week (+/-10%).
    """
    today = today or date.today()
    activities = list(activities)
    weekly_loads: list[dict] = []

    for i in range(weeks - 1, -1, -1):
        start = _week_start(today - timedelta(days=i * 7))
        load = sum_training_load(_between(activities, start, start + timedelta(days=6)))
        prev = weekly_loads[-1]["load"] if weekly_loads else load
        change = (load - prev) / prev * 100 if prev > 0 else 0.0
        weekly_loads.append({
            "week": f"{start.month}/{start.day}",
            "load": _round_half_up(load),
            "change": _round_half_up(change),
        })

    first = weekly_loads[0]["load"] if weekly_loads else 0
    last = weekly_loads[-1]["load"] if weekly_loads else 0
    total_trend = "stable"
    if first > 0:
        total_change = (last - first) / first * 100
        if total_change > 10:
            total_trend = "increasing"
        elif total_change < -10:
            total_trend = "decreasing"

    return {
        "weekly_loads": weekly_loads,
        "total_trend": total_trend,
        "avg_weekly_load": _round_half_up(sum(w["load"] for w in weekly_loads) / weeks) if weeks else 0,
    }
