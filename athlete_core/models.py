"""Value types shared across the telemetry, fitness, planning and matching services.

Records are frozen dataclasses: activity metrics are created once per completed
activity and re-derived rather than patched, configuration is read-only input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

PHASES = ("base", "build", "peak", "taper", "recovery")
FITNESS_LEVELS = ("beginner", "intermediate", "advanced")
WORKOUT_STATUSES = ("planned", "completed", "missed", "unplanned")
FORM_STATUSES = ("fresh", "optimal", "productive", "maintaining", "overreaching", "high_risk")


# ---------------------------------------------------------------------------
# Heart-rate zone configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HRZone:
    """One heart-rate zone as a [min, max) band of percent max HR."""
    zone: int
    name: str
    min_percent: float
    max_percent: float
    description: str = ""


DEFAULT_HR_ZONES: tuple[HRZone, ...] = (
    HRZone(1, "Recovery", 50, 60, "Active recovery and warm-up"),
    HRZone(2, "Aerobic Base", 60, 70, "Aerobic base building"),
    HRZone(3, "Aerobic", 70, 80, "Aerobic development"),
    HRZone(4, "Threshold", 80, 90, "Lactate threshold"),
    HRZone(5, "Neuromuscular", 90, 100, "Neuromuscular power"),
)


@dataclass(frozen=True)
class HRZoneConfig:
    """Athlete HR scalars plus five contiguous zones, zone 1 lowest."""
    resting_hr: int = 59
    max_hr: int = 190
    zones: tuple[HRZone, ...] = DEFAULT_HR_ZONES

    def __post_init__(self):
        zones = tuple(self.zones)
        object.__setattr__(self, "zones", zones)
        if self.max_hr <= self.resting_hr:
            raise ValueError("max_hr must be greater than resting_hr")
        if len(zones) != 5:
            raise ValueError(f"expected 5 HR zones, got {len(zones)}")
        if [z.zone for z in zones] != [1, 2, 3, 4, 5]:
            raise ValueError("HR zones must be numbered 1..5 in ascending order")
        for z in zones:
            if z.min_percent >= z.max_percent:
                raise ValueError(f"zone {z.zone} has an empty percentage band")
        for lower, upper in zip(zones, zones[1:]):
            if lower.max_percent != upper.min_percent:
                raise ValueError(f"zones {lower.zone} and {upper.zone} are not contiguous")


@dataclass(frozen=True)
class TrainingConfig:
    """HR-zone config plus the sport lists used to pick pace vs speed reporting."""
    hr: HRZoneConfig = field(default_factory=HRZoneConfig)
    pace_sports: tuple[str, ...] = ("running", "run", "trail_running", "track_running")
    speed_sports: tuple[str, ...] = ("cycling", "bike", "road_cycling", "mountain_biking", "swimming", "swim")

    @property
    def resting_hr(self) -> int:
        return self.hr.resting_hr

    @property
    def max_hr(self) -> int:
        return self.hr.max_hr


DEFAULT_TRAINING_CONFIG = TrainingConfig()


# ---------------------------------------------------------------------------
# Activity / lap metrics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActivityMetrics:
    """Derived metrics for one completed activity."""
    date: date
    sport: str
    duration: float          # minutes
    distance: float          # km
    activity_id: Optional[str] = None
    sub_sport: Optional[str] = None
    avg_hr: Optional[int] = None
    max_hr: Optional[int] = None
    hr_drift: Optional[float] = None  # % change first third -> last third
    zone1_minutes: float = 0.0
    zone2_minutes: float = 0.0
    zone3_minutes: float = 0.0
    zone4_minutes: float = 0.0
    zone5_minutes: float = 0.0
    training_load: float = 0.0  # TRIMP
    calories: Optional[int] = None
    total_ascent: Optional[float] = None   # m
    total_descent: Optional[float] = None  # m
    avg_speed: Optional[float] = None      # km/h
    max_speed: Optional[float] = None      # km/h
    avg_pace: Optional[float] = None       # min/km
    avg_power: Optional[float] = None
    max_power: Optional[float] = None
    avg_cadence: Optional[float] = None
    notes: Optional[str] = None
    file_name: Optional[str] = None

    @property
    def zone_minutes(self) -> tuple[float, float, float, float, float]:
        return (
            self.zone1_minutes,
            self.zone2_minutes,
            self.zone3_minutes,
            self.zone4_minutes,
            self.zone5_minutes,
        )

    @property
    def high_intensity_minutes(self) -> float:
        return self.zone4_minutes + self.zone5_minutes


@dataclass(frozen=True)
class LapMetrics:
    """Metrics for one lap of a parent activity; lap_number is 1-based."""
    date: date
    lap_number: int
    lap_duration: float  # minutes
    lap_distance: float  # km
    activity_id: Optional[str] = None
    avg_hr: Optional[int] = None
    max_hr: Optional[int] = None
    avg_speed: Optional[float] = None
    max_speed: Optional[float] = None
    avg_pace: Optional[float] = None
    elevation_gain: Optional[float] = None
    elevation_loss: Optional[float] = None
    avg_power: Optional[float] = None
    max_power: Optional[float] = None
    normalized_power: Optional[float] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class HRZoneDistribution:
    """Minutes spent per zone plus the activity duration they were drawn from."""
    zone1: float = 0.0
    zone2: float = 0.0
    zone3: float = 0.0
    zone4: float = 0.0
    zone5: float = 0.0
    total_time: float = 0.0


# ---------------------------------------------------------------------------
# Fitness / fatigue / form
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyTrainingLoad:
    day: date
    load: float


@dataclass(frozen=True)
class FitnessFormPoint:
    """A single day's fitness/fatigue state."""
    day: date
    daily_load: float
    ctl: float  # Chronic Training Load (fitness)
    atl: float  # Acute Training Load (fatigue)
    tsb: float  # Training Stress Balance (form)


@dataclass(frozen=True)
class FitnessFormState:
    ctl: float
    atl: float
    tsb: float
    ctl_change: float  # vs 7 days earlier
    status: str
    history: tuple[FitnessFormPoint, ...] = ()


# ---------------------------------------------------------------------------
# Periodization
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkoutTemplate:
    """Catalog entry: a reusable workout shape with its load characteristics."""
    type: str   # run | bike | swim | brick | strength | mobility | rest
    tag: str    # zone1..zone5 | strength | mobility | brick | strides | threshold | intervals
    description: str
    duration_min: int
    fatigue_score: int  # 0-100
    recovery_impact: str  # restorative | low | medium | high
    phase: Optional[str] = None  # optional phase restriction


@dataclass(frozen=True)
class Mesocycle:
    name: str
    phase: str
    weeks: int
    template: tuple[str, ...]  # 7 day slots, Monday first
    goal: str = ""
    volume_multiplier: Optional[float] = None
    intensity_multiplier: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "template", tuple(self.template))
        if self.weeks <= 0:
            raise ValueError(f"mesocycle '{self.name}' must span at least one week")
        if len(self.template) != 7:
            raise ValueError(f"mesocycle '{self.name}' template must have 7 entries, got {len(self.template)}")
        if self.phase not in PHASES:
            raise ValueError(f"unknown training phase '{self.phase}'")


@dataclass(frozen=True)
class AthleteProfile:
    age: int
    fitness_level: str = "intermediate"
    name: Optional[str] = None

    def __post_init__(self):
        if self.fitness_level not in FITNESS_LEVELS:
            raise ValueError(f"fitness_level must be one of {FITNESS_LEVELS}")


@dataclass(frozen=True)
class MacroPlan:
    start_date: date
    mesocycles: tuple[Mesocycle, ...]
    athlete: AthleteProfile
    event_date: Optional[date] = None

    def __post_init__(self):
        object.__setattr__(self, "mesocycles", tuple(self.mesocycles))

    @property
    def total_weeks(self) -> int:
        return sum(m.weeks for m in self.mesocycles)

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=self.total_weeks * 7 - 1)


@dataclass(frozen=True)
class TrainingPlanEntry:
    date: date
    workout_type: str
    description: str
    expected_fatigue: int  # 0-100
    duration_min: int
    workout_id: str  # {mesocycle-slug}-{type}-{tag}
    mesocycle: str = ""
    phase: str = ""
    week: int = 1
    completed: bool = False


# ---------------------------------------------------------------------------
# Planned workouts and matching
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlannedWorkout:
    """A workout record as the persistence layer holds it: planned or actual."""
    id: str
    date: date
    sport: str
    name: str = ""
    duration_min: Optional[float] = None
    distance_km: Optional[float] = None
    expected_fatigue: Optional[int] = None
    description: str = ""
    status: str = "planned"
    actual: Optional[ActivityMetrics] = None
    matched_activity_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == "planned"


@dataclass(frozen=True)
class MatchDifferences:
    sport_match: bool
    date_match: bool
    duration_diff: Optional[float] = None  # actual - planned, minutes
    distance_diff: Optional[float] = None  # actual - planned, km


@dataclass(frozen=True)
class WorkoutMatchResult:
    workout: PlannedWorkout
    confidence: float  # 0-1
    reasons: tuple[str, ...]
    differences: MatchDifferences
    auto_match: bool = False

    @property
    def ambiguous(self) -> bool:
        return not self.auto_match
