"""Pydantic validation models for data entering the core.

Decoder output (sessions, laps, samples) arrives as loosely-shaped dicts; the
models here pin down the fields the analysis reads and reject malformed
timestamps or negative durations before any metric is computed. Units follow
the decoder configuration: distances in km, speeds in km/h, times in seconds.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from athlete_core.models import (
    FITNESS_LEVELS,
    PHASES,
    WORKOUT_STATUSES,
    ActivityMetrics,
    AthleteProfile,
    MacroPlan,
    Mesocycle,
    PlannedWorkout,
)


class _DecoderRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------------------
# Decoder output
# ---------------------------------------------------------------------------

class RawTelemetrySample(_DecoderRecord):
    timestamp: Optional[datetime] = None
    heart_rate: Optional[float] = Field(default=None, ge=0)
    position_lat: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("position_lat", "lat")
    )
    position_long: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("position_long", "lng", "lon")
    )
    speed: Optional[float] = Field(default=None, ge=0)
    enhanced_speed: Optional[float] = Field(default=None, ge=0)
    power: Optional[float] = Field(default=None, ge=0)
    cadence: Optional[float] = Field(default=None, ge=0)
    altitude: Optional[float] = None
    distance: Optional[float] = Field(default=None, ge=0)  # cumulative, km


class RawSession(_DecoderRecord):
    start_time: Optional[datetime] = None
    sport: Optional[str] = None
    sub_sport: Optional[str] = None
    total_elapsed_time: Optional[float] = Field(default=None, ge=0)
    total_timer_time: Optional[float] = Field(default=None, ge=0)
    total_distance: Optional[float] = Field(default=None, ge=0)
    avg_speed: Optional[float] = Field(default=None, ge=0)
    enhanced_avg_speed: Optional[float] = Field(default=None, ge=0)
    max_speed: Optional[float] = Field(default=None, ge=0)
    total_calories: Optional[int] = Field(default=None, ge=0)
    total_ascent: Optional[float] = Field(default=None, ge=0)
    total_descent: Optional[float] = Field(default=None, ge=0)
    avg_power: Optional[float] = Field(default=None, ge=0)
    max_power: Optional[float] = Field(default=None, ge=0)
    avg_cadence: Optional[float] = Field(default=None, ge=0)


class RawLap(_DecoderRecord):
    start_time: Optional[datetime] = None
    timestamp: Optional[datetime] = None
    total_elapsed_time: Optional[float] = Field(default=None, ge=0)
    total_timer_time: Optional[float] = Field(default=None, ge=0)
    total_distance: Optional[float] = Field(default=None, ge=0)
    avg_speed: Optional[float] = Field(default=None, ge=0)
    enhanced_avg_speed: Optional[float] = Field(default=None, ge=0)
    max_speed: Optional[float] = Field(default=None, ge=0)
    avg_heart_rate: Optional[int] = Field(default=None, ge=0)
    max_heart_rate: Optional[int] = Field(default=None, ge=0)
    total_ascent: Optional[float] = Field(default=None, ge=0)
    total_descent: Optional[float] = Field(default=None, ge=0)
    avg_power: Optional[float] = Field(default=None, ge=0)
    max_power: Optional[float] = Field(default=None, ge=0)
    normalized_power: Optional[float] = Field(default=None, ge=0)


class RawActivitySummary(_DecoderRecord):
    timestamp: Optional[datetime] = None
    total_distance: Optional[float] = Field(default=None, ge=0)
    event: Optional[str] = None
    sessions: list[RawSession] = Field(default_factory=list)


class DecodedActivity(_DecoderRecord):
    """One decoded telemetry container: flat sessions/laps/records plus the activity summary."""
    sessions: list[RawSession] = Field(default_factory=list)
    laps: list[RawLap] = Field(default_factory=list)
    records: list[RawTelemetrySample] = Field(default_factory=list)
    activity: Optional[RawActivitySummary] = None
    file_name: Optional[str] = None

    @field_validator("activity", mode="before")
    @classmethod
    def first_activity(cls, v):
        # some decoders emit the activity message as a one-element list
        if isinstance(v, list):
            return v[0] if v else None
        return v

    @property
    def primary_session(self) -> Optional[RawSession]:
        if self.sessions:
            return self.sessions[0]
        if self.activity and self.activity.sessions:
            return self.activity.sessions[0]
        return None


# ---------------------------------------------------------------------------
# Activities and planned workouts supplied by callers
# ---------------------------------------------------------------------------

class ActivityInput(BaseModel):
    date: date
    sport: str = Field(min_length=1, max_length=40)
    duration: float = Field(gt=0)
    distance: float = Field(default=0.0, ge=0.0)
    activity_id: Optional[str] = None
    avg_hr: Optional[int] = Field(default=None, ge=30, le=250)
    max_hr: Optional[int] = Field(default=None, ge=30, le=250)
    hr_drift: Optional[float] = None
    zone1_minutes: float = Field(default=0.0, ge=0)
    zone2_minutes: float = Field(default=0.0, ge=0)
    zone3_minutes: float = Field(default=0.0, ge=0)
    zone4_minutes: float = Field(default=0.0, ge=0)
    zone5_minutes: float = Field(default=0.0, ge=0)
    training_load: float = Field(default=0.0, ge=0)
    avg_pace: Optional[float] = Field(default=None, ge=0)

    @field_validator("max_hr")
    @classmethod
    def max_hr_gte_avg(cls, v, info):
        avg = info.data.get("avg_hr")
        if v is not None and avg is not None and v < avg:
            raise ValueError("max_hr must be >= avg_hr")
        return v

    def to_metrics(self) -> ActivityMetrics:
        return ActivityMetrics(**self.model_dump())


class PlannedWorkoutInput(BaseModel):
    id: str = Field(min_length=1)
    date: date
    sport: str = Field(min_length=1, max_length=40)
    name: str = Field(default="", max_length=140)
    duration_min: Optional[float] = Field(default=None, gt=0)
    distance_km: Optional[float] = Field(default=None, ge=0)
    expected_fatigue: Optional[int] = Field(default=None, ge=0, le=100)
    description: str = Field(default="", max_length=2000)
    status: str = "planned"

    @field_validator("status")
    @classmethod
    def valid_status(cls, v):
        if v not in WORKOUT_STATUSES:
            raise ValueError(f"status must be one of {WORKOUT_STATUSES}")
        return v

    def to_workout(self) -> PlannedWorkout:
        return PlannedWorkout(**self.model_dump())


# ---------------------------------------------------------------------------
# Macro plans
# ---------------------------------------------------------------------------

class MesocycleInput(BaseModel):
    name: str = Field(min_length=1, max_length=80)
    phase: str
    weeks: int = Field(gt=0, le=52)
    template: list[str] = Field(min_length=7, max_length=7)
    goal: str = ""
    volume_multiplier: Optional[float] = Field(default=None, gt=0)
    intensity_multiplier: Optional[float] = Field(default=None, gt=0)

    @field_validator("phase")
    @classmethod
    def valid_phase(cls, v):
        if v not in PHASES:
            raise ValueError(f"phase must be one of {PHASES}")
        return v


class AthleteInput(BaseModel):
    age: int = Field(ge=10, le=100)
    fitness_level: str = "intermediate"
    name: Optional[str] = None

    @field_validator("fitness_level")
    @classmethod
    def valid_fitness_level(cls, v):
        if v not in FITNESS_LEVELS:
            raise ValueError(f"fitness_level must be one of {FITNESS_LEVELS}")
        return v


class MacroPlanInput(BaseModel):
    start_date: date
    event_date: Optional[date] = None
    mesocycles: list[MesocycleInput] = Field(min_length=1)
    athlete: AthleteInput

    @field_validator("event_date")
    @classmethod
    def event_after_start(cls, v, info):
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("event_date must not be before start_date")
        return v

    def to_macro_plan(self) -> MacroPlan:
        return MacroPlan(
            start_date=self.start_date,
            event_date=self.event_date,
            mesocycles=tuple(Mesocycle(**m.model_dump()) for m in self.mesocycles),
            athlete=AthleteProfile(**self.athlete.model_dump()),
        )
