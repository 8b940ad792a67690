from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date
from enum import Enum
from uuid import UUID, uuid4
from typing import Optional, List


class WorkoutType(str, Enum):
    EASY = "easy"
    TEMPO = "tempo"
    INTERVAL = "interval"
    LONG = "long"
    RECOVERY = "recovery"
    REST = "rest"
    RACE = "race"
    CROSS_TRAIN = "cross_train"


class EntryStatus(str, Enum):
    PLANNED = "planned"
    COMPLETED = "completed"
    MISSED = "missed"  # display-only, derived from date + planned


class EntrySource(str, Enum):
    MANUAL = "manual"
    AI_COACH = "ai_coach"


# =============================================================================
# GATEWAY SNAPSHOTS
# Units are exactly what crosses the gateway boundary: meters, sec/km, minutes.
# =============================================================================

class Activity(BaseModel):
    """Completed activity as synced upstream. Never mutated by the core."""
    id: UUID = Field(default_factory=uuid4)
    start_time: datetime
    distance_meters: float = Field(default=0.0, ge=0)
    average_pace_seconds_per_km: Optional[float] = Field(default=None, gt=0)
    name: Optional[str] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Goal(BaseModel):
    """Race goal. At most one is active per athlete (enforced upstream)."""
    id: UUID = Field(default_factory=uuid4)
    race_name: Optional[str] = None
    race_date: date
    distance_meters: float = Field(gt=0)
    target_time_seconds: Optional[int] = Field(default=None, gt=0)
    created_at: datetime
    is_active: bool = True

    model_config = ConfigDict(frozen=True, from_attributes=True)


class CalendarEntryBase(BaseModel):
    date: date
    workout_type: WorkoutType = WorkoutType.EASY
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    planned_distance_meters: Optional[int] = Field(default=None, ge=0)
    planned_duration_minutes: Optional[int] = Field(default=None, ge=0)
    planned_pace_per_km: Optional[int] = Field(default=None, gt=0)
    status: EntryStatus = EntryStatus.PLANNED
    source: EntrySource = EntrySource.MANUAL

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class CalendarEntryUpsert(CalendarEntryBase):
    """Upsert payload. Keyed by date: a second upsert for a date overwrites the first."""
    model_config = ConfigDict(extra="forbid")


class CalendarEntryRequest(BaseModel):
    """
    PUT /calendar/entry body.

    Only the shape is checked here. Title and range rules, and the M:SS
    planned_pace conversion, run in validate_entry so they answer with a
    field-specific error code.
    """
    date: date
    workout_type: WorkoutType = WorkoutType.EASY
    title: str
    description: Optional[str] = None
    planned_distance_meters: Optional[int] = None
    planned_duration_minutes: Optional[int] = None
    planned_pace_per_km: Optional[int] = None
    planned_pace: Optional[str] = Field(default=None, description="Per-mile pace as M:SS")
    status: EntryStatus = EntryStatus.PLANNED
    source: EntrySource = EntrySource.MANUAL

    model_config = ConfigDict(extra="forbid")


class CalendarEntry(CalendarEntryBase):
    id: UUID = Field(default_factory=uuid4)

    model_config = ConfigDict(from_attributes=True)


class StatusUpdate(BaseModel):
    status: EntryStatus

    @field_validator("status")
    @classmethod
    def reject_missed(cls, v: EntryStatus) -> EntryStatus:
        # "missed" is derived for display, never stored
        if v == EntryStatus.MISSED:
            raise ValueError("status must be planned or completed")
        return v


# =============================================================================
# API RESPONSES
# =============================================================================

class DerivedMetricsResponse(BaseModel):
    weekly_mileage_miles: float
    current_pace_sec_per_mile: Optional[float] = None
    target_pace_sec_per_mile: Optional[float] = None
    pace_diff_sec_per_mile: Optional[int] = None
    training_progress_pct: int
    weekly_mileage_target_miles: int
    readiness_score: int
    consistency_score: int
    runs_this_week: int
    days_to_race: Optional[int] = None
    current_pace_label: str
    target_pace_label: str


class InsightResponse(BaseModel):
    rule_id: str
    message: str


class RaceCountdownResponse(BaseModel):
    race_name: Optional[str] = None
    race_date: date
    total_days: int
    weeks: int
    days: int


class SplitCheckpointResponse(BaseModel):
    label: str
    miles: float
    time: str


class PaceZoneResponse(BaseModel):
    zone: str
    name: str
    pace_range: str
    fast_pace_sec_per_mile: int
    slow_pace_sec_per_mile: int
    hr_low: int
    hr_high: int


class VolumePointResponse(BaseModel):
    week_start: date
    week: str
    miles: float


class PacePointResponse(BaseModel):
    date: date
    pace: float
    label: str


class RunTypeSliceResponse(BaseModel):
    name: str
    value: int


class DashboardResponse(BaseModel):
    generated_at: datetime
    goal: Optional[Goal] = None
    metrics: DerivedMetricsResponse
    insight: InsightResponse
    countdown: Optional[RaceCountdownResponse] = None
    goal_pace: Optional[str] = None
    splits: List[SplitCheckpointResponse] = []
    zones: List[PaceZoneResponse] = []
    readiness_label: str
    weekly_volume: List[VolumePointResponse] = []
    pace_trend: List[PacePointResponse] = []
    run_types: List[RunTypeSliceResponse] = []


class CalendarCellResponse(BaseModel):
    date: date
    date_key: str
    is_today: bool
    entry: Optional[CalendarEntry] = None
    effective_status: Optional[EntryStatus] = None
    planned_miles: Optional[float] = None
    planned_pace: Optional[str] = None
    activity_count: int = 0
    completed_miles: float = 0.0


class WeekSummaryResponse(BaseModel):
    week_start: date
    planned_sessions: int
    training_sessions: int
    completed_sessions: int
    planned_miles: float
    completed_runs: int
    completed_miles: float


class TrainingBlockResponse(BaseModel):
    start_date: date
    end_date: date
    label: str
    block_volume_miles: float
    days: List[CalendarCellResponse]
    weeks: List[WeekSummaryResponse]


class CalendarWeekResponse(BaseModel):
    week_start: date
    entries: List[CalendarEntry]


class CalendarEntryResponse(BaseModel):
    entry: CalendarEntry
