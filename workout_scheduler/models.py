import datetime as dt
from typing import List, Optional, Dict, Any, Literal, Union, Annotated
from pydantic import BaseModel, Field, field_validator


class RoutineExercise(BaseModel):
    id: str
    name: str
    sets: Optional[int] = Field(default=None, ge=0)
    reps: Optional[int] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0, description="seconds")
    weight: Optional[float] = Field(default=None, ge=0)


# --- recurrence rules ---
class SpecificDatesSchedule(BaseModel):
    type: Literal["specific_dates"] = "specific_dates"
    dates: List[str] = Field(default_factory=list, description="ISO calendar dates, YYYY-MM-DD")


class WeekdaysSchedule(BaseModel):
    type: Literal["weekdays"] = "weekdays"
    weekdays: List[int] = Field(default_factory=list, description="0=Sunday .. 6=Saturday")


class DailySchedule(BaseModel):
    type: Literal["daily"] = "daily"


class CustomSchedule(BaseModel):
    type: Literal["custom"] = "custom"
    interval: Optional[int] = None


Schedule = Annotated[
    Union[SpecificDatesSchedule, WeekdaysSchedule, DailySchedule, CustomSchedule],
    Field(discriminator="type"),
]


class Routine(BaseModel):
    id: str
    name: str
    exercises: List[RoutineExercise] = Field(default_factory=list)
    schedule: Schedule
    is_active: bool = True


class CompletionRecord(BaseModel):
    date: str
    routine_id: str
    exercise_id: str
    completed: bool

    def key(self) -> tuple:
        return (self.date, self.routine_id, self.exercise_id)


class Obligation(BaseModel):
    id: str
    routine_id: str
    exercise_id: str
    label: str
    completed: bool
    date: str


class CalendarDay(BaseModel):
    date: str
    in_month: bool
    has_obligations: bool
    completed_count: int
    total_count: int
    intensity: float = 0.0
    obligations: List[Obligation] = Field(default_factory=list)


class MonthStats(BaseModel):
    perfect_days: int
    active_days: int
    completion_rate: int = Field(description="percent, rounded")


# --- API bodies ---
class ExerciseCreate(BaseModel):
    name: str = Field(min_length=1)
    sets: Optional[int] = Field(default=3, ge=0)
    reps: Optional[int] = Field(default=10, ge=0)
    duration: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)


class RoutineCreate(BaseModel):
    name: str
    exercises: List[ExerciseCreate]
    schedule: Schedule
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please enter a routine name")
        return v.strip()

    @field_validator("exercises")
    @classmethod
    def at_least_one_exercise(cls, v: List[ExerciseCreate]) -> List[ExerciseCreate]:
        if not v:
            raise ValueError("Please add at least one exercise")
        return v

    @field_validator("schedule")
    @classmethod
    def weekdays_selected(cls, v):
        if isinstance(v, WeekdaysSchedule):
            if not v.weekdays:
                raise ValueError("Please select at least one day")
            if any(d < 0 or d > 6 for d in v.weekdays):
                raise ValueError("Weekday indices must be between 0 (Sunday) and 6 (Saturday)")
            v.weekdays = sorted(set(v.weekdays))
        return v


class ToggleRequest(BaseModel):
    date: dt.date
    routine_id: str
    exercise_id: str


class ToggleResponse(BaseModel):
    record: CompletionRecord
    obligations: List[Obligation]


class DaySchedule(BaseModel):
    date: str
    obligations: List[Obligation]
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MonthCalendar(BaseModel):
    year: int
    month: int
    days: List[CalendarDay]
    stats: MonthStats
    metadata: Dict[str, Any] = Field(default_factory=dict)
