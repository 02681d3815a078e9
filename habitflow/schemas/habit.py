"""
Habit domain schemas - base habit definitions, recurrence rules and occurrences
"""

from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from habitflow.core.dates import start_of_day

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

Priority = Literal["High", "Medium", "Low"]


class RecurrenceKind(str, Enum):
    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    CUSTOM = "Custom"


class RecurrenceRule(BaseModel):
    """Declarative recurrence pattern attached to a habit.

    ``weekdays`` uses Sunday=0 .. Saturday=6 and only matters for WEEKLY.
    ``times_per_week`` only matters for CUSTOM.
    """

    model_config = ConfigDict(frozen=True)

    kind: RecurrenceKind = RecurrenceKind.NONE
    weekdays: FrozenSet[int] = frozenset()
    times_per_week: Optional[int] = None

    @classmethod
    def none(cls) -> "RecurrenceRule":
        return cls(kind=RecurrenceKind.NONE)

    @classmethod
    def daily(cls) -> "RecurrenceRule":
        return cls(kind=RecurrenceKind.DAILY)

    @classmethod
    def weekly(cls, weekdays) -> "RecurrenceRule":
        return cls(kind=RecurrenceKind.WEEKLY, weekdays=frozenset(weekdays))

    @classmethod
    def custom(cls, times_per_week: int) -> "RecurrenceRule":
        return cls(kind=RecurrenceKind.CUSTOM, times_per_week=times_per_week)

    @property
    def is_recurring(self) -> bool:
        return self.kind != RecurrenceKind.NONE

    def describe(self) -> str:
        """Human readable label, e.g. "Weekly: Mon, Wed, Fri" """
        if self.kind == RecurrenceKind.DAILY:
            return "Every day"
        if self.kind == RecurrenceKind.WEEKLY:
            days = [WEEKDAY_NAMES[d] for d in sorted(self.weekdays) if 0 <= d <= 6]
            if days:
                return f"Weekly: {', '.join(days)}"
            return "Weekly"
        if self.kind == RecurrenceKind.CUSTOM:
            return f"{self.times_per_week or 1}x per week"
        return ""


class Subtask(BaseModel):
    id: str
    title: str
    completed: bool = False


class HabitDefinition(BaseModel):
    """The user-edited base record, exactly one per logical habit"""

    id: str
    title: str
    description: str = ""
    category: str = "Other"
    priority: Priority = "Medium"
    xp_value: int = 10
    anchor_date: date
    recurrence: RecurrenceRule = Field(default_factory=RecurrenceRule.none)
    project_id: Optional[str] = None
    goal_id: Optional[str] = None
    subtasks: List[Subtask] = Field(default_factory=list)

    @field_validator("anchor_date", mode="before")
    @classmethod
    def _truncate_anchor(cls, v):
        if isinstance(v, datetime):
            return start_of_day(v)
        return v


class Occurrence(BaseModel):
    """A calendar-bound, completable instance generated from a base habit"""

    id: str
    base_habit_id: str
    scheduled_date: date
    completed: bool = False
    completed_at: Optional[datetime] = None

    # Custom (N per week) rules only
    week_start_date: Optional[date] = None
    weekly_completion_count: Optional[int] = None

    # Snapshot of the base habit's descriptive fields
    title: str
    description: str = ""
    category: str = "Other"
    priority: Priority = "Medium"
    xp_value: int = 10
    recurrence: RecurrenceRule = Field(default_factory=RecurrenceRule.none)
    project_id: Optional[str] = None
    goal_id: Optional[str] = None
    subtasks: List[Subtask] = Field(default_factory=list)

    @field_validator("scheduled_date", "week_start_date", mode="before")
    @classmethod
    def _truncate_dates(cls, v):
        if isinstance(v, datetime):
            return start_of_day(v)
        return v
