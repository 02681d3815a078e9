from .habit import (
    HabitDefinition,
    Occurrence,
    Priority,
    RecurrenceKind,
    RecurrenceRule,
    Subtask,
    WEEKDAY_NAMES,
)
