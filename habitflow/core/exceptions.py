"""
Domain errors raised by the habit lifecycle layer
"""


class HabitflowError(Exception):
    """Base class for habit engine errors"""


class HabitNotFoundError(HabitflowError, LookupError):
    def __init__(self, habit_id: str):
        super().__init__(f"Habit {habit_id} not found")
        self.habit_id = habit_id


class OccurrenceNotFoundError(HabitflowError, LookupError):
    def __init__(self, occurrence_id: str):
        super().__init__(f"Occurrence {occurrence_id} not found")
        self.occurrence_id = occurrence_id


class SubtaskNotFoundError(HabitflowError, LookupError):
    def __init__(self, occurrence_id: str, subtask_id: str):
        super().__init__(f"Subtask {subtask_id} not found on occurrence {occurrence_id}")
        self.occurrence_id = occurrence_id
        self.subtask_id = subtask_id


class HistoricalOccurrenceError(HabitflowError):
    """Occurrences dated before today are read-only history"""

    def __init__(self, occurrence_id: str):
        super().__init__(f"Occurrence {occurrence_id} is in the past and cannot be changed")
        self.occurrence_id = occurrence_id


class IncompleteSubtasksError(HabitflowError):
    def __init__(self, occurrence_id: str):
        super().__init__(f"Occurrence {occurrence_id} still has open subtasks")
        self.occurrence_id = occurrence_id
