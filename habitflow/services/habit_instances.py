"""
Habit Instance Generation Service - Builds occurrence records for base habits
"""

from datetime import date, datetime
from typing import List, Union
import logging

from habitflow.core.dates import start_of_day
from habitflow.schemas.habit import HabitDefinition, Occurrence, RecurrenceKind
from habitflow.services.habit_scheduler import HabitScheduler

logger = logging.getLogger(__name__)


def occurrence_id(base_habit_id: str, scheduled_date: Union[date, datetime]) -> str:
    """Content-addressed occurrence key, stable for a (habit, date) pair"""
    return f"{base_habit_id}_{start_of_day(scheduled_date).isoformat()}"


class HabitInstanceGenerator:
    """Generates occurrence records for a base habit over a date range"""

    @staticmethod
    def create_occurrence(habit: HabitDefinition, scheduled_date: date) -> Occurrence:
        """Snapshot the habit's descriptive fields onto a fresh occurrence"""
        occurrence = Occurrence(
            id=occurrence_id(habit.id, scheduled_date),
            base_habit_id=habit.id,
            scheduled_date=scheduled_date,
            completed=False,
            completed_at=None,
            title=habit.title,
            description=habit.description,
            category=habit.category,
            priority=habit.priority,
            xp_value=habit.xp_value,
            recurrence=habit.recurrence,
            project_id=habit.project_id,
            goal_id=habit.goal_id,
            subtasks=[subtask.model_copy() for subtask in habit.subtasks],
        )

        if habit.recurrence.kind == RecurrenceKind.CUSTOM:
            occurrence.week_start_date = HabitScheduler.week_start(scheduled_date)
            occurrence.weekly_completion_count = 0

        return occurrence

    @staticmethod
    def generate(
        habit: HabitDefinition,
        range_start: Union[date, datetime],
        range_end: Union[date, datetime]
    ) -> List[Occurrence]:
        """
        Generate occurrences for a date range

        Pure: nothing is read from or written to a store.
        """
        expected_dates = HabitScheduler.candidate_dates(
            rule=habit.recurrence,
            anchor_date=habit.anchor_date,
            range_start=range_start,
            range_end=range_end
        )

        occurrences = [HabitInstanceGenerator.create_occurrence(habit, d) for d in expected_dates]
        logger.debug(f"Generated {len(occurrences)} occurrences for habit {habit.title}")
        return occurrences

    @staticmethod
    def generate_for_habits(
        habits: List[HabitDefinition],
        range_start: Union[date, datetime],
        range_end: Union[date, datetime]
    ) -> List[Occurrence]:
        """Generate occurrences for every recurring habit in the list"""
        occurrences = []
        for habit in habits:
            if not habit.recurrence.is_recurring:
                continue
            occurrences.extend(HabitInstanceGenerator.generate(habit, range_start, range_end))
        return occurrences
