"""
Habit Lifecycle Service - keeps occurrences in step with their base habits

The module-level functions are the pure core: they take the current
collections and return new ones without touching their inputs.
``HabitLifecycleManager`` is the shell that loads from and saves to an
occurrence store around them.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
import logging
import threading

from habitflow.core.config import settings
from habitflow.core.dates import local_today, start_of_day
from habitflow.core.exceptions import (
    HabitNotFoundError,
    HistoricalOccurrenceError,
    IncompleteSubtasksError,
    OccurrenceNotFoundError,
    SubtaskNotFoundError,
)
from habitflow.schemas.habit import HabitDefinition, Occurrence, RecurrenceKind
from habitflow.services.habit_instances import HabitInstanceGenerator
from habitflow.services.habit_scheduler import HabitScheduler
from habitflow.services.occurrence_store import OccurrenceStore

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 30

# Serialises load-compute-save across request handlers and the refresh job
_store_lock = threading.Lock()


def new_horizon_occurrences(
    occurrences: List[Occurrence],
    habits: List[HabitDefinition],
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS
) -> List[Occurrence]:
    """Occurrences in [today, today + horizon_days] that are not stored yet"""
    today = start_of_day(today)
    generated = HabitInstanceGenerator.generate_for_habits(
        habits, today, today + timedelta(days=horizon_days)
    )

    existing_ids = {occurrence.id for occurrence in occurrences}
    fresh = []
    for occurrence in generated:
        if occurrence.id in existing_ids:
            continue
        existing_ids.add(occurrence.id)
        fresh.append(occurrence)
    return fresh


def ensure_horizon(
    occurrences: List[Occurrence],
    habits: List[HabitDefinition],
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS
) -> List[Occurrence]:
    """Append missing occurrences for the rolling horizon; repeat calls are no-ops"""
    return list(occurrences) + new_horizon_occurrences(occurrences, habits, today, horizon_days)


def propagate_edit(
    habit: HabitDefinition,
    occurrences: List[Occurrence],
    today: date
) -> List[Occurrence]:
    """Copy the habit's descriptive fields onto its occurrences dated today or later.

    Subtask completion is reset on every touched occurrence. The occurrence's
    own completion state is left alone, even when it was completed today.
    """
    today = start_of_day(today)
    updated = []
    for occurrence in occurrences:
        if occurrence.base_habit_id != habit.id or occurrence.scheduled_date < today:
            updated.append(occurrence)
            continue

        updated.append(occurrence.model_copy(update={
            "title": habit.title,
            "description": habit.description,
            "xp_value": habit.xp_value,
            "category": habit.category,
            "priority": habit.priority,
            "recurrence": habit.recurrence,
            "project_id": habit.project_id,
            "goal_id": habit.goal_id,
            "subtasks": [subtask.model_copy(update={"completed": False}) for subtask in habit.subtasks],
        }))
    return updated


def remove_future_occurrences(
    habit_id: str,
    occurrences: List[Occurrence],
    today: date
) -> List[Occurrence]:
    """Drop the habit's occurrences dated today or later; history stays"""
    today = start_of_day(today)
    return [
        occurrence for occurrence in occurrences
        if occurrence.base_habit_id != habit_id or occurrence.scheduled_date < today
    ]


def _refresh_weekly_counts(occurrences: List[Occurrence], changed: Occurrence, today: date) -> List[Occurrence]:
    """Recount completions in the changed occurrence's week (Custom rules only)"""
    if changed.week_start_date is None:
        return occurrences

    def same_week(occurrence: Occurrence) -> bool:
        return (
            occurrence.base_habit_id == changed.base_habit_id
            and occurrence.week_start_date == changed.week_start_date
        )

    completed_count = sum(1 for occurrence in occurrences if same_week(occurrence) and occurrence.completed)
    return [
        occurrence.model_copy(update={"weekly_completion_count": completed_count})
        if same_week(occurrence) and occurrence.scheduled_date >= today
        else occurrence
        for occurrence in occurrences
    ]


def _find_mutable(occurrences: List[Occurrence], occurrence_id: str, today: date) -> Tuple[int, Occurrence]:
    for index, occurrence in enumerate(occurrences):
        if occurrence.id == occurrence_id:
            if occurrence.scheduled_date < today:
                raise HistoricalOccurrenceError(occurrence_id)
            return index, occurrence
    raise OccurrenceNotFoundError(occurrence_id)


def set_completion(
    occurrences: List[Occurrence],
    occurrence_id: str,
    completed: bool,
    today: date,
    now: datetime
) -> List[Occurrence]:
    """Mark an occurrence completed or open again"""
    today = start_of_day(today)
    index, occurrence = _find_mutable(occurrences, occurrence_id, today)

    if occurrence.completed == completed:
        return list(occurrences)

    if completed and any(not subtask.completed for subtask in occurrence.subtasks):
        raise IncompleteSubtasksError(occurrence_id)

    changed = occurrence.model_copy(update={
        "completed": completed,
        "completed_at": now if completed else None,
    })
    updated = list(occurrences)
    updated[index] = changed
    return _refresh_weekly_counts(updated, changed, today)


def toggle_subtask(
    occurrences: List[Occurrence],
    occurrence_id: str,
    subtask_id: str,
    today: date,
    now: datetime
) -> List[Occurrence]:
    """Flip one subtask; finishing the last open subtask completes the occurrence"""
    today = start_of_day(today)
    index, occurrence = _find_mutable(occurrences, occurrence_id, today)

    if not any(subtask.id == subtask_id for subtask in occurrence.subtasks):
        raise SubtaskNotFoundError(occurrence_id, subtask_id)

    subtasks = [
        subtask.model_copy(update={"completed": not subtask.completed}) if subtask.id == subtask_id else subtask
        for subtask in occurrence.subtasks
    ]
    updated = list(occurrences)
    updated[index] = occurrence.model_copy(update={"subtasks": subtasks})

    if all(subtask.completed for subtask in subtasks) and not occurrence.completed:
        updated = set_completion(updated, occurrence_id, True, today, now)
    return updated


def weekly_progress(
    habit: HabitDefinition,
    occurrences: List[Occurrence],
    week_of: date
) -> Tuple[int, int]:
    """(completed, target) for the calendar week containing week_of"""
    monday = HabitScheduler.week_start(week_of)
    sunday = monday + timedelta(days=6)

    completed = sum(
        1 for occurrence in occurrences
        if occurrence.base_habit_id == habit.id
        and occurrence.completed
        and monday <= occurrence.scheduled_date <= sunday
    )

    rule = habit.recurrence
    if rule.kind == RecurrenceKind.CUSTOM:
        target = min(rule.times_per_week, 7) if rule.times_per_week and rule.times_per_week > 0 else 0
    else:
        target = len(HabitScheduler.candidate_dates(rule, habit.anchor_date, monday, sunday))
    return completed, target


class HabitLifecycleManager:
    """Loads the store, applies one lifecycle operation and writes the result back"""

    def __init__(self, store: OccurrenceStore, horizon_days: Optional[int] = None):
        self.store = store
        self.horizon_days = horizon_days if horizon_days is not None else settings.horizon_days

    @staticmethod
    def _today(today: Optional[date]) -> date:
        return start_of_day(today) if today is not None else local_today()

    def ensure_horizon(self, today: Optional[date] = None) -> List[Occurrence]:
        """Fill the rolling horizon for every habit, returns the occurrences added"""
        today = self._today(today)
        with _store_lock:
            habits, occurrences = self.store.load()

            fresh = new_horizon_occurrences(occurrences, habits, today, self.horizon_days)
            if not fresh:
                logger.debug(f"Horizon up to date for {len(habits)} habits")
                return []

            self.store.save(habits, occurrences + fresh)

        logger.info(f"Generated {len(fresh)} new habit occurrences")
        return fresh

    def list_habits(self) -> List[HabitDefinition]:
        habits, _ = self.store.load()
        return habits

    def get_habit(self, habit_id: str) -> HabitDefinition:
        for habit in self.list_habits():
            if habit.id == habit_id:
                return habit
        raise HabitNotFoundError(habit_id)

    def list_occurrences(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        habit_id: Optional[str] = None
    ) -> List[Occurrence]:
        _, occurrences = self.store.load()
        selected = [
            occurrence for occurrence in occurrences
            if (start is None or occurrence.scheduled_date >= start)
            and (end is None or occurrence.scheduled_date <= end)
            and (habit_id is None or occurrence.base_habit_id == habit_id)
        ]
        return sorted(selected, key=lambda o: (o.scheduled_date, o.base_habit_id))

    def on_create(self, habit: HabitDefinition, today: Optional[date] = None) -> List[Occurrence]:
        """Store a new base habit and fill its first horizon"""
        today = self._today(today)
        with _store_lock:
            habits, occurrences = self.store.load()

            habits = [h for h in habits if h.id != habit.id] + [habit]
            fresh = new_horizon_occurrences(occurrences, habits, today, self.horizon_days)
            self.store.save(habits, occurrences + fresh)

        logger.info(f"Created habit {habit.title} with {len(fresh)} occurrences")
        return fresh

    def on_edit(self, habit: HabitDefinition, today: Optional[date] = None) -> List[Occurrence]:
        """Replace a base habit and push its changes to today's and future occurrences"""
        today = self._today(today)
        with _store_lock:
            habits, occurrences = self.store.load()

            if not any(h.id == habit.id for h in habits):
                raise HabitNotFoundError(habit.id)

            habits = [habit if h.id == habit.id else h for h in habits]
            occurrences = propagate_edit(habit, occurrences, today)
            occurrences = ensure_horizon(occurrences, habits, today, self.horizon_days)
            self.store.save(habits, occurrences)

        touched = [o for o in occurrences if o.base_habit_id == habit.id and o.scheduled_date >= today]
        logger.info(f"Updated {len(touched)} future occurrences for habit {habit.title}")
        return touched

    def on_delete(self, habit_id: str, today: Optional[date] = None) -> int:
        """Remove a base habit and its future occurrences, returns how many were removed"""
        today = self._today(today)
        with _store_lock:
            habits, occurrences = self.store.load()

            remaining = remove_future_occurrences(habit_id, occurrences, today)
            removed = len(occurrences) - len(remaining)
            self.store.save([h for h in habits if h.id != habit_id], remaining)

        logger.info(f"Deleted habit {habit_id}, removed {removed} future occurrences")
        return removed

    def _apply(self, occurrence_id: str, operation) -> Occurrence:
        with _store_lock:
            habits, occurrences = self.store.load()
            occurrences = operation(occurrences)
            self.store.save(habits, occurrences)
        return next(o for o in occurrences if o.id == occurrence_id)

    def complete_occurrence(
        self,
        occurrence_id: str,
        today: Optional[date] = None,
        now: Optional[datetime] = None
    ) -> Occurrence:
        today = self._today(today)
        now = now or datetime.now()
        return self._apply(
            occurrence_id,
            lambda occurrences: set_completion(occurrences, occurrence_id, True, today, now)
        )

    def uncomplete_occurrence(self, occurrence_id: str, today: Optional[date] = None) -> Occurrence:
        today = self._today(today)
        return self._apply(
            occurrence_id,
            lambda occurrences: set_completion(occurrences, occurrence_id, False, today, datetime.now())
        )

    def toggle_subtask(
        self,
        occurrence_id: str,
        subtask_id: str,
        today: Optional[date] = None,
        now: Optional[datetime] = None
    ) -> Occurrence:
        today = self._today(today)
        now = now or datetime.now()
        return self._apply(
            occurrence_id,
            lambda occurrences: toggle_subtask(occurrences, occurrence_id, subtask_id, today, now)
        )

    def weekly_progress(self, habit_id: str, week_of: Optional[date] = None) -> Tuple[int, int]:
        habits, occurrences = self.store.load()
        habit = next((h for h in habits if h.id == habit_id), None)
        if habit is None:
            raise HabitNotFoundError(habit_id)
        return weekly_progress(habit, occurrences, self._today(week_of))
