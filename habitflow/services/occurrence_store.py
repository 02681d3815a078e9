"""
Occurrence Stores - read/write collaborators for the habit lifecycle

Every store exposes the same two calls: ``load()`` returns the full
``(habits, occurrences)`` collection and ``save()`` replaces it. Errors from
the underlying storage are not caught here.
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Tuple

from sqlalchemy.orm import Session

from habitflow.core.config import settings
from habitflow.db.session import get_db
from habitflow.models.habit import Habit, HabitOccurrence
from habitflow.schemas.habit import HabitDefinition, Occurrence, RecurrenceRule, Subtask

logger = logging.getLogger(__name__)

Snapshot = Tuple[List[HabitDefinition], List[Occurrence]]


class OccurrenceStore(Protocol):
    def load(self) -> Snapshot:
        ...

    def save(self, habits: List[HabitDefinition], occurrences: List[Occurrence]) -> None:
        ...


class InMemoryOccurrenceStore:
    """Keeps the collection in process memory"""

    def __init__(self, habits: List[HabitDefinition] = None, occurrences: List[Occurrence] = None):
        self.habits = list(habits or [])
        self.occurrences = list(occurrences or [])
        self.save_count = 0

    def load(self) -> Snapshot:
        return list(self.habits), list(self.occurrences)

    def save(self, habits: List[HabitDefinition], occurrences: List[Occurrence]) -> None:
        self.habits = list(habits)
        self.occurrences = list(occurrences)
        self.save_count += 1


class JsonFileOccurrenceStore:
    """Flat key-value JSON document: {"habits": [...], "occurrences": [...]}"""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Snapshot:
        if not self.path.exists():
            return [], []

        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        habits = [HabitDefinition.model_validate(item) for item in data.get("habits", [])]
        occurrences = [Occurrence.model_validate(item) for item in data.get("occurrences", [])]
        return habits, occurrences

    def save(self, habits: List[HabitDefinition], occurrences: List[Occurrence]) -> None:
        data = {
            "habits": [habit.model_dump(mode="json") for habit in habits],
            "occurrences": [occurrence.model_dump(mode="json") for occurrence in occurrences],
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug(f"Wrote {len(habits)} habits and {len(occurrences)} occurrences to {self.path}")


def _rule_from_row(row) -> RecurrenceRule:
    return RecurrenceRule(
        kind=row.recurrence_kind,
        weekdays=frozenset(row.weekdays or []),
        times_per_week=row.times_per_week
    )


def _rule_columns(rule: RecurrenceRule) -> dict:
    return {
        "recurrence_kind": rule.kind.value,
        "weekdays": sorted(rule.weekdays),
        "times_per_week": rule.times_per_week,
    }


def _subtasks_from_row(row) -> List[Subtask]:
    return [Subtask.model_validate(item) for item in (row.subtasks or [])]


class SqlAlchemyOccurrenceStore:
    """Stores habits and occurrences in the habits / habit_occurrences tables"""

    def __init__(self, db: Session):
        self.db = db

    def load(self) -> Snapshot:
        habit_rows = self.db.query(Habit).order_by(Habit.id).all()
        occurrence_rows = self.db.query(HabitOccurrence).order_by(
            HabitOccurrence.scheduled_date, HabitOccurrence.id
        ).all()

        habits = [
            HabitDefinition(
                id=row.id,
                title=row.title,
                description=row.description or "",
                category=row.category,
                priority=row.priority,
                xp_value=row.xp_value,
                anchor_date=row.anchor_date,
                recurrence=_rule_from_row(row),
                project_id=row.project_id,
                goal_id=row.goal_id,
                subtasks=_subtasks_from_row(row)
            )
            for row in habit_rows
        ]

        occurrences = [
            Occurrence(
                id=row.id,
                base_habit_id=row.habit_id,
                scheduled_date=row.scheduled_date,
                completed=bool(row.completed),
                completed_at=row.completed_at,
                week_start_date=row.week_start_date,
                weekly_completion_count=row.weekly_completion_count,
                title=row.title,
                description=row.description or "",
                category=row.category,
                priority=row.priority,
                xp_value=row.xp_value,
                recurrence=_rule_from_row(row),
                project_id=row.project_id,
                goal_id=row.goal_id,
                subtasks=_subtasks_from_row(row)
            )
            for row in occurrence_rows
        ]

        return habits, occurrences

    def save(self, habits: List[HabitDefinition], occurrences: List[Occurrence]) -> None:
        """Replace both tables in a single transaction"""
        try:
            self.db.query(HabitOccurrence).delete()
            self.db.query(Habit).delete()
            self.db.expunge_all()

            for habit in habits:
                self.db.add(Habit(
                    id=habit.id,
                    title=habit.title,
                    description=habit.description,
                    category=habit.category,
                    priority=habit.priority,
                    xp_value=habit.xp_value,
                    anchor_date=habit.anchor_date,
                    project_id=habit.project_id,
                    goal_id=habit.goal_id,
                    subtasks=[subtask.model_dump() for subtask in habit.subtasks],
                    **_rule_columns(habit.recurrence)
                ))

            for occurrence in occurrences:
                self.db.add(HabitOccurrence(
                    id=occurrence.id,
                    habit_id=occurrence.base_habit_id,
                    scheduled_date=occurrence.scheduled_date,
                    completed=occurrence.completed,
                    completed_at=occurrence.completed_at,
                    week_start_date=occurrence.week_start_date,
                    weekly_completion_count=occurrence.weekly_completion_count,
                    title=occurrence.title,
                    description=occurrence.description,
                    category=occurrence.category,
                    priority=occurrence.priority,
                    xp_value=occurrence.xp_value,
                    project_id=occurrence.project_id,
                    goal_id=occurrence.goal_id,
                    subtasks=[subtask.model_dump() for subtask in occurrence.subtasks],
                    **_rule_columns(occurrence.recurrence)
                ))

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


@contextmanager
def open_store(backend: Optional[str] = None) -> Iterator[OccurrenceStore]:
    """Open the configured store, closing any database session afterwards"""
    backend = backend or settings.store_backend
    if backend == "json":
        yield JsonFileOccurrenceStore(settings.json_store_path)
        return

    with contextmanager(get_db)() as db:
        yield SqlAlchemyOccurrenceStore(db)
