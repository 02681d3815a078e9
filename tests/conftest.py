"""Shared fixtures for habitflow tests."""

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from habitflow.db.session import create_tables
from habitflow.schemas.habit import HabitDefinition, RecurrenceRule, Subtask
from habitflow.services.occurrence_store import InMemoryOccurrenceStore

# 2026-03-02 is a Monday
MONDAY = date(2026, 3, 2)


def make_habit(
    habit_id: str = "h1",
    rule: RecurrenceRule = None,
    anchor_date: date = MONDAY,
    **fields
) -> HabitDefinition:
    """Build a base habit with sensible defaults."""
    return HabitDefinition(
        id=habit_id,
        title=fields.pop("title", "Read 20 pages"),
        anchor_date=anchor_date,
        recurrence=rule if rule is not None else RecurrenceRule.daily(),
        **fields,
    )


@pytest.fixture
def monday() -> date:
    return MONDAY


@pytest.fixture
def habit_with_subtasks() -> HabitDefinition:
    return make_habit(
        subtasks=[
            Subtask(id="s1", title="Warm up"),
            Subtask(id="s2", title="Stretch"),
        ]
    )


@pytest.fixture
def memory_store() -> InMemoryOccurrenceStore:
    return InMemoryOccurrenceStore()


@pytest.fixture
def db_session():
    """In-memory SQLite session with the habit tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
