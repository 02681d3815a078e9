from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date
import logging
import uuid

from habitflow.core.dates import local_today
from habitflow.core.exceptions import (
    HabitNotFoundError,
    HistoricalOccurrenceError,
    IncompleteSubtasksError,
    OccurrenceNotFoundError,
    SubtaskNotFoundError,
)
from habitflow.schemas.habit import HabitDefinition, Occurrence, Priority, RecurrenceRule, Subtask
from habitflow.services.habit_lifecycle import HabitLifecycleManager
from habitflow.services.habit_scheduler import HabitScheduler
from habitflow.services.occurrence_store import OccurrenceStore, open_store

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store():
    """Dependency to get the configured occurrence store"""
    with open_store() as store:
        yield store


def get_lifecycle(store: OccurrenceStore = Depends(get_store)) -> HabitLifecycleManager:
    return HabitLifecycleManager(store)


class HabitCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    category: str = "Other"
    priority: Priority = "Medium"
    xp_value: int = Field(10, ge=0)
    anchor_date: Optional[date] = None
    recurrence: RecurrenceRule = Field(default_factory=RecurrenceRule.none)
    project_id: Optional[str] = None
    goal_id: Optional[str] = None
    subtasks: List[Subtask] = Field(default_factory=list)


class HabitUpdate(HabitCreate):
    pass


class HabitCreateResponse(BaseModel):
    habit: HabitDefinition
    occurrences_created: int
    recurrence_label: str


class OccurrencesListResponse(BaseModel):
    occurrences: List[Occurrence]
    total: int


class WeeklyProgressResponse(BaseModel):
    habit_id: str
    week_start: date
    completed: int
    target: int


class RefreshResponse(BaseModel):
    occurrences_created: int


def _occurrence_error(e: Exception) -> HTTPException:
    if isinstance(e, (OccurrenceNotFoundError, SubtaskNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/", response_model=List[HabitDefinition])
async def list_habits(lifecycle: HabitLifecycleManager = Depends(get_lifecycle)):
    """List base habits"""
    return lifecycle.list_habits()


@router.post("/", response_model=HabitCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_habit(
    habit_data: HabitCreate,
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Create a base habit and generate its first horizon of occurrences"""
    habit = HabitDefinition(
        id=str(uuid.uuid4()),
        anchor_date=habit_data.anchor_date or local_today(),
        **habit_data.model_dump(exclude={"anchor_date"})
    )

    created = lifecycle.on_create(habit)
    return HabitCreateResponse(
        habit=habit,
        occurrences_created=len(created),
        recurrence_label=habit.recurrence.describe()
    )


@router.get("/occurrences", response_model=OccurrencesListResponse)
async def list_occurrences(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    habit_id: Optional[str] = Query(None),
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """List occurrences, optionally within a date range or for one habit"""
    occurrences = lifecycle.list_occurrences(start=start, end=end, habit_id=habit_id)
    return OccurrencesListResponse(occurrences=occurrences, total=len(occurrences))


@router.post("/occurrences/{occurrence_id}/complete", response_model=Occurrence)
async def complete_occurrence(
    occurrence_id: str,
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Mark an occurrence completed"""
    try:
        return lifecycle.complete_occurrence(occurrence_id)
    except (OccurrenceNotFoundError, HistoricalOccurrenceError, IncompleteSubtasksError) as e:
        logger.error(f"Failed to complete occurrence {occurrence_id}: {e}")
        raise _occurrence_error(e)


@router.post("/occurrences/{occurrence_id}/uncomplete", response_model=Occurrence)
async def uncomplete_occurrence(
    occurrence_id: str,
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Reopen a completed occurrence"""
    try:
        return lifecycle.uncomplete_occurrence(occurrence_id)
    except (OccurrenceNotFoundError, HistoricalOccurrenceError) as e:
        logger.error(f"Failed to reopen occurrence {occurrence_id}: {e}")
        raise _occurrence_error(e)


@router.post("/occurrences/{occurrence_id}/subtasks/{subtask_id}/toggle", response_model=Occurrence)
async def toggle_subtask(
    occurrence_id: str,
    subtask_id: str,
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Flip a subtask on an occurrence"""
    try:
        return lifecycle.toggle_subtask(occurrence_id, subtask_id)
    except (OccurrenceNotFoundError, SubtaskNotFoundError, HistoricalOccurrenceError) as e:
        logger.error(f"Failed to toggle subtask {subtask_id} on {occurrence_id}: {e}")
        raise _occurrence_error(e)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_horizon(lifecycle: HabitLifecycleManager = Depends(get_lifecycle)):
    """Generate any occurrences missing from the rolling horizon"""
    created = lifecycle.ensure_horizon()
    return RefreshResponse(occurrences_created=len(created))


@router.get("/{habit_id}", response_model=HabitDefinition)
async def get_habit(
    habit_id: str,
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Get a specific base habit"""
    try:
        return lifecycle.get_habit(habit_id)
    except HabitNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Habit not found")


@router.put("/{habit_id}", response_model=HabitDefinition)
async def update_habit(
    habit_id: str,
    habit_update: HabitUpdate,
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Replace a base habit and propagate it to today's and future occurrences"""
    try:
        current = lifecycle.get_habit(habit_id)
        habit = HabitDefinition(
            id=habit_id,
            anchor_date=habit_update.anchor_date or current.anchor_date,
            **habit_update.model_dump(exclude={"anchor_date"})
        )
        lifecycle.on_edit(habit)
        return habit
    except HabitNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Habit not found")


@router.delete("/{habit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_habit(
    habit_id: str,
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Delete a base habit; past occurrences are kept as history"""
    lifecycle.on_delete(habit_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{habit_id}/progress", response_model=WeeklyProgressResponse)
async def get_weekly_progress(
    habit_id: str,
    week_of: Optional[date] = Query(None),
    lifecycle: HabitLifecycleManager = Depends(get_lifecycle)
):
    """Completed vs expected occurrences for one calendar week"""
    week_of = week_of or local_today()
    try:
        completed, target = lifecycle.weekly_progress(habit_id, week_of)
    except HabitNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Habit not found")

    return WeeklyProgressResponse(
        habit_id=habit_id,
        week_start=HabitScheduler.week_start(week_of),
        completed=completed,
        target=target
    )
