"""Tests for the /habits HTTP routes."""

from datetime import date, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from habitflow.core.dates import local_today
from habitflow.routes import habits
from habitflow.services.habit_instances import HabitInstanceGenerator
from habitflow.services.occurrence_store import InMemoryOccurrenceStore

from .conftest import make_habit


@pytest.fixture
def store() -> InMemoryOccurrenceStore:
    return InMemoryOccurrenceStore()


@pytest.fixture
def client(store) -> TestClient:
    app = FastAPI()
    app.include_router(habits.router, prefix="/habits")
    app.dependency_overrides[habits.get_store] = lambda: store
    return TestClient(app)


def create_daily(client, **overrides) -> dict:
    payload = {
        "title": "Drink water",
        "category": "Health",
        "recurrence": {"kind": "Daily"},
    }
    payload.update(overrides)
    response = client.post("/habits/", json=payload)
    assert response.status_code == 201
    return response.json()


def test_create_fills_first_horizon(client, store) -> None:
    body = create_daily(client)

    assert body["occurrences_created"] == 30
    assert body["recurrence_label"] == "Every day"
    assert body["habit"]["anchor_date"] == local_today().isoformat()
    assert len(store.occurrences) == 30
    assert local_today() not in [o.scheduled_date for o in store.occurrences]


def test_create_weekly_habit(client) -> None:
    body = create_daily(client, recurrence={"kind": "Weekly", "weekdays": [1, 3, 5]})

    assert body["recurrence_label"] == "Weekly: Mon, Wed, Fri"
    response = client.get("/habits/occurrences", params={"habit_id": body["habit"]["id"]})
    dates = [date.fromisoformat(o["scheduled_date"]) for o in response.json()["occurrences"]]
    assert dates
    assert {d.isoweekday() % 7 for d in dates} <= {1, 3, 5}


def test_create_rejects_empty_title(client) -> None:
    response = client.post("/habits/", json={"title": "", "recurrence": {"kind": "Daily"}})
    assert response.status_code == 422


def test_list_and_get(client) -> None:
    habit_id = create_daily(client)["habit"]["id"]

    assert [h["id"] for h in client.get("/habits/").json()] == [habit_id]
    assert client.get(f"/habits/{habit_id}").json()["title"] == "Drink water"
    assert client.get("/habits/missing").status_code == 404


def test_list_occurrences_in_range(client) -> None:
    create_daily(client)
    start = local_today() + timedelta(days=5)
    end = local_today() + timedelta(days=9)

    response = client.get("/habits/occurrences", params={"start": start.isoformat(), "end": end.isoformat()})

    body = response.json()
    assert body["total"] == 5
    assert body["occurrences"][0]["scheduled_date"] == start.isoformat()


def test_update_propagates_to_future(client, store) -> None:
    today = local_today()
    habit = make_habit(anchor_date=today - timedelta(days=10))
    past = HabitInstanceGenerator.create_occurrence(habit, today - timedelta(days=1))
    store.save([habit], [past])

    payload = {"title": "Read 30 pages", "recurrence": {"kind": "Daily"}}
    response = client.put(f"/habits/{habit.id}", json=payload)

    assert response.status_code == 200
    assert response.json()["anchor_date"] == habit.anchor_date.isoformat()
    titles = {o.scheduled_date: o.title for o in store.occurrences}
    assert titles[today - timedelta(days=1)] == "Read 20 pages"
    assert all(title == "Read 30 pages" for d, title in titles.items() if d >= today)


def test_update_unknown_habit(client) -> None:
    response = client.put("/habits/missing", json={"title": "x", "recurrence": {"kind": "Daily"}})
    assert response.status_code == 404


def test_delete_keeps_history(client, store) -> None:
    today = local_today()
    habit = make_habit(anchor_date=today - timedelta(days=10))
    past = HabitInstanceGenerator.create_occurrence(habit, today - timedelta(days=1))
    future = HabitInstanceGenerator.create_occurrence(habit, today + timedelta(days=1))
    store.save([habit], [past, future])

    response = client.delete(f"/habits/{habit.id}")

    assert response.status_code == 204
    assert store.habits == []
    assert [o.id for o in store.occurrences] == [past.id]


def test_complete_and_uncomplete(client, store) -> None:
    habit_id = create_daily(client)["habit"]["id"]
    target = f"{habit_id}_{(local_today() + timedelta(days=1)).isoformat()}"

    completed = client.post(f"/habits/occurrences/{target}/complete")
    assert completed.status_code == 200
    assert completed.json()["completed"] is True
    assert completed.json()["completed_at"] is not None

    reopened = client.post(f"/habits/occurrences/{target}/uncomplete")
    assert reopened.json()["completed"] is False


def test_complete_errors(client, store) -> None:
    today = local_today()
    habit = make_habit(anchor_date=today - timedelta(days=10))
    past = HabitInstanceGenerator.create_occurrence(habit, today - timedelta(days=1))
    store.save([habit], [past])

    assert client.post("/habits/occurrences/nope/complete").status_code == 404
    assert client.post(f"/habits/occurrences/{past.id}/complete").status_code == 409


def test_toggle_subtask(client) -> None:
    habit_id = create_daily(client, subtasks=[{"id": "s1", "title": "Fill bottle"}])["habit"]["id"]
    target = f"{habit_id}_{(local_today() + timedelta(days=2)).isoformat()}"

    response = client.post(f"/habits/occurrences/{target}/subtasks/s1/toggle")

    assert response.status_code == 200
    assert response.json()["subtasks"][0]["completed"] is True
    assert response.json()["completed"] is True
    assert client.post(f"/habits/occurrences/{target}/subtasks/s9/toggle").status_code == 404


def test_refresh_is_idempotent(client, store) -> None:
    create_daily(client)

    first = client.post("/habits/refresh").json()
    second = client.post("/habits/refresh").json()

    # Creation already covered [today + 1, today + 30]
    assert first["occurrences_created"] == 0
    assert second["occurrences_created"] == 0
    assert len(store.occurrences) == 30


def test_weekly_progress(client) -> None:
    habit_id = create_daily(client, recurrence={"kind": "Custom", "times_per_week": 3})["habit"]["id"]
    next_monday = local_today() + timedelta(days=7 - local_today().weekday())

    response = client.get(f"/habits/{habit_id}/progress", params={"week_of": next_monday.isoformat()})

    assert response.status_code == 200
    assert response.json() == {
        "habit_id": habit_id,
        "week_start": next_monday.isoformat(),
        "completed": 0,
        "target": 3,
    }
    assert client.get("/habits/missing/progress").status_code == 404
