# tests/test_storage_sqlite.py

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date
from pathlib import Path

import pytest

from daybook.errors import UnexpectedError
from daybook.habits.habit_models import CheckInState, HabitCheckIn, HabitCollection
from daybook.habits.habit_store import HabitStore
from daybook.storage.sqlite_gateway import SqliteDatabase, SqliteHabitGateway, SqliteTaskGateway
from daybook.tasks.task_store import TaskStore


def test_empty_database_loads_as_absent(tmp_path: Path) -> None:
    db = SqliteDatabase(tmp_path / "daybook.sqlite3")
    assert SqliteTaskGateway(db).load_all() is None
    assert SqliteHabitGateway(db).load_all() is None


def test_task_store_survives_restart(tmp_path: Path, clock) -> None:
    db_path = tmp_path / "daybook.sqlite3"
    store = TaskStore(SqliteTaskGateway(SqliteDatabase(db_path)), clock=clock)
    store.load()
    lst = store.add_list(name="Garden", color="#00AA00", folder="home")
    first = store.add_task(title="Dig", list_id=lst.id, description="beds", pinned=True)
    store.add_task(title="Plant", list_id=lst.id, priority="urgent-important")
    store.set_task_due_date(first.id, "next-week")
    store.convert_task_type(first.id, "note")

    reopened = TaskStore(SqliteTaskGateway(SqliteDatabase(db_path)), clock=clock)
    assert reopened.load()
    assert reopened.tasks == store.tasks
    assert reopened.lists == store.lists


def test_saved_empty_collection_is_not_reseeded(tmp_path: Path, clock) -> None:
    db_path = tmp_path / "daybook.sqlite3"
    store = TaskStore(SqliteTaskGateway(SqliteDatabase(db_path)), clock=clock)
    store.load()
    for lst in store.lists:
        store.delete_list(lst.id)

    reopened = TaskStore(SqliteTaskGateway(SqliteDatabase(db_path)), clock=clock)
    assert reopened.load()
    assert reopened.lists == ()


def test_delete_list_cascade_reaches_the_database(tmp_path: Path, clock) -> None:
    db_path = tmp_path / "daybook.sqlite3"
    store = TaskStore(SqliteTaskGateway(SqliteDatabase(db_path)), clock=clock)
    store.load()
    store.add_task(title="Squats", list_id="exercise")
    store.add_task(title="Push-ups", list_id="exercise")
    store.delete_list("exercise")

    conn = sqlite3.connect(str(db_path))
    try:
        (count,) = conn.execute("SELECT COUNT(*) FROM tasks WHERE list_id = 'exercise'").fetchone()
    finally:
        conn.close()
    assert count == 0


def test_habit_store_survives_restart(tmp_path: Path, clock) -> None:
    db_path = tmp_path / "daybook.sqlite3"
    store = HabitStore(SqliteHabitGateway(SqliteDatabase(db_path)), clock=clock)
    store.load()
    section = store.add_section("Evening")
    habit = store.add_habit(
        name="Stretch",
        section=section.id,
        frequency="custom",
        goal="achieve-it-all",
        selected_days=[0, 6],
        end_date=date(2024, 12, 31),
    )
    store.check_in_habit(habit.id, date(2024, 3, 14), "completed", "10 min")
    store.check_in_habit(habit.id, date(2024, 3, 15), "failed")
    store.archive_habit(habit.id)

    reopened = HabitStore(SqliteHabitGateway(SqliteDatabase(db_path)), clock=clock)
    assert reopened.load()
    assert reopened.habits == store.habits
    assert reopened.sections == store.sections


def test_duplicate_days_collapse_to_one_row(tmp_path: Path, clock) -> None:
    db_path = tmp_path / "daybook.sqlite3"
    gateway = SqliteHabitGateway(SqliteDatabase(db_path))
    store = HabitStore(gateway, clock=clock)
    store.load()
    habit = store.add_habit(name="Run", section="sports", frequency="daily", goal="achieve-it-all")

    day = date(2024, 3, 15)
    stale = (
        HabitCheckIn(date=day, status=CheckInState.COMPLETED),
        HabitCheckIn(date=day, status=CheckInState.FAILED),
    )
    gateway.save_all(HabitCollection(habits=(replace(habit, check_ins=stale),), sections=store.sections))

    loaded = gateway.load_all()
    assert loaded.habits[0].check_ins == (HabitCheckIn(date=day, status=CheckInState.FAILED),)


def test_old_schema_gets_missing_columns(tmp_path: Path) -> None:
    db_path = tmp_path / "daybook.sqlite3"
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("CREATE TABLE tasks (id TEXT PRIMARY KEY, title TEXT NOT NULL DEFAULT '')")
        conn.commit()
    finally:
        conn.close()

    SqliteDatabase(db_path)

    conn = sqlite3.connect(str(db_path))
    try:
        cols = {row[1] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()}
    finally:
        conn.close()
    assert {"pinned", "section", "due_date", "images", "position"} <= cols


def test_corrupt_json_column_is_unexpected_error(tmp_path: Path, clock) -> None:
    db_path = tmp_path / "daybook.sqlite3"
    store = TaskStore(SqliteTaskGateway(SqliteDatabase(db_path)), clock=clock)
    store.load()
    store.add_task(title="Dig", list_id="work")

    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("UPDATE tasks SET images = '[broken'")
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(UnexpectedError):
        SqliteTaskGateway(SqliteDatabase(db_path)).load_all()
