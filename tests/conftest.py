# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from daybook.core.state import AppState
from daybook.habits.habit_store import HabitStore
from daybook.pomodoro.timer import PomodoroTimer
from daybook.tasks.task_store import TaskStore

from .fakes import FakeClock, InMemoryGateway

# Friday, mid-month, mid-morning.
NOW = datetime(2024, 3, 15, 10, 30)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any .env file.
    """
    return SimpleNamespace(
        app_name="daybook-test",
        log_level="DEBUG",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        storage_backend="json",
        db_path=tmp_path / "daybook.sqlite3",
        tasks_json_path=tmp_path / "tasks.json",
        habits_json_path=tmp_path / "habits.json",
        seed_defaults=True,
        # Features
        console_enabled=False,
        reminders_enabled=False,
        reminder_interval_seconds=1.0,
        preserve_checkin_notes=True,
        pomodoro_work_minutes=25,
        pomodoro_short_break_minutes=5,
        pomodoro_long_break_minutes=15,
    )


@pytest.fixture()
def task_gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture()
def habit_gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture()
def task_store(task_gateway: InMemoryGateway, clock: FakeClock) -> TaskStore:
    store = TaskStore(task_gateway, clock=clock)
    assert store.load()
    return store


@pytest.fixture()
def habit_store(habit_gateway: InMemoryGateway, clock: FakeClock) -> HabitStore:
    store = HabitStore(habit_gateway, clock=clock)
    assert store.load()
    return store


@pytest.fixture()
def state(settings: SimpleNamespace, task_store: TaskStore, habit_store: HabitStore) -> AppState:
    """
    AppState wired with in-memory gateways and a fixed clock.

    The stores are real: their validation and bookkeeping is part of what
    command tests exercise.
    """
    return AppState(
        settings=settings,
        task_store=task_store,
        habit_store=habit_store,
        pomodoro=PomodoroTimer(),
    )
