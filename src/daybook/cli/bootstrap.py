# src/daybook/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the storage backend (SQLite or JSON files),
- wires stores into AppState and loads them.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Clock, HabitGateway, TaskGateway
from ..core.state import AppState
from ..errors import PersistenceError, UnexpectedError
from ..habits.habit_store import HabitStore
from ..pomodoro.timer import PomodoroDurations, PomodoroTimer
from ..storage.json_gateway import habit_json_gateway, task_json_gateway
from ..storage.sqlite_gateway import SqliteDatabase, SqliteHabitGateway, SqliteTaskGateway
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    dirs = {
        settings.data_dir,
        settings.db_path.parent,
        settings.tasks_json_path.parent,
        settings.habits_json_path.parent,
    }
    for d in dirs:
        try:
            d.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"cannot create data directory {d}: {e}") from e


def build_gateways(settings) -> tuple[TaskGateway, HabitGateway]:
    if settings.storage_backend == "json":
        logger.info(
            "Using JSON storage tasks=%s habits=%s",
            settings.tasks_json_path,
            settings.habits_json_path,
        )
        return task_json_gateway(settings.tasks_json_path), habit_json_gateway(settings.habits_json_path)

    db = SqliteDatabase(settings.db_path)
    return SqliteTaskGateway(db), SqliteHabitGateway(db)


def _load(store: TaskStore | HabitStore, name: str) -> None:
    try:
        if not store.load():
            logger.warning("%s could not be loaded; changes stay in memory until /save.", name)
    except UnexpectedError:
        # Corrupt records: keep the session usable, but say so loudly.
        logger.exception("%s data is corrupt; changes stay in memory until /save.", name)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    task_gateway, habit_gateway = build_gateways(settings)

    task_store = TaskStore(task_gateway, clock=clock, seed_defaults=settings.seed_defaults)
    habit_store = HabitStore(
        habit_gateway,
        clock=clock,
        seed_defaults=settings.seed_defaults,
        preserve_notes=settings.preserve_checkin_notes,
    )
    _load(task_store, "Tasks")
    _load(habit_store, "Habits")

    pomodoro = PomodoroTimer(
        PomodoroDurations(
            work=settings.pomodoro_work_minutes,
            short_break=settings.pomodoro_short_break_minutes,
            long_break=settings.pomodoro_long_break_minutes,
        )
    )
    return AppState(settings=settings, task_store=task_store, habit_store=habit_store, pomodoro=pomodoro)
