# src/daybook/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every key has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DAYBOOK"

STORAGE_BACKENDS = ("sqlite", "json")

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    data_dir: Path
    storage_backend: str
    db_path: Path
    tasks_json_path: Path
    habits_json_path: Path
    seed_defaults: bool

    # ---- Front end / background services ----
    console_enabled: bool
    reminders_enabled: bool
    reminder_interval_seconds: float

    # ---- Habit check-ins ----
    preserve_checkin_notes: bool

    # ---- Pomodoro (minutes) ----
    pomodoro_work_minutes: int
    pomodoro_short_break_minutes: int
    pomodoro_long_break_minutes: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "daybook").strip() or "daybook"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/daybook"))
        storage_backend = _env(_k("STORAGE_BACKEND"), "sqlite").strip().lower()
        if storage_backend not in STORAGE_BACKENDS:
            storage_backend = "sqlite"
        db_path = _env_path(_k("DB_PATH"), data_dir / "daybook.sqlite3")
        tasks_json_path = _env_path(_k("TASKS_JSON_PATH"), data_dir / "tasks.json")
        habits_json_path = _env_path(_k("HABITS_JSON_PATH"), data_dir / "habits.json")
        seed_defaults = _env_bool(_k("SEED_DEFAULTS"), True)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        reminders_enabled = _env_bool(_k("REMINDERS_ENABLED"), True)
        reminder_interval_seconds = max(1.0, _env_float(_k("REMINDER_INTERVAL_SECONDS"), 30.0))

        preserve_checkin_notes = _env_bool(_k("PRESERVE_CHECKIN_NOTES"), True)

        pomodoro_work_minutes = _env_int(_k("POMODORO_WORK_MINUTES"), 25)
        pomodoro_short_break_minutes = _env_int(_k("POMODORO_SHORT_BREAK_MINUTES"), 5)
        pomodoro_long_break_minutes = _env_int(_k("POMODORO_LONG_BREAK_MINUTES"), 15)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            storage_backend=storage_backend,
            db_path=db_path,
            tasks_json_path=tasks_json_path,
            habits_json_path=habits_json_path,
            seed_defaults=seed_defaults,
            console_enabled=console_enabled,
            reminders_enabled=reminders_enabled,
            reminder_interval_seconds=reminder_interval_seconds,
            preserve_checkin_notes=preserve_checkin_notes,
            pomodoro_work_minutes=pomodoro_work_minutes,
            pomodoro_short_break_minutes=pomodoro_short_break_minutes,
            pomodoro_long_break_minutes=pomodoro_long_break_minutes,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
