# src/daybook/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..habits.habit_store import HabitStore
from ..pomodoro.timer import PomodoroTimer
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings are kept on the state so command handlers can read them.
    settings: Any

    task_store: TaskStore
    habit_store: HabitStore
    pomodoro: PomodoroTimer = field(default_factory=PomodoroTimer)

    # Guards store access shared by the console and the reminder thread.
    lock: threading.RLock = field(default_factory=threading.RLock)
