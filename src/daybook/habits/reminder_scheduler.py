# src/daybook/habits/reminder_scheduler.py

from __future__ import annotations

"""
Habit reminder scheduler.

A small polling loop that:
- looks at active habits with a reminder_time,
- picks the ones scheduled today whose reminder time has passed and that have
  no check-in for today yet,
- sends one reminder per (habit, day) via an injected messenger port.

How the reminder reaches the user (console print, notification, ...) belongs to
the connector, not the scheduler.
"""

import asyncio
import contextlib
import logging
import shlex
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, time

from ..core.ports import Clock, HabitSource, OutboundMessenger
from .check_in import find_check_in, is_scheduled_day
from .habit_models import Habit

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class HabitReminder:
    habit: Habit
    day: date
    text: str


def parse_reminder_time(raw: str | None) -> time | None:
    if not raw:
        return None
    try:
        hh, mm = raw.strip().split(":", 1)
        return time(int(hh), int(mm))
    except ValueError:
        return None


def build_reminder(habit: Habit, day: date) -> HabitReminder:
    if habit.auto_popup:
        text = f"Time for '{habit.name}'. Check in now: /checkin {shlex.quote(habit.name)} completed"
    else:
        text = f"Reminder: '{habit.name}' is not checked in yet today."
    return HabitReminder(habit=habit, day=day, text=text)


def due_reminders(
    habits: Iterable[Habit],
    now: datetime,
    *,
    already_sent: set[tuple[str, date]] | None = None,
) -> list[HabitReminder]:
    """Reminders that should go out at `now` (pure; does not record anything)."""
    today = now.date()
    sent = already_sent or set()
    out: list[HabitReminder] = []

    for habit in habits:
        if habit.archived:
            continue
        at = parse_reminder_time(habit.reminder_time)
        if at is None:
            continue
        if (habit.id, today) in sent:
            continue
        if now.time() < at:
            continue
        if not is_scheduled_day(habit, today):
            continue
        if find_check_in(habit.check_ins, today) is not None:
            continue
        out.append(build_reminder(habit, today))

    out.sort(key=lambda r: (r.habit.reminder_time or "", r.habit.name))
    return out


async def run_habit_reminders(
    habit_source: HabitSource,
    messenger: OutboundMessenger,
    *,
    interval_seconds: float = 30.0,
    clock: Clock | None = None,
    lock: threading.RLock | None = None,
) -> None:
    """
    Polling reminder loop.

    Every interval_seconds:
    - collect due reminders for active habits
    - send each via messenger.send_text(...)
    - remember (habit_id, day) so a reminder goes out once per day;
      a failed send is retried on the next tick

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    clock = clock or datetime.now
    sent: set[tuple[str, date]] = set()

    while True:
        now = clock()

        try:
            if lock is not None:
                with lock:
                    habits = list(habit_source.active_habits())
            else:
                habits = list(habit_source.active_habits())
            reminders = due_reminders(habits, now, already_sent=sent)
        except Exception:
            logger.exception("collecting habit reminders failed")
            reminders = []

        for reminder in reminders:
            try:
                await messenger.send_text(text=reminder.text)
            except Exception:
                logger.exception("reminder send failed habit_id=%s", reminder.habit.id)
                continue
            sent.add((reminder.habit.id, reminder.day))
            logger.info("Reminder sent habit_id=%s day=%s", reminder.habit.id, reminder.day)

        # Forget earlier days so the set stays small.
        sent = {key for key in sent if key[1] >= now.date()}

        await asyncio.sleep(sleep_s)


class ReminderRunner:
    """Runs run_habit_reminders on its own event loop in a daemon thread."""

    def __init__(self, coro_factory: Callable[[], object]) -> None:
        self._coro_factory = coro_factory
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._started = threading.Event()
        self._thread = threading.Thread(target=self._run, name="habit-reminders", daemon=True)

    def start(self) -> "ReminderRunner":
        self._thread.start()
        self._started.wait(timeout=5.0)
        return self

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        asyncio.set_event_loop(loop)
        try:
            self._task = loop.create_task(self._coro_factory())  # type: ignore[arg-type]
            self._started.set()
            with contextlib.suppress(asyncio.CancelledError):
                loop.run_until_complete(self._task)
        except Exception:
            logger.exception("Reminder loop crashed.")
        finally:
            self._started.set()
            loop.close()

    def stop(self) -> None:
        loop, task = self._loop, self._task
        if loop is not None and task is not None and not loop.is_closed():
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(task.cancel)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)
