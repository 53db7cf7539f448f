# src/daybook/habits/habit_stats.py

"""
Habit statistics.

Pure read-only projections over one habit's check-in history. Nothing here is
cached: histories are bounded by days since the habit was created, so every
call recomputes from `habit.check_ins`.

All functions take `now` explicitly (defaulting to the local clock) so results
are deterministic in tests.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .habit_models import CheckInState, Habit, HabitCheckIn


@dataclass(slots=True, frozen=True)
class HabitStats:
    streak: int
    monthly_rate: int
    monthly_check_ins: int
    total_check_ins: int


def _today(now: datetime | None) -> date:
    return (now or datetime.now()).date()


def _completed(check_ins: Iterable[HabitCheckIn]) -> list[HabitCheckIn]:
    return [c for c in check_ins if c.status == CheckInState.COMPLETED]


def _month_bounds(day: date) -> tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def get_habit_streak(habit: Habit, now: datetime | None = None) -> int:
    """
    Consecutive completed days ending today or yesterday.

    If the newest completed day is older than yesterday the streak is broken (0).
    Same-day duplicates (stale data) count once.
    """
    days = sorted({c.date for c in _completed(habit.check_ins)}, reverse=True)
    if not days:
        return 0

    today = _today(now)
    if days[0] < today - timedelta(days=1):
        return 0

    streak = 1
    for current, previous in zip(days, days[1:]):
        if (current - previous).days != 1:
            break
        streak += 1
    return streak


def get_monthly_check_in_rate(habit: Habit, now: datetime | None = None) -> int:
    """Percentage (0-100) of days so far this month with a completed check-in."""
    today = _today(now)
    first, last = _month_bounds(today)
    days_passed = max(1, min(today.day, last.day))

    monthly_completed = sum(1 for c in _completed(habit.check_ins) if first <= c.date <= today)
    # half-up, not banker's rounding
    rate = math.floor(monthly_completed / days_passed * 100 + 0.5)
    return max(0, min(100, rate))


def get_monthly_check_ins(habit: Habit, now: datetime | None = None) -> int:
    first, last = _month_bounds(_today(now))
    return sum(1 for c in _completed(habit.check_ins) if first <= c.date <= last)


def get_total_check_ins(habit: Habit) -> int:
    return len(_completed(habit.check_ins))


def summarize(habit: Habit, now: datetime | None = None) -> HabitStats:
    now = now or datetime.now()
    return HabitStats(
        streak=get_habit_streak(habit, now),
        monthly_rate=get_monthly_check_in_rate(habit, now),
        monthly_check_ins=get_monthly_check_ins(habit, now),
        total_check_ins=get_total_check_ins(habit),
    )
