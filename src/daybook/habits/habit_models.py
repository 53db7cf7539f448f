# src/daybook/habits/habit_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum


class HabitFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class HabitGoal(StrEnum):
    ACHIEVE_IT_ALL = "achieve-it-all"
    ACHIEVE_SOME = "achieve-some"
    AVOID_IT_ALL = "avoid-it-all"


class CheckInState(StrEnum):
    """
    Per-day check-in state.

    Only COMPLETED and FAILED are ever stored; NONE is what a lookup returns
    when there is no record for the day.
    """

    NONE = "none"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class HabitCheckIn:
    date: date
    status: CheckInState
    notes: str | None = None


@dataclass(slots=True, frozen=True)
class Section:
    id: str
    name: str


@dataclass(slots=True, frozen=True)
class Habit:
    id: str
    name: str
    section: str
    frequency: HabitFrequency
    goal: HabitGoal
    start_date: date
    created_at: datetime

    # weekday indices, 0 = Sunday
    selected_days: tuple[int, ...] = ()
    end_date: date | None = None
    check_ins: tuple[HabitCheckIn, ...] = ()
    reminder_time: str | None = None  # "HH:MM"
    auto_popup: bool = False
    archived: bool = False


@dataclass(slots=True, frozen=True)
class HabitCollection:
    habits: tuple[Habit, ...] = ()
    sections: tuple[Section, ...] = ()
