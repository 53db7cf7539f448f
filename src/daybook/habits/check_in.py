# src/daybook/habits/check_in.py

"""
Check-in state machine.

Per (habit, calendar day) there are three states: NONE (no record), COMPLETED
and FAILED. Toggling walks none -> completed -> failed -> none.

Day matching is by calendar day only; a datetime argument is reduced to its
date before any comparison.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime

from ..core.fields import as_day
from .habit_models import CheckInState, Habit, HabitCheckIn, HabitFrequency

_NEXT_STATE: dict[CheckInState, CheckInState] = {
    CheckInState.NONE: CheckInState.COMPLETED,
    CheckInState.COMPLETED: CheckInState.FAILED,
    CheckInState.FAILED: CheckInState.NONE,
}


def advance(state: CheckInState) -> CheckInState:
    return _NEXT_STATE[state]


def find_check_in(check_ins: tuple[HabitCheckIn, ...], day: date | datetime) -> HabitCheckIn | None:
    """Record for `day`, or None. With stale duplicates the last one wins."""
    target = as_day(day)
    found = None
    for c in check_ins:
        if c.date == target:
            found = c
    return found


def lookup(habit: Habit, day: date | datetime) -> CheckInState:
    found = find_check_in(habit.check_ins, day)
    return found.status if found is not None else CheckInState.NONE


def apply_check_in(
    check_ins: tuple[HabitCheckIn, ...],
    day: date | datetime,
    status: CheckInState,
    notes: str | None = None,
    *,
    preserve_notes: bool = True,
) -> tuple[HabitCheckIn, ...]:
    """
    Return the check-in tuple with `day` set to `status`.

    - NONE removes any record for the day.
    - Otherwise an existing record is overwritten in place, or a new one appended.

    On overwrite, explicit `notes` replace the old ones; when `notes` is None the
    old notes survive if `preserve_notes` is true and are cleared otherwise.
    Applying the same target twice gives the same result.
    """
    target = as_day(day)
    existing = find_check_in(check_ins, target)
    others = [c for c in check_ins if c.date != target]

    if status == CheckInState.NONE:
        return tuple(others)

    if existing is None:
        return (*check_ins, HabitCheckIn(date=target, status=status, notes=notes))

    if notes is None and preserve_notes:
        notes = existing.notes
    replacement = HabitCheckIn(date=target, status=status, notes=notes)

    # Keep the position of the first record for that day; drop stale duplicates.
    out: list[HabitCheckIn] = []
    placed = False
    for c in check_ins:
        if c.date != target:
            out.append(c)
        elif not placed:
            out.append(replacement)
            placed = True
    return tuple(out)


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def is_scheduled_day(habit: Habit, day: date | datetime) -> bool:
    """
    Whether the habit's frequency asks for a check-in on `day`.

    Advisory only: check-ins are accepted on any day regardless of this.
    """
    d = as_day(day)
    if d < habit.start_date:
        return False
    if habit.end_date is not None and d > habit.end_date:
        return False

    if habit.frequency == HabitFrequency.DAILY:
        return True
    if habit.frequency == HabitFrequency.WEEKLY:
        days = habit.selected_days or (weekday_index(habit.start_date),)
        return weekday_index(d) in days
    if habit.frequency == HabitFrequency.MONTHLY:
        last = calendar.monthrange(d.year, d.month)[1]
        return d.day == min(habit.start_date.day, last)
    return weekday_index(d) in habit.selected_days
