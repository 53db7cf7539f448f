# tests/test_check_in.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from daybook.errors import ValidationError
from daybook.habits.check_in import (
    advance,
    apply_check_in,
    find_check_in,
    is_scheduled_day,
    lookup,
    weekday_index,
)
from daybook.habits.habit_models import (
    CheckInState,
    Habit,
    HabitCheckIn,
    HabitFrequency,
    HabitGoal,
)

DAY = date(2024, 3, 15)  # Friday


def _habit(frequency: HabitFrequency = HabitFrequency.DAILY, **kwargs) -> Habit:
    fields = {
        "id": "h1",
        "name": "Run",
        "section": "sports",
        "frequency": frequency,
        "goal": HabitGoal.ACHIEVE_IT_ALL,
        "start_date": date(2024, 1, 31),
        "created_at": datetime(2024, 1, 31, 7, 0),
    }
    fields.update(kwargs)
    return Habit(**fields)


def test_advance_cycles_through_three_states() -> None:
    state = CheckInState.NONE
    seen = []
    for _ in range(3):
        state = advance(state)
        seen.append(state)
    assert seen == [CheckInState.COMPLETED, CheckInState.FAILED, CheckInState.NONE]


def test_lookup_is_none_without_record() -> None:
    assert lookup(_habit(), DAY) == CheckInState.NONE


def test_apply_appends_then_overwrites_in_place() -> None:
    first = HabitCheckIn(date=date(2024, 3, 14), status=CheckInState.COMPLETED)
    out = apply_check_in((first,), DAY, CheckInState.COMPLETED)
    assert [c.date for c in out] == [date(2024, 3, 14), DAY]

    out = apply_check_in(out, DAY, CheckInState.FAILED)
    assert len(out) == 2
    assert out[1].status == CheckInState.FAILED


def test_apply_is_idempotent() -> None:
    once = apply_check_in((), DAY, CheckInState.COMPLETED)
    twice = apply_check_in(once, DAY, CheckInState.COMPLETED)
    assert once == twice
    assert len(twice) == 1


def test_apply_matches_by_calendar_day() -> None:
    out = apply_check_in((), datetime(2024, 3, 15, 8, 0), CheckInState.COMPLETED)
    out = apply_check_in(out, datetime(2024, 3, 15, 22, 45), CheckInState.FAILED)
    assert out == (HabitCheckIn(date=DAY, status=CheckInState.FAILED),)


def test_apply_none_removes_record() -> None:
    out = apply_check_in((), DAY, CheckInState.COMPLETED)
    assert apply_check_in(out, DAY, CheckInState.NONE) == ()
    # removing an absent record is a no-op
    assert apply_check_in((), DAY, CheckInState.NONE) == ()


def test_notes_preserved_on_overwrite_by_default() -> None:
    out = apply_check_in((), DAY, CheckInState.COMPLETED, "felt great")
    out = apply_check_in(out, DAY, CheckInState.FAILED)
    assert out[0].notes == "felt great"

    out = apply_check_in(out, DAY, CheckInState.COMPLETED, "second try")
    assert out[0].notes == "second try"


def test_notes_cleared_on_overwrite_when_not_preserved() -> None:
    out = apply_check_in((), DAY, CheckInState.COMPLETED, "felt great")
    out = apply_check_in(out, DAY, CheckInState.FAILED, preserve_notes=False)
    assert out[0].notes is None


def test_stale_duplicates_last_wins_and_write_collapses_them() -> None:
    stale = (
        HabitCheckIn(date=DAY, status=CheckInState.COMPLETED),
        HabitCheckIn(date=date(2024, 3, 14), status=CheckInState.COMPLETED),
        HabitCheckIn(date=DAY, status=CheckInState.FAILED),
    )
    assert find_check_in(stale, DAY).status == CheckInState.FAILED

    out = apply_check_in(stale, DAY, CheckInState.COMPLETED)
    assert [c.date for c in out] == [DAY, date(2024, 3, 14)]
    assert out[0].status == CheckInState.COMPLETED


def test_weekday_index_starts_on_sunday() -> None:
    assert weekday_index(date(2024, 3, 17)) == 0  # Sunday
    assert weekday_index(DAY) == 5


def test_scheduled_day_respects_frequency() -> None:
    assert is_scheduled_day(_habit(), DAY)

    # start date 2024-01-31 was a Wednesday (3)
    weekly = _habit(HabitFrequency.WEEKLY)
    assert is_scheduled_day(weekly, date(2024, 3, 13))
    assert not is_scheduled_day(weekly, DAY)
    assert is_scheduled_day(_habit(HabitFrequency.WEEKLY, selected_days=(5,)), DAY)

    custom = _habit(HabitFrequency.CUSTOM, selected_days=(0, 6))
    assert is_scheduled_day(custom, date(2024, 3, 16))
    assert not is_scheduled_day(custom, DAY)


def test_scheduled_monthly_clamps_to_month_end() -> None:
    monthly = _habit(HabitFrequency.MONTHLY)
    assert is_scheduled_day(monthly, date(2024, 2, 29))
    assert is_scheduled_day(monthly, date(2024, 3, 31))
    assert not is_scheduled_day(monthly, date(2024, 3, 30))


def test_scheduled_day_respects_start_and_end() -> None:
    habit = _habit(end_date=date(2024, 3, 10))
    assert not is_scheduled_day(habit, date(2024, 1, 30))
    assert is_scheduled_day(habit, date(2024, 3, 10))
    assert not is_scheduled_day(habit, date(2024, 3, 11))


def test_non_date_day_is_rejected() -> None:
    with pytest.raises(ValidationError):
        apply_check_in((), "2024-03-15", CheckInState.COMPLETED)  # type: ignore[arg-type]
