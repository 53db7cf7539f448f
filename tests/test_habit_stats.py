# tests/test_habit_stats.py

from __future__ import annotations

from datetime import date, datetime

from daybook.habits.habit_models import (
    CheckInState,
    Habit,
    HabitCheckIn,
    HabitFrequency,
    HabitGoal,
)
from daybook.habits.habit_stats import (
    get_habit_streak,
    get_monthly_check_in_rate,
    get_monthly_check_ins,
    get_total_check_ins,
    summarize,
)

from .conftest import NOW


def _habit(*check_ins: HabitCheckIn) -> Habit:
    return Habit(
        id="h1",
        name="Read",
        section="english",
        frequency=HabitFrequency.DAILY,
        goal=HabitGoal.ACHIEVE_IT_ALL,
        start_date=date(2024, 1, 1),
        created_at=datetime(2024, 1, 1, 8, 0),
        check_ins=tuple(check_ins),
    )


def _done(day: int, month: int = 3) -> HabitCheckIn:
    return HabitCheckIn(date=date(2024, month, day), status=CheckInState.COMPLETED)


def _failed(day: int) -> HabitCheckIn:
    return HabitCheckIn(date=date(2024, 3, day), status=CheckInState.FAILED)


def test_streak_counts_consecutive_days_ending_today() -> None:
    assert get_habit_streak(_habit(_done(15), _done(14), _done(13)), NOW) == 3


def test_streak_stops_at_first_gap() -> None:
    assert get_habit_streak(_habit(_done(15), _done(13)), NOW) == 1
    assert get_habit_streak(_habit(_done(15), _done(14), _done(12)), NOW) == 2


def test_streak_may_end_yesterday() -> None:
    assert get_habit_streak(_habit(_done(14), _done(13)), NOW) == 2


def test_streak_broken_when_newest_is_older_than_yesterday() -> None:
    assert get_habit_streak(_habit(_done(13), _done(12), _done(11)), NOW) == 0


def test_streak_empty_and_failed_only() -> None:
    assert get_habit_streak(_habit(), NOW) == 0
    assert get_habit_streak(_habit(_failed(15), _failed(14)), NOW) == 0


def test_streak_ignores_failed_days_and_order() -> None:
    habit = _habit(_done(13), _failed(14), _done(15))
    assert get_habit_streak(habit, NOW) == 1


def test_streak_counts_same_day_duplicates_once() -> None:
    assert get_habit_streak(_habit(_done(15), _done(15), _done(14)), NOW) == 2


def test_monthly_rate_on_first_of_month() -> None:
    first = datetime(2024, 3, 1, 9, 0)
    assert get_monthly_check_in_rate(_habit(_done(1)), first) == 100
    assert get_monthly_check_in_rate(_habit(), first) == 0


def test_monthly_rate_uses_days_passed_so_far() -> None:
    # 3 of 15 days
    habit = _habit(_done(1), _done(2), _done(3))
    assert get_monthly_check_in_rate(habit, NOW) == 20


def test_monthly_rate_rounds_half_up() -> None:
    # 1 of 8 days = 12.5%
    assert get_monthly_check_in_rate(_habit(_done(1)), datetime(2024, 3, 8)) == 13


def test_monthly_rate_is_clamped_to_100() -> None:
    first = datetime(2024, 3, 1)
    assert get_monthly_check_in_rate(_habit(_done(1), _done(1)), first) == 100


def test_monthly_rate_ignores_other_months_and_future_days() -> None:
    habit = _habit(_done(29, month=2), _done(20))
    assert get_monthly_check_in_rate(habit, NOW) == 0


def test_monthly_check_ins_cover_the_whole_month() -> None:
    habit = _habit(_done(29, month=2), _done(1), _done(20), _failed(2))
    assert get_monthly_check_ins(habit, NOW) == 2


def test_total_check_ins_counts_completed_only() -> None:
    habit = _habit(_done(29, month=2), _done(1), _failed(2))
    assert get_total_check_ins(habit) == 2


def test_summarize_bundles_all_numbers() -> None:
    stats = summarize(_habit(_done(15), _done(14), _done(29, month=2)), NOW)
    assert stats.streak == 2
    assert stats.monthly_check_ins == 2
    assert stats.monthly_rate == 13  # 2 / 15 days
    assert stats.total_check_ins == 3
