# tests/test_pomodoro.py

from __future__ import annotations

import pytest

from daybook.errors import ValidationError
from daybook.pomodoro.timer import PomodoroDurations, PomodoroMode, PomodoroTimer


def test_new_timer_is_idle_on_work() -> None:
    timer = PomodoroTimer()
    assert timer.mode == PomodoroMode.WORK
    assert timer.running is False
    assert timer.display() == "25:00"


def test_tick_only_counts_while_running() -> None:
    timer = PomodoroTimer()
    assert timer.tick(60) is False
    assert timer.display() == "25:00"

    timer.start()
    assert timer.tick(90) is False
    assert timer.display() == "23:30"

    timer.pause()
    timer.tick(60)
    assert timer.display() == "23:30"


def test_finishing_work_moves_to_short_break() -> None:
    timer = PomodoroTimer(PomodoroDurations(work=1, short_break=2, long_break=3))
    timer.start()
    assert timer.tick(60) is True
    assert timer.mode == PomodoroMode.SHORT_BREAK
    assert timer.running is False
    assert timer.display() == "02:00"


def test_every_fourth_work_session_earns_a_long_break() -> None:
    timer = PomodoroTimer()
    modes = [timer.complete_phase() for _ in range(8)]
    assert modes == [
        PomodoroMode.SHORT_BREAK,
        PomodoroMode.WORK,
        PomodoroMode.SHORT_BREAK,
        PomodoroMode.WORK,
        PomodoroMode.SHORT_BREAK,
        PomodoroMode.WORK,
        PomodoroMode.LONG_BREAK,
        PomodoroMode.WORK,
    ]
    assert timer.cycles == 0


def test_switch_mode_and_reset() -> None:
    timer = PomodoroTimer()
    timer.switch_mode("long-break")
    assert timer.display() == "15:00"

    timer.start()
    timer.tick(30)
    timer.reset()
    assert timer.running is False
    assert timer.display() == "15:00"


def test_set_duration() -> None:
    timer = PomodoroTimer()
    timer.set_duration("work", 50)
    assert timer.display() == "50:00"

    timer.set_duration(PomodoroMode.SHORT_BREAK, 10)
    assert timer.durations.short_break == 10
    assert timer.display() == "50:00"

    with pytest.raises(ValidationError):
        timer.set_duration("work", 0)
    with pytest.raises(ValidationError):
        timer.set_duration("nap", 10)
