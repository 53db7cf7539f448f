# src/daybook/pomodoro/timer.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from ..core.fields import parse_enum
from ..errors import ValidationError

logger = logging.getLogger(__name__)

LONG_BREAK_EVERY = 4


class PomodoroMode(StrEnum):
    WORK = "work"
    SHORT_BREAK = "short-break"
    LONG_BREAK = "long-break"


@dataclass(slots=True)
class PomodoroDurations:
    """Minutes per mode."""

    work: int = 25
    short_break: int = 5
    long_break: int = 15

    def minutes(self, mode: PomodoroMode) -> int:
        if mode == PomodoroMode.WORK:
            return self.work
        if mode == PomodoroMode.SHORT_BREAK:
            return self.short_break
        return self.long_break


class PomodoroTimer:
    """
    Pomodoro cycle without a real-time thread: callers feed elapsed seconds to tick().

    Work -> short break, except every 4th work session, which goes to a long
    break and restarts the count. Any break goes back to work.
    """

    def __init__(self, durations: PomodoroDurations | None = None) -> None:
        self.durations = durations or PomodoroDurations()
        self.mode = PomodoroMode.WORK
        self.cycles = 0  # work sessions finished since the last long break
        self.running = False
        self.remaining_seconds = self.durations.minutes(self.mode) * 60

    def start(self) -> None:
        self.running = True

    def pause(self) -> None:
        self.running = False

    def reset(self) -> None:
        """Stop and refill the current mode."""
        self.running = False
        self.remaining_seconds = self.durations.minutes(self.mode) * 60

    def switch_mode(self, mode: PomodoroMode | str) -> None:
        self.mode = parse_enum(PomodoroMode, mode, "mode")
        self.reset()

    def set_duration(self, mode: PomodoroMode | str, minutes: int) -> None:
        mode = parse_enum(PomodoroMode, mode, "mode")
        if minutes < 1 or minutes > 180:
            raise ValidationError("duration must be between 1 and 180 minutes")
        if mode == PomodoroMode.WORK:
            self.durations.work = minutes
        elif mode == PomodoroMode.SHORT_BREAK:
            self.durations.short_break = minutes
        else:
            self.durations.long_break = minutes
        # Only an idle timer on that mode picks up the new length right away.
        if self.mode == mode and not self.running:
            self.remaining_seconds = minutes * 60

    def complete_phase(self) -> PomodoroMode:
        """Finish the current phase now and move to the next mode (stopped)."""
        if self.mode == PomodoroMode.WORK:
            self.cycles += 1
            if self.cycles >= LONG_BREAK_EVERY:
                self.mode = PomodoroMode.LONG_BREAK
                self.cycles = 0
            else:
                self.mode = PomodoroMode.SHORT_BREAK
        else:
            self.mode = PomodoroMode.WORK
        self.reset()
        logger.debug("Pomodoro phase complete -> %s (cycles=%d)", self.mode.value, self.cycles)
        return self.mode

    def tick(self, seconds: int = 1) -> bool:
        """Count down while running. Returns True when this tick finished the phase."""
        if not self.running or seconds <= 0:
            return False
        self.remaining_seconds = max(0, self.remaining_seconds - seconds)
        if self.remaining_seconds == 0:
            self.complete_phase()
            return True
        return False

    def display(self) -> str:
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"
