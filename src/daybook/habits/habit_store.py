# src/daybook/habits/habit_store.py

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from ..core.fields import as_day, parse_enum, require_text
from ..core.ports import Clock, HabitGateway, PersistenceErrorHandler
from ..errors import NotFoundError, PersistenceError, UnexpectedError, ValidationError
from . import habit_stats
from .check_in import advance, apply_check_in, lookup
from .habit_models import (
    CheckInState,
    Habit,
    HabitCollection,
    HabitFrequency,
    HabitGoal,
    Section,
)

logger = logging.getLogger(__name__)

DEFAULT_SECTIONS: tuple[Section, ...] = (
    Section(id="english", name="English"),
    Section(id="sports", name="Sports"),
    Section(id="courses", name="Courses"),
    Section(id="morning", name="Morning"),
    Section(id="afternoon", name="Afternoon"),
    Section(id="night", name="Night"),
)

_REMINDER_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

_HABIT_MUTABLE = frozenset(
    {
        "name",
        "section",
        "frequency",
        "selected_days",
        "goal",
        "start_date",
        "end_date",
        "reminder_time",
        "auto_popup",
        "archived",
    }
)


class HabitStore:
    """
    In-memory habit and section collection for one session.

    Same persistence contract as TaskStore: memory first, then a whole-collection
    save; save failures are reported, never rolled back.

    Check-ins go through check_in_habit / toggle_check_in only, which keeps at
    most one record per (habit, calendar day).
    """

    def __init__(
        self,
        gateway: HabitGateway,
        *,
        clock: Clock | None = None,
        seed_defaults: bool = True,
        preserve_notes: bool = True,
        on_persistence_error: PersistenceErrorHandler | None = None,
    ) -> None:
        self._gateway = gateway
        self._clock: Clock = clock or datetime.now
        self._seed_defaults = seed_defaults
        self._preserve_notes = preserve_notes
        self._on_persistence_error = on_persistence_error

        self._habits: list[Habit] = []
        self._sections: list[Section] = []
        self._selected_habit: Habit | None = None

        # Set while the stored data could not be read; automatic saves are held back.
        self._load_failed = False
        self.last_persistence_error: PersistenceError | None = None

    # ---- state ----

    @property
    def habits(self) -> tuple[Habit, ...]:
        return tuple(self._habits)

    @property
    def sections(self) -> tuple[Section, ...]:
        return tuple(self._sections)

    @property
    def selected_habit(self) -> Habit | None:
        return self._selected_habit

    def now(self) -> datetime:
        return self._clock()

    def snapshot(self) -> HabitCollection:
        return HabitCollection(habits=tuple(self._habits), sections=tuple(self._sections))

    # ---- persistence ----

    def load(self) -> bool:
        try:
            collection = self._gateway.load_all()
        except PersistenceError as e:
            self._load_failed = True
            self._report(e, "load")
            return False
        except UnexpectedError:
            self._load_failed = True
            raise

        if collection is None:
            self._habits = []
            self._sections = list(DEFAULT_SECTIONS) if self._seed_defaults else []
            logger.info("HabitStore: nothing saved yet, starting with %d default sections", len(self._sections))
        else:
            self._habits = list(collection.habits)
            self._sections = list(collection.sections)
            logger.info("HabitStore loaded habits=%d sections=%d", len(self._habits), len(self._sections))

        self._selected_habit = None
        self._load_failed = False
        return True

    def save(self) -> bool:
        """
        Save the current collection now. Returns False if the gateway failed.

        After a failed load this is the only way to write, and it replaces
        whatever is stored with the in-memory collection.
        """
        self._load_failed = False
        self._persist()
        return self.last_persistence_error is None

    def _persist(self) -> None:
        if self._load_failed:
            self.last_persistence_error = PersistenceError(
                "not saved: stored data failed to load (use /save to overwrite it)"
            )
            logger.warning("HabitStore: change kept in memory only, stored data failed to load")
            return
        try:
            self._gateway.save_all(self.snapshot())
        except PersistenceError as e:
            self._report(e, "save")
        else:
            self.last_persistence_error = None

    def _report(self, error: PersistenceError, op: str) -> None:
        logger.error("HabitStore %s failed: %s", op, error, exc_info=error)
        self.last_persistence_error = error
        if self._on_persistence_error is not None:
            self._on_persistence_error(error)

    # ---- lookups ----

    def _habit_index(self, habit_id: str) -> int:
        for i, h in enumerate(self._habits):
            if h.id == habit_id:
                return i
        raise NotFoundError("habit", habit_id)

    def get_habit(self, habit_id: str) -> Habit:
        return self._habits[self._habit_index(habit_id)]

    def find_habit(self, ref: str) -> Habit:
        """Resolve by id, then by case-insensitive name among non-archived habits first."""
        for h in self._habits:
            if h.id == ref:
                return h
        key = ref.strip().lower()
        matches = [h for h in self._habits if h.name.lower() == key]
        matches.sort(key=lambda h: h.archived)
        if not matches:
            raise NotFoundError("habit", ref)
        return matches[0]

    def get_section(self, section_id: str) -> Section:
        for s in self._sections:
            if s.id == section_id:
                return s
        raise NotFoundError("section", section_id)

    def find_section(self, ref: str) -> Section:
        key = ref.strip().lower()
        for s in self._sections:
            if s.id == ref or s.name.lower() == key:
                return s
        raise NotFoundError("section", ref)

    # ---- validation ----

    def _clean_habit_fields(self, changes: dict[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in changes.items():
            if key not in _HABIT_MUTABLE:
                raise ValidationError(f"habit field cannot be updated: {key}")
            if key == "name":
                value = require_text(value, "name")
            elif key == "section":
                value = require_text(value, "section")
                if not any(s.id == value for s in self._sections):
                    raise ValidationError(f"section does not exist: {value}")
            elif key == "frequency":
                if value is None:
                    raise ValidationError("frequency is required")
                value = parse_enum(HabitFrequency, value, "frequency")
            elif key == "goal":
                if value is None:
                    raise ValidationError("goal is required")
                value = parse_enum(HabitGoal, value, "goal")
            elif key == "selected_days":
                value = _clean_weekdays(value)
            elif key == "start_date":
                if value is None:
                    raise ValidationError("start_date is required")
                value = as_day(value)
            elif key == "end_date":
                value = None if value is None else as_day(value)
            elif key == "reminder_time":
                value = _clean_reminder_time(value)
            elif key in ("auto_popup", "archived"):
                value = bool(value)
            out[key] = value
        return out

    @staticmethod
    def _check_consistency(habit: Habit) -> None:
        if habit.frequency == HabitFrequency.CUSTOM and not habit.selected_days:
            raise ValidationError("custom frequency requires at least one selected day")
        if habit.end_date is not None and habit.end_date < habit.start_date:
            raise ValidationError("end_date must not be before start_date")

    # ---- habits ----

    def add_habit(
        self,
        *,
        name: str,
        section: str,
        frequency: HabitFrequency | str,
        goal: HabitGoal | str,
        start_date: date | datetime | None = None,
        end_date: date | datetime | None = None,
        selected_days: Iterable[int] | None = None,
        reminder_time: str | None = None,
        auto_popup: bool = False,
    ) -> Habit:
        now = self._clock()
        fields = self._clean_habit_fields(
            {
                "name": name,
                "section": section,
                "frequency": frequency,
                "goal": goal,
                "start_date": start_date if start_date is not None else now,
                "end_date": end_date,
                "selected_days": selected_days,
                "reminder_time": reminder_time,
                "auto_popup": auto_popup,
            }
        )
        habit = Habit(id=str(uuid.uuid4()), created_at=now, **fields)
        self._check_consistency(habit)
        self._habits.append(habit)
        logger.debug("Habit added id=%s section=%s frequency=%s", habit.id, habit.section, habit.frequency.value)
        self._persist()
        return habit

    def _store_habit(self, idx: int, habit: Habit) -> Habit:
        self._habits[idx] = habit
        if self._selected_habit is not None and self._selected_habit.id == habit.id:
            # Archived habits drop out of active views, selection included.
            self._selected_habit = None if habit.archived else habit
        self._persist()
        return habit

    def update_habit(self, habit_id: str, **changes: Any) -> Habit:
        idx = self._habit_index(habit_id)
        fields = self._clean_habit_fields(changes)
        habit = replace(self._habits[idx], **fields)
        self._check_consistency(habit)
        logger.debug("Habit updated id=%s fields=%s", habit_id, sorted(fields))
        return self._store_habit(idx, habit)

    def delete_habit(self, habit_id: str) -> None:
        idx = self._habit_index(habit_id)
        del self._habits[idx]
        if self._selected_habit is not None and self._selected_habit.id == habit_id:
            self._selected_habit = None
        logger.debug("Habit deleted id=%s", habit_id)
        self._persist()

    def archive_habit(self, habit_id: str) -> Habit:
        """Hide from active views; data and check-ins are kept."""
        return self.update_habit(habit_id, archived=True)

    def restore_habit(self, habit_id: str) -> Habit:
        return self.update_habit(habit_id, archived=False)

    def select_habit(self, habit_id: str | None) -> Habit | None:
        if habit_id is None:
            self._selected_habit = None
        else:
            self._selected_habit = next((h for h in self._habits if h.id == habit_id), None)
        return self._selected_habit

    # ---- check-ins ----

    def check_in_habit(
        self,
        habit_id: str,
        day: date | datetime,
        status: CheckInState | str,
        notes: str | None = None,
    ) -> Habit:
        status = parse_enum(CheckInState, status, "status")
        idx = self._habit_index(habit_id)
        current = self._habits[idx]
        check_ins = apply_check_in(
            current.check_ins,
            day,
            status,
            notes,
            preserve_notes=self._preserve_notes,
        )
        logger.debug("Check-in habit=%s day=%s status=%s", habit_id, as_day(day), status.value)
        return self._store_habit(idx, replace(current, check_ins=check_ins))

    def check_in_status(self, habit_id: str, day: date | datetime) -> CheckInState:
        return lookup(self.get_habit(habit_id), day)

    def toggle_check_in(self, habit_id: str, day: date | datetime) -> CheckInState:
        """Advance the day's state (none -> completed -> failed -> none); returns the new state."""
        nxt = advance(self.check_in_status(habit_id, day))
        self.check_in_habit(habit_id, day, nxt)
        return nxt

    # ---- queries ----

    def habits_by_section(self, section_id: str) -> list[Habit]:
        return [h for h in self._habits if h.section == section_id and not h.archived]

    def active_habits(self) -> list[Habit]:
        return [h for h in self._habits if not h.archived]

    def archived_habits(self) -> list[Habit]:
        return [h for h in self._habits if h.archived]

    # ---- sections ----

    def add_section(self, name: str) -> Section:
        """Add a section; a name that already exists (any case) returns the existing one."""
        name = require_text(name, "name")
        for s in self._sections:
            if s.name.lower() == name.lower():
                logger.debug("Section already exists name=%s id=%s", name, s.id)
                return s
        section = Section(id=str(uuid.uuid4()), name=name)
        self._sections.append(section)
        self._persist()
        return section

    # ---- statistics (evaluated with the store clock) ----

    def habit_streak(self, habit_id: str) -> int:
        return habit_stats.get_habit_streak(self.get_habit(habit_id), self._clock())

    def monthly_check_in_rate(self, habit_id: str) -> int:
        return habit_stats.get_monthly_check_in_rate(self.get_habit(habit_id), self._clock())

    def monthly_check_ins(self, habit_id: str) -> int:
        return habit_stats.get_monthly_check_ins(self.get_habit(habit_id), self._clock())

    def total_check_ins(self, habit_id: str) -> int:
        return habit_stats.get_total_check_ins(self.get_habit(habit_id))

    def stats(self, habit_id: str) -> habit_stats.HabitStats:
        return habit_stats.summarize(self.get_habit(habit_id), self._clock())


def _clean_weekdays(raw: Iterable[int] | None) -> tuple[int, ...]:
    if raw is None:
        return ()
    days: set[int] = set()
    for v in raw:
        try:
            d = int(v)
        except (TypeError, ValueError):
            raise ValidationError(f"selected_days must be weekday numbers 0-6 (got {v!r})") from None
        if not 0 <= d <= 6:
            raise ValidationError(f"selected_days must be weekday numbers 0-6 (got {d})")
        days.add(d)
    return tuple(sorted(days))


def _clean_reminder_time(raw: object) -> str | None:
    if raw is None or not str(raw).strip():
        return None
    value = str(raw).strip()
    if len(value) == 4 and value[1] == ":":
        value = "0" + value
    if not _REMINDER_RE.match(value):
        raise ValidationError(f"reminder_time must be HH:MM (got {raw!r})")
    return value
