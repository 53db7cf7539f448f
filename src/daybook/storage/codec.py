# src/daybook/storage/codec.py

"""
Entity <-> plain dict conversion.

Field names follow the web app's JSON shape (camelCase: listId, createdAt,
checkIns, ...). Datetimes are ISO-8601 with time; calendar days are YYYY-MM-DD.
Decoding a malformed record raises UnexpectedError.
"""

from __future__ import annotations

import functools
from datetime import date, datetime
from typing import Any

from ..core.fields import as_local_datetime, parse_enum
from ..errors import DaybookError, UnexpectedError
from ..habits.habit_models import (
    CheckInState,
    Habit,
    HabitCheckIn,
    HabitCollection,
    HabitFrequency,
    HabitGoal,
    Section,
)
from ..tasks.task_models import (
    TASK_LIST_TYPE,
    ListView,
    Task,
    TaskCollection,
    TaskList,
    TaskPriority,
    TaskSection,
    TaskType,
)


# ---- scalars ----


def format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def format_day(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_datetime(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return as_local_datetime(raw)
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Stored by a browser in UTC; the app works in naive local time.
    return as_local_datetime(datetime.fromisoformat(text))


def parse_day(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    dt = parse_datetime(text)
    return dt.date() if dt is not None else None


def _decoding(kind: str):
    """Decorator: turn any decode failure into UnexpectedError."""

    def wrap(fn):
        @functools.wraps(fn)
        def inner(data: Any):
            if not isinstance(data, dict):
                raise UnexpectedError(f"{kind} record is not an object: {data!r}")
            try:
                return fn(data)
            except UnexpectedError:
                raise
            except (KeyError, TypeError, ValueError, DaybookError) as e:
                raise UnexpectedError(f"corrupt {kind} record {data.get('id')!r}: {e}") from e

        return inner

    return wrap


# ---- tasks ----


def task_list_to_dict(lst: TaskList) -> dict[str, Any]:
    return {
        "id": lst.id,
        "name": lst.name,
        "color": lst.color,
        "view": lst.view.value,
        "folder": lst.folder,
        "type": lst.type,
    }


@_decoding("list")
def task_list_from_dict(data: dict[str, Any]) -> TaskList:
    return TaskList(
        id=str(data["id"]),
        name=str(data["name"]),
        color=str(data.get("color") or "#000000"),
        view=parse_enum(ListView, data.get("view") or ListView.LIST, "view"),
        folder=data.get("folder") or None,
        type=str(data.get("type") or TASK_LIST_TYPE),
    )


def task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "completed": task.completed,
        "listId": task.list_id,
        "createdAt": format_datetime(task.created_at),
        "dueDate": format_datetime(task.due_date),
        "priority": task.priority.value,
        "images": list(task.images),
        "pinned": task.pinned,
        "type": task.type.value,
        "section": task.section.value if task.section is not None else None,
    }


@_decoding("task")
def task_from_dict(data: dict[str, Any]) -> Task:
    created_at = parse_datetime(data["createdAt"])
    if created_at is None:
        raise ValueError("createdAt is empty")
    section = data.get("section")
    return Task(
        id=str(data["id"]),
        title=str(data["title"]),
        description=str(data.get("description") or ""),
        completed=bool(data.get("completed", False)),
        list_id=str(data["listId"]),
        created_at=created_at,
        due_date=parse_datetime(data.get("dueDate")),
        priority=parse_enum(
            TaskPriority, data.get("priority") or TaskPriority.NOT_URGENT_UNIMPORTANT, "priority"
        ),
        images=tuple(str(u) for u in (data.get("images") or ())),
        pinned=bool(data.get("pinned", False)),
        type=parse_enum(TaskType, data.get("type") or TaskType.TASK, "type"),
        section=parse_enum(TaskSection, section, "section") if section else None,
    )


def task_collection_to_dict(collection: TaskCollection) -> dict[str, Any]:
    return {
        "tasks": [task_to_dict(t) for t in collection.tasks],
        "lists": [task_list_to_dict(lst) for lst in collection.lists],
    }


def task_collection_from_dict(data: Any) -> TaskCollection:
    if not isinstance(data, dict):
        raise UnexpectedError("task collection is not an object")
    return TaskCollection(
        tasks=tuple(task_from_dict(t) for t in data.get("tasks") or ()),
        lists=tuple(task_list_from_dict(lst) for lst in data.get("lists") or ()),
    )


# ---- habits ----


def check_in_to_dict(check_in: HabitCheckIn) -> dict[str, Any]:
    out: dict[str, Any] = {"date": format_day(check_in.date), "status": check_in.status.value}
    if check_in.notes is not None:
        out["notes"] = check_in.notes
    return out


@_decoding("check-in")
def check_in_from_dict(data: dict[str, Any]) -> HabitCheckIn | None:
    """None for a stored "none" status (older data kept those as placeholders)."""
    status = parse_enum(CheckInState, data["status"], "status")
    if status == CheckInState.NONE:
        return None
    day = parse_day(data["date"])
    if day is None:
        raise ValueError("check-in date is empty")
    return HabitCheckIn(date=day, status=status, notes=data.get("notes"))


def section_to_dict(section: Section) -> dict[str, Any]:
    return {"id": section.id, "name": section.name}


@_decoding("section")
def section_from_dict(data: dict[str, Any]) -> Section:
    return Section(id=str(data["id"]), name=str(data["name"]))


def habit_to_dict(habit: Habit) -> dict[str, Any]:
    return {
        "id": habit.id,
        "name": habit.name,
        "section": habit.section,
        "frequency": habit.frequency.value,
        "selectedDays": list(habit.selected_days),
        "goal": habit.goal.value,
        "startDate": format_day(habit.start_date),
        "endDate": format_day(habit.end_date),
        "checkIns": [check_in_to_dict(c) for c in habit.check_ins],
        "reminderTime": habit.reminder_time,
        "autoPopup": habit.auto_popup,
        "createdAt": format_datetime(habit.created_at),
        "archived": habit.archived,
    }


@_decoding("habit")
def habit_from_dict(data: dict[str, Any]) -> Habit:
    start = parse_day(data["startDate"])
    created_at = parse_datetime(data["createdAt"])
    if start is None or created_at is None:
        raise ValueError("startDate/createdAt is empty")
    check_ins = tuple(c for c in (check_in_from_dict(x) for x in data.get("checkIns") or ()) if c is not None)
    return Habit(
        id=str(data["id"]),
        name=str(data["name"]),
        section=str(data["section"]),
        frequency=parse_enum(HabitFrequency, data["frequency"], "frequency"),
        goal=parse_enum(HabitGoal, data["goal"], "goal"),
        start_date=start,
        end_date=parse_day(data.get("endDate")),
        selected_days=tuple(sorted({int(d) for d in data.get("selectedDays") or ()})),
        check_ins=check_ins,
        reminder_time=data.get("reminderTime") or None,
        auto_popup=bool(data.get("autoPopup", False)),
        created_at=created_at,
        archived=bool(data.get("archived", False)),
    )


def habit_collection_to_dict(collection: HabitCollection) -> dict[str, Any]:
    return {
        "habits": [habit_to_dict(h) for h in collection.habits],
        "sections": [section_to_dict(s) for s in collection.sections],
    }


def habit_collection_from_dict(data: Any) -> HabitCollection:
    if not isinstance(data, dict):
        raise UnexpectedError("habit collection is not an object")
    return HabitCollection(
        habits=tuple(habit_from_dict(h) for h in data.get("habits") or ()),
        sections=tuple(section_from_dict(s) for s in data.get("sections") or ()),
    )
