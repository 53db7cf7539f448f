# src/daybook/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

TASK_LIST_TYPE = "Task List"


class TaskPriority(StrEnum):
    """Eisenhower quadrant."""

    URGENT_IMPORTANT = "urgent-important"
    NOT_URGENT_IMPORTANT = "not-urgent-important"
    URGENT_UNIMPORTANT = "urgent-unimportant"
    NOT_URGENT_UNIMPORTANT = "not-urgent-unimportant"


class TaskType(StrEnum):
    TASK = "task"
    NOTE = "note"


class TaskSection(StrEnum):
    """Fixed onboarding tags (unrelated to habit sections)."""

    GETTING_START = "getting-start"
    FEATURE_MODULES = "feature-modules"
    EXPLORE_MORE = "explore-more"


class ListView(StrEnum):
    LIST = "list"
    BOARD = "board"
    CALENDAR = "calendar"


class TaskFilter(StrEnum):
    TODAY = "today"
    WEEK = "week"  # next 7 days
    COMPLETED = "completed"
    ALL = "all"


class DuePreset(StrEnum):
    TODAY = "today"
    TOMORROW = "tomorrow"
    NEXT_WEEK = "next-week"
    CUSTOM = "custom"


@dataclass(slots=True, frozen=True)
class TaskList:
    id: str
    name: str
    color: str
    view: ListView = ListView.LIST
    folder: str | None = None
    type: str = TASK_LIST_TYPE


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    title: str
    description: str
    completed: bool
    list_id: str
    created_at: datetime
    priority: TaskPriority
    type: TaskType = TaskType.TASK
    due_date: datetime | None = None
    images: tuple[str, ...] = field(default_factory=tuple)
    pinned: bool = False
    section: TaskSection | None = None


@dataclass(slots=True, frozen=True)
class TaskCollection:
    """Everything the task store persists in one save."""

    tasks: tuple[Task, ...] = ()
    lists: tuple[TaskList, ...] = ()
