# src/daybook/tasks/task_store.py

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any

from ..core.fields import as_local_datetime, parse_enum, require_text
from ..core.ports import Clock, PersistenceErrorHandler, TaskGateway
from ..errors import NotFoundError, PersistenceError, UnexpectedError, ValidationError
from .task_models import (
    TASK_LIST_TYPE,
    DuePreset,
    ListView,
    Task,
    TaskCollection,
    TaskFilter,
    TaskList,
    TaskPriority,
    TaskSection,
    TaskType,
)

logger = logging.getLogger(__name__)

DEFAULT_LISTS: tuple[TaskList, ...] = (
    TaskList(id="welcome", name="Welcome", color="#F8BD1C"),
    TaskList(id="study", name="Study", color="#3B82F6"),
    TaskList(id="exercise", name="Exercise", color="#10B981"),
    TaskList(id="wishlist", name="Wishlist", color="#8B5CF6"),
    TaskList(id="memo", name="Memo", color="#EC4899"),
    TaskList(id="work", name="Work", color="#F59E0B"),
)

_TASK_MUTABLE = frozenset(
    {
        "title",
        "description",
        "completed",
        "list_id",
        "due_date",
        "priority",
        "images",
        "pinned",
        "type",
        "section",
    }
)
_LIST_MUTABLE = frozenset({"name", "color", "view", "folder"})


class TaskStore:
    """
    In-memory task and list collection for one session.

    Every mutation updates memory first, then saves the whole collection
    through the gateway. A failed save is logged and kept in
    `last_persistence_error`; it never undoes the in-memory change.

    Missing ids raise NotFoundError, bad input raises ValidationError.
    """

    def __init__(
        self,
        gateway: TaskGateway,
        *,
        clock: Clock | None = None,
        seed_defaults: bool = True,
        on_persistence_error: PersistenceErrorHandler | None = None,
    ) -> None:
        self._gateway = gateway
        self._clock: Clock = clock or datetime.now
        self._seed_defaults = seed_defaults
        self._on_persistence_error = on_persistence_error

        self._tasks: list[Task] = []
        self._lists: list[TaskList] = []
        self._selected_task: Task | None = None
        self._selected_list_id: str | None = None
        self._filter = TaskFilter.ALL

        # Set while the stored data could not be read; automatic saves are held back.
        self._load_failed = False
        self.last_persistence_error: PersistenceError | None = None

    # ---- state ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def lists(self) -> tuple[TaskList, ...]:
        return tuple(self._lists)

    @property
    def selected_task(self) -> Task | None:
        return self._selected_task

    @property
    def selected_list_id(self) -> str | None:
        return self._selected_list_id

    @property
    def filter(self) -> TaskFilter:
        return self._filter

    def now(self) -> datetime:
        return self._clock()

    def snapshot(self) -> TaskCollection:
        return TaskCollection(tasks=tuple(self._tasks), lists=tuple(self._lists))

    # ---- persistence ----

    def load(self) -> bool:
        """
        Rehydrate from the gateway.

        Returns False if loading failed; the current in-memory state is then kept.
        A gateway with nothing saved yet gives the default lists (when seeding is on).
        """
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
            self._tasks = []
            self._lists = list(DEFAULT_LISTS) if self._seed_defaults else []
            logger.info("TaskStore: nothing saved yet, starting with %d default lists", len(self._lists))
        else:
            self._tasks = list(collection.tasks)
            self._lists = list(collection.lists)
            logger.info("TaskStore loaded tasks=%d lists=%d", len(self._tasks), len(self._lists))

        self._selected_task = None
        self._selected_list_id = None
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
            logger.warning("TaskStore: change kept in memory only, stored data failed to load")
            return
        try:
            self._gateway.save_all(self.snapshot())
        except PersistenceError as e:
            self._report(e, "save")
        else:
            self.last_persistence_error = None

    def _report(self, error: PersistenceError, op: str) -> None:
        logger.error("TaskStore %s failed: %s", op, error, exc_info=error)
        self.last_persistence_error = error
        if self._on_persistence_error is not None:
            self._on_persistence_error(error)

    # ---- lookups ----

    def _task_index(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        raise NotFoundError("task", task_id)

    def _list_index(self, list_id: str) -> int:
        for i, lst in enumerate(self._lists):
            if lst.id == list_id:
                return i
        raise NotFoundError("list", list_id)

    def get_task(self, task_id: str) -> Task:
        return self._tasks[self._task_index(task_id)]

    def get_list(self, list_id: str) -> TaskList:
        return self._lists[self._list_index(list_id)]

    def has_list(self, list_id: str) -> bool:
        return any(lst.id == list_id for lst in self._lists)

    # ---- field normalization ----

    def _clean_task_fields(self, changes: dict[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in changes.items():
            if key not in _TASK_MUTABLE:
                raise ValidationError(f"task field cannot be updated: {key}")
            if key == "title":
                value = require_text(value, "title")
            elif key == "description":
                value = "" if value is None else str(value)
            elif key in ("completed", "pinned"):
                value = bool(value)
            elif key == "list_id":
                value = require_text(value, "list_id")
                if not self.has_list(value):
                    raise ValidationError(f"list_id does not reference an existing list: {value}")
            elif key == "due_date":
                value = None if value is None else as_local_datetime(value)
            elif key == "priority":
                value = parse_enum(TaskPriority, value, "priority")
            elif key == "type":
                value = parse_enum(TaskType, value, "type")
            elif key == "section":
                value = None if value is None else parse_enum(TaskSection, value, "section")
            elif key == "images":
                value = tuple(str(v) for v in (value or ()))
            out[key] = value
        return out

    def _clean_list_fields(self, changes: dict[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in changes.items():
            if key not in _LIST_MUTABLE:
                raise ValidationError(f"list field cannot be updated: {key}")
            if key == "name":
                value = require_text(value, "name")
            elif key == "color":
                value = require_text(value, "color")
            elif key == "view":
                value = parse_enum(ListView, value, "view")
            elif key == "folder":
                value = (str(value).strip() or None) if value is not None else None
            out[key] = value
        return out

    # ---- tasks ----

    def add_task(
        self,
        *,
        title: str,
        list_id: str,
        description: str = "",
        priority: TaskPriority | str = TaskPriority.NOT_URGENT_UNIMPORTANT,
        type: TaskType | str = TaskType.TASK,
        completed: bool = False,
        due_date: date | datetime | None = None,
        images: Iterable[str] | None = None,
        pinned: bool = False,
        section: TaskSection | str | None = None,
    ) -> Task:
        fields = self._clean_task_fields(
            {
                "title": title,
                "list_id": list_id,
                "description": description,
                "priority": priority,
                "type": type,
                "completed": completed,
                "due_date": due_date,
                "images": images,
                "pinned": pinned,
                "section": section,
            }
        )
        task = Task(id=str(uuid.uuid4()), created_at=self._clock(), **fields)
        self._tasks.append(task)
        logger.debug("Task added id=%s list=%s type=%s", task.id, task.list_id, task.type.value)
        self._persist()
        return task

    def update_task(self, task_id: str, **changes: Any) -> Task:
        idx = self._task_index(task_id)
        fields = self._clean_task_fields(changes)
        task = replace(self._tasks[idx], **fields)
        self._tasks[idx] = task
        if self._selected_task is not None and self._selected_task.id == task_id:
            self._selected_task = task
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(fields))
        self._persist()
        return task

    def delete_task(self, task_id: str) -> None:
        idx = self._task_index(task_id)
        del self._tasks[idx]
        if self._selected_task is not None and self._selected_task.id == task_id:
            self._selected_task = None
        logger.debug("Task deleted id=%s", task_id)
        self._persist()

    def complete_task(self, task_id: str) -> Task:
        """Toggle the completed flag."""
        return self.update_task(task_id, completed=not self.get_task(task_id).completed)

    def update_task_priority(self, task_id: str, priority: TaskPriority | str) -> Task:
        return self.update_task(task_id, priority=priority)

    def pin_task(self, task_id: str, pinned: bool = True) -> Task:
        return self.update_task(task_id, pinned=pinned)

    def convert_task_type(self, task_id: str, type: TaskType | str) -> Task:
        return self.update_task(task_id, type=type)

    def set_task_section(self, task_id: str, section: TaskSection | str | None) -> Task:
        return self.update_task(task_id, section=section)

    def set_task_due_date(
        self,
        task_id: str,
        preset: DuePreset | str,
        custom_date: date | datetime | None = None,
    ) -> Task:
        preset = parse_enum(DuePreset, preset, "preset")
        now = self._clock()
        if preset == DuePreset.TODAY:
            due = now
        elif preset == DuePreset.TOMORROW:
            due = now + timedelta(days=1)
        elif preset == DuePreset.NEXT_WEEK:
            due = now + timedelta(days=7)
        else:
            if custom_date is None:
                raise ValidationError("custom due date preset requires custom_date")
            due = custom_date
        return self.update_task(task_id, due_date=due)

    def select_task(self, task_id: str | None) -> Task | None:
        if task_id is None:
            self._selected_task = None
        else:
            self._selected_task = next((t for t in self._tasks if t.id == task_id), None)
        return self._selected_task

    # ---- lists ----

    def add_list(
        self,
        *,
        name: str,
        color: str,
        view: ListView | str = ListView.LIST,
        folder: str | None = None,
    ) -> TaskList:
        fields = self._clean_list_fields({"name": name, "color": color, "view": view, "folder": folder})
        task_list = TaskList(id=str(uuid.uuid4()), type=TASK_LIST_TYPE, **fields)
        self._lists.append(task_list)
        logger.debug("List added id=%s name=%s", task_list.id, task_list.name)
        self._persist()
        return task_list

    def update_list(self, list_id: str, **changes: Any) -> TaskList:
        idx = self._list_index(list_id)
        task_list = replace(self._lists[idx], **self._clean_list_fields(changes))
        self._lists[idx] = task_list
        self._persist()
        return task_list

    def delete_list(self, list_id: str) -> int:
        """Delete a list and every task in it. Returns how many tasks went with it."""
        idx = self._list_index(list_id)
        del self._lists[idx]

        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.list_id != list_id]
        removed = before - len(self._tasks)

        if self._selected_list_id == list_id:
            self._selected_list_id = None
        if self._selected_task is not None and self._selected_task.list_id == list_id:
            self._selected_task = None

        logger.debug("List deleted id=%s cascaded_tasks=%d", list_id, removed)
        self._persist()
        return removed

    def select_list(self, list_id: str | None) -> str | None:
        self._selected_list_id = list_id if list_id is not None and self.has_list(list_id) else None
        return self._selected_list_id

    # ---- queries ----

    def set_filter(self, task_filter: TaskFilter | str) -> TaskFilter:
        self._filter = parse_enum(TaskFilter, task_filter, "filter")
        return self._filter

    def filter_tasks(
        self,
        task_filter: TaskFilter | str,
        *,
        now: datetime | None = None,
        tasks: Iterable[Task] | None = None,
    ) -> list[Task]:
        """
        Time-window projection.

        - today: due on today's calendar day
        - week: due within [now, now + 7 days]
        - completed: completed tasks
        - all: every task that is not completed yet
        """
        task_filter = parse_enum(TaskFilter, task_filter, "filter")
        now = now or self._clock()
        source = self._tasks if tasks is None else list(tasks)

        if task_filter == TaskFilter.TODAY:
            return [t for t in source if t.due_date is not None and t.due_date.date() == now.date()]
        if task_filter == TaskFilter.WEEK:
            horizon = now + timedelta(days=7)
            return [t for t in source if t.due_date is not None and now <= t.due_date <= horizon]
        if task_filter == TaskFilter.COMPLETED:
            return [t for t in source if t.completed]
        return [t for t in source if not t.completed]

    def visible_tasks(self, *, now: datetime | None = None) -> list[Task]:
        """Selected list (if any) narrowed by the current filter; pinned tasks first."""
        source = self._tasks
        if self._selected_list_id is not None:
            source = [t for t in source if t.list_id == self._selected_list_id]
        out = self.filter_tasks(self._filter, now=now, tasks=source)
        return sorted(out, key=lambda t: not t.pinned)

    def tasks_in_list(self, list_id: str) -> list[Task]:
        return [t for t in self._tasks if t.list_id == list_id]

    def tasks_by_quadrant(self, *, include_completed: bool = True) -> dict[TaskPriority, list[Task]]:
        """Eisenhower matrix view: every priority maps to its tasks (possibly empty)."""
        out: dict[TaskPriority, list[Task]] = {p: [] for p in TaskPriority}
        for t in self._tasks:
            if t.completed and not include_completed:
                continue
            out[t.priority].append(t)
        return out
