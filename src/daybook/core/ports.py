# src/daybook/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The stores depend on Protocols instead of concrete storage, so JSON files,
SQLite or an in-memory fake can be swapped in (tests use the latter).
"""

from collections.abc import Callable
from datetime import datetime
from typing import Awaitable, Protocol, TypeVar

from ..habits.habit_models import Habit, HabitCollection
from ..tasks.task_models import TaskCollection

C = TypeVar("C")

Clock = Callable[[], datetime]
# Returns "now" as a naive local datetime. Injected so date logic is testable.

PersistenceErrorHandler = Callable[[Exception], None]


class CollectionGateway(Protocol[C]):
    """
    Whole-collection persistence.

    load_all() returns None when nothing was ever saved.
    Both methods raise PersistenceError on I/O or parse failure.
    """

    def load_all(self) -> C | None: ...

    def save_all(self, collection: C) -> None: ...


TaskGateway = CollectionGateway[TaskCollection]
HabitGateway = CollectionGateway[HabitCollection]


class HabitSource(Protocol):
    """What the reminder scheduler reads (HabitStore satisfies it)."""

    def active_habits(self) -> list[Habit]: ...


class OutboundMessenger(Protocol):
    """
    Connector-side port: how background services (habit reminders) reach the user.

    The console connector prints; other connectors may route elsewhere.
    """

    def send_text(self, *, text: str) -> Awaitable[None]: ...
