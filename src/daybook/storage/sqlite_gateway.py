# src/daybook/storage/sqlite_gateway.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import PersistenceError, UnexpectedError
from ..habits.habit_models import HabitCollection
from ..tasks.task_models import TaskCollection
from . import codec

logger = logging.getLogger(__name__)

TASKS_SNAPSHOT = "tasks"
HABITS_SNAPSHOT = "habits"

# table -> {column: declaration}; tables are created with all of these and
# older databases get the missing ones via ALTER TABLE.
_SCHEMA: dict[str, dict[str, str]] = {
    "task_lists": {
        "id": "TEXT PRIMARY KEY",
        "name": "TEXT NOT NULL DEFAULT ''",
        "color": "TEXT NOT NULL DEFAULT '#000000'",
        "view": "TEXT NOT NULL DEFAULT 'list'",
        "folder": "TEXT",
        "type": "TEXT NOT NULL DEFAULT 'Task List'",
        "position": "INTEGER NOT NULL DEFAULT 0",
    },
    "tasks": {
        "id": "TEXT PRIMARY KEY",
        "title": "TEXT NOT NULL DEFAULT ''",
        "description": "TEXT NOT NULL DEFAULT ''",
        "completed": "INTEGER NOT NULL DEFAULT 0",
        "list_id": "TEXT NOT NULL DEFAULT ''",
        "created_at": "TEXT NOT NULL DEFAULT ''",
        "priority": "TEXT NOT NULL DEFAULT 'not-urgent-unimportant'",
        "type": "TEXT NOT NULL DEFAULT 'task'",
        "section": "TEXT",
        "pinned": "INTEGER NOT NULL DEFAULT 0",
        "due_date": "TEXT",
        "images": "TEXT NOT NULL DEFAULT '[]'",
        "position": "INTEGER NOT NULL DEFAULT 0",
    },
    "habit_sections": {
        "id": "TEXT PRIMARY KEY",
        "name": "TEXT NOT NULL DEFAULT ''",
        "position": "INTEGER NOT NULL DEFAULT 0",
    },
    "habits": {
        "id": "TEXT PRIMARY KEY",
        "name": "TEXT NOT NULL DEFAULT ''",
        "section": "TEXT NOT NULL DEFAULT ''",
        "frequency": "TEXT NOT NULL DEFAULT 'daily'",
        "goal": "TEXT NOT NULL DEFAULT 'achieve-it-all'",
        "start_date": "TEXT NOT NULL DEFAULT ''",
        "end_date": "TEXT",
        "selected_days": "TEXT NOT NULL DEFAULT '[]'",
        "reminder_time": "TEXT",
        "auto_popup": "INTEGER NOT NULL DEFAULT 0",
        "created_at": "TEXT NOT NULL DEFAULT ''",
        "archived": "INTEGER NOT NULL DEFAULT 0",
        "position": "INTEGER NOT NULL DEFAULT 0",
    },
    "habit_check_ins": {
        "habit_id": "TEXT NOT NULL",
        "check_date": "TEXT NOT NULL",
        "status": "TEXT NOT NULL",
        "notes": "TEXT",
        "position": "INTEGER NOT NULL DEFAULT 0",
    },
}

_TABLE_SUFFIX = {
    "habit_check_ins": ", PRIMARY KEY (habit_id, check_date)",
}


class SqliteDatabase:
    """
    SQLite file shared by the task and habit gateways.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Each call opens its own short-lived connection.
    """

    def __init__(self, db_path: str | Path = "daybook.sqlite3") -> None:
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"cannot open database {self._db_path}: {e}") from e
        logger.info("SqliteDatabase ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self.get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "CREATE TABLE IF NOT EXISTS snapshots (name TEXT PRIMARY KEY, saved_at TEXT NOT NULL)"
            )
            for table, columns in _SCHEMA.items():
                decls = ", ".join(f"{name} {decl}" for name, decl in columns.items())
                cur.execute(f"CREATE TABLE IF NOT EXISTS {table} ({decls}{_TABLE_SUFFIX.get(table, '')})")

                cur.execute(f"PRAGMA table_info({table})")
                existing = {row["name"] for row in cur.fetchall()}
                for name, decl in columns.items():
                    if name in existing or "PRIMARY KEY" in decl:
                        continue
                    cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                    logger.info("SqliteDatabase migration: added column %s.%s", table, name)

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_list ON tasks(list_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_habits_section ON habits(section)")
            conn.commit()
        finally:
            conn.close()

    def has_snapshot(self, conn: sqlite3.Connection, name: str) -> bool:
        row = conn.execute("SELECT 1 FROM snapshots WHERE name = ?", (name,)).fetchone()
        return row is not None

    @staticmethod
    def mark_snapshot(conn: sqlite3.Connection, name: str) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO snapshots(name, saved_at) VALUES (?, ?)",
            (name, datetime.now().isoformat()),
        )


def _json_list(raw: str | None) -> list[Any]:
    if not raw:
        return []
    try:
        val = json.loads(raw)
    except ValueError as e:
        raise UnexpectedError(f"corrupt JSON column value: {raw!r}") from e
    return val if isinstance(val, list) else []


class SqliteTaskGateway:
    """Tasks and lists in `tasks` / `task_lists`; save_all replaces both in one transaction."""

    def __init__(self, db: SqliteDatabase) -> None:
        self._db = db

    def load_all(self) -> TaskCollection | None:
        try:
            conn = self._db.get_conn()
            try:
                if not self._db.has_snapshot(conn, TASKS_SNAPSHOT):
                    return None
                list_rows = conn.execute("SELECT * FROM task_lists ORDER BY position").fetchall()
                task_rows = conn.execute("SELECT * FROM tasks ORDER BY position").fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to load tasks: {e}") from e

        lists = [
            {
                "id": r["id"],
                "name": r["name"],
                "color": r["color"],
                "view": r["view"],
                "folder": r["folder"],
                "type": r["type"],
            }
            for r in list_rows
        ]
        tasks = [
            {
                "id": r["id"],
                "title": r["title"],
                "description": r["description"],
                "completed": bool(r["completed"]),
                "listId": r["list_id"],
                "createdAt": r["created_at"],
                "dueDate": r["due_date"],
                "priority": r["priority"],
                "images": _json_list(r["images"]),
                "pinned": bool(r["pinned"]),
                "type": r["type"],
                "section": r["section"],
            }
            for r in task_rows
        ]
        return codec.task_collection_from_dict({"tasks": tasks, "lists": lists})

    def save_all(self, collection: TaskCollection) -> None:
        data = codec.task_collection_to_dict(collection)
        try:
            conn = self._db.get_conn()
            try:
                with conn:
                    conn.execute("DELETE FROM tasks")
                    conn.execute("DELETE FROM task_lists")
                    conn.executemany(
                        """
                        INSERT INTO task_lists(id, name, color, view, folder, type, position)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (d["id"], d["name"], d["color"], d["view"], d["folder"], d["type"], pos)
                            for pos, d in enumerate(data["lists"])
                        ],
                    )
                    conn.executemany(
                        """
                        INSERT INTO tasks(
                            id, title, description, completed, list_id, created_at,
                            priority, type, section, pinned, due_date, images, position
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (
                                d["id"],
                                d["title"],
                                d["description"],
                                int(d["completed"]),
                                d["listId"],
                                d["createdAt"],
                                d["priority"],
                                d["type"],
                                d["section"],
                                int(d["pinned"]),
                                d["dueDate"],
                                json.dumps(d["images"], ensure_ascii=False),
                                pos,
                            )
                            for pos, d in enumerate(data["tasks"])
                        ],
                    )
                    self._db.mark_snapshot(conn, TASKS_SNAPSHOT)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to save tasks: {e}") from e
        logger.debug("Saved tasks=%d lists=%d", len(collection.tasks), len(collection.lists))


class SqliteHabitGateway:
    """
    Habits, sections and check-ins.

    habit_check_ins holds one row per (habit, day); if a collection ever carries
    two records for the same day the later one wins.
    """

    def __init__(self, db: SqliteDatabase) -> None:
        self._db = db

    def load_all(self) -> HabitCollection | None:
        try:
            conn = self._db.get_conn()
            try:
                if not self._db.has_snapshot(conn, HABITS_SNAPSHOT):
                    return None
                section_rows = conn.execute("SELECT * FROM habit_sections ORDER BY position").fetchall()
                habit_rows = conn.execute("SELECT * FROM habits ORDER BY position").fetchall()
                check_in_rows = conn.execute(
                    "SELECT * FROM habit_check_ins ORDER BY habit_id, position"
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to load habits: {e}") from e

        by_habit: dict[str, list[dict[str, Any]]] = {}
        for r in check_in_rows:
            entry: dict[str, Any] = {"date": r["check_date"], "status": r["status"]}
            if r["notes"] is not None:
                entry["notes"] = r["notes"]
            by_habit.setdefault(r["habit_id"], []).append(entry)

        habits = [
            {
                "id": r["id"],
                "name": r["name"],
                "section": r["section"],
                "frequency": r["frequency"],
                "goal": r["goal"],
                "startDate": r["start_date"],
                "endDate": r["end_date"],
                "selectedDays": _json_list(r["selected_days"]),
                "checkIns": by_habit.get(r["id"], []),
                "reminderTime": r["reminder_time"],
                "autoPopup": bool(r["auto_popup"]),
                "createdAt": r["created_at"],
                "archived": bool(r["archived"]),
            }
            for r in habit_rows
        ]
        sections = [{"id": r["id"], "name": r["name"]} for r in section_rows]
        return codec.habit_collection_from_dict({"habits": habits, "sections": sections})

    def save_all(self, collection: HabitCollection) -> None:
        data = codec.habit_collection_to_dict(collection)
        check_in_rows = [
            (h["id"], c["date"], c["status"], c.get("notes"), pos)
            for h in data["habits"]
            for pos, c in enumerate(h["checkIns"])
        ]
        try:
            conn = self._db.get_conn()
            try:
                with conn:
                    conn.execute("DELETE FROM habit_check_ins")
                    conn.execute("DELETE FROM habits")
                    conn.execute("DELETE FROM habit_sections")
                    conn.executemany(
                        "INSERT INTO habit_sections(id, name, position) VALUES (?, ?, ?)",
                        [(s["id"], s["name"], pos) for pos, s in enumerate(data["sections"])],
                    )
                    conn.executemany(
                        """
                        INSERT INTO habits(
                            id, name, section, frequency, goal, start_date, end_date,
                            selected_days, reminder_time, auto_popup, created_at, archived, position
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (
                                h["id"],
                                h["name"],
                                h["section"],
                                h["frequency"],
                                h["goal"],
                                h["startDate"],
                                h["endDate"],
                                json.dumps(h["selectedDays"]),
                                h["reminderTime"],
                                int(h["autoPopup"]),
                                h["createdAt"],
                                int(h["archived"]),
                                pos,
                            )
                            for pos, h in enumerate(data["habits"])
                        ],
                    )
                    conn.executemany(
                        """
                        INSERT OR REPLACE INTO habit_check_ins(habit_id, check_date, status, notes, position)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        check_in_rows,
                    )
                    self._db.mark_snapshot(conn, HABITS_SNAPSHOT)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to save habits: {e}") from e
        logger.debug("Saved habits=%d check_ins=%d", len(collection.habits), len(check_in_rows))
