# tests/test_bootstrap.py

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from daybook.cli.bootstrap import create_initial_state
from daybook.config import Settings
from daybook.storage.json_gateway import JsonFileGateway
from daybook.storage.sqlite_gateway import SqliteTaskGateway


def test_json_backend_seeds_and_persists(settings: SimpleNamespace, clock) -> None:
    state = create_initial_state(settings=settings, clock=clock)
    assert isinstance(state.task_store._gateway, JsonFileGateway)
    assert len(state.task_store.lists) == 6
    assert len(state.habit_store.sections) == 6

    state.task_store.add_task(title="Hello", list_id="welcome")
    saved = json.loads(settings.tasks_json_path.read_text("utf-8"))
    assert [t["title"] for t in saved["tasks"]] == ["Hello"]


def test_sqlite_backend_and_pomodoro_durations(settings: SimpleNamespace, clock) -> None:
    settings.storage_backend = "sqlite"
    settings.pomodoro_work_minutes = 50
    state = create_initial_state(settings=settings, clock=clock)

    assert isinstance(state.task_store._gateway, SqliteTaskGateway)
    assert settings.db_path.exists()
    assert state.pomodoro.display() == "50:00"


def test_corrupt_file_is_not_overwritten_by_edits(settings: SimpleNamespace, clock) -> None:
    raw = json.dumps(
        {
            "tasks": [
                {"id": "t1", "title": "keep me", "listId": "work", "createdAt": "2024-03-01T09:00:00"},
                {"id": "t2", "title": "broken", "listId": "work", "createdAt": "not-a-date"},
            ],
            "lists": [{"id": "work", "name": "Work", "color": "#F59E0B"}],
        }
    )
    settings.tasks_json_path.write_text(raw, "utf-8")

    state = create_initial_state(settings=settings, clock=clock)
    assert state.task_store.tasks == ()

    state.task_store.add_list(name="New", color="#ffffff")
    assert state.task_store.lists[0].name == "New"
    assert "failed to load" in str(state.task_store.last_persistence_error)
    assert settings.tasks_json_path.read_text("utf-8") == raw

    # An explicit save is the user's decision to replace the stored data.
    assert state.task_store.save()
    saved = json.loads(settings.tasks_json_path.read_text("utf-8"))
    assert [lst["name"] for lst in saved["lists"]] == ["New"]


def test_main_exits_cleanly_when_storage_cannot_open(
    monkeypatch: pytest.MonkeyPatch, settings: SimpleNamespace
) -> None:
    from daybook.cli import main as main_mod

    settings.storage_backend = "sqlite"
    settings.db_path = settings.data_dir / "not-a-file"
    settings.db_path.mkdir()
    monkeypatch.setattr(main_mod, "get_settings", lambda: settings)
    monkeypatch.setattr(main_mod, "setup_logging", lambda **kwargs: None)

    with pytest.raises(SystemExit) as exc:
        main_mod.main()
    assert exc.value.code == 1


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("DAYBOOK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("DAYBOOK_STORAGE_BACKEND", "JSON")
    monkeypatch.setenv("DAYBOOK_REMINDER_INTERVAL_SECONDS", "0.1")
    monkeypatch.setenv("DAYBOOK_PRESERVE_CHECKIN_NOTES", "no")
    monkeypatch.setenv("DAYBOOK_POMODORO_WORK_MINUTES", "not-a-number")
    monkeypatch.delenv("DAYBOOK_TASKS_JSON_PATH", raising=False)

    s = Settings.from_env()

    assert s.storage_backend == "json"
    assert s.tasks_json_path == tmp_path / "tasks.json"
    assert s.reminder_interval_seconds == 1.0
    assert s.preserve_checkin_notes is False
    assert s.pomodoro_work_minutes == 25


def test_unknown_backend_falls_back_to_sqlite(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DAYBOOK_STORAGE_BACKEND", "postgres")
    assert Settings.from_env().storage_backend == "sqlite"
