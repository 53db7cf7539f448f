# src/daybook/storage/json_gateway.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Generic, TypeVar

from ..errors import PersistenceError
from ..habits.habit_models import HabitCollection
from ..tasks.task_models import TaskCollection
from . import codec

logger = logging.getLogger(__name__)

C = TypeVar("C")


class JsonFileGateway(Generic[C]):
    """
    Whole-collection JSON file.

    - load_all(): None if the file does not exist yet
    - save_all(): write to a sibling .tmp file, then os.replace() over the target
    I/O and JSON syntax errors become PersistenceError; a parsable file with
    broken records raises UnexpectedError from the codec.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        encode: Callable[[C], dict[str, Any]],
        decode: Callable[[Any], C],
    ) -> None:
        self._path = Path(path)
        self._encode = encode
        self._decode = decode

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> C | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PersistenceError(f"failed to read {self._path}: {e}") from e
        collection = self._decode(data)
        logger.debug("Loaded %s", self._path)
        return collection

    def save_all(self, collection: C) -> None:
        try:
            payload = json.dumps(self._encode(collection), ensure_ascii=False, indent=2)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(payload, "utf-8")
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"failed to write {self._path}: {e}") from e

        with contextlib.suppress(OSError):
            # Personal data: keep the file private on disk.
            os.chmod(self._path, 0o600)
        logger.debug("Saved %s", self._path)


def task_json_gateway(path: str | Path) -> JsonFileGateway[TaskCollection]:
    return JsonFileGateway(
        path,
        encode=codec.task_collection_to_dict,
        decode=codec.task_collection_from_dict,
    )


def habit_json_gateway(path: str | Path) -> JsonFileGateway[HabitCollection]:
    return JsonFileGateway(
        path,
        encode=codec.habit_collection_to_dict,
        decode=codec.habit_collection_from_dict,
    )
