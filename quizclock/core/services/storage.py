"""Persistence substrate: named collections of records, overwritten in full on save.

There are no partial patches and no multi-collection transactions. Stores load
a collection once at startup and write the complete collection back after
every mutation.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from quizclock.core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class Storage(Protocol):
    def load(self, collection: str) -> list[Record]: ...

    def save(self, collection: str, records: list[Record]) -> None: ...


class MemoryStorage:
    """Process-local storage; contents vanish when the process exits."""

    def __init__(self) -> None:
        self._collections: dict[str, list[Record]] = {}
        self._lock = Lock()

    def load(self, collection: str) -> list[Record]:
        with self._lock:
            return copy.deepcopy(self._collections.get(collection, []))

    def save(self, collection: str, records: list[Record]) -> None:
        with self._lock:
            self._collections[collection] = copy.deepcopy(records)


class JsonFileStorage:
    """Stores each collection as ``<data_dir>/<collection>.json``."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir.resolve()
        self._lock = Lock()

    def path_for(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    def load(self, collection: str) -> list[Record]:
        file_path = self.path_for(collection)
        with self._lock:
            if not file_path.exists():
                return []
            try:
                document = json.loads(file_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Failed to read collection %s from %s: %s", collection, file_path, exc)
                raise StorageUnavailableError(collection, str(exc)) from exc
        if not isinstance(document, list):
            raise StorageUnavailableError(collection, "expected a JSON array of records")
        return document

    def save(self, collection: str, records: list[Record]) -> None:
        file_path = self.path_for(collection)
        temp_path = file_path.with_suffix(".json.tmp")
        with self._lock:
            try:
                file_path.parent.mkdir(parents=True, exist_ok=True)
                temp_path.write_text(json.dumps(records, indent=2), encoding="utf-8")
                os.replace(temp_path, file_path)
            except OSError as exc:
                logger.warning("Failed to write collection %s to %s: %s", collection, file_path, exc)
                raise StorageUnavailableError(collection, str(exc)) from exc
