"""Shared keyed-record storage used by the catalog and attempt stores."""

from __future__ import annotations

import copy
from threading import RLock
from typing import Callable, Generic, Iterable, TypeVar
from uuid import uuid4

from quizclock.core.services.storage import Record, Storage

T = TypeVar("T")


class RecordStore(Generic[T]):
    """Keeps one collection in memory and writes it back in full on every change.

    Memory is only updated after the substrate accepted the write, so a failed
    save leaves the store exactly as it was.
    """

    def __init__(
        self,
        storage: Storage,
        collection: str,
        to_record: Callable[[T], Record],
        from_record: Callable[[Record], T],
    ) -> None:
        self._storage = storage
        self._collection = collection
        self._to_record = to_record
        self._from_record = from_record
        self._lock = RLock()
        self._items: dict[str, T] = {}
        self.reload()

    @property
    def collection(self) -> str:
        return self._collection

    def reload(self) -> None:
        """Replace the in-memory state with the collection as stored."""
        records = self._storage.load(self._collection)
        with self._lock:
            self._items = {record["id"]: self._from_record(record) for record in records}

    def get(self, item_id: str) -> T | None:
        with self._lock:
            item = self._items.get(item_id)
            return copy.deepcopy(item) if item is not None else None

    def list(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        with self._lock:
            items = [item for item in self._items.values() if predicate is None or predicate(item)]
            return copy.deepcopy(items)

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _new_id(self) -> str:
        item_id = uuid4().hex
        while item_id in self._items:
            item_id = uuid4().hex
        return item_id

    def _commit(self, items: dict[str, T]) -> None:
        self._storage.save(self._collection, [self._to_record(item) for item in items.values()])
        self._items = items

    def _put(self, item_id: str, item: T) -> T:
        with self._lock:
            items = dict(self._items)
            items[item_id] = copy.deepcopy(item)
            self._commit(items)
            return copy.deepcopy(item)

    def _remove(self, item_ids: Iterable[str]) -> int:
        with self._lock:
            doomed = [item_id for item_id in item_ids if item_id in self._items]
            if not doomed:
                return 0
            items = {k: v for k, v in self._items.items() if k not in doomed}
            self._commit(items)
            return len(doomed)
