"""
Pluggable storage for services, staff, and bookings.

The engine only talks to the ``Repository`` protocol. ``InMemoryRepository``
is the reference implementation used by tests and the demo; a persistent
backend (SQL, document store) implements the same operations.
"""

import logging
import threading
from typing import Callable, Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class Repository(Protocol[T]):
    """Storage contract keyed by each model's ``id`` attribute."""

    def create(self, item: T) -> T: ...

    def get(self, item_id: str) -> Optional[T]: ...

    def update(self, item: T) -> T: ...

    def delete(self, item_id: str) -> bool: ...

    def query(self, predicate: Callable[[T], bool]) -> list[T]: ...

    def list(self) -> list[T]: ...


class InMemoryRepository(Generic[T]):
    """Dict-backed repository. Safe to share between threads."""

    def __init__(self, name: str = "items") -> None:
        self._name = name
        self._items: dict[str, T] = {}
        self._lock = threading.Lock()

    def create(self, item: T) -> T:
        item_id = item.id  # type: ignore[attr-defined]
        with self._lock:
            if item_id in self._items:
                raise KeyError(f"{self._name} '{item_id}' already exists")
            self._items[item_id] = item
        logger.debug("Created %s %s", self._name, item_id)
        return item

    def get(self, item_id: str) -> Optional[T]:
        with self._lock:
            return self._items.get(item_id)

    def update(self, item: T) -> T:
        item_id = item.id  # type: ignore[attr-defined]
        with self._lock:
            if item_id not in self._items:
                raise KeyError(f"{self._name} '{item_id}' not found")
            self._items[item_id] = item
        return item

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    def query(self, predicate: Callable[[T], bool]) -> list[T]:
        with self._lock:
            items = list(self._items.values())
        return [item for item in items if predicate(item)]

    def list(self) -> list[T]:
        with self._lock:
            return list(self._items.values())
