"""Keyed registries for tracker sessions and rollback snapshots."""

from abc import ABC, abstractmethod
from typing import Dict, Generic, List, Optional, TypeVar
import threading

from ..models.migration import MigrationSession
from ..models.rollback import RollbackSnapshot

T = TypeVar("T")


class BaseRegistry(ABC, Generic[T]):
    """
    Upsert-by-key storage for advisory records.

    Implementations may be durable or not; callers only rely on
    ``save`` replacing any prior value stored under the same key.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        pass

    @abstractmethod
    def save(self, key: str, value: T) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def values(self) -> List[T]:
        pass

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.values())


class InMemoryRegistry(BaseRegistry[T]):
    """Process-local registry. Contents are lost on restart."""

    def __init__(self):
        self._items: Dict[str, T] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            return self._items.get(key)

    def save(self, key: str, value: T) -> None:
        with self._lock:
            self._items[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    def values(self) -> List[T]:
        with self._lock:
            return list(self._items.values())


SessionRegistry = BaseRegistry[MigrationSession]
SnapshotRegistry = BaseRegistry[RollbackSnapshot]
