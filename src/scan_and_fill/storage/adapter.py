"""Abstract key-value store behind every cache. Swap JSON files for something else later."""

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> dict[str, Any] | None:
        """Return the record stored under ``key``, or None."""

    @abstractmethod
    def put(self, key: str, record: dict[str, Any]) -> None:
        """Insert or replace a record."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a record. Returns True if it existed."""

    @abstractmethod
    def clear(self) -> int:
        """Remove every record. Returns the number removed."""

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys."""

    def __len__(self) -> int:
        return len(self.keys())
