"""Cache port — the get/set/invalidate surface read paths depend on."""

from abc import ABC, abstractmethod
from typing import Any


class CachePort(ABC):
    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ...

    @abstractmethod
    def invalidate(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``. Returns how many were dropped."""
        ...

    @abstractmethod
    def flush(self) -> None:
        ...
