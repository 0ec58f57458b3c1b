"""Storage interface for cache tables, plus the bounded FIFO implementation."""

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Hashable, Optional


class BaseCache(ABC):
    """
    Minimal mutable mapping used by the response cache.

    Any object implementing these three methods can serve as the store of
    cached responses, e.g. to persist responses across connections.
    """

    @abstractmethod
    def put(self, key: Hashable, value: Any) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def get(self, key: Hashable) -> Optional[Any]:
        """Value stored under ``key``, or None."""

    @abstractmethod
    def contains(self, key: Hashable) -> bool:
        """Whether ``key`` is stored."""


class FifoCache(BaseCache):
    """
    Mapping limited to ``max_size`` entries, evicting the oldest insertion.

    Overwriting a key keeps its original position. Inserts and evictions hold
    a lock, so the table stays consistent when shared across threads.
    """

    def __init__(self, max_size: int):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            return self._entries.get(key)

    def contains(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __contains__(self, key: Hashable) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<FifoCache size={len(self)} max_size={self.max_size}>"
