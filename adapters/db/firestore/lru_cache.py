"""Thread-safe LRU cache with TTL for hot-path lookups."""
from __future__ import annotations

import time
import threading
from collections import OrderedDict
from typing import Any, Optional, Tuple


class LRUCache:
    """Thread-safe LRU with TTL and versioned fills.

    - get(key) -> Optional[Any]
    - version() -> int
    - set_versioned(key, value, version) -> bool
    - delete(key) -> None

    A reader takes version() before loading from the backing store and fills
    with set_versioned(); the fill is refused when the key was deleted after
    that version was taken, so an invalidation always beats an older load.
    """

    def __init__(self, capacity: int = 128, ttl_s: int = 5) -> None:
        self._capacity = max(1, capacity)
        self._ttl_s = max(1, ttl_s)
        # (timestamp, value)
        self._data: OrderedDict[str, Tuple[float, Any]] = OrderedDict()
        # key -> sequence number of its latest delete, oldest first
        self._deleted_at: OrderedDict[str, int] = OrderedDict()
        self._seq = 0
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        now = time.monotonic()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            ts, value = item
            if now - ts > self._ttl_s:
                self._data.pop(key, None)
                return None
            self._data.move_to_end(key)
            return value

    def version(self) -> int:
        with self._lock:
            return self._seq

    def set_versioned(self, key: str, value: Any, version: int) -> bool:
        """Store value unless key was deleted after version; True when stored."""
        with self._lock:
            deleted_at = self._deleted_at.get(key)
            if deleted_at is not None and deleted_at > version:
                return False
            self._data[key] = (time.monotonic(), value)
            self._data.move_to_end(key)
            while len(self._data) > self._capacity:
                self._data.popitem(last=False)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
            self._seq += 1
            self._deleted_at[key] = self._seq
            self._deleted_at.move_to_end(key)
            # Tracking only has to outlive in-flight loads
            while len(self._deleted_at) > self._capacity * 4:
                self._deleted_at.popitem(last=False)
