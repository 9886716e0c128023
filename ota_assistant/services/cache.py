"""Thread-safe in-memory LRU cache with per-entry expiry.

Used for geocoding lookups: a city name resolves to the same coordinates
for the life of the process, but a bounded TTL keeps a wrong or stale
answer from living forever.  Entries are counted, not sized, because every
value stored here is a tiny tuple.

>>> cache = TTLCache(max_entries=2, ttl_seconds=60)
>>> cache.put("geo:dublin", (53.33, -6.25))
>>> cache.get("geo:dublin")
(53.33, -6.25)
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 512
DEFAULT_TTL_SECONDS = 24 * 60 * 60


class TTLCache:
    """Least-recently-used cache bounded by entry count and entry age."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        # key → (value, expires_at)
        self._store: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the live value for *key* (promoting it to MRU) or ``None``."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._store[key]
                logger.debug("Cache: expired %s", key)
                return None
            self._store.move_to_end(key)
            return value

    def put(self, key: str, value: Any) -> None:
        """Insert or overwrite *key*, evicting the LRU entry when full."""
        with self._lock:
            self._store.pop(key, None)
            while len(self._store) >= self._max_entries and self._store:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("Cache: evicted %s", evicted)
            self._store[key] = (value, self._clock() + self._ttl)

    def __len__(self) -> int:
        return len(self._store)
