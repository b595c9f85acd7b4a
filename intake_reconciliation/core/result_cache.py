"""
Time-to-live cache for reconciliation results.

The cache belongs to the calling layer, not to the matcher: it stores the
last computed result per context and date window, reports whether an entry
is stale, and is invalidated whenever a link is written.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

DEFAULT_TTL_SECONDS = 300


class ResultCache:
    """Keyed cache returning ``(value, is_stale)``."""

    def __init__(self,
                 ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Tuple[Optional[Any], bool]:
        """
        Look up a cached value.

        Returns:
            (value, is_stale); a missing entry is (None, True)
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None, True

        value, stored_at = entry
        return value, (self._clock() - stored_at) > self.ttl_seconds

    def put(self, key: str, value: Any):
        """Store a value, stamping it with the current time."""
        with self._lock:
            self._entries[key] = (value, self._clock())

    def invalidate(self, key: Optional[str] = None):
        """Drop one entry, or every entry when no key is given."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
