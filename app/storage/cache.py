"""
Keyed in-memory cache with a per-entry TTL.
Owned by a repository; the scoring engine never sees it.
"""
import time
from typing import Any, Dict, Optional, Tuple


class MatchCache:
    def __init__(self, ttl_seconds: int = 30):
        self.ttl_seconds = ttl_seconds
        # key -> (expires_at_epoch, value)
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        item = self._entries.get(key)
        if not item:
            return None

        expires_at, value = item
        if time.time() > expires_at:
            self._entries.pop(key, None)
            return None

        return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[key] = (time.time() + self.ttl_seconds, value)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self):
        return len(self._entries)
