"""
Intel Sync — Freshness Cache
─────────────────────────────
Process-wide key/value store of previously fetched payloads.

Two read paths:
  get_fresh(key)  payload only while now < expires_at
  get_stale(key)  payload regardless of expiry (degraded-mode serving only)

Entries are never deleted or swept; a write always replaces the whole entry,
so readers never observe a partial update and no lock is needed.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

log = logging.getLogger("intel.cache")


@dataclass(frozen=True)
class CacheEntry:
    key:        str
    payload:    Any
    expires_at: float
    stored_at:  float


class FreshnessCache:

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get_fresh(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry and self._clock() < entry.expires_at:
            return entry.payload
        return None

    def get_stale(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        return entry.payload if entry else None

    def age_seconds(self, key: str) -> Optional[float]:
        """Seconds since the entry for key was written, or None if never written."""
        entry = self._entries.get(key)
        if not entry:
            return None
        return max(0.0, self._clock() - entry.stored_at)

    def put(self, key: str, payload: Any, ttl: float) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(key=key, payload=payload,
                                        expires_at=now + ttl, stored_at=now)
        log.debug(f"cache put {key} (ttl={ttl}s)")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# Shared across every gateway and request in the process
shared_cache = FreshnessCache()
