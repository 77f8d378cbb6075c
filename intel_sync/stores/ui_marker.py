"""
Intel Sync — Persisted UI Marker
─────────────────────────────────
When the user last acknowledged alert notifications (epoch seconds).
Written by the UI; this package only reads it.
"""

import logging
from typing import Dict, Optional, Protocol

import redis.asyncio as aioredis

log = logging.getLogger("intel.stores")


class MarkerStore(Protocol):

    async def last_seen(self, user_id: str) -> Optional[float]: ...


class InMemoryMarkerStore:

    def __init__(self, values: Optional[Dict[str, float]] = None):
        self._values = dict(values or {})

    async def last_seen(self, user_id: str) -> Optional[float]:
        return self._values.get(user_id)


def key_last_seen(user_id: str) -> str:
    return f"ui:alerts_last_seen:{user_id}"


class RedisMarkerStore:

    def __init__(self, client: aioredis.Redis):
        self._r = client

    async def last_seen(self, user_id: str) -> Optional[float]:
        raw = await self._r.get(key_last_seen(user_id))
        if raw is None:
            return None
        try:
            return float(raw)
        except (TypeError, ValueError):
            log.warning(f"{key_last_seen(user_id)}: not a timestamp ({raw!r})")
            return None
