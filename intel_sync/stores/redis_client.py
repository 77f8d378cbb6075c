"""
Intel Sync — Redis Connection
──────────────────────────────
Lazily opened async client for the portfolio and UI-marker stores.

  REDIS_URL empty        → None, stores stay in memory
  connect/ping fails     → None, retried on the next connect()
  held client stops ping → dropped and reopened once
"""

import logging
from typing import Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from intel_sync.config import REDIS_URL

log = logging.getLogger("intel.stores")

CONNECT_TIMEOUT_S = 2


class RedisConnection:

    def __init__(self, url: str = REDIS_URL,
                 factory: Callable[..., aioredis.Redis] = aioredis.from_url):
        self.url      = url
        self._factory = factory
        self._client: Optional[aioredis.Redis] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> Optional[aioredis.Redis]:
        if not self.url:
            return None
        if self._client is not None:
            if await self._alive(self._client):
                return self._client
            log.info("redis: held connection stopped answering, reopening")
            self._client = None

        client = self._factory(self.url, decode_responses=True, socket_timeout=CONNECT_TIMEOUT_S)
        if not await self._alive(client):
            log.warning("redis: unreachable, portfolio and marker stores stay in memory")
            await client.aclose()
            return None
        self._client = client
        log.info("redis: connected")
        return client

    @staticmethod
    async def _alive(client: aioredis.Redis) -> bool:
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            log.debug(f"redis: ping failed ({e})")
            return False
        return True

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()


shared_redis = RedisConnection()
