"""Ephemeral key-value store holding each user's active refresh token."""

import logging
import time
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def get(self, key: str) -> str | None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def compare_and_set(self, key: str, expected: str, value: str, ttl_seconds: int) -> bool:
        """Replace ``key`` with ``value`` only if it currently holds ``expected``."""
        ...

    async def close(self) -> None:
        ...


class RedisTokenStore:
    """Thin Redis wrapper. Errors are logged with the key and re-raised."""

    # Atomic compare-and-set: concurrent rotations of one token cannot both win
    _CAS_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if current == ARGV[1] then
  redis.call('SET', KEYS[1], ARGV[2], 'EX', tonumber(ARGV[3]))
  return 1
end
return 0
"""

    def __init__(self, redis_url: str, *, password: str | None = None, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.client = aioredis.from_url(
            redis_url,
            password=password,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        self._cas = self.client.register_script(self._CAS_SCRIPT)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_seconds)
        except RedisError:
            logger.error("Redis SET error for key %s", key)
            raise

    async def get(self, key: str) -> str | None:
        try:
            return await self.client.get(key)
        except RedisError:
            logger.error("Redis GET error for key %s", key)
            raise

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError:
            logger.error("Redis DEL error for key %s", key)
            raise

    async def compare_and_set(self, key: str, expected: str, value: str, ttl_seconds: int) -> bool:
        try:
            swapped = await self._cas(keys=[key], args=[expected, value, ttl_seconds])
        except RedisError:
            logger.error("Redis CAS error for key %s", key)
            raise
        return bool(int(swapped))

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


class MemoryTokenStore:
    """In-process store with TTLs, for development and tests.

    No method awaits between reading and writing, so each call is atomic on
    the event loop.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}

    def _live(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, deadline = entry
        if deadline <= self._clock():
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def compare_and_set(self, key: str, expected: str, value: str, ttl_seconds: int) -> bool:
        if self._live(key) != expected:
            return False
        self._data[key] = (value, self._clock() + ttl_seconds)
        return True

    async def close(self) -> None:
        self._data.clear()
