"""
Redis-backed counter store for rate limiting.

Increments run inside one MULTI/EXEC pipeline (INCR, EXPIRE NX, TTL), so the
counter and its window are created atomically and a concurrent increment can
never observe a counter without an expiry. EXPIRE NX only sets the expiry
when the key has none, which keeps the window fixed instead of sliding.
"""

import asyncio
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.app.services.counter_store import CounterStoreError, ICounterStore

logger = logging.getLogger(__name__)


class RedisCounterStore(ICounterStore):
    """Counter store implementation on redis.asyncio"""

    def __init__(self, redis_client: Redis, key_prefix: str = ""):
        self._redis = redis_client
        self._key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def increment_with_expiry(self, key: str, window_seconds: int) -> int:
        full_key = self._key(key)
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.incr(full_key)
            pipe.expire(full_key, window_seconds, nx=True)
            pipe.ttl(full_key)
            count, _, ttl = await pipe.execute()
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CounterStoreError(f"Failed to increment '{full_key}': {e}") from e

        if ttl == -1:
            # Key predates the window (e.g. written without expiry); bound it now
            logger.warning(f"Counter '{full_key}' had no expiry, applying {window_seconds}s")
            try:
                await self._redis.expire(full_key, window_seconds)
            except (RedisError, OSError, asyncio.TimeoutError) as e:
                raise CounterStoreError(f"Failed to set expiry on '{full_key}': {e}") from e

        return int(count)

    async def get_remaining_ttl(self, key: str) -> int:
        full_key = self._key(key)
        try:
            return int(await self._redis.ttl(full_key))
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CounterStoreError(f"Failed to read TTL of '{full_key}': {e}") from e

    async def peek(self, key: str) -> Optional[int]:
        full_key = self._key(key)
        try:
            value = await self._redis.get(full_key)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CounterStoreError(f"Failed to read '{full_key}': {e}") from e

        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return int(value)

    async def delete(self, key: str) -> bool:
        full_key = self._key(key)
        try:
            return await self._redis.delete(full_key) > 0
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CounterStoreError(f"Failed to delete '{full_key}': {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CounterStoreError(f"Ping failed: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()
