"""
Redis-backed profile cache.

User profiles are cached under ``user-{id}`` until a membership change
drops the entry. Redis is optional: when it is unreachable every read is
a miss and every write is skipped, so callers go straight to MongoDB.
"""

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, TypeVar

import redis.asyncio as redis
from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from redis.asyncio.connection import ConnectionPool

from app.core.config import settings
from app.core.metrics import (
    cache_hits_total,
    cache_invalidations_total,
    cache_misses_total,
)

if TYPE_CHECKING:
    from app.services.events import MembershipChanged

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
    """Thin async wrapper around one pooled Redis client."""

    def __init__(self):
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._available: bool = True
        self._lock = asyncio.Lock()

    async def _connect(self) -> redis.Redis:
        async with self._lock:
            if self._client is not None:
                return self._client
            pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
            )
            client = redis.Redis(connection_pool=pool)
            try:
                await client.ping()
            except redis.RedisError:
                await pool.disconnect()
                self._available = False
                logger.warning("Redis at %s unreachable, profile cache disabled", settings.REDIS_URL)
                raise
            self._pool, self._client = pool, client
            self._available = True
            logger.info("Connected to Redis profile cache")
            return client

    async def get_client(self) -> redis.Redis:
        if self._client is not None:
            return self._client
        return await self._connect()

    async def _run(
        self,
        action: str,
        key: str,
        call: Callable[[redis.Redis], Awaitable[T]],
        fallback: T,
    ) -> T:
        """Run one Redis call, turning any cache failure into ``fallback``."""
        if not self._available:
            return fallback
        try:
            return await call(await self.get_client())
        except redis.ConnectionError:
            logger.warning("Lost Redis connection during %s, disabling cache", action)
            self._available = False
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning("Cache %s failed for %s: %s", action, key, e)
        return fallback

    def _key(self, key: str) -> str:
        return settings.CACHE_PREFIX + key

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._run("get", key, lambda c: c.get(self._key(key)), None)
        if raw is None:
            if self._available:
                cache_misses_total.inc()
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None
        cache_hits_total.inc()
        return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store ``value`` encoded the way FastAPI renders it, ISO datetimes included."""
        ttl = ttl_seconds or settings.PROFILE_CACHE_TTL_SECONDS

        async def _write(client: redis.Redis) -> bool:
            payload = jsonable_encoder(value, custom_encoder={ObjectId: str})
            await client.setex(self._key(key), ttl, json.dumps(payload))
            return True

        return await self._run("set", key, _write, False)

    async def exists(self, key: str) -> bool:
        async def _exists(client: redis.Redis) -> bool:
            return bool(await client.exists(self._key(key)))

        return await self._run("exists", key, _exists, False)

    async def delete(self, key: str) -> bool:
        async def _delete(client: redis.Redis) -> bool:
            await client.delete(self._key(key))
            return True

        return await self._run("delete", key, _delete, False)

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[Any]],
        ttl_seconds: Optional[int] = None,
    ) -> Any:
        """
        Serve ``key`` from Redis, or call ``fetch_fn`` and cache its result.

        ``None`` results are not cached. Errors from ``fetch_fn`` propagate.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        data = await fetch_fn()
        if data is not None:
            await self.set(key, data, ttl_seconds)
        return data

    async def health_check(self) -> Dict[str, Any]:
        try:
            client = await self.get_client()
            keys = await client.dbsize()
        except redis.RedisError as e:
            return {"status": "unhealthy", "available": False, "error": str(e)}
        return {"status": "healthy", "available": self._available, "total_keys": keys}

    async def close(self) -> None:
        client, pool = self._client, self._pool
        self._client = self._pool = None
        if client is not None:
            await client.aclose()
        if pool is not None:
            await pool.disconnect()


cache_service = CacheService()


class CacheTTL:
    USER_PROFILE = settings.PROFILE_CACHE_TTL_SECONDS


class CacheKeys:
    @staticmethod
    def user_profile(user_id: str) -> str:
        return f"user-{user_id}"


class ProfileCache:
    """
    Per-user profile entries.

    Registered on the membership event bus at startup so a cached profile
    never outlives a change to its team set.
    """

    def __init__(self, cache: CacheService = cache_service):
        self.cache = cache

    async def has(self, user_id: str) -> bool:
        return await self.cache.exists(CacheKeys.user_profile(user_id))

    async def invalidate(self, user_id: str) -> bool:
        """Drop the cached profile. Returns False when nothing was cached."""
        if not await self.has(user_id):
            return False
        removed = await self.cache.delete(CacheKeys.user_profile(user_id))
        if removed:
            cache_invalidations_total.inc()
        return removed

    async def get_or_fetch(self, user_id: str, fetch_fn: Callable[[], Awaitable[Any]]) -> Any:
        return await self.cache.get_or_fetch(
            CacheKeys.user_profile(user_id), fetch_fn, CacheTTL.USER_PROFILE
        )

    async def on_membership_changed(self, event: "MembershipChanged") -> None:
        for user_id in event.user_ids:
            await self.invalidate(user_id)


profile_cache = ProfileCache()
