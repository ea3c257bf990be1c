"""Redis adapter - async key-value store via redis.asyncio."""

from __future__ import annotations

import asyncio

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

log = structlog.get_logger(__name__)


class RedisAdapter:
    """Async Redis store for text values (JSON documents).

    - Keys are namespaced with ``key_prefix`` so a shared DB stays tidy.
    - Semaphore limits parallel Redis ops (prevents connection exhaustion).
    - Backend errors are logged and re-raised; callers decide how to degrade.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 3600,
        max_concurrent: int = 50,
        key_prefix: str = "castarr:",
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self.key_prefix = key_prefix
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _require_client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis not initialized. Use 'async with cache:'")
        return self._client

    async def __aenter__(self) -> RedisAdapter:
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=True)
            try:
                await self._client.ping()
            except RedisError as e:
                log.error("redis_connection_failed", url=self.url, error=str(e))
                raise
            log.info("redis_connected", url=self.url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.info("redis_closed")

    async def get(self, key: str) -> str | None:
        client = self._require_client()
        async with self._semaphore:
            try:
                value = await client.get(self._key(key))
            except RedisError as e:
                log.error("redis_get_error", key=key, error=str(e))
                raise
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: str, *, ttl: int | None = None) -> None:
        client = self._require_client()
        expire_time = ttl if ttl is not None else self.default_ttl
        async with self._semaphore:
            try:
                await client.set(self._key(key), value, ex=expire_time or None)
            except RedisError as e:
                log.error("redis_set_error", key=key, error=str(e))
                raise
        log.debug("cache_set", key=key, ttl=expire_time)

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        async with self._semaphore:
            deleted = await self._client.delete(self._key(key))
        return deleted > 0

    async def exists(self, key: str) -> bool:
        if self._client is None:
            return False
        async with self._semaphore:
            return await self._client.exists(self._key(key)) > 0

    async def clear(self) -> None:
        """Delete every key under ``key_prefix`` (never FLUSHDB)."""
        if self._client is None:
            return
        async with self._semaphore:
            async for key in self._client.scan_iter(match=f"{self.key_prefix}*"):
                await self._client.delete(key)
        log.warning("redis_cleared", prefix=self.key_prefix)
