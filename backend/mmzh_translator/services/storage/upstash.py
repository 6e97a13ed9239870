"""Upstash Redis backend (REST API, async client)."""

import asyncio

from upstash_redis.asyncio import Redis

from mmzh_translator.core.exceptions import StoreError
from mmzh_translator.core.logging import get_logger
from mmzh_translator.services.storage.base import KeyValueStore

logger = get_logger(__name__)


class UpstashStore(KeyValueStore):
    """Key-value store on Upstash Redis.

    Every backend failure is re-raised as ``StoreError`` so callers can
    degrade without knowing about the Redis client's exception types.
    """

    backend_name = "upstash"

    def __init__(self, url: str, token: str, client: Redis | None = None) -> None:
        self._client = client or Redis(url=url, token=token)
        logger.info("Upstash store initialized")

    @property
    def is_external(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        try:
            result = await self._client.get(key)
        except Exception as e:
            raise StoreError(f"get failed for {key}: {e}") from e
        return result if isinstance(result, str) else None

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        try:
            if ttl:
                await self._client.set(key, value, ex=ttl)
            else:
                await self._client.set(key, value)
        except Exception as e:
            raise StoreError(f"set failed for {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except Exception as e:
            raise StoreError(f"delete failed for {key}: {e}") from e

    async def push_capped(
        self,
        key: str,
        value: str,
        max_length: int,
        ttl: int | None = None,
    ) -> None:
        try:
            await self._client.lpush(key, value)
            await self._client.ltrim(key, 0, max_length - 1)
            if ttl:
                await self._client.expire(key, ttl)
        except Exception as e:
            raise StoreError(f"push failed for {key}: {e}") from e

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        try:
            result = await self._client.lrange(key, start, stop)
        except Exception as e:
            raise StoreError(f"lrange failed for {key}: {e}") from e
        return list(result) if result else []

    async def check_health(self, timeout: float = 5.0) -> bool:
        """Check Redis connectivity with timeout."""
        try:
            result = await asyncio.wait_for(self._client.ping(), timeout=timeout)
            return bool(result)
        except asyncio.TimeoutError:
            logger.error("Redis health check timed out", timeout=timeout)
            return False
        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return False

    async def close(self) -> None:
        try:
            await self._client.close()
        except Exception as e:
            logger.debug("Upstash client close failed", error=str(e))
