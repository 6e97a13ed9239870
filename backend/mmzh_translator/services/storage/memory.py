"""Process-local store used when no external backend is configured."""

import time

from mmzh_translator.services.storage.base import Clock, KeyValueStore


class MemoryStore(KeyValueStore):
    """Dict-backed store with passive TTL expiry.

    Safe under concurrent coroutines: no method awaits while holding
    partially updated state.
    """

    backend_name = "memory"

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._values: dict[str, tuple[str, float | None]] = {}
        self._lists: dict[str, tuple[list[str], float | None]] = {}

    def _expires_at(self, ttl: int | None) -> float | None:
        return self._clock() + ttl if ttl else None

    def _expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> str | None:
        row = self._values.get(key)
        if row is None:
            return None
        value, expires_at = row
        if self._expired(expires_at):
            self._values.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        self._values[key] = (value, self._expires_at(ttl))

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._lists.pop(key, None)

    async def push_capped(
        self,
        key: str,
        value: str,
        max_length: int,
        ttl: int | None = None,
    ) -> None:
        items = self._live_list(key)
        items.insert(0, value)
        del items[max_length:]
        self._lists[key] = (items, self._expires_at(ttl))

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = self._live_list(key)
        end = None if stop == -1 else stop + 1
        return items[start:end]

    async def check_health(self) -> bool:
        return True

    def _live_list(self, key: str) -> list[str]:
        row = self._lists.get(key)
        if row is None:
            return []
        items, expires_at = row
        if self._expired(expires_at):
            self._lists.pop(key, None)
            return []
        return items
