"""Translation cache keyed by source text, shared by all callers.

Entries carry their creation time and are valid only while
``now - created_at < ttl``; nothing is ever deleted explicitly.

When the store is external (Upstash) it is authoritative. Every ``set`` is
also mirrored into a process-local ``MemoryStore`` which is read only when
the external backend fails, so a flaky backend still serves hits written
by this process.
"""

import hashlib
import time
from dataclasses import dataclass

import orjson

from mmzh_translator.core.exceptions import StoreError
from mmzh_translator.core.logging import get_logger
from mmzh_translator.services.storage import (
    KEY_PREFIX_TRANSLATION,
    TTL_TRANSLATION,
    Clock,
    KeyValueStore,
    MemoryStore,
    make_key,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached translation and when it was produced."""

    translation: str
    created_at: float

    def is_valid(self, now: float, ttl_seconds: int) -> bool:
        return now - self.created_at < ttl_seconds

    def dumps(self) -> str:
        return orjson.dumps(
            {"translation": self.translation, "created_at": self.created_at}
        ).decode()

    @classmethod
    def loads(cls, raw: str) -> "CacheEntry | None":
        try:
            data = orjson.loads(raw)
            return cls(translation=str(data["translation"]), created_at=float(data["created_at"]))
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError):
            return None


def translation_key(source_text: str) -> str:
    """Store key for a (trimmed) source text."""
    digest = hashlib.sha256(source_text.strip().encode("utf-8")).hexdigest()
    return make_key(KEY_PREFIX_TRANSLATION, digest)


class TranslationCache:
    """Get/set translations with TTL and degrade-on-failure semantics."""

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = TTL_TRANSLATION,
        clock: Clock = time.time,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._local: MemoryStore | None = MemoryStore(clock) if store.is_external else None

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    async def get(self, source_text: str) -> str | None:
        """Return the cached translation, or None on miss, expiry or failure."""
        key = translation_key(source_text)
        try:
            raw = await self._store.get(key)
        except StoreError as e:
            logger.warning("Cache read failed, using local fallback", error=e.message)
            raw = await self._local.get(key) if self._local else None

        if raw is None:
            return None

        entry = CacheEntry.loads(raw)
        if entry is None:
            logger.debug("Discarding malformed cache entry", key=key)
            return None
        if not entry.is_valid(self._clock(), self._ttl):
            return None
        return entry.translation

    async def set(self, source_text: str, translation: str, ttl_seconds: int | None = None) -> bool:
        """Store a translation. Returns False if the backend write failed."""
        ttl = ttl_seconds or self._ttl
        key = translation_key(source_text)
        raw = CacheEntry(translation=translation, created_at=self._clock()).dumps()

        if self._local is not None:
            await self._local.set(key, raw, ttl)

        try:
            await self._store.set(key, raw, ttl)
        except StoreError as e:
            logger.warning("Cache write failed", error=e.message)
            return False
        return True
