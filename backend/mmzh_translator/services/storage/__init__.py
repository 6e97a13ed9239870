"""Key-value storage backends.

One interface, two implementations selected at startup:
- MemoryStore: process-local dict with passive TTL expiry
- UpstashStore: Upstash Redis over its REST API

The translation cache, cooldown tracker and history all sit on top of
whichever store ``get_store()`` returns.
"""

from mmzh_translator.core.config import get_settings
from mmzh_translator.core.logging import get_logger
from mmzh_translator.services.storage.base import Clock, KeyValueStore, make_key
from mmzh_translator.services.storage.constants import (
    KEY_PREFIX_COOLDOWN,
    KEY_PREFIX_HISTORY,
    KEY_PREFIX_TRANSLATION,
    TTL_HISTORY,
    TTL_TRANSLATION,
)
from mmzh_translator.services.storage.memory import MemoryStore
from mmzh_translator.services.storage.upstash import UpstashStore

logger = get_logger(__name__)

__all__ = [
    "Clock",
    "KeyValueStore",
    "MemoryStore",
    "UpstashStore",
    "make_key",
    "get_store",
    "KEY_PREFIX_COOLDOWN",
    "KEY_PREFIX_HISTORY",
    "KEY_PREFIX_TRANSLATION",
    "TTL_HISTORY",
    "TTL_TRANSLATION",
]

# Global store instance
_store: KeyValueStore | None = None


def get_store() -> KeyValueStore:
    """Get or create the global store selected from settings."""
    global _store

    if _store is None:
        settings = get_settings()
        if settings.redis_available:
            try:
                _store = UpstashStore(
                    url=settings.upstash_redis_rest_url,
                    token=settings.upstash_redis_rest_token,
                )
            except Exception as e:
                logger.warning("Failed to initialize Upstash store, using memory", error=str(e))
                _store = MemoryStore()
        else:
            logger.info("Redis not configured, using in-process memory store")
            _store = MemoryStore()

    return _store
