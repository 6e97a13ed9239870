"""Per-caller translation history, newest first."""

import time
from dataclasses import asdict, dataclass

import orjson

from mmzh_translator.core.exceptions import StoreError
from mmzh_translator.core.logging import get_logger
from mmzh_translator.services.storage import (
    KEY_PREFIX_HISTORY,
    TTL_HISTORY,
    Clock,
    KeyValueStore,
    make_key,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class HistoryRecord:
    original_text: str
    translated_text: str
    created_at: float


class TranslationHistory:
    """Capped list of a caller's successful translations."""

    def __init__(
        self,
        store: KeyValueStore,
        max_items: int = 50,
        clock: Clock = time.time,
    ) -> None:
        self._store = store
        self._max_items = max_items
        self._clock = clock

    def _key(self, caller_id: str) -> str:
        return make_key(KEY_PREFIX_HISTORY, caller_id)

    async def record(self, caller_id: str, original_text: str, translated_text: str) -> bool:
        """Prepend a record. Returns False on write failure."""
        record = HistoryRecord(
            original_text=original_text,
            translated_text=translated_text,
            created_at=self._clock(),
        )
        try:
            await self._store.push_capped(
                self._key(caller_id),
                orjson.dumps(asdict(record)).decode(),
                self._max_items,
                ttl=TTL_HISTORY,
            )
        except StoreError as e:
            logger.warning("History write failed", caller_id=caller_id, error=e.message)
            return False
        return True

    async def recent(self, caller_id: str, limit: int | None = None) -> list[HistoryRecord]:
        """Most recent records first; empty on read failure."""
        count = min(limit or self._max_items, self._max_items)
        try:
            rows = await self._store.lrange(self._key(caller_id), 0, count - 1)
        except StoreError as e:
            logger.warning("History read failed", caller_id=caller_id, error=e.message)
            return []

        records: list[HistoryRecord] = []
        for row in rows:
            try:
                records.append(HistoryRecord(**orjson.loads(row)))
            except (orjson.JSONDecodeError, TypeError):
                logger.debug("Skipping malformed history row", caller_id=caller_id)
        return records
