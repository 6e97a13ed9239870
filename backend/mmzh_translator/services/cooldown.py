"""Per-caller cooldown between billable (non-cached) translations.

Fails open: if the store cannot be read the caller is treated as not in
cooldown, since availability matters more than strict enforcement here.
"""

import math
import time

from mmzh_translator.core.exceptions import StoreError
from mmzh_translator.core.logging import get_logger
from mmzh_translator.services.storage import KEY_PREFIX_COOLDOWN, Clock, KeyValueStore, make_key

logger = get_logger(__name__)


class CooldownTracker:
    """Tracks the last billable translation time per caller."""

    def __init__(
        self,
        store: KeyValueStore,
        cooldown_seconds: int,
        clock: Clock = time.time,
    ) -> None:
        self._store = store
        self._window = cooldown_seconds
        self._clock = clock

    @property
    def cooldown_seconds(self) -> int:
        return self._window

    def _key(self, caller_id: str) -> str:
        return make_key(KEY_PREFIX_COOLDOWN, caller_id)

    async def remaining(self, caller_id: str) -> int:
        """Seconds the caller must still wait, rounded up; 0 if free."""
        if self._window <= 0:
            return 0

        try:
            raw = await self._store.get(self._key(caller_id))
        except StoreError as e:
            logger.warning("Cooldown read failed, allowing request", caller_id=caller_id, error=e.message)
            return 0

        if raw is None:
            return 0
        try:
            last = float(raw)
        except ValueError:
            logger.debug("Discarding malformed cooldown record", caller_id=caller_id)
            return 0

        elapsed = self._clock() - last
        if elapsed >= self._window:
            return 0
        # Clamped so clock skew between writers never exceeds the window
        return min(self._window, max(1, math.ceil(self._window - elapsed)))

    async def touch(self, caller_id: str) -> bool:
        """Record a billable translation now. Returns False on write failure."""
        if self._window <= 0:
            return True

        try:
            await self._store.set(self._key(caller_id), repr(self._clock()), ttl=self._window)
        except StoreError as e:
            logger.warning("Cooldown write failed", caller_id=caller_id, error=e.message)
            return False
        return True
