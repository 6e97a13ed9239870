"""Key-value store interface shared by the in-memory and Redis backends."""

from abc import ABC, abstractmethod
from collections.abc import Callable

Clock = Callable[[], float]


def make_key(prefix: str, *parts: str | int) -> str:
    """Create a store key from prefix and parts."""
    return f"{prefix}:{':'.join(str(p) for p in parts)}"


class KeyValueStore(ABC):
    """Minimal async key-value store.

    Implementations raise ``StoreError`` when the backend fails. Callers
    decide how to degrade; the store itself never swallows errors.
    """

    backend_name: str = "base"

    @property
    def is_external(self) -> bool:
        """Whether the data lives outside this process."""
        return False

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get a value, or None if absent or expired."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Set a value with optional TTL in seconds."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a value."""
        ...

    @abstractmethod
    async def push_capped(
        self,
        key: str,
        value: str,
        max_length: int,
        ttl: int | None = None,
    ) -> None:
        """Push to the head of a list and trim it to ``max_length`` items."""
        ...

    @abstractmethod
    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        """Get a range of list elements (inclusive ``stop``, Redis semantics)."""
        ...

    @abstractmethod
    async def check_health(self) -> bool:
        """Check backend connectivity."""
        ...

    async def close(self) -> None:
        """Release backend connections."""
        return None
