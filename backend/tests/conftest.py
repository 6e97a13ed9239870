"""Test configuration and fixtures.

Provides isolated test fixtures for:
- A controllable clock and in-memory store
- A scripted LLM adapter that never touches the network
- Translation gateway wired on top of both
- HTTP client with dependency overrides
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mmzh_translator.core.exceptions import LLMProviderError, StoreError
from mmzh_translator.main import app
from mmzh_translator.services.cache import TranslationCache
from mmzh_translator.services.cooldown import CooldownTracker
from mmzh_translator.services.history import TranslationHistory
from mmzh_translator.services.llm import LLMAdapter, ModelInfo
from mmzh_translator.services.retry import RetryPolicy
from mmzh_translator.services.storage import MemoryStore
from mmzh_translator.services.translator import TranslationGateway, get_translation_gateway


# =============================================================================
# Helpers
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAdapter(LLMAdapter):
    """Adapter that replays a script of steps, one per ``start_stream`` call.

    A step is either an exception (raised when the request is opened) or a
    list of fragments; an exception inside that list is raised mid-stream.
    The last step repeats once the script runs out.
    """

    provider_name = "fake"

    def __init__(self, *script: Any):
        self.script: list[Any] = list(script) or [["你好"]]
        self.calls = 0
        self.prompts: list[str] = []
        self.closed_streams = 0

    def get_available_models(self) -> list[ModelInfo]:
        return [ModelInfo("fake-model", "Fake", "fake")]

    async def start_stream(self, prompt: str, model: str):
        self.calls += 1
        self.prompts.append(prompt)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, BaseException):
            raise step
        return self._fragments(step)

    async def _fragments(self, items: list[Any]):
        try:
            for item in items:
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.closed_streams += 1


class FlakyStore(MemoryStore):
    """Memory store posing as an external backend that can be switched off."""

    backend_name = "flaky"

    def __init__(self, clock: Callable[[], float]):
        super().__init__(clock)
        self.fail = False

    @property
    def is_external(self) -> bool:
        return True

    def _check(self) -> None:
        if self.fail:
            raise StoreError("backend down")

    async def get(self, key: str) -> str | None:
        self._check()
        return await super().get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        self._check()
        await super().set(key, value, ttl)

    async def push_capped(self, key: str, value: str, max_length: int, ttl: int | None = None) -> None:
        self._check()
        await super().push_capped(key, value, max_length, ttl)

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        self._check()
        return await super().lrange(key, start, stop)

    async def check_health(self) -> bool:
        return not self.fail


def upstream_error(status: int, text: str = "", message: str = "upstream failed") -> LLMProviderError:
    return LLMProviderError("fake", message, upstream_status=status, status_text=text or None)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock)


@pytest.fixture
def flaky_store(clock: FakeClock) -> FlakyStore:
    return FlakyStore(clock)


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep that records the requested delays."""
    return AsyncMock()


@pytest.fixture
def make_gateway(clock: FakeClock, store: MemoryStore, no_sleep: AsyncMock):
    """Factory building a gateway around a scripted adapter."""

    def _make(*script: Any, backend: MemoryStore | None = None, **kwargs: Any) -> TranslationGateway:
        kv = backend or store
        options: dict[str, Any] = {
            "retry_policy": RetryPolicy(base_delay_ms=1000, max_delay_ms=10000, max_retries=3),
            "max_length": 2000,
            "sleep": no_sleep,
        }
        options.update(kwargs)
        return TranslationGateway(
            adapter=FakeAdapter(*script),
            model="fake-model",
            cache=TranslationCache(kv, ttl_seconds=86400, clock=clock),
            cooldowns=CooldownTracker(kv, cooldown_seconds=5, clock=clock),
            history=TranslationHistory(kv, max_items=50, clock=clock),
            **options,
        )

    return _make


@pytest.fixture
def gateway(make_gateway) -> TranslationGateway:
    return make_gateway(["你好", "世界"])


@pytest_asyncio.fixture(scope="function")
async def client(gateway: TranslationGateway) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with the gateway overridden."""
    app.dependency_overrides[get_translation_gateway] = lambda: gateway

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
