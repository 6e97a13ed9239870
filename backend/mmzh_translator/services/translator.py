"""Translation Gateway - cached, rate-limited, retrying LLM translation.

Coordinates one translation request between:
- Validation (length bounds and an unsafe-content denylist)
- Translation cache (global, keyed by trimmed source text)
- Cooldown tracker (per-caller spacing between billable requests)
- LLM adapter (retry-wrapped streaming request)
- Fallback glossary (static terms when upstream fails)
- Translation history (per-caller record of successful translations)

A cache hit returns before the cooldown is read or written, so repeated
identical requests are always free. Only ``ValidationError`` and
``CooldownActiveError`` are raised; upstream failures are turned into a
readable text stream.
"""

import asyncio
import re
import time
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from mmzh_translator.core.config import get_settings
from mmzh_translator.core.exceptions import CooldownActiveError, ValidationError
from mmzh_translator.core.logging import get_logger
from mmzh_translator.services.cache import TranslationCache
from mmzh_translator.services.cooldown import CooldownTracker
from mmzh_translator.services.glossary import FallbackGlossary
from mmzh_translator.services.history import TranslationHistory
from mmzh_translator.services.llm import LLMAdapter, get_llm_service
from mmzh_translator.services.prompts import build_translation_prompt
from mmzh_translator.services.retry import (
    ErrorKind,
    RetryPolicy,
    classify_error,
    error_status,
    is_service_unavailable,
    run_with_retry,
)
from mmzh_translator.services.storage import get_store

logger = get_logger(__name__)

UNSAFE_PATTERNS = (
    re.compile(r"<\s*script", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"<[^>]*\bon[a-z]+\s*=", re.IGNORECASE),
)

MESSAGE_SERVICE_UNAVAILABLE = (
    "ဝန်ဆောင်မှုယာယီမရရှိနိုင်ပါ။ ခဏစောင့်ပြီးပြန်လည်ကြိုးစားပေးပါ။ / 服务暂时不可用，请稍后重试。"
)
MESSAGE_RATE_LIMITED = "တောင်းဆိုမှုများလွန်းပါသည်။ ခဏစောင့်ပေးပါ။ / 请求过于频繁，请稍后重试。"
MESSAGE_BAD_REQUEST = "တောင်းဆိုမှုမှားယွင်းနေပါသည်။ / 请求格式错误。"
MESSAGE_UNAUTHORIZED = "ခွင့်ပြုချက်ပြဿနာရှိနေပါသည်။ / 权限验证失败。"
MESSAGE_GENERIC = (
    "ယာယီဘာသာပြန်ဆောင်ရွက်၍မရပါ။ ခဏစောင့်ပြီးပြန်လည်ကြိုးစားပေးပါ။ / 翻译服务暂时不可用，请稍后重试。"
)


class TranslationSource(str, Enum):
    """Where the text of a translation stream comes from."""

    CACHE = "cache"
    UPSTREAM = "upstream"
    FALLBACK = "fallback"
    ERROR = "error"


@dataclass
class TranslationStream:
    """Incremental translation output.

    Iterating yields text fragments; exhaustion is the end-of-output signal.
    """

    source: TranslationSource
    fragments: AsyncGenerator[str, None]

    def __aiter__(self) -> AsyncIterator[str]:
        return self.fragments.__aiter__()

    async def aclose(self) -> None:
        await self.fragments.aclose()

    async def read_all(self) -> str:
        """Drain the stream into one string."""
        return "".join([fragment async for fragment in self.fragments])


def user_facing_message(exc: BaseException) -> str:
    """Pick the fixed bilingual message shown for an upstream failure."""
    status = error_status(exc)
    if is_service_unavailable(exc):
        return MESSAGE_SERVICE_UNAVAILABLE
    if status == 429:
        return MESSAGE_RATE_LIMITED
    if status == 400:
        return MESSAGE_BAD_REQUEST
    if status in (401, 403) or classify_error(exc) is ErrorKind.FATAL:
        return MESSAGE_UNAUTHORIZED
    return MESSAGE_GENERIC


async def _single(text: str) -> AsyncGenerator[str, None]:
    yield text


class TranslationGateway:
    """Runs the validate → cache → cooldown → upstream → persist pipeline."""

    def __init__(
        self,
        adapter: LLMAdapter,
        model: str,
        cache: TranslationCache,
        cooldowns: CooldownTracker,
        history: TranslationHistory | None = None,
        glossary: FallbackGlossary | None = None,
        retry_policy: RetryPolicy | None = None,
        min_length: int = 1,
        max_length: int = 2000,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.adapter = adapter
        self.model = model
        self.cache = cache
        self.cooldowns = cooldowns
        self.history = history
        self.glossary = glossary or FallbackGlossary()
        self.retry_policy = retry_policy or RetryPolicy()
        self.min_length = min_length
        self.max_length = max_length
        self._sleep = sleep

    def validate(self, text: str | None) -> str:
        """Return the trimmed source text or raise ``ValidationError``."""
        source_text = (text or "").strip()
        if not source_text:
            raise ValidationError("Text cannot be empty")
        if len(source_text) < self.min_length:
            raise ValidationError(
                f"Text is too short (min {self.min_length} characters)",
                {"min_length": self.min_length},
            )
        if len(source_text) > self.max_length:
            raise ValidationError(
                f"Text is too long (max {self.max_length} characters)",
                {"max_length": self.max_length, "length": len(source_text)},
            )
        if any(pattern.search(source_text) for pattern in UNSAFE_PATTERNS):
            raise ValidationError("Text contains disallowed content")
        return source_text

    async def translate(self, text: str | None, caller_id: str) -> TranslationStream:
        """Start translating ``text`` for ``caller_id``.

        Raises:
            ValidationError: bad input or missing caller identity
            CooldownActiveError: caller must wait before a billable request
        """
        source_text = self.validate(text)
        if not caller_id:
            raise ValidationError("Caller identity is required")

        cached = await self.cache.get(source_text)
        if cached is not None:
            logger.info("Translation cache hit", caller_id=caller_id, length=len(source_text))
            return TranslationStream(
                TranslationSource.CACHE,
                self._emit_cached(cached, source_text, caller_id),
            )

        remaining = await self.cooldowns.remaining(caller_id)
        if remaining > 0:
            logger.info("Cooldown active", caller_id=caller_id, remaining=remaining)
            raise CooldownActiveError(remaining)

        prompt = build_translation_prompt(source_text)
        try:
            first, upstream = await run_with_retry(
                lambda: self._open_upstream(prompt),
                self.retry_policy,
                sleep=self._sleep,
            )
        except Exception as exc:
            return self._recover(source_text, exc)

        return TranslationStream(
            TranslationSource.UPSTREAM,
            self._relay(upstream, first, source_text, caller_id),
        )

    async def _open_upstream(
        self,
        prompt: str,
    ) -> tuple[str | None, AsyncGenerator[str, None]]:
        """Open the stream and pull its first non-empty fragment.

        Some providers only send the request once the stream is iterated,
        so failures before the first fragment surface here, inside the
        retry wrapper. ``None`` means the stream ended without text.
        """
        upstream = await self.adapter.start_stream(prompt, self.model)
        try:
            async for fragment in upstream:
                if fragment:
                    return fragment, upstream
        except BaseException:
            await upstream.aclose()
            raise
        return None, upstream

    async def _emit_cached(
        self,
        translation: str,
        source_text: str,
        caller_id: str,
    ) -> AsyncGenerator[str, None]:
        yield translation
        if self.history is not None:
            await self.history.record(caller_id, source_text, translation)

    async def _relay(
        self,
        upstream: AsyncGenerator[str, None],
        first: str | None,
        source_text: str,
        caller_id: str,
    ) -> AsyncGenerator[str, None]:
        """Forward fragments as they arrive; persist only a complete response.

        If the consumer stops early, ``finally`` closes the upstream and the
        persist step below is never reached.
        """
        start_time = time.monotonic()
        parts: list[str] = []
        try:
            if first is not None:
                parts.append(first)
                yield first
            async for fragment in upstream:
                if not fragment:
                    continue
                parts.append(fragment)
                yield fragment
        except Exception as exc:
            logger.warning(
                "Upstream stream failed mid-response",
                caller_id=caller_id,
                fragments=len(parts),
                error=str(exc),
            )
            yield f"\n\n{user_facing_message(exc)}" if parts else user_facing_message(exc)
            return
        finally:
            await upstream.aclose()

        if not parts:
            logger.info("Upstream returned an empty translation", caller_id=caller_id)
            return

        await self._persist(source_text, "".join(parts), caller_id)
        logger.info(
            "Translation completed",
            caller_id=caller_id,
            fragments=len(parts),
            duration_ms=round((time.monotonic() - start_time) * 1000),
        )

    async def _persist(self, source_text: str, translation: str, caller_id: str) -> None:
        """Write cache, cooldown and history concurrently; never raise."""
        writes = [
            self.cache.set(source_text, translation),
            self.cooldowns.touch(caller_id),
        ]
        if self.history is not None:
            writes.append(self.history.record(caller_id, source_text, translation))

        results = await asyncio.gather(*writes, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.warning("Persisting translation failed", caller_id=caller_id, error=str(result))

    def _recover(self, source_text: str, exc: BaseException) -> TranslationStream:
        """Fallback glossary, else a fixed user-facing error message."""
        fallback = self.glossary.lookup(source_text)
        if fallback is not None:
            logger.info("Using fallback translation", error=str(exc))
            return TranslationStream(TranslationSource.FALLBACK, _single(fallback))

        logger.error("Translation failed", kind=classify_error(exc).value, error=str(exc))
        return TranslationStream(TranslationSource.ERROR, _single(user_facing_message(exc)))


# Global gateway instance
_gateway: TranslationGateway | None = None


def get_translation_gateway() -> TranslationGateway:
    """Get or create the gateway composed from settings."""
    global _gateway

    if _gateway is None:
        settings = get_settings()
        store = get_store()
        _gateway = TranslationGateway(
            adapter=get_llm_service().get_default_adapter(),
            model=settings.llm_model,
            cache=TranslationCache(store, settings.cache_ttl_seconds),
            cooldowns=CooldownTracker(store, settings.cooldown_seconds),
            history=TranslationHistory(store, settings.history_max_items),
            retry_policy=RetryPolicy(
                base_delay_ms=settings.retry_base_delay_ms,
                max_delay_ms=settings.retry_max_delay_ms,
                max_retries=settings.max_retries,
            ),
            min_length=settings.min_input_length,
            max_length=settings.max_input_length,
        )

    return _gateway
