"""Upstream error classification and retry with exponential backoff.

``classify_error`` and ``backoff_delay_ms`` are pure; ``run_with_retry``
is the only piece that sleeps, and its sleep and jitter sources are
injectable so tests never wait.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from mmzh_translator.core.exceptions import LLMProviderError
from mmzh_translator.core.logging import get_logger

logger = get_logger(__name__)
T = TypeVar("T")

FATAL_STATUSES = frozenset({400, 401, 403})
FATAL_MESSAGE_MARKERS = ("API key", "authentication", "permission")


class ErrorKind(str, Enum):
    """How an upstream failure should be treated."""

    FATAL = "fatal"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    RETRYABLE = "retryable"


def error_status(exc: BaseException) -> int | None:
    """Best-effort HTTP status carried by an upstream exception."""
    if isinstance(exc, LLMProviderError):
        # status_code on AppError is our own response status, not upstream's
        return exc.upstream_status
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def error_status_text(exc: BaseException) -> str:
    value = getattr(exc, "status_text", None)
    return value if isinstance(value, str) else ""


def is_service_unavailable(exc: BaseException) -> bool:
    """503, "Service Unavailable" status text, or an overloaded model."""
    message = str(exc)
    return (
        error_status(exc) == 503
        or error_status_text(exc) == "Service Unavailable"
        or "overloaded" in message
        or "Service Unavailable" in message
    )


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an opaque upstream failure to an ``ErrorKind``."""
    status = error_status(exc)
    message = str(exc)

    if status in FATAL_STATUSES or any(m in message for m in FATAL_MESSAGE_MARKERS):
        return ErrorKind.FATAL
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if is_service_unavailable(exc):
        return ErrorKind.SERVICE_UNAVAILABLE
    return ErrorKind.RETRYABLE


def backoff_multiplier(kind: ErrorKind) -> int:
    return 3 if kind in (ErrorKind.SERVICE_UNAVAILABLE, ErrorKind.RATE_LIMITED) else 2


def backoff_delay_ms(
    attempt: int,
    kind: ErrorKind,
    *,
    base_delay_ms: float = 1000,
    max_delay_ms: float = 10000,
    jitter_ms: float | None = None,
) -> float:
    """Delay before the retry that follows failed ``attempt`` (0-based).

    ``min(base * multiplier**attempt + jitter, max)`` with jitter drawn
    uniformly from [0, 1000) unless given.
    """
    if jitter_ms is None:
        jitter_ms = random.uniform(0, 1000)
    delay = base_delay_ms * backoff_multiplier(kind) ** attempt + jitter_ms
    return min(delay, max_delay_ms)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry limits; ``max_retries`` counts retries after the first attempt."""

    base_delay_ms: float = 1000
    max_delay_ms: float = 10000
    max_retries: int = 3

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_ms(self, attempt: int, kind: ErrorKind, jitter_ms: float | None = None) -> float:
        return backoff_delay_ms(
            attempt,
            kind,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
            jitter_ms=jitter_ms,
        )


@dataclass(frozen=True)
class RetryAttempt:
    """One failed attempt, kept only for logging."""

    index: int
    kind: ErrorKind
    delay_ms: float


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    jitter: Callable[[], float] | None = None,
) -> T:
    """Await ``operation`` until it succeeds or the policy gives up.

    Fatal errors propagate from the first attempt. Once attempts are
    exhausted the last error is re-raised unchanged.
    """
    policy = policy or RetryPolicy()

    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except Exception as exc:
            kind = classify_error(exc)
            if kind is ErrorKind.FATAL:
                logger.warning("Upstream call failed with fatal error", error=str(exc))
                raise
            if attempt == policy.max_attempts - 1:
                logger.warning(
                    "Upstream retries exhausted",
                    attempts=policy.max_attempts,
                    kind=kind.value,
                    error=str(exc),
                )
                raise

            retry = RetryAttempt(
                index=attempt,
                kind=kind,
                delay_ms=policy.delay_ms(attempt, kind, jitter() if jitter else None),
            )
            logger.info(
                "Upstream call failed, retrying",
                attempt=retry.index + 1,
                max_attempts=policy.max_attempts,
                kind=retry.kind.value,
                delay_ms=round(retry.delay_ms),
                error=str(exc),
            )
            await sleep(retry.delay_ms / 1000)

    raise RuntimeError("unreachable")  # pragma: no cover
