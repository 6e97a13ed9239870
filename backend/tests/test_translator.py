"""Tests for the translation gateway pipeline.

Covers validation, cache-before-cooldown ordering, retry on upstream
failures, fallback and error messages, and persistence only after a
complete non-empty stream.
"""

import pytest

from mmzh_translator.core.exceptions import CooldownActiveError, ValidationError
from mmzh_translator.services.glossary import PARTIAL_TRANSLATION_NOTE
from mmzh_translator.services.translator import (
    MESSAGE_BAD_REQUEST,
    MESSAGE_GENERIC,
    MESSAGE_RATE_LIMITED,
    MESSAGE_SERVICE_UNAVAILABLE,
    MESSAGE_UNAUTHORIZED,
    TranslationSource,
    user_facing_message,
)
from tests.conftest import upstream_error

CALLER = "client:test"


# =============================================================================
# Validation
# =============================================================================

class TestValidation:

    @pytest.mark.parametrize("text", ["", "   \n\t", None])
    async def test_empty_rejected_before_upstream(self, make_gateway, text):
        gateway = make_gateway(["x"])
        with pytest.raises(ValidationError, match="empty"):
            await gateway.translate(text, CALLER)
        assert gateway.adapter.calls == 0

    async def test_too_long_rejected_before_upstream(self, make_gateway):
        gateway = make_gateway(["x"], max_length=10)
        with pytest.raises(ValidationError) as info:
            await gateway.translate("a" * 11, CALLER)
        assert info.value.details == {"max_length": 10, "length": 11}
        assert gateway.adapter.calls == 0

    async def test_exact_max_length_accepted(self, make_gateway):
        gateway = make_gateway(["译文"], max_length=10)
        stream = await gateway.translate("a" * 10, CALLER)
        assert await stream.read_all() == "译文"

    async def test_length_measured_after_trim(self, make_gateway):
        gateway = make_gateway(["译文"], max_length=10)
        stream = await gateway.translate("  " + "a" * 10 + "  ", CALLER)
        assert stream.source is TranslationSource.UPSTREAM

    async def test_min_length(self, make_gateway):
        gateway = make_gateway(["x"], min_length=3)
        with pytest.raises(ValidationError, match="too short"):
            await gateway.translate("ab", CALLER)

    @pytest.mark.parametrize("text", [
        "<script>alert(1)</script>",
        "< SCRIPT src=x>",
        "click javascript:alert(1)",
        '<img src=x onerror="alert(1)">',
    ])
    async def test_unsafe_content_rejected(self, make_gateway, text: str):
        gateway = make_gateway(["x"])
        with pytest.raises(ValidationError, match="disallowed"):
            await gateway.translate(text, CALLER)
        assert gateway.adapter.calls == 0

    async def test_plain_angle_brackets_allowed(self, make_gateway):
        gateway = make_gateway(["ok"])
        stream = await gateway.translate("3 < 5 and 5 > 3", CALLER)
        assert await stream.read_all() == "ok"

    async def test_caller_required(self, make_gateway):
        gateway = make_gateway(["x"])
        with pytest.raises(ValidationError, match="Caller"):
            await gateway.translate("hello", "")


# =============================================================================
# Cache and cooldown
# =============================================================================

class TestCacheAndCooldown:

    async def test_upstream_result_is_cached(self, make_gateway):
        gateway = make_gateway(["你", "好"])
        stream = await gateway.translate("hello", CALLER)
        assert stream.source is TranslationSource.UPSTREAM
        assert await stream.read_all() == "你好"
        assert await gateway.cache.get("hello") == "你好"

    async def test_cache_hit_ignores_cooldown(self, make_gateway, clock):
        gateway = make_gateway(["你好"])
        await (await gateway.translate("hello", CALLER)).read_all()

        clock.advance(1)
        stream = await gateway.translate("  hello  ", CALLER)

        assert stream.source is TranslationSource.CACHE
        assert await stream.read_all() == "你好"
        assert gateway.adapter.calls == 1

    async def test_cache_hit_does_not_refresh_cooldown(self, make_gateway, clock):
        gateway = make_gateway(["你好"])
        await (await gateway.translate("hello", CALLER)).read_all()

        clock.advance(4)
        await (await gateway.translate("hello", CALLER)).read_all()
        clock.advance(1)

        assert await gateway.cooldowns.remaining(CALLER) == 0

    async def test_new_text_during_cooldown(self, make_gateway, clock):
        gateway = make_gateway(["你好"])
        await (await gateway.translate("hello", CALLER)).read_all()

        clock.advance(1)
        with pytest.raises(CooldownActiveError) as info:
            await gateway.translate("goodbye", CALLER)

        assert info.value.remaining_seconds == 4
        assert info.value.status_code == 429
        assert gateway.adapter.calls == 1

    async def test_cooldown_is_per_caller(self, make_gateway):
        gateway = make_gateway(["你好"])
        await (await gateway.translate("hello", "client:a")).read_all()

        stream = await gateway.translate("goodbye", "client:b")
        assert stream.source is TranslationSource.UPSTREAM

    async def test_cooldown_expires(self, make_gateway, clock):
        gateway = make_gateway(["你好"])
        await (await gateway.translate("hello", CALLER)).read_all()

        clock.advance(5)
        stream = await gateway.translate("goodbye", CALLER)
        assert stream.source is TranslationSource.UPSTREAM

    async def test_history_recorded_for_upstream_and_cache(self, make_gateway, clock):
        gateway = make_gateway(["你好"])
        await (await gateway.translate("hello", CALLER)).read_all()
        clock.advance(1)
        await (await gateway.translate("hello", CALLER)).read_all()

        records = await gateway.history.recent(CALLER)
        assert [(r.original_text, r.translated_text) for r in records] == [
            ("hello", "你好"),
            ("hello", "你好"),
        ]

    async def test_store_outage_does_not_block_translation(self, make_gateway, flaky_store):
        gateway = make_gateway(["你好"], backend=flaky_store)
        flaky_store.fail = True

        stream = await gateway.translate("hello", CALLER)
        assert await stream.read_all() == "你好"
        # Cooldown failed open, so an immediate second request goes through
        stream = await gateway.translate("goodbye", CALLER)
        assert stream.source is TranslationSource.UPSTREAM


# =============================================================================
# Upstream failures
# =============================================================================

class TestUpstreamFailures:

    async def test_retries_service_unavailable_then_persists(self, make_gateway, no_sleep):
        failure = upstream_error(503, "Service Unavailable")
        gateway = make_gateway(failure, failure, failure, ["你好"])

        stream = await gateway.translate("hello", CALLER)

        assert stream.source is TranslationSource.UPSTREAM
        assert await stream.read_all() == "你好"
        assert gateway.adapter.calls == 4
        delays = [c.args[0] for c in no_sleep.await_args_list]
        assert 1 <= delays[0] < 2
        assert 3 <= delays[1] < 4
        assert 9 <= delays[2] <= 10
        assert await gateway.cache.get("hello") == "你好"
        assert await gateway.cooldowns.remaining(CALLER) == 5

    async def test_fatal_error_single_attempt(self, make_gateway, no_sleep):
        gateway = make_gateway(upstream_error(401, message="invalid credentials"))

        stream = await gateway.translate("good morning", CALLER)

        assert stream.source is TranslationSource.ERROR
        assert await stream.read_all() == MESSAGE_UNAUTHORIZED
        assert gateway.adapter.calls == 1
        no_sleep.assert_not_awaited()

    async def test_exhausted_retries_generic_message(self, make_gateway):
        gateway = make_gateway(upstream_error(500))

        stream = await gateway.translate("good morning", CALLER)

        assert stream.source is TranslationSource.ERROR
        assert await stream.read_all() == MESSAGE_GENERIC
        assert gateway.adapter.calls == 4
        assert await gateway.cache.get("good morning") is None
        assert await gateway.cooldowns.remaining(CALLER) == 0

    async def test_fallback_glossary_when_upstream_fails(self, make_gateway):
        gateway = make_gateway(upstream_error(500))

        stream = await gateway.translate("ငွေထုတ်ချင်ပါတယ်", CALLER)

        assert stream.source is TranslationSource.FALLBACK
        assert await stream.read_all() == f"提款 / Withdrawal {PARTIAL_TRANSLATION_NOTE}"
        assert await gateway.cache.get("ငွေထုတ်ချင်ပါတယ်") is None

    async def test_error_before_first_fragment_is_retried(self, make_gateway, no_sleep):
        failing = [upstream_error(503, "Service Unavailable")]
        gateway = make_gateway(failing, failing, failing, ["你", "好"])

        stream = await gateway.translate("hello", CALLER)

        assert stream.source is TranslationSource.UPSTREAM
        assert await stream.read_all() == "你好"
        assert gateway.adapter.calls == 4
        assert no_sleep.await_count == 3
        assert await gateway.cache.get("hello") == "你好"

    async def test_error_before_first_fragment_uses_glossary(self, make_gateway):
        gateway = make_gateway(["", upstream_error(503)])

        stream = await gateway.translate("ငွေထုတ်", CALLER)

        assert stream.source is TranslationSource.FALLBACK
        assert await stream.read_all() == "提款 / Withdrawal"
        assert gateway.adapter.calls == 4
        assert gateway.adapter.closed_streams == 4

    async def test_fatal_error_before_first_fragment(self, make_gateway, no_sleep):
        gateway = make_gateway([upstream_error(401)])

        stream = await gateway.translate("good morning", CALLER)

        assert stream.source is TranslationSource.ERROR
        assert await stream.read_all() == MESSAGE_UNAUTHORIZED
        assert gateway.adapter.calls == 1
        no_sleep.assert_not_awaited()

    async def test_mid_stream_failure_appends_message(self, make_gateway):
        gateway = make_gateway(["你", upstream_error(503), "好"])

        stream = await gateway.translate("hello", CALLER)
        output = await stream.read_all()

        assert output == f"你\n\n{MESSAGE_SERVICE_UNAVAILABLE}"
        assert gateway.adapter.calls == 1
        assert await gateway.cache.get("hello") is None
        assert await gateway.cooldowns.remaining(CALLER) == 0


# =============================================================================
# Stream lifecycle
# =============================================================================

class TestStreamLifecycle:

    async def test_fragments_forwarded_in_order(self, make_gateway):
        gateway = make_gateway(["一", "", "二", "三"])
        stream = await gateway.translate("one two three", CALLER)
        assert [f async for f in stream] == ["一", "二", "三"]

    async def test_zero_fragments_persist_nothing(self, make_gateway):
        gateway = make_gateway([])

        stream = await gateway.translate("hello", CALLER)

        assert await stream.read_all() == ""
        assert await gateway.cache.get("hello") is None
        assert await gateway.cooldowns.remaining(CALLER) == 0
        assert await gateway.history.recent(CALLER) == []

    async def test_consumer_cancel_persists_nothing(self, make_gateway):
        gateway = make_gateway(["一", "二", "三"])

        stream = await gateway.translate("hello", CALLER)
        async for fragment in stream:
            assert fragment == "一"
            break
        await stream.aclose()

        assert gateway.adapter.closed_streams == 1
        assert await gateway.cache.get("hello") is None
        assert await gateway.cooldowns.remaining(CALLER) == 0

    async def test_prompt_carries_trimmed_text(self, make_gateway):
        gateway = make_gateway(["x"])
        await (await gateway.translate("  hello  ", CALLER)).read_all()
        assert gateway.adapter.prompts[0].endswith('Translate: "hello"')


# =============================================================================
# User-facing messages
# =============================================================================

@pytest.mark.parametrize(
    "exc, expected",
    [
        (upstream_error(503), MESSAGE_SERVICE_UNAVAILABLE),
        (RuntimeError("model overloaded"), MESSAGE_SERVICE_UNAVAILABLE),
        (upstream_error(429), MESSAGE_RATE_LIMITED),
        (upstream_error(400), MESSAGE_BAD_REQUEST),
        (upstream_error(401), MESSAGE_UNAUTHORIZED),
        (upstream_error(403), MESSAGE_UNAUTHORIZED),
        (RuntimeError("API key not configured"), MESSAGE_UNAUTHORIZED),
        (upstream_error(500), MESSAGE_GENERIC),
        (RuntimeError("connection reset"), MESSAGE_GENERIC),
    ],
    ids=["503", "overloaded", "429", "400", "401", "403", "api-key", "500", "other"],
)
def test_user_facing_message(exc: Exception, expected: str):
    assert user_facing_message(exc) == expected
