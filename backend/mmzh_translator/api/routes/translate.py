"""Translation API endpoints with streaming support."""

from datetime import datetime, timezone
from typing import Any

import orjson
from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from mmzh_translator.api.deps import CallerId, Gateway, resolve_caller_id
from mmzh_translator.api.schemas import (
    CooldownResponse,
    ErrorResponse,
    HistoryItem,
    TranslateRequest,
    TranslateResponse,
)
from mmzh_translator.core.logging import get_logger
from mmzh_translator.services.translator import TranslationStream

logger = get_logger(__name__)
router = APIRouter(prefix="/translate", tags=["Translate"])

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    422: {"model": ErrorResponse, "description": "Invalid input"},
    429: {"model": ErrorResponse, "description": "Cooldown active"},
}


def sse_event(event_type: str, data: dict[str, Any]) -> str:
    """Format a Server-Sent Event."""
    return f"event: {event_type}\ndata: {orjson.dumps(data).decode()}\n\n"


@router.post(
    "/stream",
    summary="Translate and receive a streaming response",
    responses={
        200: {
            "description": "Server-Sent Events stream",
            "content": {"text/event-stream": {}},
        },
        **ERROR_RESPONSES,
    },
)
async def translate_stream(
    request: TranslateRequest,
    gateway: Gateway,
    caller_id: CallerId,
) -> StreamingResponse:
    """
    Translate between Burmese and Chinese with a streaming response.

    **SSE Event Types:**
    - `start`: Stream started, with `source` (cache, upstream, fallback, error)
    - `chunk`: A fragment of translated text
    - `error`: Unexpected failure while streaming
    - `done`: End of output; always the last event, also after `error`

    Validation failures return 422 and an active cooldown returns 429
    before any event is sent.
    """
    stream = await gateway.translate(request.text, resolve_caller_id(request.caller_id, caller_id))

    async def event_generator():
        yield sse_event("start", {"source": stream.source.value})
        try:
            async for fragment in stream:
                yield sse_event("chunk", {"content": fragment})
        except Exception as e:
            logger.error("Stream error", error=str(e))
            yield sse_event("error", {"message": "Translation stream interrupted"})
        finally:
            await stream.aclose()
        yield sse_event("done", {"source": stream.source.value})

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.post(
    "",
    response_model=TranslateResponse,
    summary="Translate and receive the complete text",
    responses=ERROR_RESPONSES,
)
async def translate(
    request: TranslateRequest,
    gateway: Gateway,
    caller_id: CallerId,
) -> TranslateResponse:
    """Same pipeline as `/translate/stream`, buffered into one response."""
    stream: TranslationStream = await gateway.translate(
        request.text, resolve_caller_id(request.caller_id, caller_id)
    )
    translation = await stream.read_all()
    return TranslateResponse(translation=translation, source=stream.source.value)


@router.get(
    "/cooldown",
    response_model=CooldownResponse,
    summary="Get the caller's remaining cooldown",
)
async def get_cooldown(gateway: Gateway, caller_id: CallerId) -> CooldownResponse:
    """Seconds left before the caller may request a new (uncached) translation."""
    return CooldownResponse(
        remaining_seconds=await gateway.cooldowns.remaining(caller_id),
        cooldown_seconds=gateway.cooldowns.cooldown_seconds,
    )


@router.get(
    "/history",
    response_model=list[HistoryItem],
    summary="Get the caller's translation history",
)
async def get_history(
    gateway: Gateway,
    caller_id: CallerId,
    limit: int = Query(default=20, ge=1, le=500),
) -> list[HistoryItem]:
    """Most recent translations first."""
    if gateway.history is None:
        return []

    records = await gateway.history.recent(caller_id, limit)
    return [
        HistoryItem(
            original_text=r.original_text,
            translated_text=r.translated_text,
            created_at=datetime.fromtimestamp(r.created_at, tz=timezone.utc),
        )
        for r in records
    ]
