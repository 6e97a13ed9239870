"""API dependencies for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Header, Request

from mmzh_translator.services.translator import TranslationGateway, get_translation_gateway


def get_caller_id(
    request: Request,
    x_client_id: Annotated[str | None, Header(max_length=128)] = None,
) -> str:
    """Identify the caller for cooldown and history.

    Uses the client-generated ID header if present, otherwise client IP
    from X-Forwarded-For or the direct connection.
    """
    if x_client_id and x_client_id.strip():
        return f"client:{x_client_id.strip()}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def resolve_caller_id(explicit: str | None, fallback: str) -> str:
    """Prefer an explicit caller ID from the request body."""
    if explicit and explicit.strip():
        return f"client:{explicit.strip()}"
    return fallback


# Type aliases for cleaner route signatures
CallerId = Annotated[str, Depends(get_caller_id)]
Gateway = Annotated[TranslationGateway, Depends(get_translation_gateway)]
