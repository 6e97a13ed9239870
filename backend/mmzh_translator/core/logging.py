"""Structured logging configuration using structlog.

JSON lines in production, colored console output in debug. Every event
carries the app name, version and upstream provider, plus whatever the
request middleware bound into the context (request ID).

Translation text can be long and is user content, so string values of
the keys in ``TRUNCATED_KEYS`` are shortened before rendering.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from mmzh_translator.core.config import get_settings

TRUNCATED_KEYS = frozenset({"text", "translation", "error"})
MAX_LOGGED_CHARS = 200


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to log events."""
    settings = get_settings()
    event_dict.setdefault("app", settings.app_name)
    event_dict.setdefault("version", settings.app_version)
    event_dict.setdefault("provider", settings.llm_provider)
    return event_dict


def truncate_text_values(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Shorten user text and upstream error bodies."""
    for key in TRUNCATED_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and len(value) > MAX_LOGGED_CHARS:
            event_dict[key] = f"{value[:MAX_LOGGED_CHARS]}… ({len(value)} chars)"
    return event_dict


def bind_request_context(**values: Any) -> None:
    """Attach values to every log event emitted while handling this request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        truncate_text_values,
    ]

    if settings.debug:
        renderer: Processor = structlog.dev.ConsoleRenderer(colors=True)
        processors = [*shared_processors, renderer]
    else:
        # Burmese and Chinese stay readable in the JSON output
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
        processors = [*shared_processors, structlog.processors.format_exc_info, renderer]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    # Reduce noise from third-party libraries
    for name in ("uvicorn.access", "httpx", "httpcore", "google_genai.models", "google.genai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
