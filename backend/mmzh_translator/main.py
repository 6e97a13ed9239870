"""FastAPI application entry point."""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mmzh_translator.api import health_router, translate_router
from mmzh_translator.core.config import get_settings
from mmzh_translator.core.exceptions import (
    AppError,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from mmzh_translator.core.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from mmzh_translator.services.llm import get_llm_service
from mmzh_translator.services.storage import get_store

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware:
    """Bind a request ID to the log context and echo it back.

    Plain ASGI so the context stays bound until a streamed body has been
    fully sent.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        bind_request_context(request_id=request_id, path=scope["path"])
        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            clear_request_context()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, hsts: bool = True) -> None:
        super().__init__(app)
        self.hsts = hsts

    async def dispatch(self, request: Any, call_next: Any) -> Any:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Pick the store and warm the LLM adapter on startup; close both on shutdown."""
    settings = get_settings()
    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        model=settings.llm_model,
        cooldown_seconds=settings.cooldown_seconds,
    )

    get_llm_service().prewarm_adapters()
    store = get_store()
    logger.info("Store selected", backend=store.backend_name, shared=store.is_external)

    yield

    logger.info("Shutting down application")
    await get_llm_service().close()
    await get_store().close()
    logger.info("Upstream and store connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Burmese ↔ Chinese translation gateway with caching, cooldown and streaming",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    # Last added runs first: CORS wraps everything, request context wraps the rest
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(SecurityHeadersMiddleware, hsts=not settings.debug)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Client-ID", REQUEST_ID_HEADER],
        expose_headers=["Retry-After", REQUEST_ID_HEADER],
    )

    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(translate_router, prefix="/api/v1")

    return app


# Create application instance
app = create_app()
