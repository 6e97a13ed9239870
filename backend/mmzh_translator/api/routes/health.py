"""Health check and monitoring endpoints.

The gateway can run without Upstash (in-process store) but not without an
upstream provider key, so readiness only looks at the provider.
"""

import asyncio
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from mmzh_translator.api.schemas import HealthResponse, ServiceHealth
from mmzh_translator.core.config import Settings, get_settings
from mmzh_translator.services.storage import KeyValueStore, get_store

router = APIRouter(tags=["Health"])

STORE_CHECK_TIMEOUT = 5.0

_started_at = datetime.now(timezone.utc)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _store_health(store: KeyValueStore) -> ServiceHealth:
    """Ping the store. A process-local store is reported as degraded."""
    details: dict[str, Any] = {"backend": store.backend_name, "shared": store.is_external}
    start = time.perf_counter()
    try:
        healthy = await asyncio.wait_for(store.check_health(), timeout=STORE_CHECK_TIMEOUT)
    except asyncio.TimeoutError:
        healthy = False
        details["error"] = f"Health check timed out after {STORE_CHECK_TIMEOUT}s"
    except Exception as e:
        healthy = False
        details["error"] = str(e)
    latency_ms = round((time.perf_counter() - start) * 1000, 2)

    if not healthy:
        state = "unhealthy"
    elif not store.is_external:
        state = "degraded"
    else:
        state = "healthy"
    return ServiceHealth(status=state, latency_ms=latency_ms, details=details)


def _llm_health(settings: Settings) -> ServiceHealth:
    return ServiceHealth(
        status="healthy" if settings.llm_configured else "unhealthy",
        details={"provider": settings.llm_provider, "model": settings.llm_model},
    )


@router.get("/", summary="Service information")
async def root() -> dict[str, Any]:
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "environment": settings.environment,
        "timestamp": _now(),
        "endpoints": {
            "stream": "/api/v1/translate/stream",
            "translate": "/api/v1/translate",
        },
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Store and upstream provider status",
)
async def health_check() -> HealthResponse:
    """
    - **store**: Upstash ping; `degraded` when running on the in-process store
    - **llm**: whether the selected provider has an API key

    Overall status is `unhealthy` without a provider key, `degraded` when the
    store is not healthy, `healthy` otherwise.
    """
    settings = get_settings()
    services = {
        "store": await _store_health(get_store()),
        "llm": _llm_health(settings),
    }

    if services["llm"].status != "healthy":
        overall = "unhealthy"
    elif services["store"].status != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        services=services,
    )


@router.get("/health/live", summary="Liveness probe")
async def liveness() -> dict[str, str]:
    return {"status": "ok", "timestamp": _now()}


@router.get("/health/ready", summary="Readiness probe")
async def readiness() -> JSONResponse:
    """503 until the selected upstream provider has credentials."""
    settings = get_settings()

    if not settings.llm_configured:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "llm_not_configured",
                "message": f"No API key configured for provider {settings.llm_provider}",
                "timestamp": _now(),
            },
        )

    return JSONResponse(content={"status": "ready", "timestamp": _now()})


@router.get("/health/info", summary="Runtime information")
async def system_info() -> dict[str, Any]:
    settings = get_settings()
    uptime = datetime.now(timezone.utc) - _started_at

    return {
        "application": {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "provider": settings.llm_provider,
            "model": settings.llm_model,
        },
        "system": {
            "hostname": platform.node(),
            "python_version": sys.version.split()[0],
            "platform": platform.system(),
        },
        "uptime": {
            "started_at": _started_at.isoformat(),
            "uptime_seconds": int(uptime.total_seconds()),
        },
        "timestamp": _now(),
    }
