"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ============================================================
# Translation Schemas
# ============================================================

class TranslateRequest(BaseModel):
    """Schema for a translation request.

    Length limits are enforced by the gateway so the error message is the
    same for every entry point.
    """

    text: str
    caller_id: str | None = Field(
        default=None,
        max_length=128,
        description="Client identifier; falls back to X-Client-ID header or client IP",
    )


class TranslateResponse(BaseModel):
    """Schema for a buffered (non-streaming) translation."""

    translation: str
    source: str = Field(..., pattern=r"^(cache|upstream|fallback|error)$")


class CooldownResponse(BaseModel):
    """Schema for the caller's cooldown state."""

    remaining_seconds: int = Field(..., ge=0)
    cooldown_seconds: int = Field(..., ge=0)


class HistoryItem(BaseModel):
    """Schema for one translation history record."""

    original_text: str
    translated_text: str
    created_at: datetime


# ============================================================
# Common Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: dict[str, Any] = Field(
        ...,
        examples=[{"message": "Text cannot be empty", "details": {}}],
    )


# ============================================================
# Health Schemas
# ============================================================

class ServiceHealth(BaseModel):
    """Schema for individual service health."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    timestamp: datetime
    version: str
    services: dict[str, ServiceHealth]
