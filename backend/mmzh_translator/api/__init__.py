"""API module exports."""

from mmzh_translator.api.deps import CallerId, Gateway
from mmzh_translator.api.routes import health_router, translate_router

__all__ = [
    # Routers
    "health_router",
    "translate_router",
    # Dependencies
    "CallerId",
    "Gateway",
]
