"""Routes module exports."""

from mmzh_translator.api.routes.health import router as health_router
from mmzh_translator.api.routes.translate import router as translate_router

__all__ = [
    "health_router",
    "translate_router",
]
