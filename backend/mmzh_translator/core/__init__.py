"""Core module exports."""

from mmzh_translator.core.config import Settings, get_settings
from mmzh_translator.core.exceptions import (
    AppError,
    CooldownActiveError,
    LLMProviderError,
    StoreError,
    ValidationError,
)
from mmzh_translator.core.logging import get_logger, setup_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "AppError",
    "CooldownActiveError",
    "LLMProviderError",
    "StoreError",
    "ValidationError",
]
