"""Services module exports."""

from mmzh_translator.services.llm import LLMService, get_llm_service
from mmzh_translator.services.storage import KeyValueStore, get_store
from mmzh_translator.services.translator import (
    TranslationGateway,
    TranslationSource,
    TranslationStream,
    get_translation_gateway,
)

__all__ = [
    # LLM
    "LLMService",
    "get_llm_service",
    # Storage
    "KeyValueStore",
    "get_store",
    # Gateway
    "TranslationGateway",
    "TranslationSource",
    "TranslationStream",
    "get_translation_gateway",
]
