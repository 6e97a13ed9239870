"""LLM Provider Adapters with unified streaming interface.

Supports multiple LLM providers with a common interface:
- Ollama Cloud (default)
- Google Gemini

``start_stream`` opens the upstream request and raises ``LLMProviderError``
before returning if the provider rejects it, so the retry wrapper sees
request failures. The returned generator yields text fragments.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator
from dataclasses import dataclass

import httpx
import orjson
from google import genai
from google.genai import errors as genai_errors

from mmzh_translator.core.config import get_settings
from mmzh_translator.core.exceptions import LLMProviderError
from mmzh_translator.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ModelInfo:
    """Information about an LLM model."""

    id: str
    name: str
    provider: str
    supports_streaming: bool = True


class LLMAdapter(ABC):
    """Abstract base class for LLM provider adapters."""

    provider_name: str = "base"

    @abstractmethod
    async def start_stream(self, prompt: str, model: str) -> AsyncGenerator[str, None]:
        """Open a streaming completion for ``prompt`` and return its fragments."""
        ...

    @abstractmethod
    def get_available_models(self) -> list[ModelInfo]:
        """Return list of available models for this provider."""
        ...

    async def close(self) -> None:
        """Release HTTP clients."""
        return None


class OllamaAdapter(LLMAdapter):
    """Adapter for Ollama Cloud's chat API (NDJSON streaming)."""

    provider_name = "ollama"

    MODELS = [
        ModelInfo("deepseek-v3.1:671b-cloud", "DeepSeek V3.1", "ollama"),
        ModelInfo("gpt-oss:120b-cloud", "GPT-OSS 120B", "ollama"),
        ModelInfo("qwen3-coder:480b-cloud", "Qwen3 Coder 480B", "ollama"),
    ]

    def __init__(
        self,
        api_key: str | None = None,
        host: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.ollama_api_key
        self.host = (host or settings.ollama_host).rstrip("/")

        if not self.api_key:
            logger.warning("Ollama API key not configured")

        self._client = client

    def get_available_models(self) -> list[ModelInfo]:
        return self.MODELS

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(60.0, connect=5.0),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=20),
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def start_stream(self, prompt: str, model: str) -> AsyncGenerator[str, None]:
        if not self.api_key:
            raise LLMProviderError("ollama", "API key not configured")

        client = self._get_client()
        request = client.build_request(
            "POST",
            f"{self.host}/api/chat",
            json={
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "stream": True,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error("Ollama request error", error=str(e), model=model)
            raise LLMProviderError("ollama", str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            body = await response.aread()
            await response.aclose()
            raise LLMProviderError(
                "ollama",
                _ollama_error_message(body) or response.reason_phrase,
                upstream_status=response.status_code,
                status_text=response.reason_phrase,
            )

        return self._iter_fragments(response, model)

    async def _iter_fragments(
        self,
        response: httpx.Response,
        model: str,
    ) -> AsyncGenerator[str, None]:
        try:
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                data = orjson.loads(line)
                if data.get("error"):
                    raise LLMProviderError("ollama", str(data["error"]))
                content = (data.get("message") or {}).get("content")
                if content:
                    yield content
                if data.get("done"):
                    break
        except httpx.HTTPError as e:
            logger.error("Ollama streaming error", error=str(e), model=model)
            raise LLMProviderError("ollama", str(e) or type(e).__name__) from e
        except orjson.JSONDecodeError as e:
            raise LLMProviderError("ollama", f"malformed stream line: {e}") from e
        finally:
            await response.aclose()


def _ollama_error_message(body: bytes) -> str:
    """Extract ``{"error": ...}`` from an Ollama error body."""
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        return body.decode("utf-8", errors="replace").strip()
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return ""


class GeminiAdapter(LLMAdapter):
    """Adapter for Google Gemini models."""

    provider_name = "gemini"

    MODELS = [
        ModelInfo("gemini-2.0-flash", "Gemini 2.0 Flash", "gemini"),
        ModelInfo("gemini-2.0-flash-lite", "Gemini 2.0 Flash Lite", "gemini"),
        ModelInfo("gemini-1.5-flash", "Gemini 1.5 Flash", "gemini"),
    ]

    def __init__(self, api_key: str | None = None):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key

        if not self.api_key:
            logger.warning("Gemini API key not configured")

        self.client = genai.Client(api_key=self.api_key) if self.api_key else None

    def get_available_models(self) -> list[ModelInfo]:
        return self.MODELS

    async def start_stream(self, prompt: str, model: str) -> AsyncGenerator[str, None]:
        if self.client is None:
            raise LLMProviderError("gemini", "API key not configured")

        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=model,
                contents=prompt,
            )
        except genai_errors.APIError as e:
            logger.error("Gemini request error", error=str(e), model=model)
            raise _gemini_error(e) from e
        except Exception as e:
            logger.error("Gemini request error", error=str(e), model=model)
            raise LLMProviderError("gemini", str(e)) from e

        return self._iter_fragments(stream, model)

    async def _iter_fragments(
        self,
        stream: AsyncIterator,
        model: str,
    ) -> AsyncGenerator[str, None]:
        try:
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except genai_errors.APIError as e:
            logger.error("Gemini streaming error", error=str(e), model=model)
            raise _gemini_error(e) from e


def _gemini_error(e: genai_errors.APIError) -> LLMProviderError:
    code = e.code if isinstance(e.code, int) else None
    return LLMProviderError(
        "gemini",
        e.message or str(e),
        upstream_status=code,
        status_text=e.status,
    )


class LLMService:
    """Service class to manage LLM adapters.

    Supports pre-warming adapters on startup to eliminate
    first-request latency for adapter initialization.
    """

    def __init__(self) -> None:
        self._adapters: dict[str, LLMAdapter] = {}

    def get_adapter(self, provider: str) -> LLMAdapter:
        """Get or create an adapter for the specified provider."""
        if provider not in self._adapters:
            if provider == "ollama":
                self._adapters[provider] = OllamaAdapter()
            elif provider == "gemini":
                self._adapters[provider] = GeminiAdapter()
            else:
                raise ValueError(f"Unknown LLM provider: {provider}")

        return self._adapters[provider]

    def get_default_adapter(self) -> LLMAdapter:
        """Adapter for the provider selected in settings."""
        return self.get_adapter(get_settings().llm_provider)

    def prewarm_adapters(self) -> None:
        """Pre-initialize the configured adapter to avoid first-request latency."""
        settings = get_settings()
        if not settings.llm_configured:
            logger.warning("LLM provider not configured", provider=settings.llm_provider)
            return
        try:
            self.get_default_adapter()
            logger.info("Pre-warmed LLM adapter", provider=settings.llm_provider)
        except Exception as e:
            logger.warning(
                "Failed to pre-warm LLM adapter",
                provider=settings.llm_provider,
                error=str(e),
            )

    def get_all_models(self) -> dict[str, list[dict[str, str]]]:
        """Get all available models grouped by provider."""
        return {
            "ollama": [{"id": m.id, "name": m.name} for m in OllamaAdapter.MODELS],
            "gemini": [{"id": m.id, "name": m.name} for m in GeminiAdapter.MODELS],
        }

    async def close(self) -> None:
        """Close adapter HTTP clients."""
        for adapter in self._adapters.values():
            await adapter.close()
        self._adapters.clear()


# Global LLM service instance
_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Get or create the global LLM service instance."""
    global _llm_service

    if _llm_service is None:
        _llm_service = LLMService()

    return _llm_service
