"""Application configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults for development.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========== Storage (Upstash Redis) ==========
    upstash_redis_rest_url: str = Field(default="", description="Upstash Redis REST URL")
    upstash_redis_rest_token: str = Field(default="", description="Upstash Redis REST Token")

    # ========== LLM Providers ==========
    llm_provider: Literal["ollama", "gemini"] = "ollama"
    ollama_host: str = Field(default="https://ollama.com", description="Ollama (Cloud) base URL")
    ollama_api_key: str = Field(default="", description="Ollama Cloud API key")
    ollama_model: str = "deepseek-v3.1:671b-cloud"
    gemini_api_key: str = Field(default="", description="Google Gemini API Key")
    gemini_model: str = "gemini-2.0-flash"

    # ========== Translation Gateway ==========
    cooldown_seconds: int = Field(default=5, ge=0, le=3600)
    cache_ttl_seconds: int = Field(default=86400, ge=1)
    min_input_length: int = Field(default=1, ge=1)
    max_input_length: int = Field(default=2000, ge=1, le=20000)
    retry_base_delay_ms: int = Field(default=1000, ge=0)
    retry_max_delay_ms: int = Field(default=10000, ge=0)
    max_retries: int = Field(default=3, ge=0, le=10)
    history_max_items: int = Field(default=50, ge=1, le=500)

    # ========== CORS ==========
    cors_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:9002",
        alias="CORS_ORIGINS",
        description="Comma-separated CORS origins",
    )

    # ========== Application ==========
    app_name: str = "MM-ZH Translator"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @model_validator(mode="after")
    def _check_input_bounds(self) -> "Settings":
        if self.min_input_length > self.max_input_length:
            raise ValueError("min_input_length must not exceed max_input_length")
        return self

    # ========== Computed Properties ==========
    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @computed_field
    @property
    def redis_available(self) -> bool:
        """Check if Redis credentials are configured."""
        return bool(self.upstash_redis_rest_url and self.upstash_redis_rest_token)

    @computed_field
    @property
    def llm_model(self) -> str:
        """Model identifier for the selected provider."""
        return self.gemini_model if self.llm_provider == "gemini" else self.ollama_model

    @computed_field
    @property
    def llm_configured(self) -> bool:
        """Check if the selected provider has credentials."""
        if self.llm_provider == "gemini":
            return bool(self.gemini_api_key)
        return bool(self.ollama_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
