"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Language Model Backend (routed through LiteLLM)
    LLM_API_KEY: SecretStr = SecretStr("")
    LLM_MODEL: str = "openai/gpt-3.5-turbo"
    LLM_BASE_URL: str = ""

    # Application Settings
    APP_ENV: Literal["development", "staging", "production"] = "development"

    # Logging
    LOG_FORMAT: Literal["text", "json"] = "text"
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Feature toggles
    ENABLE_CRISIS_DETECTION: bool = True
    ENABLE_LLM_CRISIS_CHECK: bool = True
    ENABLE_MEMORY: bool = True
    ENABLE_TOOLS: bool = True
    ENABLE_LLM_COMPOSITION: bool = False

    # Stage timeouts (seconds)
    ROUTER_TIMEOUT: float = 12.0
    PLANNER_TIMEOUT: float = 12.0
    COMPOSER_TIMEOUT: float = 12.0
    CRITIC_TIMEOUT: float = 12.0
    GUARDRAIL_TIMEOUT: float = 12.0
    TOOL_TIMEOUT: float = 5.0

    # Cache Layer (seconds)
    TEMPLATE_CACHE_TTL: int = 24 * 60 * 60
    RESPONSE_CACHE_TTL: int = 5 * 60
    INTENT_CACHE_TTL: int = 2 * 60
    CACHE_MAXSIZE: int = 1000

    # Context Memory
    MEMORY_MAX_TURNS: int = 100
    CONTEXT_RETENTION_DAYS: int = 30
    CRISIS_RETENTION_DAYS: int = 90
    SUMMARY_STALE_SECONDS: int = 60 * 60

    # Request limits
    MAX_MESSAGE_CHARS: int = 4000

    # Crisis helpline shown in every crisis response
    HELPLINE_NAME: str = "KIRAN"
    HELPLINE_NUMBER: str = "1800-599-0019"

    # Optional remote check-in service for the fetch_checkins tool
    CHECKIN_SERVICE_URL: str = ""

    @field_validator("CHECKIN_SERVICE_URL")
    @classmethod
    def validate_checkin_service_url(cls, v: str) -> str:
        """Validate that CHECKIN_SERVICE_URL is a valid URL."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("CHECKIN_SERVICE_URL must start with http:// or https://")
        return v.rstrip("/") if v else v

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def llm_configured(self) -> bool:
        """Check if the language model backend has credentials."""
        return bool(self.LLM_API_KEY.get_secret_value())

    @property
    def helpline(self) -> str:
        """Helpline name and number as shown to users."""
        return f"{self.HELPLINE_NAME}: {self.HELPLINE_NUMBER}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance with validated configuration.
    """
    settings = Settings()
    if not settings.llm_configured:
        logger.warning("LLM_API_KEY not set; model-backed stages will use static fallbacks")
    return settings


# Global settings instance - import this for easy access
settings = get_settings()
