"""
Configuration module - Central access point for environment variables.

CRITICAL: Access ALL environment variables through this module.
NEVER use os.getenv() directly in application code.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Redis (optional conversation store)
    REDIS_URL: str = Field(
        default="",
        description="Redis connection string; empty selects the in-memory conversation store"
    )
    CONVERSATION_TTL_SECONDS: int = Field(
        default=86400,
        description="Expiry applied to conversations stored in Redis"
    )

    # OpenRouter (Unified LLM API)
    OPENROUTER_API_KEY: str = Field(default="sk-or-placeholder")
    LLM_MODEL: str = Field(
        default="meta-llama/llama-3.1-8b-instruct",
        description="OpenRouter model identifier used for chat completions"
    )
    LLM_TEMPERATURE: float = Field(default=0.7)
    LLM_MAX_TOKENS: int = Field(default=500)
    SITE_URL: str = Field(
        default="https://hotel-chatbot.local",
        description="Site URL for OpenRouter rankings (optional)"
    )
    SITE_NAME: str = Field(
        default="Hotel Booking Assistant",
        description="Site name for OpenRouter rankings (optional)"
    )

    # Tavily (external web search)
    TAVILY_API_KEY: str = Field(
        default="",
        description="Tavily API key; empty disables external web search"
    )
    TAVILY_API_URL: str = Field(default="https://api.tavily.com")

    # Rate limiting
    RATE_LIMIT_MAX_MESSAGES: int = Field(
        default=20,
        description="Messages accepted per identifier within one window"
    )
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=60)

    # Web search cache
    WEB_CACHE_TTL_SECONDS: int = Field(
        default=3600,
        description="Maximum age of a cached web search result"
    )

    # Application Settings
    TIMEZONE: str = Field(default="America/Lima")
    LOG_LEVEL: str = Field(default="INFO")
    HOTEL_LOCATION: str = Field(
        default="Lima, Perú",
        description="Hotel location, used in the location FAQ answer and to qualify web search queries"
    )
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
