"""
Application configuration using Pydantic Settings.

Chat relay settings are grouped under the CHAT_/LLM_ prefixes and only take
effect when FEATURE_CHAT_ENABLED is true.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.exceptions import ConfigurationError
from app.models.chat_session import MESSAGE_CONTENT_MAX_LENGTH

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, concise assistant. "
    "Answer in the language the user writes in and use Markdown for code."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./cobalt_chat.db"

    # ===========================================
    # Chat feature
    # ===========================================
    FEATURE_CHAT_ENABLED: bool = False

    # Upstream OpenAI-compatible completion API
    LLM_API_BASE: str = "https://api.sambanova.ai/v1"
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "Meta-Llama-3.1-8B-Instruct"
    # Extra selectable models, comma-separated; LLM_MODEL is always offered first
    LLM_MODELS: str = ""

    CHAT_MAX_CONTEXT_MESSAGES: int = Field(default=20, ge=1)
    CHAT_MAX_TOKENS: int = Field(default=2048, ge=1)
    CHAT_MAX_MESSAGE_LENGTH: int = Field(default=4000, ge=1, le=MESSAGE_CONTENT_MAX_LENGTH)
    CHAT_UPSTREAM_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)
    CHAT_SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT

    # Advisory quotas (messages per user)
    CHAT_RATE_LIMIT_PER_MINUTE: int = Field(default=20, ge=1)
    CHAT_DAILY_MESSAGE_QUOTA: int = Field(default=100, ge=1)

    # ===========================================
    # Auth (local password + JWT)
    # ===========================================
    AUTH_PROVIDER: Literal["mock", "local"] = "mock"
    LOCAL_JWT_SECRET: str = ""
    LOCAL_JWT_ISSUER: str = "cobalt-local"
    LOCAL_JWT_EXPIRE_MINUTES: int = 15
    LOCAL_JWT_REFRESH_EXPIRE_MINUTES: int = 60 * 24 * 7

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"]
    )

    @property
    def chat_enabled(self) -> bool:
        """Check if the chat feature is switched on."""
        return self.FEATURE_CHAT_ENABLED

    @property
    def llm_models(self) -> list[str]:
        """Selectable model IDs, default first, without duplicates."""
        models = [self.LLM_MODEL]
        for model_id in self.LLM_MODELS.split(","):
            model_id = model_id.strip()
            if model_id and model_id not in models:
                models.append(model_id)
        return models

    def validate_chat_config(self) -> None:
        """
        Fail fast when chat is enabled without an upstream API key.

        Raises:
            ConfigurationError: If FEATURE_CHAT_ENABLED is set and LLM_API_KEY is empty
        """
        if self.FEATURE_CHAT_ENABLED and not self.LLM_API_KEY.strip():
            raise ConfigurationError("LLM_API_KEY must be set when FEATURE_CHAT_ENABLED is true")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
