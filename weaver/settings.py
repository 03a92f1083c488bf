"""Application settings using pydantic-settings.

Loads configuration from environment variables with .env file support.
A single turn may override the LLM and platform credentials through
``TurnConfig``; everything else comes from ``Settings``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,  # Allow both field name and alias
    )

    # Environment
    environment: Literal["development", "production", "testing"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # LLM Configuration
    # Any OpenAI-compatible endpoint; provider picks the default base URL
    llm_provider: Literal["openai", "openrouter", "together", "groq", "ollama", "custom"] = Field(
        default="openai",
        description="LLM provider (openai, openrouter, together, groq, ollama, custom)",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model name (provider-specific format)",
    )
    llm_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="API key for the LLM provider",
        validation_alias=AliasChoices("llm_api_key", "openai_api_key"),
    )
    llm_base_url: str | None = Field(
        default=None,
        description="Custom base URL for OpenAI-compatible APIs",
    )

    # Per-agent sampling temperatures
    enrichment_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    planning_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    validation_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    execution_temperature: float = Field(default=0.1, ge=0.0, le=2.0)

    # n8n automation platform
    n8n_base_url: str = Field(
        default="http://localhost:5678",
        description="n8n instance URL",
        validation_alias=AliasChoices("n8n_base_url", "n8n_url"),
    )
    n8n_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="n8n public API key",
    )
    n8n_timeout: float = Field(
        default=30.0,
        ge=1.0,
        description="Timeout in seconds for n8n API requests",
    )

    # Orchestration
    max_tool_iterations: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum model inferences per agent tool loop",
    )
    confidence_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Router hands off to planning only above this confidence",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded once and reused.
    """
    return Settings()


class TurnConfig(BaseModel):
    """Per-invocation configuration supplied with a turn.

    Missing keys are not an error here; each agent checks for the
    credentials it needs when it runs.
    """

    llm_api_key: SecretStr = SecretStr("")
    platform_api_key: SecretStr = SecretStr("")
    platform_base_url: str = "http://localhost:5678"
    model: str = "gpt-4o-mini"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TurnConfig":
        settings = settings or get_settings()
        return cls(
            llm_api_key=settings.llm_api_key,
            platform_api_key=settings.n8n_api_key,
            platform_base_url=settings.n8n_base_url,
            model=settings.llm_model,
        )

    @property
    def has_llm_key(self) -> bool:
        return bool(self.llm_api_key.get_secret_value())

    @property
    def has_platform_key(self) -> bool:
        return bool(self.platform_api_key.get_secret_value())
