"""LLM provider factory.

Every agent talks to an OpenAI-compatible chat endpoint through
``ChatOpenAI``. The provider only decides the default base URL.

Environment variables:
- LLM_PROVIDER: openai (default), openrouter, together, groq, ollama, custom
- LLM_MODEL: Model name (e.g., gpt-4o-mini, anthropic/claude-sonnet-4)
- LLM_API_KEY / OPENAI_API_KEY: API key for the provider
- LLM_BASE_URL: Custom base URL for OpenAI-compatible APIs
"""

from typing import Any, Protocol

from langchain_core.language_models import BaseChatModel

from weaver.exceptions import ConfigurationError
from weaver.settings import get_settings

# Provider base URLs
PROVIDER_BASE_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": "https://api.openai.com/v1",
    "together": "https://api.together.xyz/v1",
    "groq": "https://api.groq.com/openai/v1",
    "ollama": "http://localhost:11434/v1",
}


class LLMFactory(Protocol):
    """Callable that builds a chat model for one agent call."""

    def __call__(
        self,
        temperature: float | None = None,
        model: str | None = None,
        api_key: str | None = None,
    ) -> BaseChatModel: ...


def get_llm(
    temperature: float | None = None,
    model: str | None = None,
    api_key: str | None = None,
    provider: str | None = None,
    **kwargs: Any,
) -> BaseChatModel:
    """Build a chat model for the configured provider.

    Args:
        temperature: Sampling temperature (defaults to 0.0)
        model: Override default model name
        api_key: Override the API key from settings (per-turn config)
        provider: Override default provider
        **kwargs: Additional ChatOpenAI arguments

    Returns:
        Configured chat model

    Raises:
        ConfigurationError: If the API key is missing or the provider is unknown
    """
    from langchain_openai import ChatOpenAI

    settings = get_settings()
    provider = provider or settings.llm_provider
    model_name = model or settings.llm_model

    key = api_key or settings.llm_api_key.get_secret_value()
    if not key and provider != "ollama":
        raise ConfigurationError(
            f"LLM API key is required when using the {provider} provider",
            stage="llm",
            context="llm_api_key",
        )

    base_url = settings.llm_base_url
    if base_url is None:
        base_url = PROVIDER_BASE_URLS.get(provider)
        if base_url is None:
            raise ConfigurationError(
                f"Unknown provider '{provider}'. Set LLM_BASE_URL for custom providers.",
                stage="llm",
                context="llm_provider",
            )

    llm_kwargs: dict[str, Any] = {
        "model": model_name,
        "temperature": 0.0 if temperature is None else temperature,
        "base_url": base_url,
        "api_key": key or "ollama",
        **kwargs,
    }

    if provider == "openrouter":
        llm_kwargs.setdefault("default_headers", {})
        llm_kwargs["default_headers"]["X-Title"] = "n8n Weaver"

    return ChatOpenAI(**llm_kwargs)
