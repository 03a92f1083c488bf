"""LLM provider access."""

from weaver.llm.factory import PROVIDER_BASE_URLS, LLMFactory, get_llm

__all__ = ["PROVIDER_BASE_URLS", "LLMFactory", "get_llm"]
