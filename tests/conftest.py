"""Shared test fixtures for Weaver.

Provides settings, per-turn configuration and the scripted model and
platform doubles used across the unit tests.
"""

from collections.abc import Generator

import pytest
from pydantic import SecretStr

from tests.helpers.fake_llm import ScriptedLLM
from tests.helpers.fake_platform import FakePlatformClient
from weaver.settings import Settings, TurnConfig, get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; isolate each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        _env_file=None,
        environment="testing",
        llm_api_key=SecretStr("test-llm-key"),
        n8n_base_url="http://n8n.test",
        n8n_api_key=SecretStr("test-n8n-key"),
    )


@pytest.fixture
def mock_settings(test_settings: Settings, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Mock get_settings() to return test settings."""
    from weaver import settings

    monkeypatch.setattr(settings, "get_settings", lambda: test_settings)
    return test_settings


@pytest.fixture
def turn_config() -> TurnConfig:
    """Per-turn configuration with both keys present."""
    return TurnConfig(
        llm_api_key=SecretStr("test-llm-key"),
        platform_api_key=SecretStr("test-n8n-key"),
        platform_base_url="http://n8n.test",
        model="test-model",
    )


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    """Chat model double; tests add responses with ``script``."""
    return ScriptedLLM()


@pytest.fixture
def fake_platform() -> FakePlatformClient:
    """In-memory n8n double."""
    return FakePlatformClient()
