"""Agent base class.

Provides the shared pieces of every LLM-backed agent: per-turn model
construction with a credential check, and a logging span that records
start, finish and failure of each operation with its elapsed time.
"""

import logging
import time
from abc import ABC
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from langchain_core.language_models import BaseChatModel

from weaver.exceptions import ConfigurationError
from weaver.graph.state import AgentRole, ConversationState
from weaver.llm import LLMFactory, get_llm
from weaver.settings import Settings, TurnConfig, get_settings

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """Base class for all agents.

    Provides:
    - LLM construction from the per-turn configuration
    - Logging spans for observability
    """

    role: AgentRole

    def __init__(
        self,
        role: AgentRole,
        name: str | None = None,
        *,
        settings: Settings | None = None,
        llm_factory: LLMFactory | None = None,
    ):
        """Initialize agent.

        Args:
            role: Agent's role in the system
            name: Optional display name (defaults to role)
            settings: Optional settings (defaults to get_settings())
            llm_factory: Optional chat-model factory (defaults to get_llm)
        """
        self.role = role
        self.name = name or role.value
        self._settings = settings or get_settings()
        self._llm_factory = llm_factory or get_llm

    @property
    def temperature(self) -> float:
        return getattr(self._settings, f"{self.role.value}_temperature")

    def build_llm(self, config: TurnConfig) -> BaseChatModel:
        """Build this agent's chat model for one turn.

        Raises:
            ConfigurationError: If the turn carries no LLM API key
        """
        if not config.has_llm_key:
            raise ConfigurationError(
                f"LLM API key is required for the {self.name} agent",
                stage=self.role.value,
                context="llm_api_key",
            )
        return self._llm_factory(
            temperature=self.temperature,
            model=config.model,
            api_key=config.llm_api_key.get_secret_value(),
        )

    @asynccontextmanager
    async def trace_span(
        self,
        operation: str,
        state: ConversationState | None = None,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Log the start, end and failure of an operation.

        Args:
            operation: Name of the operation being traced
            state: Current graph state for context

        Yields:
            Span metadata dict that can be updated. An 'outputs' key is
            included in the completion log line.
        """
        span_metadata: dict[str, Any] = {
            "agent_role": self.role.value,
            "operation": operation,
            "started_at": datetime.now(UTC).isoformat(),
        }
        if state is not None:
            span_metadata["session_id"] = state.session_id
            span_metadata["message_count"] = len(state.messages)

        logger.info("%s.%s started (session=%s)", self.name, operation, span_metadata.get("session_id", "-"))
        start = time.perf_counter()
        try:
            yield span_metadata
        except Exception as e:
            span_metadata["status"] = "error"
            span_metadata["error"] = str(e)
            logger.warning(
                "%s.%s failed after %.0f ms: %s: %s",
                self.name,
                operation,
                (time.perf_counter() - start) * 1000,
                type(e).__name__,
                str(e)[:250],
            )
            raise

        span_metadata["status"] = "success"
        span_metadata["completed_at"] = datetime.now(UTC).isoformat()
        logger.info(
            "%s.%s completed in %.0f ms %s",
            self.name,
            operation,
            (time.perf_counter() - start) * 1000,
            span_metadata.get("outputs", ""),
        )


__all__ = ["BaseAgent"]
