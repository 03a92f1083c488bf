"""Weaver graph: router plus the three agents that own graph nodes.

Validation is not a node; it runs inside planning as a tool and as the
final review of the plan.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.types import Command

from weaver.graph import END, START, CompiledGraph, StateGraph, create_graph
from weaver.graph.router import route
from weaver.graph.state import ConversationState, NodeName
from weaver.llm import LLMFactory, get_llm
from weaver.platform.client import N8nClient, N8nClientConfig, PlatformClient
from weaver.settings import Settings, TurnConfig, get_settings

logger = logging.getLogger(__name__)


def default_client_factory(config: TurnConfig) -> PlatformClient:
    """n8n client for the turn's base URL and platform key."""
    return N8nClient(
        N8nClientConfig(
            base_url=config.platform_base_url,
            api_key=config.platform_api_key.get_secret_value(),
            timeout=get_settings().n8n_timeout,
        )
    )


@dataclass
class AgentDependencies:
    """Everything the graph nodes need for one turn.

    Attributes:
        config: Per-turn keys, platform URL and model
        settings: Process settings (temperatures, caps, threshold)
        llm_factory: Builds chat models for the agents
        client_factory: Builds the platform client for execution
        on_token: Optional sink for streamed enrichment tokens
    """

    config: TurnConfig
    settings: Settings = field(default_factory=get_settings)
    llm_factory: LLMFactory = get_llm
    client_factory: Callable[[TurnConfig], PlatformClient] = default_client_factory
    on_token: Callable[[str], None] | None = None


def build_weaver_graph(deps: AgentDependencies) -> StateGraph:
    """Build the Weaver graph.

    Graph structure:
    ```
    START
      │
      ▼
    router ──[not ready]──► enrichment ──► END
      │
      [ready]
      │
      ▼
    planning ──► execution ──► END
    ```

    Every node returns a ``Command``; the edges above are the only
    destinations a node may name.

    Args:
        deps: Injected per-turn dependencies

    Returns:
        Configured StateGraph
    """
    from weaver.agents.enrichment import EnrichmentAgent
    from weaver.agents.execution import ExecutionAgent
    from weaver.agents.planning import PlanningAgent
    from weaver.agents.validation import ValidationAgent

    enrichment = EnrichmentAgent(settings=deps.settings, llm_factory=deps.llm_factory)
    planning = PlanningAgent(
        validator=ValidationAgent(settings=deps.settings, llm_factory=deps.llm_factory),
        settings=deps.settings,
        llm_factory=deps.llm_factory,
    )
    execution = ExecutionAgent(deps.client_factory, settings=deps.settings, llm_factory=deps.llm_factory)

    graph = create_graph(ConversationState)

    # Define node wrappers with injected dependencies
    async def _router(state: ConversationState) -> Command:
        return route(state, deps.settings.confidence_threshold)

    async def _enrichment(state: ConversationState) -> Command:
        return await enrichment.invoke(state, deps.config, on_token=deps.on_token)

    async def _planning(state: ConversationState) -> Command:
        return await planning.invoke(state, deps.config)

    async def _execution(state: ConversationState) -> Command:
        return await execution.invoke(state, deps.config)

    graph.add_node(
        NodeName.ROUTER.value,
        _router,
        destinations=(NodeName.ENRICHMENT.value, NodeName.PLANNING.value),
    )
    graph.add_node(NodeName.ENRICHMENT.value, _enrichment, destinations=(END,))
    graph.add_node(NodeName.PLANNING.value, _planning, destinations=(NodeName.EXECUTION.value,))
    graph.add_node(NodeName.EXECUTION.value, _execution, destinations=(END,))

    graph.add_edge(START, NodeName.ROUTER.value)

    return graph


def compile_weaver_graph(
    deps: AgentDependencies,
    checkpointer: BaseCheckpointSaver | None = None,
) -> CompiledGraph:
    """Compile the Weaver graph with a checkpointer.

    Args:
        deps: Injected per-turn dependencies
        checkpointer: Saver keyed by session id (defaults to an in-memory saver)

    Returns:
        Compiled graph
    """
    graph = build_weaver_graph(deps)
    return graph.compile(checkpointer=checkpointer or MemorySaver())
