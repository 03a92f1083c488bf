"""LangGraph configuration and utilities.

Provides core LangGraph imports and the shared graph factory. The
Weaver graph itself is built in ``weaver.graph.workflow``; it is not
imported here so that agents can import ``weaver.graph.state`` without
pulling in the agents again.
"""

from typing import TypeVar

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph as CompiledGraph

# Re-export common LangGraph types for convenience
__all__ = [
    "StateGraph",
    "CompiledGraph",
    "START",
    "END",
    "create_graph",
]


S = TypeVar("S")


def create_graph(state_class: type[S]) -> StateGraph[S]:
    """Create a new StateGraph with the given state class.

    Args:
        state_class: Pydantic model or TypedDict defining the state schema

    Returns:
        New StateGraph instance ready for node/edge configuration

    Example:
        >>> from weaver.graph.state import ConversationState
        >>> graph = create_graph(ConversationState)
        >>> graph.add_node("router", route_fn)
    """
    return StateGraph(state_class)
