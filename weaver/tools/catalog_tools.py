"""Node catalog and documentation tools for the planning agent."""

from __future__ import annotations

import json
import logging

from langchain_core.tools import BaseTool, tool

from weaver.exceptions import ToolExecutionError
from weaver.platform.catalog import (
    get_node_type,
    get_required_parameters,
    is_trigger_node,
    list_node_types,
    suggest_node_types,
)

logger = logging.getLogger(__name__)


@tool("fetch_node_types")
async def fetch_node_types(group: str | None = None, search: str | None = None) -> str:
    """List available n8n node types.

    Args:
        group: Optional group filter: trigger, core, transform, flow,
            communication, productivity, development
        search: Optional case-insensitive text to match in names and descriptions

    Returns:
        JSON list of node types with name, displayName, description and group.
    """
    nodes = list_node_types(group=group, search=search)
    logger.debug("fetch_node_types(group=%s, search=%s) -> %d", group, search, len(nodes))
    return json.dumps([node.summary() for node in nodes])


@tool("get_node_docs")
async def get_node_docs(node_type: str) -> str:
    """Get documentation for one n8n node type.

    Args:
        node_type: Full node type name (e.g., "n8n-nodes-base.slack")

    Returns:
        JSON with the node's version, parameters, required parameters and
        credential types.
    """
    node = get_node_type(node_type)
    if node is None:
        suggestions = suggest_node_types(node_type)
        hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
        raise ToolExecutionError(
            f"Unknown node type '{node_type}'.{hint} Use fetch_node_types to list node types.",
            tool="get_node_docs",
        )

    return json.dumps(
        {
            "name": node.name,
            "displayName": node.display_name,
            "description": node.description,
            "typeVersion": node.version,
            "defaultName": node.default_name,
            "isTrigger": is_trigger_node(node.name),
            "outputs": len(node.outputs),
            "parameters": [prop.model_dump(exclude_defaults=True) for prop in node.properties],
            "requiredParameters": get_required_parameters(node.name),
            "credentials": node.credentials,
        }
    )


def get_catalog_tools() -> list[BaseTool]:
    """Return the catalog lookup tools."""
    return [fetch_node_types, get_node_docs]
