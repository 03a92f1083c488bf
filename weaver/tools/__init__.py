"""Tools the agents can call mid-turn.

Every tool takes schema-checked arguments and returns text (usually
JSON) that is fed back into the calling agent's next inference.
"""

from weaver.tools.catalog_tools import fetch_node_types, get_catalog_tools, get_node_docs
from weaver.tools.status_tools import STATUS_TOOL_NAME, report_requirements_status

__all__ = [
    "STATUS_TOOL_NAME",
    "fetch_node_types",
    "get_catalog_tools",
    "get_node_docs",
    "report_requirements_status",
]
