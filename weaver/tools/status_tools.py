"""Requirements status side-channel for the enrichment agent.

The tool only exists so the model has a schema to fill in; the agent
reads the arguments of the tool call and never needs the result.
"""

from __future__ import annotations

from langchain_core.tools import tool

STATUS_TOOL_NAME = "report_requirements_status"


@tool(STATUS_TOOL_NAME)
def report_requirements_status(
    has_all_required_info: bool,
    confidence: float,
    missing_info: list[str] | None = None,
) -> str:
    """Report whether the conversation has everything needed to build the workflow.

    Args:
        has_all_required_info: True when trigger, actions and services are all known
        confidence: 0.0 to 1.0, how sure you are the workflow can be built now
        missing_info: Short phrases naming what is still unknown

    Returns:
        Acknowledgement text.
    """
    return "Status recorded."
