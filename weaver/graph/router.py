"""Router: picks the next agent from the requirements status.

The router never looks at message text. It hands off to planning only
when enrichment has reported that all required information is present
with confidence strictly above the threshold.
"""

import logging

from langgraph.types import Command

from weaver.graph.state import ConversationState, Mode, NodeName

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.8


def is_ready_for_planning(state: ConversationState, threshold: float = CONFIDENCE_THRESHOLD) -> bool:
    status = state.requirements_status
    return status is not None and status.has_all_required_info and status.confidence > threshold


def route(state: ConversationState, threshold: float = CONFIDENCE_THRESHOLD) -> Command:
    """Decide the next node.

    Args:
        state: Current conversation state
        threshold: Confidence that must be exceeded to start planning

    Returns:
        Command to planning (mode "workflow") or enrichment (mode "chat")
    """
    if is_ready_for_planning(state, threshold):
        target, mode = NodeName.PLANNING, Mode.WORKFLOW
    else:
        target, mode = NodeName.ENRICHMENT, Mode.CHAT

    status = state.requirements_status
    logger.info(
        "Handoff router -> %s (session=%s, status=%s)",
        target.value,
        state.session_id or "-",
        "none"
        if status is None
        else f"ready={status.has_all_required_info} confidence={status.confidence:.2f}",
    )
    return Command(goto=target.value, update={"mode": mode.value})
