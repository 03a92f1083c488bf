"""Plan converter.

Builds a ``Plan`` from a parsed Loom payload. The payload comes from a
language model, so every field is optional and any shape is accepted:
this function never raises.
"""

from collections.abc import Mapping
from typing import Any

from weaver import loom
from weaver.schema.plan import CredentialRequirement, Plan, WorkflowDraft

DEFAULT_TITLE = "Workflow"
DEFAULT_SUMMARY = "Generated workflow"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        # Unquoted commas in prose parse as inline lists
        return ", ".join(_text(item) for item in value)
    return str(value)


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def _flag(value: Any) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "yes", "1", "on")


def _credentials(value: Any) -> list[CredentialRequirement]:
    if isinstance(value, Mapping):
        value = [value]
    if not isinstance(value, list):
        return []

    credentials = []
    for item in value:
        if isinstance(item, str):
            credentials.append(CredentialRequirement(type=item))
        elif isinstance(item, Mapping):
            credentials.append(
                CredentialRequirement(
                    type=_text(item.get("type")),
                    name=_optional_text(item.get("name")),
                    required_for=_optional_text(item.get("requiredFor", item.get("status"))),
                    node_id=_optional_text(item.get("nodeId")),
                    node_name=_optional_text(item.get("nodeName")),
                )
            )
    return credentials


def _workflow(value: Any, title: str) -> WorkflowDraft:
    if not isinstance(value, Mapping):
        return WorkflowDraft(name=title, nodes=[], connections={})

    nodes = value.get("nodes")
    if isinstance(nodes, Mapping):
        nodes = [nodes]
    connections = value.get("connections")
    settings = value.get("settings")
    return WorkflowDraft(
        name=_text(value.get("name")) or title,
        active=_flag(value.get("active")),
        nodes=list(nodes) if isinstance(nodes, list) else [],
        connections=dict(connections) if isinstance(connections, Mapping) else {},
        settings=dict(settings) if isinstance(settings, Mapping) else None,
    )


def plan_from_payload(payload: Any) -> Plan:
    """Convert a parsed Loom payload into a Plan.

    Args:
        payload: Parsed data, normally a dict from ``loom.parse``

    Returns:
        Plan with defaults filled in for anything missing
    """
    data = payload if isinstance(payload, Mapping) else {}
    title = _text(data.get("title")) or DEFAULT_TITLE
    return Plan(
        title=title,
        summary=_text(data.get("summary")) or DEFAULT_SUMMARY,
        credentials_needed=_credentials(data.get("credentialsNeeded")),
        credentials_available=_credentials(data.get("credentialsAvailable")),
        workflow=_workflow(data.get("workflow"), title),
    )


def plan_to_loom(plan: Plan) -> str:
    """Serialize a plan as Loom text."""
    return loom.format(plan.to_payload())
