"""Conversation state shared by the router and the agents.

State is a pydantic snapshot. Nodes never mutate it; they return a
``Command`` whose ``update`` LangGraph merges in: ``messages`` appends
through ``add_messages``, every other field is overwritten.
"""

from enum import StrEnum
from typing import Annotated, Any

from langchain_core.messages import AnyMessage
from langgraph.graph.message import add_messages
from pydantic import BaseModel, Field, field_validator

from weaver.schema.plan import Plan


class Mode(StrEnum):
    """Conversation mode shown to the user."""

    CHAT = "chat"
    WORKFLOW = "workflow"


class NodeName(StrEnum):
    """Nodes of the orchestration graph."""

    ROUTER = "router"
    ENRICHMENT = "enrichment"
    PLANNING = "planning"
    EXECUTION = "execution"


class AgentRole(StrEnum):
    """Roles of the LLM-backed agents."""

    ENRICHMENT = "enrichment"
    PLANNING = "planning"
    VALIDATION = "validation"
    EXECUTION = "execution"


class RequirementsStatus(BaseModel):
    """Enrichment's structured verdict on whether planning can start."""

    has_all_required_info: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    missing_info: list[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> Any:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return value
        return min(max(number, 0.0), 1.0)

    @field_validator("missing_info", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value


class MissingCredential(BaseModel):
    name: str
    type: str


class SetupLink(BaseModel):
    name: str
    url: str


class CredentialGuidance(BaseModel):
    """Credentials a created workflow still needs, with setup links."""

    missing: list[MissingCredential] = Field(default_factory=list)
    setup_links: list[SetupLink] = Field(default_factory=list)


class ConversationState(BaseModel):
    """State for one conversation (one LangGraph thread).

    Attributes:
        messages: Append-only message history
        session_id: Conversation/session identifier
        mode: "chat" while gathering requirements, "workflow" once planning
        requirements_status: Latest status reported by enrichment
        plan: Plan produced by planning (replaced wholesale by auto-fix only)
        workflow_id: Id of the created workflow; set only by execution
        credential_guidance: Missing credentials after a successful creation
    """

    messages: Annotated[list[AnyMessage], add_messages] = Field(default_factory=list)
    session_id: str = ""
    mode: Mode = Mode.CHAT
    requirements_status: RequirementsStatus | None = None
    plan: Plan | None = None
    workflow_id: str | None = None
    credential_guidance: CredentialGuidance | None = None
