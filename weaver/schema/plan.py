"""Structured plan models.

A plan is what the planning agent proposes: a title and summary for
the user, the credentials the workflow needs, and a draft workflow.
The draft is deliberately loose; ``weaver.schema.normalizer`` turns it
into a platform-valid ``WorkflowDefinition`` before anything is sent
to n8n.

Field names are snake_case in Python and camelCase on the wire
(``credentialsNeeded``, ``typeVersion``), matching n8n and Loom.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged as camelCase payloads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Dump as a camelCase dict, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CredentialRequirement(WireModel):
    """A credential the workflow uses.

    Attributes:
        type: n8n credential type (e.g., "slackApi")
        name: Human-readable credential name
        required_for: What the credential is used for
        node_id: Id of the node that uses it
        node_name: Name of the node that uses it
    """

    type: str = ""
    name: str | None = None
    required_for: str | None = None
    node_id: str | None = None
    node_name: str | None = None


class WorkflowDraft(WireModel):
    """Unvalidated workflow as proposed by a model."""

    name: str = ""
    active: bool | None = None
    nodes: list[Any] = Field(default_factory=list)
    connections: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] | None = None


class Plan(WireModel):
    """Structured plan for one workflow."""

    title: str
    summary: str
    credentials_needed: list[CredentialRequirement] = Field(default_factory=list)
    credentials_available: list[CredentialRequirement] = Field(default_factory=list)
    workflow: WorkflowDraft

    @property
    def needed_credential_types(self) -> list[str]:
        """Distinct non-empty credential types, in first-seen order."""
        seen: dict[str, None] = {}
        for cred in self.credentials_needed:
            if cred.type:
                seen.setdefault(cred.type, None)
        return list(seen)

    @property
    def available_credential_types(self) -> set[str]:
        return {cred.type for cred in self.credentials_available if cred.type}
