"""Credential and workflow-creation tools for the execution agent.

Both tools are bound to one execution turn: the credential checker knows
which credential types the plan says are available, and the creation
tool submits the workflow that already passed normalization. The model
cannot submit a different definition.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable

from langchain_core.tools import BaseTool, tool

from weaver.exceptions import PlatformClientError, ToolExecutionError
from weaver.graph.state import CredentialGuidance, MissingCredential, SetupLink
from weaver.platform.client import PlatformClient
from weaver.schema.workflow import WorkflowDefinition

logger = logging.getLogger(__name__)

CHECK_CREDENTIALS_TOOL = "check_credentials"
CREATE_WORKFLOW_TOOL = "create_workflow"


class CredentialChecker:
    """Answers which credential types exist and where to set up the rest."""

    def __init__(
        self,
        available: Iterable[str],
        setup_url: Callable[[str], str],
        names: dict[str, str] | None = None,
    ):
        """Initialize the checker.

        Args:
            available: Credential types the user already has
            setup_url: Builds the credential setup URL for a type
            names: Display names by credential type
        """
        self.available = {t for t in available if t}
        self._setup_url = setup_url
        self._names = names or {}
        self.checked: list[str] = []

    def display_name(self, credential_type: str) -> str:
        return self._names.get(credential_type) or credential_type

    def check(self, credential_types: Iterable[str]) -> dict[str, object]:
        """Check credential types and record them as checked."""
        requested = list(dict.fromkeys(t for t in credential_types if t))
        for credential_type in requested:
            if credential_type not in self.checked:
                self.checked.append(credential_type)
        missing = [t for t in requested if t not in self.available]
        return {
            "available": [t for t in requested if t in self.available],
            "missing": missing,
            "setupLinks": [{"type": t, "url": self._setup_url(t)} for t in missing],
        }

    def guidance(self, credential_types: Iterable[str]) -> CredentialGuidance | None:
        """Guidance for the missing types among ``credential_types``, or None."""
        requested = list(dict.fromkeys(t for t in credential_types if t))
        missing = [t for t in requested if t not in self.available]
        if not missing:
            return None
        return CredentialGuidance(
            missing=[MissingCredential(name=self.display_name(t), type=t) for t in missing],
            setup_links=[SetupLink(name=self.display_name(t), url=self._setup_url(t)) for t in missing],
        )


def get_execution_tools(
    client: PlatformClient,
    workflow: WorkflowDefinition,
    checker: CredentialChecker,
) -> list[BaseTool]:
    """Build the execution tools for one turn.

    ``create_workflow`` posts at most once per turn; later calls return
    the workflow created by the first one.
    """
    created: dict[str, str] = {}

    @tool(CHECK_CREDENTIALS_TOOL)
    async def check_credentials(credential_types: list[str]) -> str:
        """Check which credential types are already set up in n8n.

        Args:
            credential_types: n8n credential types (e.g., ["slackApi"])

        Returns:
            JSON with available and missing types and setup links for missing ones.
        """
        return json.dumps(checker.check(credential_types))

    @tool(CREATE_WORKFLOW_TOOL)
    async def create_workflow() -> str:
        """Create the planned workflow in n8n.

        Returns:
            JSON with the created workflow's id, name, url and active flag.
        """
        if "result" in created:
            logger.info("create_workflow called again; returning workflow created earlier this turn")
            return created["result"]

        try:
            response = await client.create_workflow(workflow.to_api_payload())
        except PlatformClientError as e:
            raise ToolExecutionError(f"n8n rejected the workflow: {e}", tool=CREATE_WORKFLOW_TOOL) from e

        workflow_id = str(response["id"])
        created["result"] = json.dumps(
            {
                "id": workflow_id,
                "name": response.get("name", workflow.name),
                "url": client.workflow_url(workflow_id),
                "active": bool(response.get("active", False)),
            }
        )
        return created["result"]

    return [check_credentials, create_workflow]
