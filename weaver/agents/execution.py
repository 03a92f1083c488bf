"""Execution agent: creates the planned workflow on n8n.

Runs after planning. The plan's workflow is normalized first; a plan
that fails the schema never reaches the platform. Missing credentials do
not block creation: the workflow is created and the missing credential
types come back as guidance with setup links.
"""

import json
import logging
import re
from collections.abc import Callable

from langchain_core.messages import HumanMessage, SystemMessage
from langgraph.graph import END
from langgraph.types import Command

from weaver.agents import BaseAgent
from weaver.agents.prompts import load_prompt
from weaver.agents.tool_loop import ToolLoopResult, run_tool_loop
from weaver.exceptions import ConfigurationError
from weaver.graph.state import AgentRole, ConversationState
from weaver.llm import LLMFactory
from weaver.platform.client import PlatformClient
from weaver.schema.normalizer import require_valid_workflow
from weaver.settings import Settings, TurnConfig
from weaver.tools.execution_tools import (
    CREATE_WORKFLOW_TOOL,
    CredentialChecker,
    get_execution_tools,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[TurnConfig], PlatformClient]

_WORKFLOW_ID_PATTERNS = (
    re.compile(r"/workflow/([A-Za-z0-9_-]+)"),
    re.compile(r"workflow[ _-]?id\s*(?:is\s+)?[:=#]?\s*`?([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r'"id"\s*:\s*"([A-Za-z0-9_-]+)"'),
)


def extract_workflow_id(result: ToolLoopResult) -> str | None:
    """Find the created workflow's id.

    The most recent successful ``create_workflow`` result wins. If there
    is none, the final answer text is searched.
    """
    for message in result.tool_messages(CREATE_WORKFLOW_TOOL):
        if message.status == "error":
            continue
        try:
            payload = json.loads(message.content)
        except (TypeError, ValueError):
            continue
        if isinstance(payload, dict) and payload.get("id"):
            return str(payload["id"])

    text = result.final_text
    for pattern in _WORKFLOW_ID_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


class ExecutionAgent(BaseAgent):
    """Creates workflows on the platform and reports missing credentials."""

    def __init__(
        self,
        client_factory: ClientFactory,
        *,
        settings: Settings | None = None,
        llm_factory: LLMFactory | None = None,
    ):
        super().__init__(AgentRole.EXECUTION, "Executor", settings=settings, llm_factory=llm_factory)
        self._client_factory = client_factory

    async def invoke(self, state: ConversationState, config: TurnConfig) -> Command:
        """Create the plan's workflow.

        Args:
            state: Current conversation state (must hold a plan)
            config: Turn configuration

        Returns:
            Command to the end of the graph with the workflow id and guidance

        Raises:
            ConfigurationError: No plan, no LLM key or no platform key
            NormalizationError: The plan's workflow fails the schema
        """
        plan = state.plan
        if plan is None:
            raise ConfigurationError("No plan to execute", stage="execution", context="plan")

        llm = self.build_llm(config)
        if not config.has_platform_key:
            raise ConfigurationError(
                "n8n API key is required to create workflows",
                stage="execution",
                context="platform_api_key",
            )

        workflow = require_valid_workflow(plan.workflow, stage="execution")
        client = self._client_factory(config)
        try:
            async with self.trace_span("execute", state) as span:
                checker = CredentialChecker(
                    plan.available_credential_types,
                    client.credential_setup_url,
                    names={c.type: c.name for c in plan.credentials_needed if c.type and c.name},
                )
                needed = plan.needed_credential_types
                messages = [
                    SystemMessage(content=load_prompt("executor_system")),
                    *state.messages,
                    HumanMessage(
                        content=load_prompt(
                            "executor_request",
                            title=plan.title,
                            summary=plan.summary,
                            node_count=len(workflow.nodes),
                            credential_types=", ".join(needed) or "none",
                        )
                    ),
                ]

                result = await run_tool_loop(
                    llm,
                    get_execution_tools(client, workflow, checker),
                    messages,
                    max_iterations=self._settings.max_tool_iterations,
                    agent=self.name,
                )
                if result.exhausted:
                    logger.warning("Executor hit the iteration cap; using tool results so far")

                workflow_id = extract_workflow_id(result)
                guidance = None
                if workflow_id is not None:
                    guidance = checker.guidance([*needed, *checker.checked])
                else:
                    logger.warning("No workflow id found after execution of '%s'", plan.title)

                span["outputs"] = {
                    "workflow_id": workflow_id,
                    "missing_credentials": len(guidance.missing) if guidance else 0,
                }
        finally:
            await client.close()

        return Command(
            goto=END,
            update={
                "messages": result.messages,
                "workflow_id": workflow_id,
                "credential_guidance": guidance,
                "requirements_status": None,
            },
        )
