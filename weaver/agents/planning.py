"""Planning agent: turns agreed requirements into a structured plan.

The agent runs a bounded tool loop with the node catalog, node docs and
the validation capability. Its final answer must be a Loom plan; a
parse failure ends the turn with ``ProtocolParseError`` (the user must
rephrase, there is no automatic retry).

Auto-fix: if the most recent validation verdict in this turn was
``[INVALID]``, the corrected plan from that verdict replaces the one the
planner answered with. If the planner never called the validation tool,
its final plan is validated once here so every plan is reviewed before
execution.
"""

import logging

from langchain_core.messages import HumanMessage, SystemMessage
from langgraph.types import Command

from weaver import loom
from weaver.agents import BaseAgent
from weaver.agents.prompts import load_prompt
from weaver.agents.tool_loop import message_text, run_tool_loop
from weaver.agents.validation import ValidationAgent, ValidationLedger
from weaver.exceptions import ProtocolParseError, ToolLoopLimitError
from weaver.graph.state import AgentRole, ConversationState, NodeName
from weaver.llm import LLMFactory
from weaver.schema.converter import plan_from_payload, plan_to_loom
from weaver.schema.plan import Plan
from weaver.settings import Settings, TurnConfig
from weaver.tools.catalog_tools import get_catalog_tools
from weaver.tools.validation_tools import make_validation_tool

logger = logging.getLogger(__name__)


def parse_plan(text: str, *, stage: str = "planning") -> Plan:
    """Parse a model's Loom answer into a plan.

    Raises:
        ProtocolParseError: If the answer is not valid Loom
    """
    result = loom.parse(loom.strip_code_fences(text))
    if not result.success:
        summary = "; ".join(str(e) for e in result.errors[:5]) or "no content"
        raise ProtocolParseError(
            f"Could not read the workflow plan ({summary}). Please rephrase your request.",
            errors=result.errors,
            stage=stage,
            context=result.errors[0].path if result.errors else None,
            snippet=text,
        )
    return plan_from_payload(result.data)


class PlanningAgent(BaseAgent):
    """Designs the workflow plan with catalog lookups and validation."""

    def __init__(
        self,
        *,
        validator: ValidationAgent | None = None,
        settings: Settings | None = None,
        llm_factory: LLMFactory | None = None,
    ):
        super().__init__(AgentRole.PLANNING, "Planner", settings=settings, llm_factory=llm_factory)
        self.validator = validator or ValidationAgent(settings=self._settings, llm_factory=self._llm_factory)

    async def invoke(self, state: ConversationState, config: TurnConfig) -> Command:
        """Produce the plan for this turn.

        Args:
            state: Current conversation state
            config: Turn configuration

        Returns:
            Command to execution with the plan and the new messages

        Raises:
            ConfigurationError: No LLM API key
            ToolLoopLimitError: No final answer within the iteration cap
            ProtocolParseError: Final answer is not valid Loom
            ValidationError: Validation rejected the plan with an unusable correction
            UnexpectedProtocolError: Validation answered without a verdict
        """
        llm = self.build_llm(config)
        async with self.trace_span("plan", state) as span:
            ledger = ValidationLedger()
            tools = [*get_catalog_tools(), make_validation_tool(self.validator, ledger, config)]
            messages = [
                SystemMessage(content=load_prompt("planner_system")),
                *state.messages,
                HumanMessage(content=load_prompt("planner_request")),
            ]

            result = await run_tool_loop(
                llm,
                tools,
                messages,
                max_iterations=self._settings.max_tool_iterations,
                agent=self.name,
            )
            if result.exhausted:
                raise ToolLoopLimitError(
                    f"Planner did not produce a plan within {result.iterations} steps",
                    iterations=result.iterations,
                    agent_role=self.role.value,
                    stage="planning",
                    snippet=message_text(result.messages[-1]) if result.messages else None,
                )

            plan = parse_plan(result.final_text)

            if ledger.last is None:
                logger.info("Planner answered without validating; validating final plan")
                ledger.record(await self.validator.validate(plan_to_loom(plan), config))

            correction = ledger.correction
            if correction is not None:
                logger.info("Replacing plan '%s' with validator's correction", plan.title)
                plan = correction

            span["outputs"] = {
                "title": plan.title,
                "nodes": len(plan.workflow.nodes),
                "validations": len(ledger.outcomes),
                "auto_fixed": correction is not None,
            }

        return Command(
            goto=NodeName.EXECUTION.value,
            update={
                "messages": result.messages,
                "plan": plan,
                "workflow_id": None,
                "credential_guidance": None,
            },
        )
