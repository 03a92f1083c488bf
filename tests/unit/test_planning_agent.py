"""Unit tests for the planning agent."""

import pytest
from langchain_core.messages import HumanMessage, ToolMessage

from tests.factories import as_loom, poller_plan, slack_plan
from tests.helpers.fake_llm import ScriptedLLM, tool_call
from weaver.agents.planning import PlanningAgent, parse_plan
from weaver.exceptions import (
    ConfigurationError,
    ProtocolParseError,
    ToolLoopLimitError,
    UnexpectedProtocolError,
)
from weaver.graph.state import ConversationState
from weaver.settings import TurnConfig


@pytest.fixture
def state():
    return ConversationState(
        session_id="s1",
        messages=[HumanMessage(content="Poll https://api.example.com/status every hour")],
    )


def _agent(llm, settings):
    return PlanningAgent(settings=settings, llm_factory=llm.factory)


class TestPlanningAgent:
    """PlanningAgent.invoke()."""

    async def test_final_plan_is_validated_once(self, state, test_settings, turn_config):
        llm = ScriptedLLM([as_loom(poller_plan()), "[VALID] Looks right."])

        command = await _agent(llm, test_settings).invoke(state, turn_config)

        assert command.goto == "execution"
        plan = command.update["plan"]
        assert plan.title == "Status poller"
        assert len(plan.workflow.nodes) == 2
        assert command.update["workflow_id"] is None
        assert command.update["credential_guidance"] is None
        assert "[VALID]" not in command.update["messages"][-1].content
        assert llm.remaining == 0

    async def test_tools_offered(self, state, test_settings, turn_config):
        llm = ScriptedLLM([as_loom(poller_plan()), "[VALID]"])

        await _agent(llm, test_settings).invoke(state, turn_config)

        assert llm.bound_tools == [["fetch_node_types", "get_node_docs", "validate_workflow"]]

    async def test_fenced_answer(self, state, test_settings, turn_config):
        llm = ScriptedLLM([f"Here it is:\n```loom\n{as_loom(poller_plan())}\n```", "[VALID]"])

        command = await _agent(llm, test_settings).invoke(state, turn_config)

        assert command.update["plan"].title == "Status poller"

    async def test_invalid_verdict_substitutes_correction(self, state, test_settings, turn_config):
        broken = as_loom(slack_plan(target="Slack"))
        fixed = as_loom(slack_plan(title="Webhook to Slack (fixed)"))
        llm = ScriptedLLM(
            [
                tool_call("validate_workflow", {"loom_workflow": broken}, "v1"),
                f"[INVALID] Connection target 'Slack' does not exist.\n\nCORRECTED WORKFLOW:\n```\n{fixed}\n```",
                broken,
            ]
        )

        command = await _agent(llm, test_settings).invoke(state, turn_config)

        plan = command.update["plan"]
        assert plan.title == "Webhook to Slack (fixed)"
        assert plan.workflow.connections["Webhook"]["main"][0][0]["node"] == "Post to Slack"
        feedback = [m for m in command.update["messages"] if isinstance(m, ToolMessage)][0]
        assert feedback.content.startswith("VALIDATION FAILED")
        assert "CORRECTED WORKFLOW (use this):" in feedback.content

    async def test_valid_after_invalid_keeps_planner_plan(self, state, test_settings, turn_config):
        plan_text = as_loom(poller_plan())
        fixed = as_loom(slack_plan())
        llm = ScriptedLLM(
            [
                tool_call("validate_workflow", {"loom_workflow": plan_text}, "v1"),
                f"[INVALID] Wrong service.\n```\n{fixed}\n```",
                tool_call("validate_workflow", {"loom_workflow": plan_text}, "v2"),
                "[VALID]",
                plan_text,
            ]
        )

        command = await _agent(llm, test_settings).invoke(state, turn_config)

        assert command.update["plan"].title == "Status poller"

    async def test_unparsable_answer(self, state, test_settings, turn_config):
        llm = ScriptedLLM(["Sure! I'll build a workflow that polls the endpoint"])

        with pytest.raises(ProtocolParseError) as exc_info:
            await _agent(llm, test_settings).invoke(state, turn_config)

        error = exc_info.value
        assert error.stage == "planning"
        assert error.errors[0].line == 1
        assert error.snippet.startswith("Sure!")

    async def test_validator_without_sentinel_is_fatal(self, state, test_settings, turn_config):
        llm = ScriptedLLM([as_loom(poller_plan()), "Seems fine to me."])

        with pytest.raises(UnexpectedProtocolError):
            await _agent(llm, test_settings).invoke(state, turn_config)

    async def test_iteration_cap(self, state, test_settings, turn_config):
        settings = test_settings.model_copy(update={"max_tool_iterations": 2})
        llm = ScriptedLLM(
            [
                tool_call("fetch_node_types", {"search": "http"}, "f1"),
                tool_call("fetch_node_types", {"search": "schedule"}, "f2"),
            ]
        )

        with pytest.raises(ToolLoopLimitError) as exc_info:
            await _agent(llm, settings).invoke(state, turn_config)

        assert exc_info.value.iterations == 2
        assert exc_info.value.agent_role == "planning"

    async def test_catalog_errors_are_recoverable(self, state, test_settings, turn_config):
        llm = ScriptedLLM(
            [
                tool_call("get_node_docs", {"node_type": "n8n-nodes-base.htp"}, "d1"),
                as_loom(poller_plan()),
                "[VALID]",
            ]
        )

        command = await _agent(llm, test_settings).invoke(state, turn_config)

        error = [m for m in command.update["messages"] if isinstance(m, ToolMessage)][0]
        assert error.status == "error"
        assert "Unknown node type" in error.content

    async def test_request_message_not_in_state(self, state, test_settings, turn_config):
        llm = ScriptedLLM([as_loom(poller_plan()), "[VALID]"])

        command = await _agent(llm, test_settings).invoke(state, turn_config)

        assert not any(isinstance(m, HumanMessage) for m in command.update["messages"])

    async def test_requires_llm_key(self, state, test_settings):
        with pytest.raises(ConfigurationError):
            await _agent(ScriptedLLM(), test_settings).invoke(state, TurnConfig())


class TestParsePlan:
    """parse_plan() helper."""

    def test_parse(self):
        assert parse_plan(as_loom(slack_plan())).needed_credential_types == ["slackApi"]

    def test_error_context_is_first_error_path(self):
        with pytest.raises(ProtocolParseError) as exc_info:
            parse_plan("workflow:\n  name: X\n      bad: 1")

        assert exc_info.value.context == "workflow"
