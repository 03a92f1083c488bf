"""Unit tests for the execution agent."""

import pytest
from langchain_core.messages import AIMessage, ToolMessage
from langgraph.graph import END

from tests.factories import PlanPayloadFactory, WorkflowFactory, poller_plan, slack_plan
from tests.helpers.fake_llm import ScriptedLLM, tool_call
from weaver.agents.execution import ExecutionAgent, extract_workflow_id
from weaver.agents.tool_loop import ToolLoopResult
from weaver.exceptions import ConfigurationError, NormalizationError
from weaver.graph.state import ConversationState, RequirementsStatus
from weaver.schema import plan_from_payload
from weaver.settings import TurnConfig


def _state(payload):
    return ConversationState(
        session_id="s1",
        plan=plan_from_payload(payload),
        requirements_status=RequirementsStatus(has_all_required_info=True, confidence=0.9),
    )


def _agent(llm, settings, client):
    return ExecutionAgent(lambda config: client, settings=settings, llm_factory=llm.factory)


class TestExecutionAgent:
    """ExecutionAgent.invoke()."""

    async def test_creates_workflow(self, test_settings, turn_config, fake_platform):
        llm = ScriptedLLM([tool_call("create_workflow", {}, "c1"), "Created your workflow."])

        command = await _agent(llm, test_settings, fake_platform).invoke(_state(poller_plan()), turn_config)

        assert command.goto == END
        assert command.update["workflow_id"] == "wf1"
        assert command.update["credential_guidance"] is None
        assert command.update["requirements_status"] is None
        assert fake_platform.workflows["wf1"]["name"] == "Status poller"
        assert fake_platform.closed

    async def test_missing_credentials_become_guidance(self, test_settings, turn_config, fake_platform):
        llm = ScriptedLLM(
            [
                tool_call("check_credentials", {"credential_types": ["slackApi"]}, "c1"),
                tool_call("create_workflow", {}, "c2"),
                "Created. Set up Slack to finish.",
            ]
        )

        command = await _agent(llm, test_settings, fake_platform).invoke(_state(slack_plan()), turn_config)

        assert command.update["workflow_id"] == "wf1"
        guidance = command.update["credential_guidance"]
        assert [(m.name, m.type) for m in guidance.missing] == [("Slack account", "slackApi")]
        assert guidance.setup_links[0].url == "http://n8n.test/credentials/new/slackApi"

    async def test_guidance_without_credential_check(self, test_settings, turn_config, fake_platform):
        llm = ScriptedLLM([tool_call("create_workflow", {}, "c1"), "Done."])

        command = await _agent(llm, test_settings, fake_platform).invoke(_state(slack_plan()), turn_config)

        assert command.update["credential_guidance"].missing[0].type == "slackApi"

    async def test_available_credentials_need_no_guidance(self, test_settings, turn_config, fake_platform):
        payload = slack_plan()
        payload["credentialsAvailable"] = [{"type": "slackApi"}]
        llm = ScriptedLLM([tool_call("create_workflow", {}, "c1"), "Done."])

        command = await _agent(llm, test_settings, fake_platform).invoke(_state(payload), turn_config)

        assert command.update["credential_guidance"] is None

    async def test_platform_failure_is_reported_to_agent(self, test_settings, turn_config, fake_platform):
        fake_platform.fail_with = "request/body/nodes must be array"
        llm = ScriptedLLM([tool_call("create_workflow", {}, "c1"), "n8n rejected the workflow."])

        command = await _agent(llm, test_settings, fake_platform).invoke(_state(slack_plan()), turn_config)

        assert command.update["workflow_id"] is None
        assert command.update["credential_guidance"] is None
        error = [m for m in command.update["messages"] if isinstance(m, ToolMessage)][0]
        assert error.status == "error"

    async def test_repeated_create_keeps_first_workflow(self, test_settings, turn_config, fake_platform):
        llm = ScriptedLLM(
            [
                tool_call("create_workflow", {}, "c1"),
                tool_call("create_workflow", {}, "c2"),
                "Done.",
            ]
        )

        command = await _agent(llm, test_settings, fake_platform).invoke(_state(poller_plan()), turn_config)

        assert list(fake_platform.workflows) == ["wf1"]
        assert command.update["workflow_id"] == "wf1"

    async def test_no_plan(self, test_settings, turn_config, fake_platform):
        agent = _agent(ScriptedLLM(), test_settings, fake_platform)

        with pytest.raises(ConfigurationError, match="No plan to execute") as exc_info:
            await agent.invoke(ConversationState(session_id="s1"), turn_config)

        assert exc_info.value.stage == "execution"

    async def test_requires_platform_key(self, test_settings, fake_platform):
        config = TurnConfig(llm_api_key="llm-key")
        agent = _agent(ScriptedLLM(), test_settings, fake_platform)

        with pytest.raises(ConfigurationError) as exc_info:
            await agent.invoke(_state(poller_plan()), config)

        assert exc_info.value.context == "platform_api_key"

    async def test_invalid_workflow_never_reaches_platform(self, test_settings, turn_config, fake_platform):
        llm = ScriptedLLM()
        payload = PlanPayloadFactory(workflow=WorkflowFactory(nodes=[]))

        with pytest.raises(NormalizationError) as exc_info:
            await _agent(llm, test_settings, fake_platform).invoke(_state(payload), turn_config)

        assert exc_info.value.context == "nodes"
        assert llm.calls == []
        assert fake_platform.workflows == {}

    async def test_request_mentions_plan(self, test_settings, turn_config, fake_platform):
        llm = ScriptedLLM([tool_call("create_workflow", {}, "c1"), "Done."])

        await _agent(llm, test_settings, fake_platform).invoke(_state(slack_plan()), turn_config)

        request = llm.calls[0][-1].content
        assert "Webhook to Slack" in request
        assert "slackApi" in request


class TestExtractWorkflowId:
    """extract_workflow_id() prefers structured tool results."""

    def _result(self, *messages, final="Done."):
        return ToolLoopResult(messages=list(messages), final=AIMessage(content=final))

    def test_latest_successful_tool_result(self):
        result = self._result(
            ToolMessage(content='{"id": "first"}', tool_call_id="1", name="create_workflow"),
            ToolMessage(content='{"id": "second"}', tool_call_id="2", name="create_workflow"),
        )

        assert extract_workflow_id(result) == "second"

    def test_error_results_skipped(self):
        result = self._result(
            ToolMessage(content='{"id": "ok"}', tool_call_id="1", name="create_workflow"),
            ToolMessage(content="Error: boom", tool_call_id="2", name="create_workflow", status="error"),
        )

        assert extract_workflow_id(result) == "ok"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Open it at http://n8n.test/workflow/Ab12Cd", "Ab12Cd"),
            ("Workflow ID: `x9y8`", "x9y8"),
            ("The workflow id is 42abc.", "42abc"),
            ('Result: {"id": "q7"}', "q7"),
        ],
    )
    def test_text_fallback(self, text, expected):
        assert extract_workflow_id(self._result(final=text)) == expected

    def test_none(self):
        assert extract_workflow_id(self._result(final="I could not create it.")) is None
