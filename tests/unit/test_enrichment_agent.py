"""Unit tests for the enrichment agent."""

import pytest
from langchain_core.messages import AIMessage, HumanMessage
from langgraph.graph import END

from tests.helpers.fake_llm import ScriptedLLM
from weaver.agents.enrichment import EnrichmentAgent, read_status
from weaver.agents.streaming import ParsedToolCall
from weaver.exceptions import ConfigurationError
from weaver.graph.state import ConversationState, RequirementsStatus
from weaver.settings import TurnConfig
from weaver.tools.status_tools import STATUS_TOOL_NAME


def _status_reply(text, ready=False, confidence=0.4, missing=("Slack channel",)):
    return AIMessage(
        content=text,
        tool_calls=[
            {
                "name": STATUS_TOOL_NAME,
                "args": {"has_all_required_info": ready, "confidence": confidence, "missing_info": list(missing)},
                "id": "status-1",
            }
        ],
    )


@pytest.fixture
def state():
    return ConversationState(
        session_id="s1",
        messages=[HumanMessage(content="Send webhook events to Slack")],
    )


class TestEnrichmentAgent:
    """EnrichmentAgent.invoke()."""

    async def test_reply_and_status(self, state, test_settings, turn_config):
        llm = ScriptedLLM([_status_reply("Which Slack channel should I post to?")])
        agent = EnrichmentAgent(settings=test_settings, llm_factory=llm.factory)

        command = await agent.invoke(state, turn_config)

        assert command.goto == END
        [reply] = command.update["messages"]
        assert reply.content == "Which Slack channel should I post to?"
        assert not reply.tool_calls
        assert command.update["requirements_status"] == RequirementsStatus(
            has_all_required_info=False, confidence=0.4, missing_info=["Slack channel"]
        )
        assert llm.bound_tools == [[STATUS_TOOL_NAME]]

    async def test_streams_tokens(self, state, test_settings, turn_config):
        llm = ScriptedLLM([_status_reply("Which channel?")])
        agent = EnrichmentAgent(settings=test_settings, llm_factory=llm.factory)
        tokens: list[str] = []

        await agent.invoke(state, turn_config, on_token=tokens.append)

        assert "".join(tokens) == "Which channel?"

    async def test_broken_token_sink_does_not_fail_turn(self, state, test_settings, turn_config):
        llm = ScriptedLLM([_status_reply("Which channel?")])
        agent = EnrichmentAgent(settings=test_settings, llm_factory=llm.factory)

        def sink(token):
            raise RuntimeError("client went away")

        command = await agent.invoke(state, turn_config, on_token=sink)

        assert command.update["messages"][0].content == "Which channel?"

    async def test_no_status_leaves_status_unchanged(self, state, test_settings, turn_config):
        llm = ScriptedLLM(["Tell me more about the workflow."])
        agent = EnrichmentAgent(settings=test_settings, llm_factory=llm.factory)

        command = await agent.invoke(state, turn_config)

        assert "requirements_status" not in command.update

    async def test_status_only_gets_follow_up_reply(self, state, test_settings, turn_config):
        llm = ScriptedLLM([_status_reply("", ready=True, confidence=0.95, missing=()), "I have everything I need."])
        agent = EnrichmentAgent(settings=test_settings, llm_factory=llm.factory)
        tokens: list[str] = []

        command = await agent.invoke(state, turn_config, on_token=tokens.append)

        assert command.update["messages"][0].content == "I have everything I need."
        assert command.update["requirements_status"].has_all_required_info
        assert "".join(tokens) == "I have everything I need."
        # The follow-up sees the status exchange
        assert [type(m).__name__ for m in llm.calls[1][-2:]] == ["AIMessage", "ToolMessage"]

    async def test_sees_system_prompt_and_history(self, state, test_settings, turn_config):
        llm = ScriptedLLM([_status_reply("Which channel?")])
        agent = EnrichmentAgent(settings=test_settings, llm_factory=llm.factory)

        await agent.invoke(state, turn_config)

        sent = llm.calls[0]
        assert type(sent[0]).__name__ == "SystemMessage"
        assert sent[1].content == "Send webhook events to Slack"

    async def test_uses_enrichment_temperature(self, state, test_settings, turn_config):
        llm = ScriptedLLM([_status_reply("?")])
        agent = EnrichmentAgent(settings=test_settings, llm_factory=llm.factory)

        await agent.invoke(state, turn_config)

        assert llm.factory_calls[0]["temperature"] == 0.7

    async def test_requires_llm_key(self, state, test_settings):
        agent = EnrichmentAgent(settings=test_settings, llm_factory=ScriptedLLM().factory)

        with pytest.raises(ConfigurationError) as exc_info:
            await agent.invoke(state, TurnConfig())

        assert exc_info.value.stage == "enrichment"


class TestReadStatus:
    """read_status() picks the last well-formed report."""

    def test_last_valid_call_wins(self):
        calls = [
            ParsedToolCall(STATUS_TOOL_NAME, {"has_all_required_info": False, "confidence": 0.2}, "1"),
            ParsedToolCall(STATUS_TOOL_NAME, {"has_all_required_info": True, "confidence": 0.9}, "2"),
        ]

        assert read_status(calls).confidence == 0.9

    def test_malformed_call_ignored(self):
        calls = [
            ParsedToolCall(STATUS_TOOL_NAME, {"has_all_required_info": True, "confidence": 0.9}, "1"),
            ParsedToolCall(STATUS_TOOL_NAME, {"has_all_required_info": "maybe", "confidence": 0.9}, "2"),
        ]

        assert read_status(calls).has_all_required_info is True

    def test_other_tools_ignored(self):
        assert read_status([ParsedToolCall("other", {}, "1")]) is None
