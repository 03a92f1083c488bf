"""Enrichment agent: gathers requirements through conversation.

The visible reply streams to the caller token by token. Alongside it
the model calls ``report_requirements_status``; the arguments of that
call become ``requirements_status`` in state, which is the only thing
the router reads. The status tool call itself is not kept in history.
"""

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from langchain_core.messages import AIMessage, SystemMessage, ToolMessage
from langgraph.graph import END
from langgraph.types import Command
from pydantic import ValidationError as PydanticValidationError

from weaver.agents import BaseAgent
from weaver.agents.prompts import load_prompt
from weaver.agents.streaming import ParsedToolCall, consume_stream, parse_tool_calls
from weaver.graph.state import AgentRole, ConversationState, RequirementsStatus
from weaver.llm import LLMFactory
from weaver.settings import Settings, TurnConfig
from weaver.tools.status_tools import STATUS_TOOL_NAME, report_requirements_status

logger = logging.getLogger(__name__)

TokenSink = Callable[[str], None]


def _emit(on_token: TokenSink | None, token: str) -> None:
    if on_token is None:
        return
    try:
        on_token(token)
    except Exception:
        # Streaming is a side notification; a broken sink must not end the turn
        logger.debug("Token sink raised; continuing without it", exc_info=True)


def read_status(calls: list[ParsedToolCall]) -> RequirementsStatus | None:
    """Status from the last well-formed status tool call, if any."""
    for call in reversed(calls):
        if call.name != STATUS_TOOL_NAME:
            continue
        try:
            return RequirementsStatus.model_validate(call.args)
        except PydanticValidationError:
            logger.warning("Ignoring malformed requirements status: %s", call.args)
    return None


class EnrichmentAgent(BaseAgent):
    """Talks with the user until the workflow requirements are clear."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        llm_factory: LLMFactory | None = None,
    ):
        super().__init__(AgentRole.ENRICHMENT, "Enrichment", settings=settings, llm_factory=llm_factory)

    async def _stream(
        self,
        astream: AsyncIterator[Any],
        on_token: TokenSink | None,
    ) -> tuple[str, list[ParsedToolCall]]:
        content = ""
        buffer: list[dict[str, str]] = []
        async for event in consume_stream(astream):
            if event["type"] == "_consume_result":
                content = event["collected_content"]
                buffer = event["tool_calls_buffer"]
            else:
                _emit(on_token, event["content"])
        return content, parse_tool_calls(buffer)

    async def invoke(
        self,
        state: ConversationState,
        config: TurnConfig,
        on_token: TokenSink | None = None,
    ) -> Command:
        """Reply to the user and report the requirements status.

        Args:
            state: Current conversation state
            config: Turn configuration
            on_token: Optional callback receiving streamed tokens

        Returns:
            Command to the end of the graph with the reply and, when
            reported, the new requirements status
        """
        llm = self.build_llm(config)
        async with self.trace_span("enrich", state) as span:
            messages = [SystemMessage(content=load_prompt("enrichment_system")), *state.messages]
            tool_llm = llm.bind_tools([report_requirements_status])
            content, calls = await self._stream(tool_llm.astream(messages), on_token)
            status = read_status(calls)

            if not content.strip() and calls:
                # The model only reported status; ask once more for the visible reply
                follow_up = [
                    *messages,
                    AIMessage(
                        content="",
                        tool_calls=[{"name": c.name, "args": c.args, "id": c.id} for c in calls],
                    ),
                    *[ToolMessage(content="Status recorded.", tool_call_id=c.id) for c in calls],
                ]
                content, _ = await self._stream(llm.astream(follow_up), on_token)

            span["outputs"] = {
                "status": status.model_dump() if status else None,
                "reply_chars": len(content),
            }

        update: dict[str, Any] = {"messages": [AIMessage(content=content)]}
        if status is not None:
            update["requirements_status"] = status
        return Command(goto=END, update=update)
