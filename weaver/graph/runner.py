"""Turn runner: the entry point callers use to drive a conversation.

One ``run_turn`` call takes the caller's message history for a session,
runs the graph on the session's LangGraph thread and returns what
happened. Runs for one session must not overlap; callers serialize them.

A turn ends in one of three ways:

- enrichment needs more information: the result carries a
  ``Continuation`` (session id plus the pending question), and
  ``resume`` continues with the user's answer;
- a workflow was planned and created: ``workflow_id`` is set, with
  credential guidance when credentials are still missing;
- a fatal ``WeaverError`` propagates to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from pydantic import BaseModel, Field

from weaver.agents.tool_loop import message_text
from weaver.graph.router import is_ready_for_planning
from weaver.graph.state import ConversationState, CredentialGuidance, Mode, RequirementsStatus
from weaver.graph.workflow import AgentDependencies, compile_weaver_graph, default_client_factory
from weaver.llm import LLMFactory, get_llm
from weaver.platform.client import PlatformClient
from weaver.schema.plan import Plan
from weaver.settings import Settings, TurnConfig, get_settings

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    """One message of the caller's history."""

    role: Literal["user", "assistant", "system"]
    content: str

    def to_message(self) -> BaseMessage:
        if self.role == "assistant":
            return AIMessage(content=self.content)
        if self.role == "system":
            return SystemMessage(content=self.content)
        return HumanMessage(content=self.content)


class TurnInvocation(BaseModel):
    """Input of one turn."""

    session_id: str = Field(..., min_length=1)
    message_history: list[ChatMessage] = Field(default_factory=list)
    mode: Mode = Mode.CHAT
    config: TurnConfig = Field(default_factory=TurnConfig)


class Continuation(BaseModel):
    """A turn that stopped to ask the user something."""

    session_id: str
    pending_question: str
    missing_info: list[str] = Field(default_factory=list)


class TurnResult(BaseModel):
    """Outcome of one turn."""

    session_id: str
    reply: str = ""
    mode: Mode = Mode.CHAT
    requirements_status: RequirementsStatus | None = None
    plan: Plan | None = None
    workflow_id: str | None = None
    credential_guidance: CredentialGuidance | None = None
    continuation: Continuation | None = None

    @property
    def needs_clarification(self) -> bool:
        return self.continuation is not None


def new_messages(history: list[ChatMessage], has_checkpoint: bool) -> list[BaseMessage]:
    """Messages from the caller's history that the thread has not seen.

    A fresh session takes the whole history. An existing session already
    holds everything up to the last assistant reply, so only the user
    messages after it are new.
    """
    if not has_checkpoint:
        return [m.to_message() for m in history]
    last_reply = max((i for i, m in enumerate(history) if m.role == "assistant"), default=-1)
    return [m.to_message() for m in history[last_reply + 1 :] if m.role == "user"]


def last_reply(messages: list[BaseMessage]) -> str:
    """Text of the last assistant message that is not a tool request."""
    for message in reversed(messages):
        if isinstance(message, AIMessage) and not message.tool_calls:
            text = message_text(message)
            if text.strip():
                return text
    return ""


class TurnRunner:
    """Runs conversation turns against a shared checkpointer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        llm_factory: LLMFactory | None = None,
        client_factory: Callable[[TurnConfig], PlatformClient] | None = None,
        checkpointer: BaseCheckpointSaver | None = None,
    ):
        self._settings = settings or get_settings()
        self._llm_factory = llm_factory or get_llm
        self._client_factory = client_factory or default_client_factory
        self._checkpointer = checkpointer or MemorySaver()

    def _deps(self, config: TurnConfig, on_token: Callable[[str], None] | None) -> AgentDependencies:
        return AgentDependencies(
            config=config,
            settings=self._settings,
            llm_factory=self._llm_factory,
            client_factory=self._client_factory,
            on_token=on_token,
        )

    async def run_turn(
        self,
        invocation: TurnInvocation,
        on_token: Callable[[str], None] | None = None,
    ) -> TurnResult:
        """Run one turn.

        Args:
            invocation: Session id, message history, mode and config
            on_token: Optional callback receiving streamed reply tokens

        Returns:
            TurnResult; ``continuation`` is set when the user must answer

        Raises:
            WeaverError: Any fatal error from the graph
        """
        session_id = invocation.session_id
        graph = compile_weaver_graph(self._deps(invocation.config, on_token), self._checkpointer)
        thread: dict[str, Any] = {"configurable": {"thread_id": session_id}}

        snapshot = await graph.aget_state(thread)
        has_checkpoint = bool(snapshot.values)
        inputs: dict[str, Any] = {
            "messages": new_messages(invocation.message_history, has_checkpoint),
            "session_id": session_id,
        }
        if not has_checkpoint:
            inputs["mode"] = invocation.mode.value

        logger.info(
            "Turn started (session=%s, new_messages=%d, resumed=%s)",
            session_id,
            len(inputs["messages"]),
            has_checkpoint,
        )
        values = await graph.ainvoke(inputs, thread)
        state = ConversationState.model_validate(values)

        if state.mode == Mode.CHAT and is_ready_for_planning(state, self._settings.confidence_threshold):
            logger.info("Requirements complete; continuing to planning (session=%s)", session_id)
            values = await graph.ainvoke({"session_id": session_id}, thread)
            state = ConversationState.model_validate(values)

        return self._result(state, session_id)

    def _result(self, state: ConversationState, session_id: str) -> TurnResult:
        reply = last_reply(state.messages)
        continuation = None
        if state.mode == Mode.CHAT:
            status = state.requirements_status
            continuation = Continuation(
                session_id=session_id,
                pending_question=reply,
                missing_info=list(status.missing_info) if status else [],
            )

        logger.info(
            "Turn finished (session=%s, mode=%s, workflow_id=%s)",
            session_id,
            state.mode.value,
            state.workflow_id or "-",
        )
        return TurnResult(
            session_id=session_id,
            reply=reply,
            mode=state.mode,
            requirements_status=state.requirements_status,
            plan=state.plan,
            workflow_id=state.workflow_id,
            credential_guidance=state.credential_guidance,
            continuation=continuation,
        )

    async def resume(
        self,
        continuation: Continuation,
        reply: str,
        config: TurnConfig,
        on_token: Callable[[str], None] | None = None,
    ) -> TurnResult:
        """Continue a turn that stopped for clarification with the user's answer."""
        return await self.run_turn(
            TurnInvocation(
                session_id=continuation.session_id,
                message_history=[ChatMessage(role="user", content=reply)],
                mode=Mode.CHAT,
                config=config,
            ),
            on_token=on_token,
        )

    async def reset(self, session_id: str) -> None:
        """Forget a session's state."""
        await self._checkpointer.adelete_thread(session_id)
        logger.info("Session %s reset", session_id)
