"""Bounded tool-calling loop.

    infer -> if tool calls: run them in order, append results, repeat
          -> else: done

Each tool result is appended as a ``ToolMessage`` before the next
inference. A ``ToolExecutionError``, an unknown tool name or invalid
tool arguments become error text the agent can read and recover from;
any other exception is fatal and propagates.
"""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, ToolMessage
from langchain_core.tools import BaseTool
from pydantic import ValidationError as PydanticValidationError

from weaver.exceptions import ToolExecutionError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10


def message_text(message: BaseMessage | None) -> str:
    """Plain text of a message's content."""
    if message is None:
        return ""
    content = message.content
    if isinstance(content, str):
        return content
    return "".join(
        block.get("text", "") if isinstance(block, dict) else str(block) for block in content
    )


@dataclass
class ToolLoopResult:
    """Outcome of a tool loop.

    Attributes:
        messages: New messages produced by the loop, in order
        final: The final answer, or None if the loop was cut off
        iterations: Number of model inferences made
        exhausted: True if the iteration cap was reached with tools still pending
    """

    messages: list[BaseMessage] = field(default_factory=list)
    final: AIMessage | None = None
    iterations: int = 0
    exhausted: bool = False

    @property
    def final_text(self) -> str:
        return message_text(self.final)

    def tool_messages(self, name: str | None = None) -> list[ToolMessage]:
        """Tool results, most recent first, optionally for one tool."""
        results = [m for m in reversed(self.messages) if isinstance(m, ToolMessage)]
        if name is not None:
            results = [m for m in results if m.name == name]
        return results


async def execute_tool_call(
    tool_lookup: dict[str, BaseTool],
    call: dict[str, Any],
) -> tuple[str, str]:
    """Run one tool call.

    Returns:
        (content, status) where status is "success" or "error"
    """
    name = call.get("name", "")
    tool = tool_lookup.get(name)
    if tool is None:
        available = ", ".join(sorted(tool_lookup)) or "none"
        return f"Error: unknown tool '{name}'. Available tools: {available}", "error"

    try:
        result = await tool.ainvoke(call.get("args") or {})
    except ToolExecutionError as e:
        logger.info("Tool %s failed: %s", name, e)
        return f"Error: {e}", "error"
    except PydanticValidationError as e:
        return f"Error: invalid arguments for {name}: {e}", "error"

    if isinstance(result, str):
        return result, "success"
    return json.dumps(result, default=str), "success"


async def run_tool_loop(
    llm: BaseChatModel,
    tools: Sequence[BaseTool],
    messages: Sequence[BaseMessage],
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    agent: str = "agent",
) -> ToolLoopResult:
    """Run the bounded tool loop.

    Args:
        llm: Chat model (tools are bound here)
        tools: Tools the model may call
        messages: Prompt and history for the first inference
        max_iterations: Maximum number of model inferences
        agent: Agent name for log lines

    Returns:
        ToolLoopResult with the new messages and the final answer
    """
    tool_llm = llm.bind_tools(list(tools)) if tools else llm
    tool_lookup = {tool.name: tool for tool in tools}
    result = ToolLoopResult()

    while result.iterations < max_iterations:
        result.iterations += 1
        response = await tool_llm.ainvoke([*messages, *result.messages])
        if not isinstance(response, AIMessage):
            response = AIMessage(content=message_text(response))
        result.messages.append(response)

        if not response.tool_calls:
            result.final = response
            logger.debug("%s tool loop finished after %d inference(s)", agent, result.iterations)
            return result

        for call in response.tool_calls:
            content, status = await execute_tool_call(tool_lookup, call)
            result.messages.append(
                ToolMessage(
                    content=content,
                    tool_call_id=call.get("id") or "",
                    name=call.get("name"),
                    status=status,
                )
            )

    result.exhausted = True
    logger.warning("%s tool loop hit the %d-inference cap", agent, max_iterations)
    return result
