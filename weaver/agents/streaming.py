"""Token streaming helpers.

``consume_stream`` reads an LLM ``astream`` and yields ``token`` events
as content arrives while merging tool-call chunks by index. Once the
stream is exhausted it yields a single ``_consume_result`` event with
the full text and the raw tool-call buffers, which ``parse_tool_calls``
decodes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator

logger = logging.getLogger(__name__)


class StreamEvent(dict[str, Any]):
    """An event produced while streaming a model response.

    Attributes:
        type: ``token`` or ``_consume_result``
        content: Text content (for token events)
    """

    def __init__(self, type: str, content: str | None = None, **kwargs: object):
        super().__init__(type=type, content=content, **kwargs)


@dataclass(frozen=True)
class ParsedToolCall:
    """A decoded tool call.

    Attributes:
        name: Tool function name.
        args: JSON-decoded arguments dict.
        id: Tool call ID from the LLM.
    """

    name: str
    args: dict[str, Any]
    id: str


def _chunk_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Content blocks: keep the text parts only
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block) for block in content
        )
    return str(content)


async def consume_stream(
    astream: AsyncIterator[Any],
) -> AsyncGenerator[StreamEvent, None]:
    """Consume an LLM astream, yielding token events and accumulating tool chunks.

    Args:
        astream: Async iterator of message chunks (e.g. from ``llm.astream()``).

    Yields:
        ``token`` events during streaming, then one ``_consume_result``
        event carrying ``collected_content`` and ``tool_calls_buffer``.
    """
    collected_content = ""
    tool_calls_buffer: list[dict[str, str]] = []

    async for chunk in astream:
        tool_call_chunks = getattr(chunk, "tool_call_chunks", None) or []

        # Skip content co-located with tool call chunks; some models leak partial JSON there
        if chunk.content and not tool_call_chunks:
            token = _chunk_text(chunk.content)
            if token:
                collected_content += token
                yield StreamEvent(type="token", content=token)

        for tc_chunk in tool_call_chunks:
            idx = tc_chunk.get("index") or 0
            while len(tool_calls_buffer) <= idx:
                tool_calls_buffer.append({"name": "", "args": "", "id": ""})
            buf = tool_calls_buffer[idx]
            if tc_chunk.get("name"):
                buf["name"] = tc_chunk["name"]
            if tc_chunk.get("args"):
                buf["args"] += tc_chunk["args"]
            if tc_chunk.get("id"):
                buf["id"] = tc_chunk["id"]

    yield StreamEvent(
        type="_consume_result",
        collected_content=collected_content,
        tool_calls_buffer=tool_calls_buffer,
    )


def parse_tool_calls(buffer: list[dict[str, str]]) -> list[ParsedToolCall]:
    """Decode raw tool call buffers.

    Tool calls with an empty name or undecodable JSON arguments are
    skipped; both indicate truncated model output.
    """
    result: list[ParsedToolCall] = []
    for index, tc_buf in enumerate(buffer):
        name = tc_buf.get("name", "")
        if not name:
            logger.warning("Skipping tool call with empty name (likely truncated output)")
            continue
        try:
            args = json.loads(tc_buf["args"]) if tc_buf.get("args") else {}
        except json.JSONDecodeError:
            logger.warning(
                "Skipping tool call '%s': args JSON could not be parsed. Raw args: %s",
                name,
                tc_buf["args"][:200],
            )
            continue
        if not isinstance(args, dict):
            logger.warning("Skipping tool call '%s': args are not an object", name)
            continue
        result.append(ParsedToolCall(name=name, args=args, id=tc_buf.get("id") or f"call_{index}"))
    return result
