"""Weaver exception hierarchy.

Fatal errors abort the current turn and carry enough context (stage,
field/context, raw input snippet) to drive a correction loop or a
user-facing message. ``ToolExecutionError`` is the one non-fatal error:
the tool loop turns it into text that the agent reads on its next
inference.

Usage:
    from weaver.exceptions import ProtocolParseError, WeaverError

    try:
        result = await runner.run_turn(invocation)
    except WeaverError as e:
        logger.error("Turn failed [%s]: %s", e.correlation_id, e)
"""

import uuid
from typing import Any

SNIPPET_LIMIT = 500


def _snippet(raw: str | None) -> str | None:
    if raw is None:
        return None
    if len(raw) <= SNIPPET_LIMIT:
        return raw
    return raw[:SNIPPET_LIMIT] + "..."


class WeaverError(Exception):
    """Base exception for all Weaver errors.

    Carries a correlation_id for tracing errors across layers, plus the
    pipeline stage that raised it and a truncated snippet of the input
    that caused it.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        context: str | None = None,
        snippet: str | None = None,
        correlation_id: str | None = None,
    ):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.stage = stage
        self.context = context
        self.snippet = _snippet(snippet)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a JSON-friendly payload."""
        payload: dict[str, Any] = {
            "error": type(self).__name__,
            "message": str(self),
            "correlation_id": self.correlation_id,
        }
        if self.stage:
            payload["stage"] = self.stage
        if self.context:
            payload["context"] = self.context
        if self.snippet:
            payload["snippet"] = self.snippet
        return payload


class ConfigurationError(WeaverError):
    """Missing or invalid configuration (API keys, plan precondition)."""

    pass


class AgentError(WeaverError):
    """Errors from agent operations."""

    def __init__(self, message: str, *, agent_role: str | None = None, **kwargs):
        self.agent_role = agent_role
        super().__init__(message, **kwargs)


class ToolLoopLimitError(AgentError):
    """The tool-call loop hit its iteration cap without a final answer."""

    def __init__(self, message: str, *, iterations: int, **kwargs):
        self.iterations = iterations
        super().__init__(message, **kwargs)


class ProtocolParseError(WeaverError):
    """A serialized plan could not be parsed.

    ``errors`` holds the parser's line-level errors.
    """

    def __init__(self, message: str, *, errors: list[Any] | None = None, **kwargs):
        self.errors = list(errors or [])
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = [str(e) for e in self.errors]
        return payload


class ValidationError(WeaverError):
    """The validator rejected a plan and its correction was unusable."""

    def __init__(self, message: str, *, explanation: str = "", **kwargs):
        self.explanation = explanation
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["explanation"] = self.explanation
        return payload


class UnexpectedProtocolError(WeaverError):
    """A model response did not follow the expected response contract."""

    def __init__(self, message: str, *, response: str = "", **kwargs):
        self.response = response
        super().__init__(message, **kwargs)


class NormalizationError(WeaverError):
    """A workflow is structurally invalid after defaulting.

    ``errors`` is the ordered, per-field list produced by the normalizer.
    """

    def __init__(self, message: str, *, errors: list[Any] | None = None, **kwargs):
        self.errors = list(errors or [])
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = [
            e.model_dump() if hasattr(e, "model_dump") else str(e) for e in self.errors
        ]
        return payload


class PlatformClientError(WeaverError):
    """Errors from the automation platform REST API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        **kwargs,
    ):
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message, **kwargs)


class ToolExecutionError(WeaverError):
    """A tool failed. Not fatal: fed back to the calling agent as text."""

    def __init__(self, message: str, *, tool: str | None = None, **kwargs):
        self.tool = tool
        super().__init__(message, **kwargs)
