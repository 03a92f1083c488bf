"""Validation capability.

An LLM reviews a serialized plan against its knowledge of n8n and
answers with a verdict sentinel:

- ``[VALID]``: nothing to change.
- ``[INVALID]``: issues plus a corrected plan. The corrected Loom text is
  extracted once (no retries), parsed and converted; that plan replaces
  the planner's. If it cannot be extracted or parsed the plan is
  uncorrectable and ``ValidationError`` carries the full explanation.
- No sentinel: ``UnexpectedProtocolError``.

Structural rules are not checked here; the schema normalizer does that
deterministically before execution.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum

from langchain_core.messages import HumanMessage, SystemMessage

from weaver import loom
from weaver.agents import BaseAgent
from weaver.agents.prompts import load_prompt
from weaver.agents.tool_loop import message_text
from weaver.exceptions import UnexpectedProtocolError, ValidationError
from weaver.graph.state import AgentRole
from weaver.llm import LLMFactory
from weaver.schema.converter import plan_from_payload, plan_to_loom
from weaver.schema.plan import Plan
from weaver.settings import Settings, TurnConfig

logger = logging.getLogger(__name__)

VALID_SENTINEL = "[VALID]"
INVALID_SENTINEL = "[INVALID]"

_FENCED_BLOCK_RE = re.compile(r"```[^\n]*\n(.*?)\n?```", re.DOTALL)
_KEY_LINE_RE = re.compile(r'^(?:"[^"\n]*"|[A-Za-z_][\w.-]*)\s*:(?:\s|$)')
_MARKER_RE = re.compile(r"\b(?:corrected|fixed)\b", re.IGNORECASE)
_PLAN_START_RE = re.compile(r"^(?:title|workflow)\s*:(?:\s|$)")


class Verdict(StrEnum):
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of one validation call.

    Attributes:
        verdict: VALID or INVALID
        explanation: The full model response
        corrected_plan: Replacement plan (INVALID only)
    """

    verdict: Verdict
    explanation: str
    corrected_plan: Plan | None = None

    @property
    def is_valid(self) -> bool:
        return self.verdict is Verdict.VALID

    def to_tool_text(self) -> str:
        """Render the outcome for the planning agent."""
        if self.is_valid:
            return "VALIDATION PASSED: The workflow plan is valid. Reply with it as your final answer."
        issues = _issues_text(self.explanation)
        corrected = plan_to_loom(self.corrected_plan) if self.corrected_plan else ""
        return (
            f"VALIDATION FAILED: {issues}\n\n"
            f"CORRECTED WORKFLOW (use this):\n{corrected}"
        )


@dataclass
class ValidationLedger:
    """Validation outcomes recorded during one planning turn."""

    outcomes: list[ValidationOutcome] = field(default_factory=list)

    def record(self, outcome: ValidationOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def last(self) -> ValidationOutcome | None:
        return self.outcomes[-1] if self.outcomes else None

    @property
    def correction(self) -> Plan | None:
        """Corrected plan if the most recent verdict was INVALID."""
        last = self.last
        if last is None or last.is_valid:
            return None
        return last.corrected_plan


def find_verdict(response: str) -> tuple[Verdict, int] | None:
    """Return the first verdict sentinel in a response and its end offset."""
    found = []
    for sentinel, verdict in ((VALID_SENTINEL, Verdict.VALID), (INVALID_SENTINEL, Verdict.INVALID)):
        index = response.find(sentinel)
        if index >= 0:
            found.append((index, verdict, index + len(sentinel)))
    if not found:
        return None
    _, verdict, end = min(found)
    return verdict, end


def _issues_text(response: str) -> str:
    verdict = find_verdict(response)
    body = response[verdict[1] :] if verdict else response
    lines = []
    for line in body.splitlines():
        if _MARKER_RE.search(line) or line.strip().startswith("```"):
            break
        if line.strip():
            lines.append(line.strip())
    return " ".join(lines) or "The validator found problems with the plan."


def _loom_block(lines: list[str]) -> str | None:
    """Collect a Loom document starting at the first plausible top-level line."""
    start = next((i for i, line in enumerate(lines) if _PLAN_START_RE.match(line)), None)
    if start is None:
        start = next((i for i, line in enumerate(lines) if _KEY_LINE_RE.match(line)), None)
    if start is None:
        return None

    block: list[str] = []
    for line in lines[start:]:
        if not line.strip() or line[0].isspace() or line.startswith("- ") or _KEY_LINE_RE.match(line):
            block.append(line)
        else:
            break
    text = "\n".join(block).strip("\n")
    return text or None


def extract_corrected_loom(response: str) -> str | None:
    """Extract the corrected plan from an ``[INVALID]`` response.

    Tries, in order: the first fenced block after the verdict; the lines
    after a "corrected"/"fixed" marker line; the first top-level
    ``key:`` line to the end of the Loom-looking text.
    """
    verdict = find_verdict(response)
    tail = response[verdict[1] :] if verdict else response

    fenced = _FENCED_BLOCK_RE.search(tail)
    if fenced and fenced.group(1).strip():
        return fenced.group(1)

    lines = tail.replace("\r\n", "\n").split("\n")
    for index, line in enumerate(lines):
        cleaned = line.strip().strip("*#` ")
        if _MARKER_RE.search(cleaned) and cleaned.endswith(":"):
            block = _loom_block(lines[index + 1 :])
            if block:
                return block

    return _loom_block(lines)


def interpret_response(response: str) -> ValidationOutcome:
    """Turn a validator response into an outcome.

    Raises:
        UnexpectedProtocolError: Neither sentinel is present
        ValidationError: INVALID but the correction is missing or unparsable
    """
    verdict = find_verdict(response)
    if verdict is None:
        raise UnexpectedProtocolError(
            "Validator response contained neither [VALID] nor [INVALID]",
            response=response,
            stage="validation",
            context="verdict",
            snippet=response,
        )

    if verdict[0] is Verdict.VALID:
        return ValidationOutcome(Verdict.VALID, response)

    candidate = extract_corrected_loom(response)
    if candidate is None:
        raise ValidationError(
            "Validator rejected the plan without a usable corrected workflow",
            explanation=response,
            stage="validation",
            context="corrected_workflow",
            snippet=response,
        )

    result = loom.parse(loom.strip_code_fences(candidate))
    if not result.success:
        details = "; ".join(str(e) for e in result.errors[:5])
        raise ValidationError(
            f"Validator's corrected workflow could not be parsed: {details}",
            explanation=response,
            stage="validation",
            context=result.errors[0].path if result.errors else "corrected_workflow",
            snippet=candidate,
        )

    return ValidationOutcome(Verdict.INVALID, response, plan_from_payload(result.data))


class ValidationAgent(BaseAgent):
    """LLM reviewer for serialized plans."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        llm_factory: LLMFactory | None = None,
    ):
        super().__init__(AgentRole.VALIDATION, "Validator", settings=settings, llm_factory=llm_factory)

    async def validate(self, loom_text: str, config: TurnConfig) -> ValidationOutcome:
        """Validate a serialized plan.

        Args:
            loom_text: Candidate plan in Loom format
            config: Turn configuration (LLM key and model)

        Returns:
            ValidationOutcome; INVALID outcomes carry the corrected plan
        """
        llm = self.build_llm(config)
        async with self.trace_span("validate") as span:
            response = await llm.ainvoke(
                [
                    SystemMessage(content=load_prompt("validator_system")),
                    HumanMessage(content=load_prompt("validator_request", workflow=loom_text)),
                ]
            )
            outcome = interpret_response(message_text(response))
            span["outputs"] = {"verdict": outcome.verdict.value}
        if not outcome.is_valid:
            logger.info("Validator rejected the plan; corrected plan extracted")
        return outcome
