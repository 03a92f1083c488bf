"""Plan validation tool for the planning agent."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.tools import BaseTool, tool

from weaver import loom

if TYPE_CHECKING:
    from weaver.agents.validation import ValidationAgent, ValidationLedger
    from weaver.settings import TurnConfig


def make_validation_tool(
    validator: ValidationAgent,
    ledger: ValidationLedger,
    config: TurnConfig,
) -> BaseTool:
    """Build the validate_workflow tool for one planning turn.

    Each outcome is recorded in ``ledger`` so the planner can apply the
    latest correction after its loop. Validation errors are fatal and
    propagate out of the tool loop.
    """

    @tool("validate_workflow")
    async def validate_workflow(loom_workflow: str) -> str:
        """Validate a complete workflow plan written in Loom format.

        Args:
            loom_workflow: The full plan (title, summary, credentials, workflow) in Loom

        Returns:
            VALIDATION PASSED, or VALIDATION FAILED with a corrected workflow to use.
        """
        outcome = await validator.validate(loom.strip_code_fences(loom_workflow), config)
        ledger.record(outcome)
        return outcome.to_tool_text()

    return validate_workflow
