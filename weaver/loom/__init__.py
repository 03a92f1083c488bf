"""Loom: compact line-oriented serialization for workflow plans.

Usage:
    from weaver import loom

    text = loom.format(plan.to_payload())
    result = loom.parse(loom.strip_code_fences(model_output))
    if not result.success:
        for error in result.errors:
            print(error)
"""

from weaver.loom.fences import strip_code_fences
from weaver.loom.formatter import format  # noqa: A004
from weaver.loom.parser import ParseError, ParseResult, parse

__all__ = ["ParseError", "ParseResult", "format", "parse", "strip_code_fences"]
