"""Loom formatter.

Writes nested mappings and lists in the layout ``weaver.loom.parser``
reads back. Strings that the parser would otherwise infer as another
type (numbers, booleans, ``null``, comma lists, ``key: value`` lookalikes)
are written as double-quoted JSON strings so a formatted document always
parses back to the same data.
"""

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any

from weaver.loom.parser import KEY_SEP_RE, NULL_WORDS, NUMBER_RE

INDENT = "  "
MAX_INLINE_ITEMS = 5

_RESERVED = NULL_WORDS | {"true", "false", "[]", "{}"}
_SPECIAL_STARTS = ("-", "#", '"', "'", "[", "{")


def _needs_quotes(value: str) -> bool:
    return (
        not value
        or value != value.strip()
        or value.startswith(_SPECIAL_STARTS)
        or any(char in value for char in ",\n\r\t")
        or len(value.splitlines()) > 1
        or value in _RESERVED
        or NUMBER_RE.match(value) is not None
        or KEY_SEP_RE.search(value) is not None
    )


def _format_key(key: Any) -> str:
    text = str(key)
    if _needs_quotes(text) or ":" in text:
        return json.dumps(text, ensure_ascii=False)
    return text


def _format_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return json.dumps(repr(value))
        return repr(value)
    text = str(value)
    if _needs_quotes(text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _is_container(value: Any) -> bool:
    return isinstance(value, Mapping) or (
        isinstance(value, Sequence) and not isinstance(value, str | bytes)
    )


def _is_inlinable(items: Sequence[Any]) -> bool:
    # A single value would read back as a scalar, so only 2+ items inline
    if not 2 <= len(items) <= MAX_INLINE_ITEMS:
        return False
    for item in items:
        if _is_container(item):
            return False
        if isinstance(item, str) and _needs_quotes(item):
            return False
        if isinstance(item, float) and not math.isfinite(item):
            return False
    return True


def _emit(prefix: str, value: Any, level: int, lines: list[str]) -> None:
    if isinstance(value, Mapping):
        if not value:
            lines.append(f"{prefix} {{}}")
        else:
            lines.append(prefix)
            _format_mapping(value, level + 1, lines)
    elif _is_container(value):
        if not value:
            lines.append(f"{prefix} []")
        elif _is_inlinable(value):
            lines.append(f"{prefix} " + ", ".join(_format_scalar(v) for v in value))
        else:
            lines.append(prefix)
            _format_list(value, level + 1, lines)
    else:
        lines.append(f"{prefix} {_format_scalar(value)}")


def _format_mapping(mapping: Mapping[str, Any], level: int, lines: list[str]) -> None:
    pad = INDENT * level
    for key, value in mapping.items():
        _emit(f"{pad}{_format_key(key)}:", value, level, lines)


def _format_list(items: Sequence[Any], level: int, lines: list[str]) -> None:
    pad = INDENT * level
    for item in items:
        if isinstance(item, Mapping) and item:
            entries = list(item.items())
            first_key, first_value = entries[0]
            # Remaining keys align with the first one, one level deeper than "-"
            _emit(f"{pad}- {_format_key(first_key)}:", first_value, level + 1, lines)
            _format_mapping(dict(entries[1:]), level + 1, lines)
        elif isinstance(item, Mapping):
            lines.append(f"{pad}- {{}}")
        elif _is_container(item):
            if not item:
                lines.append(f"{pad}- []")
            elif _is_inlinable(item):
                lines.append(f"{pad}- " + ", ".join(_format_scalar(v) for v in item))
            else:
                lines.append(f"{pad}-")
                _format_list(item, level + 1, lines)
        else:
            lines.append(f"{pad}- {_format_scalar(item)}")


def format(data: Mapping[str, Any]) -> str:  # noqa: A001
    """Format a mapping as Loom text.

    Args:
        data: Mapping of plain values (str, numbers, bool, None, lists, dicts)

    Returns:
        Loom document text
    """
    lines: list[str] = []
    _format_mapping(data, 0, lines)
    return "\n".join(lines)
