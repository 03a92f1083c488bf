"""Loom parser.

Loom is an indentation-based key/value format for workflow plans:

    title: Webhook to Slack
    workflow:
      name: Webhook to Slack
      nodes:
        - name: Webhook
          type: n8n-nodes-base.webhook
          position: 250, 300
      connections:
        Webhook:
          main:
            -
              - node: Slack

Rules:
- Blank lines and lines starting with ``#`` are ignored.
- Nesting is by indentation; ``key:`` with nothing after it opens a block.
- ``- `` starts a list item; ``- key: value`` starts a mapping item.
- Scalars are inferred: ``null``/``nil``, ``true``/``false``, numbers,
  ``[]``/``{}``, and comma-separated values become inline lists.
  Double-quoted values are JSON strings and are never inferred.

``parse`` never raises: problems are reported as ``ParseError`` entries.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any

NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?([eE][-+]?\d+)?$")
KEY_SEP_RE = re.compile(r":(?:\s|$)")
BARE_KEY_RE = re.compile(r"^([A-Za-z_][\w.-]*):")
NULL_WORDS = frozenset({"null", "nil"})

_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class ParseError:
    """A single problem found while parsing.

    Attributes:
        line: 1-based line number (0 for document-level problems)
        message: What went wrong
        content: The offending line, stripped
        path: Dotted path of the value being parsed, if known
    """

    line: int
    message: str
    content: str = ""
    path: str = ""

    def __str__(self) -> str:
        where = f" ({self.path})" if self.path else ""
        return f"line {self.line}{where}: {self.message}"


@dataclass
class ParseResult:
    """Outcome of parsing a Loom document."""

    success: bool
    data: dict[str, Any] | None = None
    errors: list[ParseError] = field(default_factory=list)


@dataclass
class _Line:
    number: int
    indent: int
    text: str


def _tokenize(text: str) -> list[_Line]:
    lines: list[_Line] = []
    # Only \n separates lines; other line-boundary characters belong to values
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw.expandtabs(2).rstrip()
        stripped = line.lstrip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(_Line(number, len(line) - len(stripped), stripped))

    # Uniformly indented documents parse as if flush left
    if lines:
        base = min(line.indent for line in lines)
        for line in lines:
            line.indent -= base
    return lines


def _is_item(text: str) -> bool:
    return text == "-" or text.startswith("- ")


def _split_key(text: str, *, strict: bool = False) -> tuple[str, str] | None:
    """Split ``key: rest`` into its parts, or return None if not a key line."""
    if text.startswith('"'):
        try:
            key, end = _decoder.raw_decode(text)
        except ValueError:
            return None
        after = text[end:]
        if not isinstance(key, str) or not after.startswith(":"):
            return None
        rest = after[1:]
        if rest and not rest[0].isspace():
            return None
        return key, rest.strip()

    if text.startswith(("[", "{", "'")):
        return None

    match = KEY_SEP_RE.search(text)
    if match and match.start() > 0:
        return text[: match.start()].strip(), text[match.end() :].strip()

    if not strict:
        bare = BARE_KEY_RE.match(text)
        if bare:
            return bare.group(1), text[bare.end() :].strip()
    return None


def _split_commas(body: str) -> list[str]:
    """Split on commas that are not inside a double-quoted string."""
    parts: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for char in body:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if char == "\\" and in_quotes:
            current.append(char)
            escaped = True
            continue
        if char == '"':
            in_quotes = not in_quotes
        if char == "," and not in_quotes:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return parts


def _infer(text: str) -> Any:
    if text in NULL_WORDS:
        return None
    if text == "true":
        return True
    if text == "false":
        return False
    if NUMBER_RE.match(text):
        if "." in text or "e" in text or "E" in text:
            return float(text)
        return int(text)
    return text


class _Parser:
    def __init__(self, lines: list[_Line]):
        self.lines = lines
        self.pos = 0
        self.errors: list[ParseError] = []

    def error(self, line: _Line, message: str, path: str = "") -> None:
        self.errors.append(ParseError(line.number, message, line.text, path))

    def peek(self) -> _Line | None:
        return self.lines[self.pos] if self.pos < len(self.lines) else None

    def skip_block(self, indent: int) -> None:
        self.pos += 1
        while self.pos < len(self.lines) and self.lines[self.pos].indent > indent:
            self.pos += 1

    def parse_document(self) -> dict[str, Any] | None:
        first = self.lines[0]
        if _is_item(first.text):
            self.error(first, "Document must start with 'key: value' pairs, not a list item")
            return None

        data = self.parse_mapping(0, "")
        while self.pos < len(self.lines):
            self.error(self.lines[self.pos], "Unexpected content after end of document")
            self.pos += 1
        return data

    def parse_block(self, path: str) -> Any:
        line = self.lines[self.pos]
        if _is_item(line.text):
            return self.parse_list(line.indent, path)
        return self.parse_mapping(line.indent, path)

    def parse_mapping(self, indent: int, path: str) -> dict[str, Any]:
        result: dict[str, Any] = {}
        while self.pos < len(self.lines):
            line = self.lines[self.pos]
            if line.indent < indent:
                break
            if line.indent > indent:
                self.error(line, "Unexpected indentation", path)
                self.skip_block(indent)
                continue
            if _is_item(line.text):
                self.error(line, "List item where a 'key: value' pair was expected", path)
                self.skip_block(indent)
                continue

            split = _split_key(line.text)
            if split is None:
                self.error(line, "Expected 'key: value'", path)
                self.skip_block(indent)
                continue

            key, rest = split
            child_path = f"{path}.{key}" if path else key
            if key in result:
                self.error(line, f"Duplicate key '{key}'", child_path)
            self.pos += 1

            if rest:
                result[key] = self.parse_scalar(rest, line, child_path)
                continue

            nxt = self.peek()
            if nxt is not None and nxt.indent > indent:
                result[key] = self.parse_block(child_path)
            elif nxt is not None and nxt.indent == indent and _is_item(nxt.text):
                # "key:" followed by list items at the same indentation
                result[key] = self.parse_list(indent, child_path)
            else:
                result[key] = ""
        return result

    def parse_list(self, indent: int, path: str) -> list[Any]:
        items: list[Any] = []
        while self.pos < len(self.lines):
            line = self.lines[self.pos]
            if line.indent > indent:
                self.error(line, "Unexpected indentation", path)
                self.skip_block(indent)
                continue
            if line.indent < indent or not _is_item(line.text):
                break

            item_path = f"{path}[{len(items)}]"
            body = line.text[1:]
            stripped = body.lstrip()

            if not stripped:
                self.pos += 1
                nxt = self.peek()
                if nxt is not None and nxt.indent > indent:
                    items.append(self.parse_block(item_path))
                else:
                    items.append("")
                continue

            if _split_key(stripped, strict=True) is not None:
                # "- key: value" opens a mapping whose keys align with "key"
                column = indent + 1 + (len(body) - len(stripped))
                self.lines[self.pos] = _Line(line.number, column, stripped)
                items.append(self.parse_mapping(column, item_path))
                continue

            self.pos += 1
            items.append(self.parse_scalar(stripped, line, item_path))
        return items

    def parse_scalar(self, text: str, line: _Line, path: str) -> Any:
        if text.startswith('"'):
            try:
                value, end = _decoder.raw_decode(text)
            except ValueError:
                self.error(line, "Unterminated or malformed quoted string", path)
                return text
            remainder = text[end:].strip()
            if not remainder:
                return value
            if remainder.startswith(","):
                return self.parse_inline_list(text, line, path)
            self.error(line, "Unexpected text after quoted string", path)
            return value

        if len(text) >= 2 and text.startswith("'") and text.endswith("'"):
            return text[1:-1]
        if text == "[]":
            return []
        if text == "{}":
            return {}
        if text.startswith("{") and text.endswith("}"):
            try:
                return json.loads(text)
            except ValueError:
                return text
        if text.startswith("[") and text.endswith("]"):
            try:
                return json.loads(text)
            except ValueError:
                return self.parse_inline_list(text[1:-1], line, path)
        if "," in text:
            return self.parse_inline_list(text, line, path)
        return _infer(text)

    def parse_inline_list(self, body: str, line: _Line, path: str) -> list[Any]:
        if not body.strip():
            return []
        values: list[Any] = []
        for part in _split_commas(body):
            if part.startswith('"'):
                try:
                    values.append(json.loads(part))
                except ValueError:
                    self.error(line, f"Malformed quoted list value {part}", path)
                    values.append(part)
            else:
                values.append(_infer(part))
        return values


def parse(text: str) -> ParseResult:
    """Parse a Loom document.

    Args:
        text: Loom text with any code fences already removed

    Returns:
        ParseResult with ``data`` set when parsing succeeded. On failure
        ``errors`` lists every problem found, with line numbers.
    """
    if not isinstance(text, str):
        return ParseResult(False, None, [ParseError(0, "Input is not text")])

    lines = _tokenize(text)
    if not lines:
        return ParseResult(False, None, [ParseError(0, "Document is empty")])

    parser = _Parser(lines)
    try:
        data = parser.parse_document()
    except RecursionError:
        return ParseResult(False, None, [ParseError(0, "Document is nested too deeply")])

    if parser.errors or data is None:
        return ParseResult(False, data, parser.errors)
    return ParseResult(True, data, [])
