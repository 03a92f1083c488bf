"""Code-fence stripping for model output."""

import re

_FENCED_BLOCK_RE = re.compile(r"```[^\n]*\n(.*?)\n?```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the content of the first fenced block, or the text itself.

    Models often wrap a Loom document in a fenced block (with or without
    a language tag) and sometimes surround it with prose. An unterminated
    opening fence is dropped.
    """
    stripped = text.strip()
    match = _FENCED_BLOCK_RE.search(stripped)
    if match:
        return match.group(1).strip("\n")
    if stripped.startswith("```"):
        _, _, rest = stripped.partition("\n")
        return rest.strip("\n")
    return stripped
