"""Prompt loader for agent prompts.

Loads prompt templates from markdown files next to this module and
formats them with ``str.format``; literal braces in templates are
written as ``{{`` and ``}}``.
"""

from functools import lru_cache
from pathlib import Path

PROMPT_DIR = Path(__file__).parent


@lru_cache(maxsize=32)
def _load_raw(name: str) -> str:
    """Load raw prompt template from disk (cached).

    Args:
        name: Prompt name (without .md extension)

    Returns:
        Raw template string

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    path = PROMPT_DIR / f"{name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {name}.md")
    return path.read_text(encoding="utf-8")


def load_prompt(name: str, **kwargs: str) -> str:
    """Load a prompt template and format it with kwargs.

    Args:
        name: Prompt name (without .md extension)
        **kwargs: Formatting arguments for the template

    Returns:
        Loaded and formatted prompt string
    """
    return _load_raw(name).format(**kwargs)
