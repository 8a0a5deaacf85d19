"""Base utilities for prompts module.

Contains shared helper functions used across prompt modules.
"""

import re

_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


def strip_markdown_code_blocks(text: str) -> str:
    """Strip a surrounding markdown code fence from model output.

    Handles both bare fences and language-tagged ones (```json, ```JSON).

    Args:
        text: Raw text that may be wrapped in a code fence

    Returns:
        Text with the fence removed
    """
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text, count=1)
        text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()
