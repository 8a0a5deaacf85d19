"""Prompts module - centralized prompt templates for generation services.

Re-exports all prompt constants and utilities for easy importing:
    from services.prompts import PROMPT_VERSIONS, strip_markdown_code_blocks
    from services.prompts import HISTORI_SCRIPT_V1, build_video_prompt
"""

from services.prompts._base import strip_markdown_code_blocks
from services.prompts.script_generation import (
    HISTORI_SCRIPT_V1,
    RESEARCH_V1,
    SCRIPT_REQUEST_V1,
)
from services.prompts.social import SOCIAL_METADATA_V1
from services.prompts.video import (
    STYLE_KEYWORDS,
    build_image_prompt,
    build_video_prompt,
)

# Prompt version identifiers, logged with each generation request
PROMPT_VERSIONS = {
    "research_topic": "v1",
    "generate_script": "v1",
    "social_metadata": "v1",
    "video_prompt": "v1",
    "image_prompt": "v1",
}

__all__ = [
    # Utilities
    "strip_markdown_code_blocks",
    # Version tracking
    "PROMPT_VERSIONS",
    # Script generation prompts
    "HISTORI_SCRIPT_V1",
    "RESEARCH_V1",
    "SCRIPT_REQUEST_V1",
    # Social post copy
    "SOCIAL_METADATA_V1",
    # Visual prompts
    "STYLE_KEYWORDS",
    "build_video_prompt",
    "build_image_prompt",
]
