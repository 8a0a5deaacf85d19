"""Video and image generation prompt enrichment.

Scene visual prompts are extended with the scene's narration, the topic, and
style keywords before being sent to a video provider, so that independently
generated clips stay visually consistent.
"""

from typing import Optional

from models.script import VideoStyle

STYLE_KEYWORDS: dict[VideoStyle, str] = {
    VideoStyle.CINEMATIC: (
        "Cinematic, hyper-realistic, 8k textures, anamorphic lens flares, "
        "dramatic lighting, high-end film production."
    ),
    VideoStyle.GRITTY: (
        "Gritty, handheld camera, high contrast, film grain, raw historical footage look, "
        "muted colors, intense atmosphere."
    ),
    VideoStyle.MEME: (
        "Meme-style, vibrant colors, slightly exaggerated character expressions, "
        "fast-paced action, high-energy visuals."
    ),
    VideoStyle.WATERCOLOR: (
        "Artistic watercolor painting style, soft edges, flowing textures, "
        "historical illustration feel, elegant and evocative."
    ),
    VideoStyle.ANIME: (
        "High-quality anime style, detailed backgrounds, expressive characters, "
        "dynamic action lines, cinematic cel-shaded look."
    ),
}

VIDEO_DIRECTION = (
    "Period-accurate details, dynamic camera movement, high motion, educational and "
    "informative visual storytelling. Characters and actions must clearly convey the "
    "historical narrative. Maintain consistent character appearance and environment "
    "across scenes."
)

IMAGE_STYLE_SUFFIX = (
    "Style: Cinematic, hyper-realistic, dynamic lighting, historical accuracy but "
    "stylized for TikTok."
)


def build_video_prompt(
    prompt: str,
    scene_text: Optional[str] = None,
    topic: Optional[str] = None,
    style: VideoStyle = VideoStyle.CINEMATIC,
) -> str:
    """Extend a scene's visual prompt with narrative context and style.

    Args:
        prompt: The scene's visual prompt
        scene_text: Narration the clip should illustrate
        topic: Overall historical topic
        style: Visual style whose keywords are appended

    Returns:
        Prompt ready to submit to a video provider
    """
    enhanced = prompt
    if scene_text:
        enhanced += f' This scene illustrates: "{scene_text}".'
    if topic:
        enhanced += f" Historical topic: {topic}."
    enhanced += f" {STYLE_KEYWORDS[VideoStyle(style)]} {VIDEO_DIRECTION}"
    return enhanced


def build_image_prompt(prompt: str) -> str:
    """Extend a scene's visual prompt for still-image generation."""
    return f"{prompt}. {IMAGE_STYLE_SUFFIX}"
