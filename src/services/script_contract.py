"""Validation of text-generation output into a Script.

The model is asked for JSON in a fixed shape. Anything that does not match
that shape is rejected as a whole before any scene is processed.
"""

import json
import logging
from typing import Any

from models.script import AssetType, Scene, Script, SocialMetadata, VideoEngine
from services.errors import InvalidMetadataFormat, InvalidScriptFormat
from services.prompts import strip_markdown_code_blocks

logger = logging.getLogger(__name__)

REQUIRED_SCRIPT_FIELDS = ("topic", "hook", "body", "outro")
REQUIRED_SCENE_FIELDS = ("id", "timestamp", "text", "visualPrompt", "assetType")
SOCIAL_METADATA_FIELDS = ("youtubeTitle", "youtubeDescription", "instagramCaption")


def _require_string(data: dict, key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise InvalidScriptFormat(f"{where}: '{key}' must be a string")
    return value


def _parse_scene(raw: Any, index: int, default_engine: VideoEngine) -> Scene:
    where = f"scenes[{index}]"
    if not isinstance(raw, dict):
        raise InvalidScriptFormat(f"{where} must be an object")

    missing = [key for key in REQUIRED_SCENE_FIELDS if key not in raw]
    if missing:
        raise InvalidScriptFormat(f"{where} is missing {', '.join(missing)}")

    scene_id = raw["id"]
    # Models sometimes emit numeric ids
    if isinstance(scene_id, int) and not isinstance(scene_id, bool):
        scene_id = str(scene_id)
    if not isinstance(scene_id, str) or not scene_id.strip():
        raise InvalidScriptFormat(f"{where}: 'id' must be a non-empty string")

    asset_type = raw["assetType"]
    try:
        asset_type = AssetType(asset_type)
    except ValueError:
        raise InvalidScriptFormat(
            f"{where}: 'assetType' must be 'image' or 'video', got {asset_type!r}"
        )

    return Scene(
        id=scene_id.strip(),
        timestamp=_require_string(raw, "timestamp", where),
        text=_require_string(raw, "text", where),
        visual_prompt=_require_string(raw, "visualPrompt", where),
        asset_type=asset_type,
        engine=default_engine,
    )


def parse_script(
    text: str,
    default_engine: VideoEngine = VideoEngine.KIE_VEO,
    narration_enabled: bool = False,
) -> Script:
    """Parse and validate a script document returned by the text model.

    Args:
        text: Raw model output, optionally wrapped in a markdown code fence
        default_engine: Video engine assigned to every parsed scene
        narration_enabled: Script-level narration flag for the new script

    Returns:
        Validated Script with scenes in document order

    Raises:
        InvalidScriptFormat: If the text is not JSON or does not match the shape
    """
    if not text or not text.strip():
        raise InvalidScriptFormat("Invalid script format received from AI: empty response")

    try:
        data = json.loads(strip_markdown_code_blocks(text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse script JSON: {e}")
        raise InvalidScriptFormat(f"Invalid script format received from AI: {e}")

    if not isinstance(data, dict):
        raise InvalidScriptFormat("Invalid script format received from AI: expected an object")

    missing = [key for key in (*REQUIRED_SCRIPT_FIELDS, "scenes") if key not in data]
    if missing:
        raise InvalidScriptFormat(f"Script is missing {', '.join(missing)}")

    fields = {key: _require_string(data, key, "script") for key in REQUIRED_SCRIPT_FIELDS}

    raw_scenes = data["scenes"]
    if not isinstance(raw_scenes, list) or not raw_scenes:
        raise InvalidScriptFormat("Script must contain a non-empty 'scenes' list")

    scenes = [
        _parse_scene(raw, index, default_engine) for index, raw in enumerate(raw_scenes)
    ]

    seen: set[str] = set()
    for scene in scenes:
        if scene.id in seen:
            raise InvalidScriptFormat(f"Duplicate scene id: {scene.id}")
        seen.add(scene.id)

    logger.info(f"Parsed script '{fields['topic']}' with {len(scenes)} scenes")
    return Script(scenes=scenes, narration_enabled=narration_enabled, **fields)


def parse_social_metadata(text: str) -> SocialMetadata:
    """Parse the post copy returned by the text model.

    Raises:
        InvalidMetadataFormat: If the text is not a JSON object with all three fields
    """
    try:
        data = json.loads(strip_markdown_code_blocks(text or ""))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse social metadata: {e}")
        raise InvalidMetadataFormat(f"Invalid metadata format from AI: {e}")

    if not isinstance(data, dict):
        raise InvalidMetadataFormat("Invalid metadata format from AI: expected an object")
    invalid = [
        key for key in SOCIAL_METADATA_FIELDS if not isinstance(data.get(key), str) or not data[key].strip()
    ]
    if invalid:
        raise InvalidMetadataFormat(f"Invalid metadata format from AI: missing {', '.join(invalid)}")

    return SocialMetadata(
        youtube_title=data["youtubeTitle"].strip(),
        youtube_description=data["youtubeDescription"].strip(),
        instagram_caption=data["instagramCaption"].strip(),
    )
