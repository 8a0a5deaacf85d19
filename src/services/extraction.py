"""Result-field alias rules for provider responses.

Providers return the same value under many different keys depending on the
endpoint version. Each rule is a pure function ``(raw) -> value | None`` and a
rule list is probed in order; the first non-empty match wins.
"""

from typing import Any, Callable, Optional, Sequence
from urllib.parse import urlparse

Rule = Callable[[Any], Optional[str]]


def field_path(*keys: str) -> Rule:
    """Build a rule that reads a nested field, e.g. ``field_path("data", "url")``."""

    def rule(raw: Any) -> Optional[str]:
        value = raw
        for key in keys:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        # Numeric ids are accepted, nested objects and booleans are not
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    rule.__name__ = ".".join(keys)
    return rule


def first_list_item(*keys: str) -> Rule:
    """Build a rule that reads the first string of a nested list field."""

    def rule(raw: Any) -> Optional[str]:
        value = raw
        for key in keys:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        if isinstance(value, list) and value:
            first = value[0]
            if isinstance(first, str) and first.strip():
                return first.strip()
        return None

    rule.__name__ = ".".join(keys) + "[0]"
    return rule


def first_match(raw: Any, rules: Sequence[Rule]) -> Optional[str]:
    """Return the first non-empty value produced by ``rules``, or None."""
    for rule in rules:
        value = rule(raw)
        if value:
            return value
    return None


# Immediate video URL on a generation submit response
VIDEO_URL_RULES: list[Rule] = [
    field_path("videoUrl"),
    field_path("video_url"),
    field_path("url"),
    field_path("downloadUrl"),
    field_path("download_url"),
    field_path("video"),
    field_path("fileUrl"),
    field_path("file_url"),
    field_path("data", "videoUrl"),
    field_path("data", "url"),
    field_path("data", "video"),
    field_path("result", "videoUrl"),
    field_path("result", "url"),
    field_path("result", "video"),
]

# Task id on a generation submit response
JOB_ID_RULES: list[Rule] = [
    field_path("taskId"),
    field_path("task_id"),
    field_path("id"),
    field_path("data", "taskId"),
    field_path("data", "id"),
    field_path("requestId"),
    field_path("request_id"),
    field_path("jobId"),
    field_path("job_id"),
    field_path("task"),
    field_path("job"),
    field_path("result", "taskId"),
    field_path("result", "id"),
]

# KIE record-info completion payload
KIE_RESULT_URL_RULES: list[Rule] = [
    first_list_item("data", "response", "resultUrls"),
    first_list_item("data", "response", "originUrls"),
]

# fal.ai queue result for FFmpeg jobs (merge-videos, merge-audio-video)
STITCH_URL_RULES: list[Rule] = [
    field_path("video", "url"),
    field_path("response", "video", "url"),
    field_path("response", "video_url"),
    field_path("response", "url"),
    field_path("response", "output_url"),
    field_path("response", "merged_video_url"),
    field_path("video_url"),
    field_path("url"),
    field_path("output_url"),
]

# fal.ai queue submission
REQUEST_ID_RULES: list[Rule] = [
    field_path("request_id"),
    field_path("requestId"),
    field_path("id"),
]

# fal.ai queue status
STATUS_RULES: list[Rule] = [
    field_path("status"),
    field_path("state"),
]

# fal.ai storage upload
UPLOAD_URL_RULES: list[Rule] = [
    field_path("url"),
    field_path("file_url"),
    field_path("file_path"),
]

LOCAL_SCHEMES = ("file", "data")


def is_valid_asset_url(url: Optional[str], allow_local: bool = False) -> bool:
    """Check that a URL is an absolute http(s) URL.

    Args:
        url: Candidate URL
        allow_local: Also accept ``file://`` and ``data:`` references for
            blobs that only exist in this process

    Returns:
        True if the URL has an accepted shape
    """
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme in ("http", "https"):
        return bool(parsed.netloc)
    if allow_local and parsed.scheme in LOCAL_SCHEMES:
        return bool(parsed.path)
    return False
