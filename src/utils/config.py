"""Configuration loading and validation for the studio pipeline."""

import os
from pathlib import Path

from dotenv import load_dotenv

from models.script import VideoEngine, VideoStyle

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int_list(name: str) -> list[int]:
    raw = os.getenv(name, "")
    return [int(part) for part in raw.split(",") if part.strip().lstrip("-").isdigit()]


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Provider API keys (explicit settings override these, see services.credentials)
        "gemini_api_key": os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        "kie_api_key": os.getenv("KIEAI_API_KEY"),
        "fal_api_key": os.getenv("FAL_API_KEY"),
        "cartesia_api_key": os.getenv("CARTESIA_API_KEY"),
        "cartesia_voice_id": os.getenv("CARTESIA_VOICE_ID"),
        # Cloudflare R2 (durable storage for blobs and narration)
        "r2_account_id": os.getenv("R2_ACCOUNT_ID"),
        "r2_access_key_id": os.getenv("R2_ACCESS_KEY_ID"),
        "r2_secret_access_key": os.getenv("R2_SECRET_ACCESS_KEY"),
        "r2_bucket_name": os.getenv("R2_BUCKET_NAME", "histori-studio"),
        "r2_public_url": os.getenv("R2_PUBLIC_URL"),
        # Model configurations
        "gemini_model": os.getenv("GEMINI_MODEL", "gemini-3-flash-preview"),
        "gemini_image_model": os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
        "google_veo_model": os.getenv("GOOGLE_VEO_MODEL", "veo-3.1-fast-generate-preview"),
        # Rendering defaults
        "default_video_engine": os.getenv("DEFAULT_VIDEO_ENGINE", "kie_veo"),
        "fallback_video_engine": os.getenv("FALLBACK_VIDEO_ENGINE") or None,
        "video_style": os.getenv("VIDEO_STYLE", "cinematic"),
        "aspect_ratio": os.getenv("ASPECT_RATIO", "9:16"),
        "narration_enabled": _env_bool("NARRATION_ENABLED", "false"),
        # Polling policies: interval seconds x max attempts (~10 minute ceilings)
        "video_poll_interval": float(os.getenv("VIDEO_POLL_INTERVAL", "5")),
        "video_poll_max_attempts": int(os.getenv("VIDEO_POLL_MAX_ATTEMPTS", "120")),
        "stitch_poll_interval": float(os.getenv("STITCH_POLL_INTERVAL", "2")),
        "stitch_poll_max_attempts": int(os.getenv("STITCH_POLL_MAX_ATTEMPTS", "300")),
        "mix_poll_interval": float(os.getenv("MIX_POLL_INTERVAL", "2")),
        "mix_poll_max_attempts": int(os.getenv("MIX_POLL_MAX_ATTEMPTS", "300")),
        "google_veo_poll_interval": float(os.getenv("GOOGLE_VEO_POLL_INTERVAL", "10")),
        "google_veo_poll_max_attempts": int(os.getenv("GOOGLE_VEO_POLL_MAX_ATTEMPTS", "60")),
        # KIE record-info errorCodes that still mean "in progress", comma separated
        "kie_pending_error_codes": _env_int_list("KIE_PENDING_ERROR_CODES"),
        # Local fallback for blobs that could not be persisted
        "local_asset_dir": resolve_path(os.getenv("LOCAL_ASSET_DIR"), ".assets"),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": _env_bool("LOG_JSON", "false"),
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    engines = {engine.value for engine in VideoEngine}
    if config.get("default_video_engine") not in engines:
        errors.append(
            f"DEFAULT_VIDEO_ENGINE must be one of {sorted(engines)}, "
            f"got {config.get('default_video_engine')!r}"
        )
    fallback = config.get("fallback_video_engine")
    if fallback and fallback not in engines:
        errors.append(f"FALLBACK_VIDEO_ENGINE must be one of {sorted(engines)}, got {fallback!r}")

    styles = {style.value for style in VideoStyle}
    if config.get("video_style") not in styles:
        errors.append(f"VIDEO_STYLE must be one of {sorted(styles)}")

    if config.get("aspect_ratio") not in ("9:16", "16:9"):
        errors.append("ASPECT_RATIO must be '9:16' or '16:9'")

    for prefix in ("video", "stitch", "mix", "google_veo"):
        if config.get(f"{prefix}_poll_interval", 0) < 0:
            errors.append(f"{prefix.upper()}_POLL_INTERVAL cannot be negative")
        if config.get(f"{prefix}_poll_max_attempts", 0) < 1:
            errors.append(f"{prefix.upper()}_POLL_MAX_ATTEMPTS must be at least 1")

    # R2 is optional, but a partial configuration is a mistake
    r2_keys = ("r2_account_id", "r2_access_key_id", "r2_secret_access_key")
    r2_present = [k for k in r2_keys if config.get(k)]
    if r2_present and len(r2_present) != len(r2_keys):
        errors.append(
            "R2_ACCOUNT_ID, R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY must be set together"
        )

    if config.get("narration_enabled") and not config.get("cartesia_voice_id"):
        errors.append("NARRATION_ENABLED requires CARTESIA_VOICE_ID")

    # Validate local asset folder can be created
    local_dir = config.get("local_asset_dir")
    if local_dir:
        try:
            Path(local_dir).mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create local asset folder: {e}")

    return errors
