"""Studio settings and provider wiring."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from models.script import VideoEngine, VideoStyle
from services.credentials import CredentialProvider
from services.job_poller import (
    GOOGLE_VEO_POLL_POLICY,
    MIX_POLL_POLICY,
    STITCH_POLL_POLICY,
    VIDEO_POLL_POLICY,
    PollPolicy,
)
from services.providers import (
    AssetStorage,
    CartesiaTTSAdapter,
    FalMixAdapter,
    FalStitchAdapter,
    FalStorage,
    GeminiImageAdapter,
    GoogleVeoAdapter,
    KieSoraAdapter,
    KieVeoAdapter,
    VideoProvider,
)
from services.r2_storage import get_r2_storage

logger = logging.getLogger(__name__)


def _policy(config: dict, prefix: str, default: PollPolicy) -> PollPolicy:
    return PollPolicy(
        interval_seconds=float(config.get(f"{prefix}_poll_interval", default.interval_seconds)),
        max_attempts=int(config.get(f"{prefix}_poll_max_attempts", default.max_attempts)),
    )


@dataclass
class StudioSettings:
    """Rendering defaults and polling budgets derived from configuration."""

    default_engine: VideoEngine = VideoEngine.KIE_VEO
    fallback_engine: Optional[VideoEngine] = None
    style: VideoStyle = VideoStyle.CINEMATIC
    aspect_ratio: str = "9:16"
    narration_enabled: bool = False
    video_policy: PollPolicy = VIDEO_POLL_POLICY
    stitch_policy: PollPolicy = STITCH_POLL_POLICY
    mix_policy: PollPolicy = MIX_POLL_POLICY
    google_veo_policy: PollPolicy = GOOGLE_VEO_POLL_POLICY
    gemini_model: str = "gemini-3-flash-preview"
    gemini_image_model: str = "gemini-2.5-flash-image"
    google_veo_model: str = "veo-3.1-fast-generate-preview"
    kie_pending_error_codes: frozenset[int] = field(default_factory=frozenset)
    local_asset_dir: str = ".assets"

    @classmethod
    def from_config(cls, config: dict) -> "StudioSettings":
        """Build settings from the dict returned by utils.config.load_config."""
        fallback = config.get("fallback_video_engine")
        return cls(
            default_engine=VideoEngine(config.get("default_video_engine", "kie_veo")),
            fallback_engine=VideoEngine(fallback) if fallback else None,
            style=VideoStyle(config.get("video_style", "cinematic")),
            aspect_ratio=config.get("aspect_ratio", "9:16"),
            narration_enabled=bool(config.get("narration_enabled", False)),
            video_policy=_policy(config, "video", VIDEO_POLL_POLICY),
            stitch_policy=_policy(config, "stitch", STITCH_POLL_POLICY),
            mix_policy=_policy(config, "mix", MIX_POLL_POLICY),
            google_veo_policy=_policy(config, "google_veo", GOOGLE_VEO_POLL_POLICY),
            gemini_model=config.get("gemini_model", "gemini-3-flash-preview"),
            gemini_image_model=config.get("gemini_image_model", "gemini-2.5-flash-image"),
            google_veo_model=config.get("google_veo_model", "veo-3.1-fast-generate-preview"),
            kie_pending_error_codes=frozenset(config.get("kie_pending_error_codes") or ()),
            local_asset_dir=config.get("local_asset_dir", ".assets"),
        )


def credentials_from_config(config: dict) -> CredentialProvider:
    """Treat keys present in configuration as explicit values."""
    return CredentialProvider(
        overrides={
            "gemini": config.get("gemini_api_key"),
            "kie": config.get("kie_api_key"),
            "fal": config.get("fal_api_key"),
            "cartesia": config.get("cartesia_api_key"),
            "cartesia_voice": config.get("cartesia_voice_id"),
        }
    )


@dataclass
class ProviderSet:
    """Every collaborator the renderer and assembler need."""

    engines: dict[VideoEngine, VideoProvider]
    image: Optional[VideoProvider]
    tts: Optional[CartesiaTTSAdapter]
    mixer: Optional[FalMixAdapter]
    stitcher: FalStitchAdapter
    storage: Optional[AssetStorage]

    async def close(self) -> None:
        """Close every HTTP client held by the providers."""
        seen = set()
        providers = [*self.engines.values(), self.image, self.tts, self.mixer, self.stitcher, self.storage]
        for provider in providers:
            if provider is None or id(provider) in seen or not hasattr(provider, "close"):
                continue
            seen.add(id(provider))
            await provider.close()


def build_providers(
    settings: StudioSettings,
    credentials: CredentialProvider,
    config: Optional[dict] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> ProviderSet:
    """Create the real provider adapters.

    Durable storage prefers Cloudflare R2 when it is fully configured and
    falls back to fal.ai storage otherwise.
    """
    storage: Optional[AssetStorage] = get_r2_storage(config or {})
    if storage is None:
        storage = FalStorage(credentials)
        logger.info("Using fal.ai storage for generated media")

    engines: dict[VideoEngine, VideoProvider] = {
        VideoEngine.KIE_VEO: KieVeoAdapter(
            credentials,
            policy=settings.video_policy,
            cancel_event=cancel_event,
            pending_error_codes=settings.kie_pending_error_codes,
        ),
        VideoEngine.KIE_SORA: KieSoraAdapter(
            credentials, policy=settings.video_policy, cancel_event=cancel_event
        ),
        VideoEngine.GOOGLE_VEO: GoogleVeoAdapter(
            credentials,
            storage=storage,
            policy=settings.google_veo_policy,
            cancel_event=cancel_event,
            model=settings.google_veo_model,
            local_dir=settings.local_asset_dir,
        ),
    }

    return ProviderSet(
        engines=engines,
        image=GeminiImageAdapter(credentials, storage=storage, model=settings.gemini_image_model),
        tts=CartesiaTTSAdapter(credentials),
        mixer=FalMixAdapter(credentials, policy=settings.mix_policy, cancel_event=cancel_event),
        stitcher=FalStitchAdapter(credentials, policy=settings.stitch_policy, cancel_event=cancel_event),
        storage=storage,
    )
