# Generation, mixing, stitching and storage providers
from .base import (
    IMMEDIATE_JOB_ID,
    AssetStorage,
    GenerationRequest,
    HttpProvider,
    PollingProvider,
    VideoProvider,
)
from .cartesia_tts import CartesiaTTSAdapter
from .fal_mix import FalMixAdapter
from .fal_stitch import FalStitchAdapter
from .fal_storage import FalStorage
from .gemini_image import GeminiImageAdapter
from .google_veo import GoogleVeoAdapter
from .kie_sora import KieSoraAdapter
from .kie_veo import KieVeoAdapter

__all__ = [
    "IMMEDIATE_JOB_ID",
    "AssetStorage",
    "GenerationRequest",
    "HttpProvider",
    "PollingProvider",
    "VideoProvider",
    "CartesiaTTSAdapter",
    "FalMixAdapter",
    "FalStitchAdapter",
    "FalStorage",
    "GeminiImageAdapter",
    "GoogleVeoAdapter",
    "KieSoraAdapter",
    "KieVeoAdapter",
]
