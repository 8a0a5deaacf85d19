"""Per-scene rendering: visual, optional narration, optional mix.

A scene moves through the stages in ``SceneStage``. The renderer never
mutates the Scene it is given; it returns a ``SceneUpdate`` describing the
new asset so the caller can merge and persist it.
"""

import logging
import uuid
from typing import Callable, Optional

from models.script import AssetType, Scene, SceneStage, SceneUpdate, VideoEngine, VideoStyle
from services.errors import (
    GenerationCancelled,
    GenerationFailed,
    GenerationTimeout,
    NoJobIdentifierFound,
    SceneRenderError,
    SceneValidationError,
    StudioError,
)
from services.extraction import is_valid_asset_url
from services.job_poller import ProgressFn
from services.providers.base import (
    IMMEDIATE_JOB_ID,
    AssetStorage,
    GenerationRequest,
    VideoProvider,
)
from services.providers.cartesia_tts import CartesiaTTSAdapter
from services.providers.fal_mix import FalMixAdapter
from utils.logging import scene_context
from utils.progress import ProgressChannel

logger = logging.getLogger(__name__)

# Failures that justify one attempt on the fallback engine
FALLBACK_ERRORS = (GenerationFailed, GenerationTimeout, NoJobIdentifierFound)

# (scene id, job id, engine that issued the job)
SceneJobCallback = Callable[[str, str, VideoEngine], None]


class SceneRenderer:
    """Turns one Scene into a hosted asset.

    Example usage:
        renderer = SceneRenderer(engines={VideoEngine.KIE_VEO: kie_adapter})
        update = await renderer.render(scene, index=0, topic="The Great Emu War")
        script = script.apply_updates([update])
    """

    def __init__(
        self,
        engines: dict[VideoEngine, VideoProvider],
        image_provider: Optional[VideoProvider] = None,
        tts: Optional[CartesiaTTSAdapter] = None,
        mixer: Optional[FalMixAdapter] = None,
        storage: Optional[AssetStorage] = None,
        fallback_engine: Optional[VideoEngine] = None,
        style: VideoStyle = VideoStyle.CINEMATIC,
        aspect_ratio: str = "9:16",
        progress: Optional[ProgressChannel] = None,
    ):
        """Initialize scene renderer.

        Args:
            engines: Video provider per engine
            image_provider: Provider for image-type scenes
            tts: Narration synthesizer
            mixer: Audio/video mixer
            storage: Durable storage for narration audio
            fallback_engine: Engine tried once when the scene's engine fails
            style: Visual style for video prompts
            aspect_ratio: Output aspect ratio
            progress: Channel receiving progress and warnings
        """
        self.engines = engines
        self.image_provider = image_provider
        self.tts = tts
        self.mixer = mixer
        self.storage = storage
        self.fallback_engine = fallback_engine
        self.style = style
        self.aspect_ratio = aspect_ratio
        self.progress = progress or ProgressChannel()

    async def render(
        self,
        scene: Scene,
        index: int,
        topic: Optional[str] = None,
        narration_enabled: bool = False,
        on_job_id: Optional[SceneJobCallback] = None,
        force_video: bool = False,
        require_remote: bool = False,
    ) -> SceneUpdate:
        """Render a scene to a validated asset URL.

        Args:
            scene: Scene to render (not modified)
            index: Zero-based position in the script, used in messages
            topic: Script topic, added to the video prompt
            narration_enabled: Script-level narration flag
            on_job_id: Called with (scene id, job id, engine) as soon as a job is submitted
            force_video: Render a video even for image-type scenes
            require_remote: Reject file:// and data: results

        Returns:
            SceneUpdate with the new asset values

        Raises:
            SceneRenderError: If the scene cannot be rendered
        """
        with scene_context(scene.id):
            return await self._render(
                scene, index, topic, narration_enabled, on_job_id, force_video, require_remote
            )

    async def _render(
        self,
        scene: Scene,
        index: int,
        topic: Optional[str],
        narration_enabled: bool,
        on_job_id: Optional[SceneJobCallback],
        force_video: bool,
        require_remote: bool,
    ) -> SceneUpdate:
        label = f"Scene {index + 1}"
        update = SceneUpdate(scene_id=scene.id)
        wants_video = force_video or scene.asset_type == AssetType.VIDEO
        prompt_current = scene.rendered_prompt is None or scene.rendered_prompt == scene.visual_prompt

        reusable_kind = scene.asset_type == AssetType.VIDEO or not force_video
        if (
            prompt_current
            and reusable_kind
            and is_valid_asset_url(scene.asset_url, allow_local=not require_remote)
        ):
            self._emit(f"{label}: Using existing video", scene)
            logger.info(f"{label} ({scene.id}) already rendered, skipping")
            update.asset_url = scene.asset_url
            update.stage = SceneStage.DONE
            update.skipped = True
            return update

        def job_issued(job_id: str) -> None:
            update.provider_job_id = job_id
            if on_job_id is not None:
                on_job_id(scene.id, job_id, update.engine or scene.engine)

        def report(message: str, elapsed: float) -> None:
            self.progress.emit(f"{label}: {message}", elapsed_seconds=elapsed, scene_id=scene.id)

        # Visual
        update.stage = SceneStage.GENERATING_VISUAL
        try:
            if wants_video:
                asset = await self._render_video(scene, label, topic, job_issued, report, update)
            else:
                asset = await self._render_image(scene, report)
        except GenerationCancelled:
            raise
        except Exception as e:
            raise self._failure(index, scene, update, e)

        update.asset_url = asset.url
        if asset.job_id and asset.job_id != update.provider_job_id:
            update.provider_job_id = asset.job_id
        for warning in asset.warnings:
            self._warn(update, f"{label}: {warning}", scene)
        update.stage = SceneStage.VISUAL_READY

        # Narration is best-effort; any failure leaves the unmixed visual
        if wants_video and scene.wants_narration(narration_enabled):
            await self._narrate(scene, label, update, report)

        try:
            self._check_url(update.asset_url, require_remote)
        except SceneValidationError as e:
            raise self._failure(index, scene, update, e)

        update.rendered_prompt = scene.visual_prompt
        update.stage = SceneStage.DONE
        self._emit(f"{label}: Ready", scene)
        return update

    async def _render_video(
        self,
        scene: Scene,
        label: str,
        topic: Optional[str],
        job_issued: Callable[[str], None],
        report: ProgressFn,
        update: SceneUpdate,
    ):
        request = GenerationRequest(
            prompt=scene.visual_prompt,
            scene_text=scene.text,
            topic=topic,
            style=self.style,
            aspect_ratio=self.aspect_ratio,
        )
        engine = scene.engine
        adapter = self._engine(engine)
        resumable = (
            scene.provider_job_id
            and scene.provider_job_id != IMMEDIATE_JOB_ID
            and (scene.rendered_prompt is None or scene.rendered_prompt == scene.visual_prompt)
        )

        try:
            if resumable:
                self._emit(f"{label}: Resuming job {scene.provider_job_id}...", scene)
                update.provider_job_id = scene.provider_job_id
                return await adapter.resume(scene.provider_job_id, progress=report)

            self._emit(f"{label}: Generating video with {engine.value}...", scene)
            return await adapter.generate(request, on_job_id=job_issued, progress=report)

        except FALLBACK_ERRORS as e:
            fallback = self.fallback_engine
            if fallback is None or fallback == engine or fallback not in self.engines:
                raise
            self._warn(update, f"{label}: {engine.value} failed ({e}); retrying with {fallback.value}", scene)
            update.provider_job_id = None
            update.engine = fallback
            return await self.engines[fallback].generate(request, on_job_id=job_issued, progress=report)

    async def _render_image(self, scene: Scene, report: ProgressFn):
        if self.image_provider is None:
            raise StudioError("No image provider configured")
        request = GenerationRequest(
            prompt=scene.visual_prompt,
            scene_text=scene.text,
            style=self.style,
            aspect_ratio=self.aspect_ratio,
        )
        return await self.image_provider.generate(request, progress=report)

    async def _narrate(
        self,
        scene: Scene,
        label: str,
        update: SceneUpdate,
        report: ProgressFn,
    ) -> None:
        missing = self._narration_unavailable()
        if missing:
            self._warn(update, f"{label}: Narration skipped: {missing}", scene)
            return

        try:
            audio_url = scene.audio_url if is_valid_asset_url(scene.audio_url) else None
            if audio_url is None:
                update.stage = SceneStage.GENERATING_AUDIO
                self._emit(f"{label}: Generating narration...", scene)
                audio = await self.tts.synthesize(scene.text)
                audio_url = await self.storage.upload(
                    audio, f"narration-{scene.id}-{uuid.uuid4().hex[:8]}.wav", "audio/wav"
                )
            update.audio_url = audio_url
            update.stage = SceneStage.AUDIO_READY
            logger.info(f"{label} narration ready: {audio_url}")

            update.stage = SceneStage.MIXING
            self._emit(f"{label}: Mixing narration...", scene)
            mixed = await self.mixer.mix(update.asset_url, audio_url, progress=report)
            update.asset_url = mixed.url
            update.stage = SceneStage.MIXED
        except GenerationCancelled:
            raise
        except Exception as e:
            logger.warning(f"{label} narration failed at {update.stage.value}: {e}")
            self._warn(update, f"{label}: Narration failed, using video without narration ({e})", scene)
            update.stage = SceneStage.VISUAL_READY

    def _narration_unavailable(self) -> Optional[str]:
        if self.tts is None or not self.tts.is_configured():
            return "Cartesia API key or voice not configured"
        if self.storage is None or not self.storage.is_configured():
            return "no storage configured for narration audio"
        if self.mixer is None or not self.mixer.is_configured():
            return "fal.ai API key not configured"
        return None

    def _engine(self, engine: VideoEngine) -> VideoProvider:
        adapter = self.engines.get(engine)
        if adapter is None:
            raise StudioError(f"No provider configured for engine {engine.value}")
        return adapter

    @staticmethod
    def _check_url(url: Optional[str], require_remote: bool) -> None:
        if not is_valid_asset_url(url, allow_local=not require_remote):
            raise SceneValidationError(f"Invalid video URL format: {url!r}")

    def _failure(
        self,
        index: int,
        scene: Scene,
        update: SceneUpdate,
        cause: Exception,
    ) -> SceneRenderError:
        stage = update.stage
        update.stage = SceneStage.FAILED
        error = SceneRenderError(index, scene.id, stage.value, cause)
        logger.error(str(error))
        return error

    def _emit(self, message: str, scene: Scene) -> None:
        self.progress.emit(message, scene_id=scene.id)

    def _warn(self, update: SceneUpdate, message: str, scene: Scene) -> None:
        update.warnings.append(message)
        self.progress.warn(message, scene_id=scene.id)
