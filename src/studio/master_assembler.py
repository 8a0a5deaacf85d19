"""Master video assembly: render every scene in order, then stitch once."""

import logging
from typing import Callable, Optional

from models.script import AssemblyResult, MasterArtifact, Script, SceneUpdate
from services.errors import (
    GenerationFailed,
    GenerationTimeout,
    MalformedResponse,
    NoJobIdentifierFound,
    ProviderError,
    SceneValidationError,
    StitchingFailed,
)
from services.extraction import is_valid_asset_url
from services.providers.fal_stitch import FalStitchAdapter
from studio.scene_renderer import SceneJobCallback, SceneRenderer
from utils.progress import ProgressChannel

logger = logging.getLogger(__name__)

# Stitcher errors reported as StitchingFailed; credential errors pass through
STITCH_ERRORS = (
    GenerationFailed,
    GenerationTimeout,
    MalformedResponse,
    NoJobIdentifierFound,
    ProviderError,
    SceneValidationError,
)


class MasterAssembler:
    """Produces the single master video for a script.

    Scenes are rendered strictly one after another in script order. The first
    scene that cannot be rendered aborts assembly before anything is stitched.
    """

    def __init__(
        self,
        renderer: SceneRenderer,
        stitcher: FalStitchAdapter,
        progress: Optional[ProgressChannel] = None,
    ):
        self.renderer = renderer
        self.stitcher = stitcher
        self.progress = progress or renderer.progress

    async def assemble(
        self,
        script: Script,
        on_scene_update: Optional[Callable[[SceneUpdate], None]] = None,
        on_job_id: Optional[SceneJobCallback] = None,
    ) -> AssemblyResult:
        """Render every scene as video and stitch them into a master artifact.

        Args:
            script: Script snapshot (not modified)
            on_scene_update: Called after each scene resolves, for persistence
            on_job_id: Called with (scene id, job id, engine) as soon as a job is submitted

        Returns:
            AssemblyResult with the master artifact and per-scene updates

        Raises:
            SceneRenderError: If any scene fails; no stitch is attempted
            StitchingFailed: If stitching fails or returns an invalid URL
        """
        scenes = script.scenes
        if not scenes:
            raise StitchingFailed("No scenes to assemble.")

        logger.info(f"Assembling master video for '{script.topic}' ({len(scenes)} scenes)")
        self.progress.emit(f"Generating videos for {len(scenes)} scenes...")

        updates: list[SceneUpdate] = []
        video_urls: list[str] = []
        for index, scene in enumerate(scenes):
            self.progress.emit(
                f"Scene {index + 1}/{len(scenes)}: {scene.text[:50]}", scene_id=scene.id
            )
            update = await self.renderer.render(
                scene,
                index,
                topic=script.topic,
                narration_enabled=script.narration_enabled,
                on_job_id=on_job_id,
                force_video=True,
                require_remote=True,
            )
            updates.append(update)
            video_urls.append(update.asset_url)
            if on_scene_update is not None:
                on_scene_update(update)

        if len(video_urls) != len(scenes):
            raise StitchingFailed(
                f"Expected {len(scenes)} scene videos, got {len(video_urls)}. Cannot proceed with stitching."
            )
        invalid = [i + 1 for i, url in enumerate(video_urls) if not is_valid_asset_url(url)]
        if invalid:
            raise StitchingFailed(f"Invalid video URLs for scenes {invalid}. Cannot proceed with stitching.")

        self.progress.emit(f"Stitching {len(video_urls)} videos together...")
        try:
            master_url = await self.stitcher.stitch(
                video_urls,
                progress=lambda message, elapsed: self.progress.emit(message, elapsed_seconds=elapsed),
            )
        except StitchingFailed:
            raise
        except STITCH_ERRORS as e:
            logger.error(f"Stitching failed: {e}")
            raise StitchingFailed(f"Video merge failed: {e}", provider=e.provider) from e

        if not is_valid_asset_url(master_url):
            raise StitchingFailed("Stitching completed but returned an invalid master video URL.")

        self.progress.emit("Master video ready!")
        logger.info(f"Master video ready: {master_url}")
        return AssemblyResult(
            master=MasterArtifact(url=master_url, scene_count=len(scenes)),
            updates=updates,
        )
