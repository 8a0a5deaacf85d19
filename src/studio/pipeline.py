"""Histori Studio pipeline: topic -> research -> script -> scenes -> master video."""

import asyncio
import logging
from typing import Callable, Optional

from models.script import MasterArtifact, ResearchResult, Script, SceneUpdate, SocialMetadata
from services.credentials import CredentialProvider
from services.script_generator import ScriptGenerator
from studio.master_assembler import MasterAssembler
from studio.scene_renderer import SceneJobCallback, SceneRenderer
from studio.settings import ProviderSet, StudioSettings, build_providers, credentials_from_config
from utils.config import load_config
from utils.progress import ProgressChannel, logging_observer

logger = logging.getLogger(__name__)


class HistoriStudio:
    """Orchestrates script generation, scene rendering and master assembly.

    Holds no project state: every operation takes a Script snapshot and
    returns a new one for the caller to persist.
    """

    def __init__(
        self,
        settings: StudioSettings,
        providers: ProviderSet,
        script_generator: ScriptGenerator,
        progress: Optional[ProgressChannel] = None,
    ):
        self.settings = settings
        self.providers = providers
        self.script_generator = script_generator
        self.progress = progress or ProgressChannel([logging_observer])

        self.renderer = SceneRenderer(
            engines=providers.engines,
            image_provider=providers.image,
            tts=providers.tts,
            mixer=providers.mixer,
            storage=providers.storage,
            fallback_engine=settings.fallback_engine,
            style=settings.style,
            aspect_ratio=settings.aspect_ratio,
            progress=self.progress,
        )
        self.assembler = MasterAssembler(self.renderer, providers.stitcher, progress=self.progress)

    @classmethod
    def from_config(
        cls,
        config: Optional[dict] = None,
        credentials: Optional[CredentialProvider] = None,
        progress: Optional[ProgressChannel] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> "HistoriStudio":
        """Wire a studio from configuration.

        Args:
            config: Dict from load_config (loaded from the environment if omitted)
            credentials: Explicit credential store (built from config if omitted)
            progress: Progress channel shared by every stage
            cancel_event: Stops all local polling when set
        """
        if config is None:
            config = load_config()
        settings = StudioSettings.from_config(config)
        credentials = credentials or credentials_from_config(config)
        providers = build_providers(settings, credentials, config=config, cancel_event=cancel_event)
        generator = ScriptGenerator(credentials, model_name=settings.gemini_model)
        return cls(settings, providers, generator, progress=progress)

    async def research_topic(self, topic: str) -> ResearchResult:
        self.progress.emit(f"Researching {topic}...")
        return await self.script_generator.research_topic(topic)

    async def create_script(self, topic: str, facts: Optional[str] = None) -> Script:
        """Research a topic (unless facts are given) and generate its script."""
        if facts is None:
            facts = (await self.research_topic(topic)).facts_text
        self.progress.emit("Writing script...")
        return await self.script_generator.generate_script(
            topic,
            facts,
            default_engine=self.settings.default_engine,
            narration_enabled=self.settings.narration_enabled,
        )

    async def render_scene(
        self,
        script: Script,
        scene_id: str,
        on_job_id: Optional[SceneJobCallback] = None,
    ) -> Script:
        """Render one scene in its own asset type and return the updated script.

        Raises:
            KeyError: If the scene id is unknown
            SceneRenderError: If the scene cannot be rendered
        """
        index = script.scene_index(scene_id)
        if index == -1:
            raise KeyError(f"Unknown scene id: {scene_id}")
        update = await self.renderer.render(
            script.scenes[index],
            index,
            topic=script.topic,
            narration_enabled=script.narration_enabled,
            on_job_id=on_job_id,
        )
        return script.apply_updates([update])

    async def assemble_master(
        self,
        script: Script,
        on_scene_update: Optional[Callable[[SceneUpdate], None]] = None,
        on_job_id: Optional[SceneJobCallback] = None,
    ) -> tuple[Script, MasterArtifact]:
        """Render every scene as video and stitch the master.

        Returns:
            (updated script, master artifact)
        """
        result = await self.assembler.assemble(
            script, on_scene_update=on_scene_update, on_job_id=on_job_id
        )
        return script.apply_updates(result.updates), result.master

    async def social_metadata(self, script: Script) -> SocialMetadata:
        self.progress.emit("Writing titles and captions...")
        return await self.script_generator.generate_social_metadata(script)

    async def close(self) -> None:
        """Release HTTP clients."""
        await self.providers.close()
