"""Models for scripts, scenes and the assets produced from them."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class AssetType(str, Enum):
    """Kind of visual asset a scene renders to."""

    IMAGE = "image"
    VIDEO = "video"


class VideoEngine(str, Enum):
    """Video generation providers a scene can be rendered with."""

    KIE_VEO = "kie_veo"          # KIE AI Veo 3.1 fast
    KIE_SORA = "kie_sora"        # KIE AI Sora 2
    GOOGLE_VEO = "google_veo"    # Gemini API Veo, content fetched as a blob


class VideoStyle(str, Enum):
    """Visual style keywords appended to video prompts."""

    CINEMATIC = "cinematic"
    GRITTY = "gritty"
    MEME = "meme"
    WATERCOLOR = "watercolor"
    ANIME = "anime"


class SceneStage(str, Enum):
    """Stages a scene moves through while being rendered."""

    EMPTY = "empty"
    GENERATING_VISUAL = "generating_visual"
    VISUAL_READY = "visual_ready"
    GENERATING_AUDIO = "generating_audio"
    AUDIO_READY = "audio_ready"
    MIXING = "mixing"
    MIXED = "mixed"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Scene:
    """One narrative beat of the video, rendered independently."""

    id: str
    timestamp: str
    text: str
    visual_prompt: str
    asset_type: AssetType = AssetType.VIDEO
    asset_url: Optional[str] = None
    audio_url: Optional[str] = None
    provider_job_id: Optional[str] = None
    is_generating: bool = False
    engine: VideoEngine = VideoEngine.KIE_VEO
    use_narration: Optional[bool] = None  # None inherits the script flag
    rendered_prompt: Optional[str] = None

    def edit(self, text: Optional[str] = None, visual_prompt: Optional[str] = None) -> "Scene":
        """Return a copy with new text and/or visual prompt.

        Any change to either field clears the generated asset, since it no
        longer reflects the scene.
        """
        new_text = self.text if text is None else text
        new_prompt = self.visual_prompt if visual_prompt is None else visual_prompt

        if new_text == self.text and new_prompt == self.visual_prompt:
            return replace(self)

        return replace(
            self,
            text=new_text,
            visual_prompt=new_prompt,
            asset_url=None,
            audio_url=None,
            provider_job_id=None,
            rendered_prompt=None,
        )

    def wants_narration(self, script_default: bool) -> bool:
        """Resolve the per-scene narration override against the script flag."""
        if self.use_narration is None:
            return script_default
        return self.use_narration

    def to_dict(self) -> dict:
        """Convert to the camelCase shape shared with the text-generation provider."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "text": self.text,
            "visualPrompt": self.visual_prompt,
            "assetType": self.asset_type.value,
            "assetUrl": self.asset_url,
            "audioUrl": self.audio_url,
            "providerJobId": self.provider_job_id,
            "isGenerating": self.is_generating,
            "engine": self.engine.value,
            "useNarration": self.use_narration,
            "renderedPrompt": self.rendered_prompt,
        }


@dataclass
class SceneUpdate:
    """Fields produced by rendering a scene, for the caller to merge back."""

    scene_id: str
    asset_url: Optional[str] = None
    provider_job_id: Optional[str] = None
    audio_url: Optional[str] = None
    rendered_prompt: Optional[str] = None
    engine: Optional[VideoEngine] = None  # set when a fallback engine ran the job
    stage: SceneStage = SceneStage.EMPTY
    warnings: list[str] = field(default_factory=list)
    skipped: bool = False

    def apply_to(self, scene: Scene) -> Scene:
        """Return a copy of ``scene`` with this update's non-empty fields set."""
        changes: dict = {"is_generating": False}
        if self.asset_url is not None:
            changes["asset_url"] = self.asset_url
        if self.provider_job_id is not None:
            changes["provider_job_id"] = self.provider_job_id
        if self.audio_url is not None:
            changes["audio_url"] = self.audio_url
        if self.rendered_prompt is not None:
            changes["rendered_prompt"] = self.rendered_prompt
        if self.engine is not None:
            changes["engine"] = self.engine
        return replace(scene, **changes)


@dataclass
class Script:
    """A generated video script with its ordered scenes."""

    topic: str
    hook: str
    body: str
    outro: str
    scenes: list[Scene] = field(default_factory=list)
    narration_enabled: bool = False

    def scene_index(self, scene_id: str) -> int:
        """Return the position of a scene by id, or -1."""
        for index, scene in enumerate(self.scenes):
            if scene.id == scene_id:
                return index
        return -1

    def edit_scene(
        self,
        scene_id: str,
        text: Optional[str] = None,
        visual_prompt: Optional[str] = None,
    ) -> "Script":
        """Return a copy of the script with one scene edited."""
        index = self.scene_index(scene_id)
        if index == -1:
            raise KeyError(f"Unknown scene id: {scene_id}")
        scenes = list(self.scenes)
        scenes[index] = scenes[index].edit(text=text, visual_prompt=visual_prompt)
        return replace(self, scenes=scenes)

    def apply_updates(self, updates: list[SceneUpdate]) -> "Script":
        """Return a copy of the script with scene updates merged by id."""
        by_id = {update.scene_id: update for update in updates}
        scenes = [
            by_id[scene.id].apply_to(scene) if scene.id in by_id else replace(scene)
            for scene in self.scenes
        ]
        return replace(self, scenes=scenes)

    def to_dict(self) -> dict:
        """Convert to dictionary for persistence by the caller."""
        return {
            "topic": self.topic,
            "hook": self.hook,
            "body": self.body,
            "outro": self.outro,
            "scenes": [s.to_dict() for s in self.scenes],
            "narrationEnabled": self.narration_enabled,
        }


@dataclass
class GenerationJob:
    """Ephemeral record of one submitted provider job."""

    provider: str
    job_id: Optional[str]
    poll_interval: float
    max_attempts: int
    submitted_at: datetime = field(default_factory=datetime.now)
    last_status: str = "submitted"
    attempts: int = 0

    @property
    def elapsed_seconds(self) -> float:
        """Seconds since submission."""
        return (datetime.now() - self.submitted_at).total_seconds()


@dataclass
class GeneratedAsset:
    """Normalized result of any provider adapter."""

    url: str
    job_id: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class MasterArtifact:
    """The single stitched video produced from every scene."""

    url: str
    scene_count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {"url": self.url, "scene_count": self.scene_count}


@dataclass
class AssemblyResult:
    """Master artifact plus the scene updates gathered while assembling."""

    master: MasterArtifact
    updates: list[SceneUpdate] = field(default_factory=list)


@dataclass
class Fact:
    """A researched fact block used as script-generation input."""

    title: str
    content: str


@dataclass
class GroundingSource:
    """A web source the research answer was grounded on."""

    title: str
    uri: str

    def to_dict(self) -> dict:
        return {"title": self.title, "uri": self.uri}


@dataclass
class ResearchResult:
    """Facts about a topic plus the sources backing them."""

    facts: list[Fact] = field(default_factory=list)
    grounding_sources: list[GroundingSource] = field(default_factory=list)

    @property
    def facts_text(self) -> str:
        """Facts flattened into the text passed to script generation."""
        return "\n\n".join(fact.content for fact in self.facts if fact.content)


@dataclass
class SocialMetadata:
    """Post copy for publishing a finished video."""

    youtube_title: str
    youtube_description: str
    instagram_caption: str

    def to_dict(self) -> dict:
        return {
            "youtubeTitle": self.youtube_title,
            "youtubeDescription": self.youtube_description,
            "instagramCaption": self.instagram_caption,
        }
