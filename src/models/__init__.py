# Data models for the studio pipeline
from .script import (
    AssemblyResult,
    AssetType,
    Fact,
    GeneratedAsset,
    GenerationJob,
    GroundingSource,
    MasterArtifact,
    ResearchResult,
    Scene,
    SceneStage,
    SceneUpdate,
    Script,
    SocialMetadata,
    VideoEngine,
    VideoStyle,
)

__all__ = [
    "AssetType",
    "VideoEngine",
    "VideoStyle",
    "SceneStage",
    "Scene",
    "SceneUpdate",
    "Script",
    "GenerationJob",
    "GeneratedAsset",
    "MasterArtifact",
    "AssemblyResult",
    "Fact",
    "GroundingSource",
    "ResearchResult",
    "SocialMetadata",
]
