"""Histori Studio - topic to narrated, stitched short-form history video."""

from .master_assembler import MasterAssembler
from .pipeline import HistoriStudio
from .scene_renderer import SceneRenderer
from .settings import ProviderSet, StudioSettings, build_providers, credentials_from_config

__all__ = [
    "HistoriStudio",
    "MasterAssembler",
    "SceneRenderer",
    "StudioSettings",
    "ProviderSet",
    "build_providers",
    "credentials_from_config",
]
