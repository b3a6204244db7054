"""Artifact caching — keys, artifacts, and the stores that hold them."""

from perch.cache.artifact import ALWAYS, NEVER, Artifact, is_stale, normalize_revalidate
from perch.cache.filesystem import FileArtifactStore
from perch.cache.keys import RenderKey
from perch.cache.store import ArtifactStore, MemoryArtifactStore

__all__ = [
    "ALWAYS",
    "NEVER",
    "Artifact",
    "ArtifactStore",
    "FileArtifactStore",
    "MemoryArtifactStore",
    "RenderKey",
    "is_stale",
    "normalize_revalidate",
]
