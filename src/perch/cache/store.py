"""ArtifactStore protocol and the in-memory implementation.

The store is a keyed, time-aware cache and nothing more: it never
triggers renders. The orchestrator receives a store instance rather
than reaching for a global, so tests can hand it a double.

Free-threading safety:
    - Artifacts are frozen dataclasses (immutable, safe to share)
    - MemoryArtifactStore guards its dict with a Lock, so ``put`` swaps
      the whole entry and a reader sees either the old artifact or the new
"""

import threading
from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from perch.cache.artifact import Artifact, is_stale
from perch.cache.keys import RenderKey


@runtime_checkable
class ArtifactStore(Protocol):
    """Keyed storage for rendered artifacts.

    ``get`` returns ``None`` on a miss. Reads and writes are ``async`` so
    a persistent backend may suspend; the in-memory store never does.
    """

    async def get(self, key: RenderKey) -> Artifact | None: ...
    async def put(self, key: RenderKey, artifact: Artifact) -> None: ...
    async def delete(self, key: RenderKey) -> bool: ...
    def is_stale(self, artifact: Artifact, now: float) -> bool: ...


class MemoryArtifactStore:
    """Process-local artifact store backed by a dict.

    Usage::

        store = MemoryArtifactStore()
        await store.put(key, artifact)
        cached = await store.get(key)
    """

    __slots__ = ("_artifacts", "_lock")

    def __init__(self) -> None:
        self._artifacts: dict[RenderKey, Artifact] = {}
        self._lock = threading.Lock()

    async def get(self, key: RenderKey) -> Artifact | None:
        with self._lock:
            return self._artifacts.get(key)

    async def put(self, key: RenderKey, artifact: Artifact) -> None:
        with self._lock:
            self._artifacts[key] = artifact

    async def delete(self, key: RenderKey) -> bool:
        with self._lock:
            return self._artifacts.pop(key, None) is not None

    def is_stale(self, artifact: Artifact, now: float) -> bool:
        return is_stale(artifact, now)

    def keys(self) -> list[RenderKey]:
        with self._lock:
            return list(self._artifacts)

    def __len__(self) -> int:
        with self._lock:
            return len(self._artifacts)

    def __iter__(self) -> Iterator[RenderKey]:
        return iter(self.keys())
