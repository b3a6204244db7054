"""Filesystem-backed artifact store — the persisted build snapshot.

Layout::

    <root>/
      3f/
        3fa4…e1.json    # {"key": {...}, "artifact": {...}}

One JSON document per RenderKey, named by the key's digest. Writes go
to a temporary file in the same directory and are moved into place with
``os.replace``, so a reader sees the old document or the new one, never
a partial write. Blocking file I/O runs in anyio's worker threads.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import anyio.to_thread

from perch.cache.artifact import Artifact, is_stale
from perch.cache.keys import RenderKey


class FileArtifactStore:
    """Artifact store persisted as JSON files under *root*.

    Usage::

        store = FileArtifactStore(".perch/artifacts")
        await store.put(key, artifact)
        assert await store.get(key) == artifact
    """

    __slots__ = ("_root",)

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: RenderKey) -> Path:
        digest = key.digest
        return self._root / digest[:2] / f"{digest}.json"

    async def get(self, key: RenderKey) -> Artifact | None:
        return await anyio.to_thread.run_sync(self._read, key)

    async def put(self, key: RenderKey, artifact: Artifact) -> None:
        document = {"key": key.to_json(), "artifact": artifact.to_json()}
        await anyio.to_thread.run_sync(self._write, self.path_for(key), document)

    async def delete(self, key: RenderKey) -> bool:
        return await anyio.to_thread.run_sync(self._unlink, self.path_for(key))

    def is_stale(self, artifact: Artifact, now: float) -> bool:
        return is_stale(artifact, now)

    async def keys(self) -> list[RenderKey]:
        """All keys currently on disk (order unspecified)."""
        return await anyio.to_thread.run_sync(self._scan)

    # -- Blocking helpers (run in worker threads) --

    def _read(self, key: RenderKey) -> Artifact | None:
        path = self.path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        document = json.loads(raw)
        return Artifact.from_json(document["artifact"])

    @staticmethod
    def _write(path: Path, document: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(document, ensure_ascii=False, sort_keys=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _scan(self) -> list[RenderKey]:
        if not self._root.is_dir():
            return []
        keys: list[RenderKey] = []
        for path in sorted(self._root.glob("*/*.json")):
            document = json.loads(path.read_text(encoding="utf-8"))
            keys.append(RenderKey.from_json(document["key"]))
        return keys
