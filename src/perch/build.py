"""Build — pre-render every static route and enumerated tuple.

Pipeline order:
    1. Enumerate every pattern (``list_params()``); any failure aborts
    2. Render each (pattern, params) concurrently, bounded by a limiter
    3. Write artifacts to the store; the first render failure aborts
    4. Record enumerations and fallback policies in a prerender manifest

A server started from the build output seeds its enumerator from the
manifest and reads artifacts from the persisted store, so it never calls
``list_params()`` and only renders what the build did not.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import anyio

from perch._internal.types import ParamValue
from perch.cache.artifact import ArtifactKind
from perch.cache.keys import RenderKey
from perch.cache.store import ArtifactStore
from perch.errors import ConfigurationError, EnumerationFailure, RenderFailure
from perch.render.enumerate import Enumeration, PathEnumerator
from perch.render.pipeline import RenderPipeline
from perch.routing.route import RoutePattern
from perch.routing.table import RouteTable

logger = logging.getLogger("perch.build")

MANIFEST_VERSION = 1


@dataclass(frozen=True, slots=True)
class BuiltPage:
    """Record of one artifact written during a build.

    Attributes:
        key: RenderKey the artifact is stored under.
        path: Concrete URL path (``/blog/hello``).
        kind: ``"page"``, ``"not_found"`` or ``"redirect"``.
        duration_ms: Time taken to load, render and store it.
    """

    key: RenderKey
    path: str
    kind: ArtifactKind
    duration_ms: float


@dataclass(frozen=True, slots=True)
class PrerenderManifest:
    """Enumerations and fallback policies captured at build time."""

    routes: Mapping[str, Enumeration]

    def to_json(self) -> dict[str, Any]:
        return {
            "version": MANIFEST_VERSION,
            "routes": {path: e.to_json() for path, e in self.routes.items()},
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any], table: RouteTable) -> PrerenderManifest:
        """Rebuild a manifest, validating each entry against *table*.

        Raises ``ConfigurationError`` for an unknown version or a pattern
        the table does not have.
        """
        version = data.get("version")
        if version != MANIFEST_VERSION:
            msg = f"Unsupported prerender manifest version: {version!r}"
            raise ConfigurationError(msg)
        routes: dict[str, Enumeration] = {}
        for path, entry in data.get("routes", {}).items():
            pattern = table.find(path)
            if pattern is None:
                msg = f"Prerender manifest lists {path}, which no page defines"
                raise ConfigurationError(msg)
            routes[path] = Enumeration.from_json(pattern, entry)
        return cls(routes=routes)

    def write(self, path: str | Path) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self.to_json(), fh, indent=2, sort_keys=True, ensure_ascii=False)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    @classmethod
    def read(cls, path: str | Path, table: RouteTable) -> PrerenderManifest:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_json(data, table)


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Aggregate result of a full build.

    Attributes:
        pages: Every artifact written, sorted by URL path.
        manifest: Enumerations recorded for the server.
        duration_ms: Total wall-clock time for the build.
        output_dir: Build directory, when the build was persisted.
    """

    pages: tuple[BuiltPage, ...]
    manifest: PrerenderManifest
    duration_ms: float
    output_dir: Path | None = None

    @property
    def total_pages(self) -> int:
        return len(self.pages)


async def build_site(
    table: RouteTable,
    pipeline: RenderPipeline,
    enumerator: PathEnumerator,
    store: ArtifactStore,
    *,
    concurrency: int = 8,
    cache_not_found: bool = True,
) -> BuildResult:
    """Render every static route and enumerated tuple into *store*.

    Raises:
        EnumerationFailure: If any page's ``list_params()`` fails.
        RenderFailure: If any page fails to load, render or be stored
            (phase ``"store"``). Renders still running are cancelled;
            artifacts already written stay.
    """
    start = time.perf_counter()

    jobs: list[tuple[RoutePattern, dict[str, ParamValue]]] = []
    routes: dict[str, Enumeration] = {}
    for pattern in table.patterns:
        try:
            enumeration = await enumerator.enumerate(pattern)
        except EnumerationFailure:
            logger.error("Build aborted: could not enumerate %s", pattern.path)
            raise
        if pattern.is_dynamic:
            routes[pattern.path] = enumeration
        jobs.extend((pattern, params) for params in enumeration.params)

    built: list[BuiltPage] = []
    failures: list[RenderFailure] = []
    limiter = anyio.CapacityLimiter(max(1, concurrency))

    async with anyio.create_task_group() as tg:

        async def _build_one(pattern: RoutePattern, params: dict[str, ParamValue]) -> None:
            async with limiter:
                t0 = time.perf_counter()
                key = RenderKey.of(pattern, params)
                try:
                    artifact = await pipeline.render(pattern, params)
                    if artifact.kind != "not_found" or cache_not_found:
                        await store.put(key, artifact)
                except RenderFailure as exc:
                    failures.append(exc)
                    tg.cancel_scope.cancel()
                    return
                except Exception as exc:
                    failure = RenderFailure(str(key), "store", str(exc))
                    failure.__cause__ = exc
                    failures.append(failure)
                    tg.cancel_scope.cancel()
                    return
                elapsed = (time.perf_counter() - t0) * 1000
                built.append(BuiltPage(key, pattern.build_path(params), artifact.kind, elapsed))

        for pattern, params in jobs:
            tg.start_soon(_build_one, pattern, params)

    if failures:
        logger.error("Build aborted: %s", failures[0])
        raise failures[0]

    duration = (time.perf_counter() - start) * 1000
    logger.info("Built %d pages in %.1fms", len(built), duration)
    return BuildResult(
        pages=tuple(sorted(built, key=lambda p: p.path)),
        manifest=PrerenderManifest(routes=routes),
        duration_ms=duration,
    )
