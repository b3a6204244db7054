"""Request-facing orchestrator.

Per request, decides between serving a cached artifact, serving it and
revalidating in the background, rendering now, and serving a placeholder
while rendering in the background. Every render runs as a task in the
orchestrator's own task group, so a requester that goes away never
cancels a render other requesters may be waiting on.

Decision table::

    fresh hit                      -> serve cached (HIT)
    stale hit, finite window       -> serve cached (STALE), revalidate once in background
    stale hit, "always"            -> render now, serve (BYPASS)
    miss, static route             -> render now, cache, serve (MISS)
    miss, tuple was enumerated     -> render now, cache, serve (MISS)
    miss, fallback "disallow"      -> 404
    miss, fallback "block"         -> render now, cache, serve (MISS)
    miss, fallback "allow"         -> placeholder (FALLBACK), render in background

A failed render never replaces a cached artifact.
"""

from __future__ import annotations

import functools
import logging
import time
from types import TracebackType

import anyio
from anyio.abc import TaskGroup

from perch._internal.types import Clock
from perch.cache.artifact import ALWAYS, Artifact
from perch.cache.keys import RenderKey
from perch.cache.store import ArtifactStore, MemoryArtifactStore
from perch.config import SiteConfig
from perch.errors import EnumerationFailure, RenderFailure, RouteNotFound
from perch.orchestrator.inflight import Flight, InFlightRegistry
from perch.orchestrator.response import CacheState, RenderResponse, shared_cache_control
from perch.pages.types import FallbackPolicy
from perch.render.enumerate import PathEnumerator
from perch.render.pipeline import RenderPipeline
from perch.routing.route import MatchedRoute
from perch.routing.table import RouteTable

logger = logging.getLogger("perch.orchestrator")


class Orchestrator:
    """Coordinates route resolution, the artifact store, and rendering.

    The store and in-flight registry are injected so tests can supply
    doubles; both default to fresh in-process instances.

    Usage::

        async with Orchestrator(table, pipeline, enumerator, store) as orchestrator:
            response = await orchestrator.resolve_and_render("/blog/hello")

    Background renders started while the context is open finish before
    it exits.
    """

    __slots__ = (
        "_clock",
        "_config",
        "_enumerator",
        "_limiter",
        "_pipeline",
        "_registry",
        "_store",
        "_table",
        "_task_group",
    )

    def __init__(
        self,
        table: RouteTable,
        pipeline: RenderPipeline,
        enumerator: PathEnumerator,
        store: ArtifactStore | None = None,
        registry: InFlightRegistry | None = None,
        *,
        config: SiteConfig | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._table = table
        self._pipeline = pipeline
        self._enumerator = enumerator
        self._store: ArtifactStore = store if store is not None else MemoryArtifactStore()
        self._registry = registry if registry is not None else InFlightRegistry()
        self._config = config or SiteConfig()
        self._clock = clock
        self._limiter: anyio.CapacityLimiter | None = None
        self._task_group: TaskGroup | None = None

    # -- Lifecycle --

    async def __aenter__(self) -> Orchestrator:
        if self._task_group is not None:
            msg = "Orchestrator is already running."
            raise RuntimeError(msg)
        self._limiter = anyio.CapacityLimiter(max(1, self._config.render_workers))
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        task_group, self._task_group = self._task_group, None
        if task_group is None:
            msg = "Orchestrator is not running."
            raise RuntimeError(msg)
        return await task_group.__aexit__(exc_type, exc, tb)

    @property
    def store(self) -> ArtifactStore:
        return self._store

    @property
    def registry(self) -> InFlightRegistry:
        return self._registry

    async def drain(self) -> None:
        """Wait for every in-flight render, including background ones."""
        await self._registry.wait_idle()

    # -- Request entry points --

    async def resolve_and_render(self, path: str) -> RenderResponse:
        """Resolve *path* and answer it from cache or by rendering.

        Never raises for route or render problems: those become 404 and
        500 responses. Store errors propagate.
        """
        try:
            match = self._table.resolve(path)
        except RouteNotFound as exc:
            logger.debug("404 %s: %s", path, exc.detail)
            return self._not_found(None, "MISS")

        key = match.key
        artifact = await self._store.get(key)

        if artifact is not None:
            if not self._store.is_stale(artifact, self._clock()):
                return self._respond(artifact, key, "HIT")
            if artifact.revalidate == ALWAYS:
                return await self._render_now(match, key)
            self._start(match, key, background=True)
            return self._respond(artifact, key, "STALE")

        policy = await self._miss_policy(match, key)
        if policy == "disallow":
            logger.debug("404 %s: %s is not enumerated and fallback is disallow", path, key)
            return self._not_found(key, "MISS")
        if policy == "block":
            return await self._render_now(match, key)

        self._start(match, key, background=True)
        return RenderResponse(
            status=200,
            payload=self._config.fallback_placeholder,
            cache_control=self._config.cache_control_no_store,
            cache_state="FALLBACK",
            key=key,
        )

    async def revalidate(self, path: str) -> RenderResponse:
        """Re-render *path* now, replacing its artifact on success.

        On-demand counterpart to time-based revalidation: the render
        happens even if the cached artifact is still fresh. Joins a
        render already in flight for the same key.
        """
        try:
            match = self._table.resolve(path)
        except RouteNotFound:
            return self._not_found(None, "BYPASS")
        return await self._render_now(match, match.key, force=True)

    async def purge(self, path: str) -> bool:
        """Evict the artifact for *path*. Returns whether one was cached."""
        try:
            match = self._table.resolve(path)
        except RouteNotFound:
            return False
        removed = await self._store.delete(match.key)
        if removed:
            logger.info("Purged %s", match.key)
        return removed

    # -- Decisions --

    async def _miss_policy(self, match: MatchedRoute, key: RenderKey) -> FallbackPolicy:
        """Fallback policy for a cache miss on *key*."""
        if not match.pattern.is_dynamic:
            return "block"
        try:
            enumeration = await self._enumerator.enumerate(match.pattern)
        except EnumerationFailure as exc:
            logger.warning("%s; treating %s as not found", exc, key)
            return "disallow"
        if enumeration.contains(key):
            logger.debug("%s was enumerated but is not cached; rendering now", key)
            return "block"
        return enumeration.fallback

    async def _render_now(self, match: MatchedRoute, key: RenderKey, *, force: bool = False) -> RenderResponse:
        """Render (or join the render of) *key* and wait for it.

        Retries up to ``render_attempts`` times; each retry is a new
        single-flight render.
        """
        attempts = max(1, self._config.render_attempts)
        for attempt in range(1, attempts + 1):
            flight = self._start(match, key, force=force)
            try:
                artifact = await flight.wait()
            except RenderFailure as exc:
                if attempt < attempts:
                    logger.warning("Render of %s failed (attempt %d/%d): %s", key, attempt, attempts, exc)
                    continue
                logger.error("Render of %s failed: %s", key, exc, exc_info=exc)
                return RenderResponse(
                    status=500,
                    payload=self._config.error_payload,
                    cache_control=self._config.cache_control_no_store,
                    cache_state="BYPASS",
                    key=key,
                )
            state: CacheState = "BYPASS" if artifact.revalidate == ALWAYS else "MISS"
            return self._respond(artifact, key, state)

        msg = "unreachable"
        raise AssertionError(msg)

    # -- Rendering tasks --

    def _start(
        self,
        match: MatchedRoute,
        key: RenderKey,
        *,
        force: bool = False,
        background: bool = False,
    ) -> Flight:
        """Return the flight for *key*, spawning a render task if none is running."""
        if self._task_group is None:
            msg = "Orchestrator is not running; use 'async with orchestrator:'."
            raise RuntimeError(msg)
        flight, owner = self._registry.try_acquire(key)
        if owner:
            logger.debug("Rendering %s (background=%s, force=%s)", key, background, force)
            self._task_group.start_soon(
                functools.partial(self._run, match, key, flight, force=force, background=background),
                name=f"perch render {key}",
            )
        return flight

    async def _run(
        self,
        match: MatchedRoute,
        key: RenderKey,
        flight: Flight,
        *,
        force: bool,
        background: bool,
    ) -> None:
        """Render *key* and publish the outcome on *flight*. Owns the registry entry."""
        limiter = self._limiter
        try:
            if limiter is None:
                msg = "Orchestrator is not running; use 'async with orchestrator:'."
                raise RuntimeError(msg)
            async with limiter:
                artifact = None if force else await self._fresh(key)
                if artifact is None:
                    artifact = await self._pipeline.render(match.pattern, match.params)
                    await self._commit(key, artifact)
        except RenderFailure as exc:
            if background:
                logger.error("Background render of %s failed: %s", key, exc, exc_info=exc)
            flight.set_error(exc)
        except Exception as exc:
            logger.exception("Unexpected error while rendering %s", key)
            failure = RenderFailure(str(key), "render", str(exc))
            failure.__cause__ = exc
            flight.set_error(failure)
        else:
            flight.set_result(artifact)
        finally:
            if not flight.done:
                flight.set_error(RenderFailure(str(key), "render", "cancelled"))
            self._registry.release(key, flight)

    async def _fresh(self, key: RenderKey) -> Artifact | None:
        """A fresh artifact that landed while this render was queued, if any."""
        current = await self._store.get(key)
        if current is not None and not self._store.is_stale(current, self._clock()):
            return current
        return None

    async def _commit(self, key: RenderKey, artifact: Artifact) -> None:
        if artifact.kind == "not_found" and not self._config.cache_not_found:
            await self._store.delete(key)
            return
        await self._store.put(key, artifact)

    # -- Responses --

    def _respond(self, artifact: Artifact, key: RenderKey, state: CacheState) -> RenderResponse:
        if artifact.kind == "not_found":
            return self._not_found(key, state)
        cache_control = shared_cache_control(
            artifact.revalidate,
            never=self._config.cache_control_never,
            no_store=self._config.cache_control_no_store,
        )
        if artifact.kind == "redirect":
            return RenderResponse(
                status=308 if artifact.permanent else 307,
                redirect_target=artifact.redirect,
                cache_control=cache_control,
                cache_state=state,
                key=key,
            )
        return RenderResponse(
            status=200,
            payload=artifact.payload,
            cache_control=cache_control,
            cache_state=state,
            key=key,
        )

    def _not_found(self, key: RenderKey | None, state: CacheState) -> RenderResponse:
        return RenderResponse(
            status=404,
            payload=self._config.not_found_payload,
            cache_control=self._config.cache_control_no_store,
            cache_state=state,
            key=key,
        )
