"""Render pipeline — data loading, then pure rendering.

Two page collaborators run in sequence:

1. ``load_data(**params)`` returns props, a revalidation window, and
   optionally a not-found or redirect signal.
2. ``render(props)`` turns props into the payload.

Either phase raising becomes a ``RenderFailure`` chained from the
original exception. The pipeline never retries and never touches the
artifact store; both belong to the orchestrator.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Mapping
from typing import Any

from perch._internal.invoke import invoke
from perch._internal.types import Clock, ParamValue
from perch.cache.artifact import NEVER, Artifact, normalize_revalidate
from perch.cache.keys import RenderKey
from perch.errors import ConfigurationError, RenderFailure
from perch.pages.types import Page, PageData
from perch.routing.route import RoutePattern

logger = logging.getLogger("perch.render")


class RenderPipeline:
    """Turns a (pattern, params) pair into an :class:`Artifact`.

    Args:
        pages: Page collaborators keyed by pattern path (``/blog/[slug]``).
        clock: Source of ``created_at`` timestamps.
        offload_sync_loaders: Run plain ``def`` loaders in a worker thread.
    """

    __slots__ = ("_clock", "_offload", "_pages")

    def __init__(
        self,
        pages: Mapping[str, Page],
        *,
        clock: Clock = time.time,
        offload_sync_loaders: bool = True,
    ) -> None:
        self._pages = dict(pages)
        self._clock = clock
        self._offload = offload_sync_loaders

    def page_for(self, pattern: RoutePattern) -> Page:
        page = self._pages.get(pattern.path)
        if page is None:
            msg = f"No page registered for {pattern.path}"
            raise ConfigurationError(msg)
        return page

    async def render(self, pattern: RoutePattern, params: Mapping[str, ParamValue]) -> Artifact:
        """Load data and render one page.

        Returns a ``"page"`` artifact, a ``"not_found"`` artifact (never
        revalidates) when the loader signals not-found, or a
        ``"redirect"`` artifact when it asks for a redirect.

        Raises:
            RenderFailure: If ``load_data`` or ``render`` raises, or the
                loader returns something that is not page data.
        """
        key = RenderKey.of(pattern, params)
        page = self.page_for(pattern)

        try:
            raw = await self._load(page, params)
            data = coerce_page_data(raw)
            revalidate = normalize_revalidate(data.revalidate)
        except Exception as exc:
            raise RenderFailure(str(key), "load_data", str(exc)) from exc

        if data.not_found:
            logger.debug("load_data for %s signalled not found", key)
            return Artifact(payload="", created_at=self._clock(), revalidate=NEVER, kind="not_found")

        if data.redirect is not None:
            return Artifact(
                payload="",
                created_at=self._clock(),
                revalidate=revalidate,
                kind="redirect",
                redirect=data.redirect,
                permanent=data.permanent,
            )

        props = dict(data.props)
        try:
            payload = await invoke(page.render, dict(props))
        except Exception as exc:
            raise RenderFailure(str(key), "render", str(exc)) from exc
        if not isinstance(payload, str):
            detail = f"render() returned {type(payload).__name__}, expected str"
            raise RenderFailure(str(key), "render", detail)

        return Artifact(
            payload=payload,
            props=props,
            created_at=self._clock(),
            revalidate=revalidate,
        )

    async def _load(self, page: Page, params: Mapping[str, ParamValue]) -> Any:
        if page.load_data is None:
            return PageData()
        return await invoke(page.load_data, offload=self._offload, **_loader_kwargs(page.load_data, params))


def coerce_page_data(raw: Any) -> PageData:
    """Accept a :class:`PageData`, a mapping with the same keys, or ``None``.

    Raises ``TypeError`` for anything else and for unknown mapping keys.
    """
    if isinstance(raw, PageData):
        return raw
    if raw is None:
        return PageData()
    if isinstance(raw, Mapping):
        unknown = set(raw) - {"props", "revalidate", "not_found", "redirect", "permanent"}
        if unknown:
            msg = f"unknown page data keys: {sorted(unknown)}"
            raise TypeError(msg)
        return PageData(**raw)
    msg = f"load_data() must return PageData or a mapping, got {type(raw).__name__}"
    raise TypeError(msg)


def _loader_kwargs(func: Any, params: Mapping[str, ParamValue]) -> dict[str, ParamValue]:
    """Pass the route params the loader's signature asks for.

    A loader taking ``**kwargs`` receives all of them::

        def load_data(slug): ...          # receives slug only
        def load_data(**params): ...      # receives everything
        def load_data(): ...              # receives nothing
    """
    sig = inspect.signature(func)
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values()):
        return dict(params)
    return {name: value for name, value in params.items() if name in sig.parameters}
