"""Perch site — the application object.

Mutable during setup (page registration, discovery, build selection).
Frozen on first use: the route table, pipeline, and enumerator are
compiled once and shared by every orchestrator the site hands out.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from perch._internal.types import Clock, DataLoader, PageRenderer, ParamLister
from perch.build import BuildResult, PrerenderManifest, build_site
from perch.cache.filesystem import FileArtifactStore
from perch.cache.store import ArtifactStore, MemoryArtifactStore
from perch.config import SiteConfig
from perch.errors import ConfigurationError
from perch.orchestrator.core import Orchestrator
from perch.orchestrator.inflight import InFlightRegistry
from perch.pages.discovery import discover_pages
from perch.pages.types import FALLBACK_POLICIES, FallbackPolicy, Page
from perch.render.enumerate import PathEnumerator
from perch.render.pipeline import RenderPipeline
from perch.routing.table import RouteTable, is_route_file

ARTIFACTS_DIRNAME = "artifacts"
MANIFEST_FILENAME = "manifest.json"


class Site:
    """A set of file-routed pages plus the services that serve them.

    Usage::

        site = Site(SiteConfig(pages_dir="pages"))
        site.mount_pages()

        await site.build()                      # pre-render into the store
        async with site.orchestrator() as orch:
            response = await orch.resolve_and_render("/blog/hello")

    Pages can also be registered in code::

        @site.page("blog/[slug].py", load_data=load_post, list_params=list_posts, fallback="block")
        def post(props):
            return f"<h1>{props['title']}</h1>"

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock +
        double-check so exactly one thread compiles the site.
    """

    __slots__ = (
        "_clock",
        "_enumerator",
        "_freeze_lock",
        "_frozen",
        "_manifest_path",
        "_pages",
        "_pipeline",
        "_store",
        "_table",
        "config",
    )

    def __init__(
        self,
        config: SiteConfig | None = None,
        *,
        store: ArtifactStore | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.config: SiteConfig = config or SiteConfig()
        self._clock = clock
        self._pages: list[Page] = []
        self._store: ArtifactStore = store if store is not None else MemoryArtifactStore()
        self._manifest_path: Path | None = None
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._table: RouteTable | None = None
        self._pipeline: RenderPipeline | None = None
        self._enumerator: PathEnumerator | None = None

    # -- Page registration --

    def page(
        self,
        file: str,
        *,
        load_data: DataLoader | None = None,
        list_params: ParamLister | None = None,
        fallback: FallbackPolicy = "disallow",
    ) -> Callable[[PageRenderer], PageRenderer]:
        """Register a page's render function via decorator.

        Args:
            file: Route file path relative to the pages root, e.g.
                ``"blog/[slug].py"``. The extension is optional.
            load_data: Loader called with the route parameters.
            list_params: Enumeration of parameter dicts to pre-build.
            fallback: Policy for parameters ``list_params`` did not list.
        """

        def decorator(render: PageRenderer) -> PageRenderer:
            self.add_page(
                Page(
                    file=file,
                    render=render,
                    load_data=load_data,
                    list_params=list_params,
                    fallback=fallback,
                )
            )
            return render

        return decorator

    def add_page(self, page: Page) -> None:
        self._check_not_frozen()
        if not is_route_file(page.file):
            msg = f"{page.file!r} is a private file name and cannot be a page"
            raise ConfigurationError(msg)
        if page.fallback not in FALLBACK_POLICIES:
            msg = f"Unknown fallback policy {page.fallback!r} for {page.file!r}"
            raise ConfigurationError(msg)
        self._pages.append(page)

    def mount_pages(self, pages_dir: str | Path | None = None) -> list[Page]:
        """Discover page modules under *pages_dir* (default: ``config.pages_dir``)."""
        self._check_not_frozen()
        pages = discover_pages(pages_dir if pages_dir is not None else self.config.pages_dir)
        for page in pages:
            self.add_page(page)
        return pages

    def use_build(self, build_dir: str | Path | None = None) -> None:
        """Serve from a persisted build instead of an empty in-memory store.

        Artifacts are read from ``<build_dir>/artifacts`` and enumerations
        from ``<build_dir>/manifest.json``.
        """
        self._check_not_frozen()
        root = Path(build_dir if build_dir is not None else self.config.build_dir)
        self._store = FileArtifactStore(root / ARTIFACTS_DIRNAME)
        self._manifest_path = root / MANIFEST_FILENAME

    # -- Compiled state --

    @property
    def pages(self) -> tuple[Page, ...]:
        return tuple(self._pages)

    @property
    def store(self) -> ArtifactStore:
        return self._store

    @property
    def table(self) -> RouteTable:
        return self._compiled()[0]

    @property
    def pipeline(self) -> RenderPipeline:
        return self._compiled()[1]

    @property
    def enumerator(self) -> PathEnumerator:
        return self._compiled()[2]

    def orchestrator(self, *, registry: InFlightRegistry | None = None) -> Orchestrator:
        """A new orchestrator over this site's table, pipeline and store."""
        table, pipeline, enumerator = self._compiled()
        return Orchestrator(
            table,
            pipeline,
            enumerator,
            self._store,
            registry,
            config=self.config,
            clock=self._clock,
        )

    async def build(self, out_dir: str | Path | None = None) -> BuildResult:
        """Pre-render every static route and enumerated tuple.

        Without *out_dir* artifacts go into the site's own store. With it,
        they are persisted under ``<out_dir>/artifacts`` next to a
        ``manifest.json``; load it later with :meth:`use_build`.
        """
        table, pipeline, enumerator = self._compiled()

        store = self._store
        if out_dir is not None:
            store = FileArtifactStore(Path(out_dir) / ARTIFACTS_DIRNAME)

        result = await build_site(
            table,
            pipeline,
            enumerator,
            store,
            concurrency=self.config.build_concurrency,
            cache_not_found=self.config.cache_not_found,
        )
        if out_dir is None:
            return result

        result.manifest.write(Path(out_dir) / MANIFEST_FILENAME)
        return replace(result, output_dir=Path(out_dir))

    # -- Freeze --

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot modify the site after it has started serving or building."
            raise RuntimeError(msg)

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()
            self._frozen = True

    def _compiled(self) -> tuple[RouteTable, RenderPipeline, PathEnumerator]:
        """Freeze if needed and return the shared table, pipeline and enumerator."""
        self._ensure_frozen()
        if self._table is None or self._pipeline is None or self._enumerator is None:
            msg = "Site froze without compiling its route table."
            raise RuntimeError(msg)
        return self._table, self._pipeline, self._enumerator

    def _freeze(self) -> None:
        """Compile the route table and build the shared services."""
        table = RouteTable.compile(page.file for page in self._pages)
        by_file = {page.file: page for page in self._pages}
        pages_by_pattern = {pattern.path: by_file[pattern.file] for pattern in table.patterns}

        enumerator = PathEnumerator(pages_by_pattern)
        if self._manifest_path is not None:
            if not self._manifest_path.is_file():
                msg = f"Prerender manifest not found: {self._manifest_path}"
                raise ConfigurationError(msg)
            manifest = PrerenderManifest.read(self._manifest_path, table)
            for enumeration in manifest.routes.values():
                enumerator.seed(enumeration)

        self._table = table
        self._enumerator = enumerator
        self._pipeline = RenderPipeline(
            pages_by_pattern,
            clock=self._clock,
            offload_sync_loaders=self.config.offload_sync_loaders,
        )
