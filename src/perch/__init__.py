"""Perch — static generation, incremental revalidation, and on-demand
rendering for file-routed pages.

Resolves a URL to a page file, serves pre-built artifacts, rebuilds
stale ones in the background, and renders not-yet-built dynamic paths
according to each page's fallback policy.

Basic usage::

    from perch import Site, SiteConfig

    site = Site(SiteConfig(pages_dir="pages"))
    site.mount_pages()
    await site.build()

    async with site.orchestrator() as orchestrator:
        response = await orchestrator.resolve_and_render("/blog/hello")
        response.status, response.payload, response.cache_control
"""

__version__ = "0.1.0"
__all__ = [
    "Artifact",
    "ConfigurationError",
    "ConflictingRoute",
    "EnumerationFailure",
    "FileArtifactStore",
    "MemoryArtifactStore",
    "Orchestrator",
    "Page",
    "PageData",
    "PerchError",
    "RenderFailure",
    "RenderKey",
    "RenderResponse",
    "RouteNotFound",
    "RouteTable",
    "Site",
    "SiteConfig",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "Site":
        from perch.site import Site

        return Site

    if name == "SiteConfig":
        from perch.config import SiteConfig

        return SiteConfig

    if name in ("Page", "PageData"):
        from perch.pages import types as _pages

        return getattr(_pages, name)

    if name in ("Artifact", "FileArtifactStore", "MemoryArtifactStore", "RenderKey"):
        from perch import cache as _cache

        return getattr(_cache, name)

    if name in ("Orchestrator", "RenderResponse"):
        from perch import orchestrator as _orch

        return getattr(_orch, name)

    if name == "RouteTable":
        from perch.routing.table import RouteTable

        return RouteTable

    if name in (
        "ConfigurationError",
        "ConflictingRoute",
        "EnumerationFailure",
        "PerchError",
        "RenderFailure",
        "RouteNotFound",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
