"""Filesystem-based pages.

The ``pages/`` directory structure defines URL paths; each page module
supplies the functions the render pipeline calls.

Conventions::

    pages/
      index.py              # /
      about.py              # /about
      _helpers.py           # private, not a route
      blog/
        index.py            # /blog
        [slug].py           # /blog/{slug}   (list_params + fallback)
      docs/
        [...path].py        # /docs/a, /docs/a/b, ...
"""

from perch.pages.discovery import discover_pages
from perch.pages.types import FALLBACK_POLICIES, FallbackPolicy, Page, PageData

__all__ = [
    "FALLBACK_POLICIES",
    "FallbackPolicy",
    "Page",
    "PageData",
    "discover_pages",
]
