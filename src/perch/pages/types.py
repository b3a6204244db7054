"""Data models for file-routed pages.

Immutable frozen dataclasses describing a page's collaborator functions
and what its data loader hands back. Built once at startup during
discovery.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from perch._internal.types import DataLoader, PageRenderer, ParamLister, Revalidate
from perch.cache.artifact import NEVER

FallbackPolicy: TypeAlias = Literal["disallow", "block", "allow"]

FALLBACK_POLICIES: frozenset[str] = frozenset({"disallow", "block", "allow"})


@dataclass(frozen=True, slots=True)
class PageData:
    """What a page's ``load_data()`` returns.

    Attributes:
        props: Serializable values handed to ``render()``.
        revalidate: ``"never"``, ``"always"``, or seconds until stale.
        not_found: Render a not-found outcome instead of the page.
        redirect: Redirect target instead of a page.
        permanent: Whether *redirect* is permanent (308) or not (307).

    Loaders may also return a plain mapping with the same keys::

        def load_data(slug):
            post = posts.get(slug)
            if post is None:
                return {"not_found": True}
            return {"props": {"post": post}, "revalidate": 60}
    """

    props: Mapping[str, Any] = field(default_factory=dict)
    revalidate: Revalidate | int | None = NEVER
    not_found: bool = False
    redirect: str | None = None
    permanent: bool = False


@dataclass(frozen=True, slots=True)
class Page:
    """One page file's collaborators.

    Attributes:
        file: Path relative to the pages root (``blog/[slug].py``).
        render: Pure function from props to payload.
        load_data: Optional loader called with the route parameters as
            keyword arguments. Without one the page renders with empty
            props and never revalidates.
        list_params: Optional enumeration of parameter dicts to pre-build.
        fallback: Policy for parameters ``list_params()`` did not list.
    """

    file: str
    render: PageRenderer
    load_data: DataLoader | None = None
    list_params: ParamLister | None = None
    fallback: FallbackPolicy = "disallow"
