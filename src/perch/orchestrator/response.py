"""The orchestrator's answer to the transport layer.

A ``RenderResponse`` carries a status, a payload or redirect target, and
the caching directive the transport should emit. Immutable; built by the
orchestrator and handed back as-is.
"""

import math
from dataclasses import dataclass
from typing import Literal, TypeAlias

from perch.cache.artifact import ALWAYS, NEVER
from perch.cache.keys import RenderKey

# HIT: fresh artifact. STALE: stale artifact served, revalidation queued.
# MISS: rendered for this request. FALLBACK: placeholder, render queued.
# BYPASS: rendered on every request ("always") or not cacheable.
CacheState: TypeAlias = Literal["HIT", "STALE", "MISS", "FALLBACK", "BYPASS"]


@dataclass(frozen=True, slots=True)
class RenderResponse:
    """Outcome of ``Orchestrator.resolve_and_render()``."""

    status: int
    payload: str = ""
    redirect_target: str | None = None
    cache_control: str = ""
    cache_state: CacheState = "MISS"
    key: RenderKey | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.cache_state == "FALLBACK"

    def headers(self) -> tuple[tuple[str, str], ...]:
        """Response headers the transport should send."""
        headers: list[tuple[str, str]] = []
        if self.cache_control:
            headers.append(("Cache-Control", self.cache_control))
        headers.append(("X-Perch-Cache", self.cache_state))
        if self.redirect_target is not None:
            headers.append(("Location", self.redirect_target))
        return tuple(headers)


def shared_cache_control(revalidate: float | str, *, never: str, no_store: str) -> str:
    """Cache-Control for a cacheable artifact with the given window.

    Finite windows become ``s-maxage=<seconds>, stale-while-revalidate``
    so a shared cache mirrors the orchestrator's own stale-while-revalidate
    behavior.
    """
    if revalidate == NEVER:
        return never
    if revalidate == ALWAYS:
        return no_store
    return f"s-maxage={math.ceil(float(revalidate))}, stale-while-revalidate"
