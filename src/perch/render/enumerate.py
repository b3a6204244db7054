"""Path enumeration — which parameter tuples a dynamic route pre-builds.

Each dynamic page may define ``list_params()``; its result, validated
against the route pattern, plus the page's declared fallback policy form
an :class:`Enumeration`. Static routes enumerate to a single empty tuple.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from perch._internal.invoke import invoke
from perch._internal.types import ParamValue
from perch.cache.keys import RenderKey
from perch.errors import EnumerationFailure
from perch.pages.types import FALLBACK_POLICIES, FallbackPolicy, Page
from perch.routing.route import RoutePattern

logger = logging.getLogger("perch.render")


@dataclass(frozen=True, slots=True)
class Enumeration:
    """Parameter tuples to pre-build for one pattern, and the fallback policy.

    Attributes:
        pattern: Pattern path (``/blog/[slug]``).
        params: Validated parameter dicts, in enumeration order.
        fallback: What to do for tuples outside *params*.
        keys: RenderKeys of *params*, for membership checks.
    """

    pattern: str
    params: tuple[dict[str, ParamValue], ...]
    fallback: FallbackPolicy
    keys: frozenset[RenderKey]

    @classmethod
    def of(
        cls,
        pattern: RoutePattern,
        params: Iterable[Mapping[str, Any]],
        fallback: FallbackPolicy,
    ) -> Enumeration:
        """Validate *params* against *pattern* and build an enumeration.

        Raises ``EnumerationFailure`` for malformed tuples or an unknown
        fallback policy. Duplicate tuples are kept once.
        """
        if fallback not in FALLBACK_POLICIES:
            raise EnumerationFailure(pattern.path, f"unknown fallback policy {fallback!r}")

        validated: list[dict[str, ParamValue]] = []
        keys: set[RenderKey] = set()
        for raw in params:
            if not isinstance(raw, Mapping):
                detail = f"expected a mapping of parameters, got {raw!r}"
                raise EnumerationFailure(pattern.path, detail)
            try:
                coerced = pattern.coerce_params(raw)
            except (TypeError, ValueError) as exc:
                raise EnumerationFailure(pattern.path, str(exc)) from exc
            key = RenderKey.of(pattern, coerced)
            if key in keys:
                continue
            keys.add(key)
            validated.append(coerced)

        return cls(pattern=pattern.path, params=tuple(validated), fallback=fallback, keys=frozenset(keys))

    @classmethod
    def from_json(cls, pattern: RoutePattern, data: Mapping[str, Any]) -> Enumeration:
        return cls.of(pattern, data.get("params", ()), data.get("fallback", "disallow"))

    def contains(self, key: RenderKey) -> bool:
        return key in self.keys

    def to_json(self) -> dict[str, Any]:
        return {
            "fallback": self.fallback,
            "params": [
                {name: list(v) if isinstance(v, tuple) else v for name, v in p.items()}
                for p in self.params
            ],
        }


class PathEnumerator:
    """Calls each page's ``list_params()`` once and memoizes the result.

    Usage::

        enumerator = PathEnumerator(pages_by_pattern)
        enumeration = await enumerator.enumerate(pattern)
        for params in enumeration.params:
            ...

    Enumerations can also be seeded from a prerender manifest so a
    server started from a build never calls ``list_params()``.
    """

    __slots__ = ("_cache", "_pages")

    def __init__(self, pages: Mapping[str, Page]) -> None:
        self._pages = dict(pages)
        self._cache: dict[str, Enumeration] = {}

    def cached(self, pattern: RoutePattern) -> Enumeration | None:
        return self._cache.get(pattern.path)

    def seed(self, enumeration: Enumeration) -> None:
        self._cache[enumeration.pattern] = enumeration

    async def enumerate(self, pattern: RoutePattern) -> Enumeration:
        """Return the pattern's enumeration, calling ``list_params()`` on first use.

        Raises:
            EnumerationFailure: If ``list_params()`` raises or returns
                malformed tuples. Failures are not memoized.
        """
        cached = self._cache.get(pattern.path)
        if cached is not None:
            return cached

        if not pattern.is_dynamic:
            enumeration = Enumeration.of(pattern, [{}], "block")
        else:
            page = self._pages.get(pattern.path)
            if page is None:
                raise EnumerationFailure(pattern.path, "no page registered")
            raw = await self._list(pattern, page)
            enumeration = Enumeration.of(pattern, raw, page.fallback)
            logger.debug(
                "Enumerated %d parameter tuples for %s (fallback=%s)",
                len(enumeration.params),
                pattern.path,
                enumeration.fallback,
            )

        self._cache[pattern.path] = enumeration
        return enumeration

    @staticmethod
    async def _list(pattern: RoutePattern, page: Page) -> list[Any]:
        if page.list_params is None:
            return []
        try:
            result = await invoke(page.list_params)
            if isinstance(result, (str, bytes, Mapping)):
                detail = f"list_params() must return a sequence of mappings, got {type(result).__name__}"
                raise EnumerationFailure(pattern.path, detail)
            return list(result or ())
        except EnumerationFailure:
            raise
        except Exception as exc:
            raise EnumerationFailure(pattern.path, str(exc)) from exc
