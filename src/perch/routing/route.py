"""Route segments, RoutePattern, and MatchedRoute frozen dataclasses."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias
from urllib.parse import quote

if TYPE_CHECKING:
    from perch._internal.types import ParamValue
    from perch.cache.keys import RenderKey


@dataclass(frozen=True, slots=True)
class Static:
    """A literal segment: ``blog`` in ``blog/[slug].py``."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Dynamic:
    """A single-segment parameter: ``[slug]``."""

    param: str

    def __str__(self) -> str:
        return f"[{self.param}]"


@dataclass(frozen=True, slots=True)
class CatchAll:
    """One or more trailing segments: ``[...path]``."""

    param: str

    def __str__(self) -> str:
        return f"[...{self.param}]"


@dataclass(frozen=True, slots=True)
class OptionalCatchAll:
    """Zero or more trailing segments: ``[[...path]]``."""

    param: str

    def __str__(self) -> str:
        return f"[[...{self.param}]]"


Segment: TypeAlias = Static | Dynamic | CatchAll | OptionalCatchAll


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A compiled route: the ordered segments parsed from one page file.

    Created when the route table compiles, immutable afterwards. Two
    patterns are equal when their segments are equal; the source file and
    registration order are carried along for diagnostics and tie-breaks.
    """

    segments: tuple[Segment, ...]
    file: str = field(default="", compare=False)
    order: int = field(default=0, compare=False)

    @property
    def path(self) -> str:
        """Canonical pattern string, e.g. ``/blog/[slug]``."""
        return "/" + "/".join(str(s) for s in self.segments)

    @property
    def is_dynamic(self) -> bool:
        return any(not isinstance(s, Static) for s in self.segments)

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(s.param for s in self.segments if not isinstance(s, Static))

    def coerce_params(self, raw: Mapping[str, Any]) -> dict[str, ParamValue]:
        """Validate a parameter mapping against this pattern.

        Dynamic values become strings; catch-all values become tuples of
        strings. Optional catch-alls default to ``()``.

        Raises ``ValueError`` for missing, extra, or empty values and
        ``TypeError`` for values of the wrong shape.
        """
        extra = set(raw) - set(self.param_names)
        if extra:
            msg = f"unknown parameters {sorted(extra)} for {self.path}"
            raise ValueError(msg)

        params: dict[str, ParamValue] = {}
        for seg in self.segments:
            match seg:
                case Static():
                    continue
                case Dynamic(param=name):
                    if name not in raw:
                        msg = f"missing parameter {name!r} for {self.path}"
                        raise ValueError(msg)
                    value = raw[name]
                    if isinstance(value, (list, tuple)):
                        msg = f"parameter {name!r} takes one segment, got {value!r}"
                        raise TypeError(msg)
                    text = str(value)
                    if not text or "/" in text:
                        msg = f"parameter {name!r} is not a single segment: {text!r}"
                        raise ValueError(msg)
                    params[name] = text
                case CatchAll(param=name) | OptionalCatchAll(param=name):
                    value = raw.get(name, ())
                    if isinstance(value, str) or not isinstance(value, (list, tuple)):
                        msg = f"catch-all parameter {name!r} must be a list, got {value!r}"
                        raise TypeError(msg)
                    if not value and isinstance(seg, CatchAll):
                        msg = f"catch-all parameter {name!r} needs at least one segment"
                        raise ValueError(msg)
                    params[name] = tuple(str(v) for v in value)
        return params

    def build_path(self, params: Mapping[str, Any]) -> str:
        """Render a concrete URL path for *params*.

        Example::

            RoutePattern((Static("docs"), CatchAll("path"))).build_path(
                {"path": ("a", "b")}
            )  # -> "/docs/a/b"
        """
        params = self.coerce_params(params)
        parts: list[str] = []
        for seg in self.segments:
            match seg:
                case Static(name=name):
                    parts.append(quote(name))
                case Dynamic(param=name):
                    parts.append(quote(str(params[name]), safe=""))
                case CatchAll(param=name) | OptionalCatchAll(param=name):
                    parts.extend(quote(v, safe="") for v in params[name])
        return "/" + "/".join(parts)


@dataclass(frozen=True, slots=True)
class MatchedRoute:
    """Result of a successful resolve: the pattern plus extracted params."""

    pattern: RoutePattern
    params: dict[str, ParamValue]

    @property
    def key(self) -> RenderKey:
        from perch.cache.keys import RenderKey

        return RenderKey.of(self.pattern, self.params)
