"""Compiled route table with trie-based path matching.

Page files are parsed into patterns once, at startup, and compiled into
an immutable lookup structure. Resolution walks the trie preferring
static children, then dynamic children in registration order, then
catch-alls, backtracking when a branch dead-ends.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import PurePosixPath
from urllib.parse import unquote

from perch._internal.types import ParamValue
from perch.errors import ConfigurationError, ConflictingRoute, RouteNotFound
from perch.routing.route import (
    CatchAll,
    Dynamic,
    MatchedRoute,
    OptionalCatchAll,
    RoutePattern,
    Segment,
    Static,
)

_DYNAMIC_RE = re.compile(r"^\[(\w+)\]$")
_CATCH_ALL_RE = re.compile(r"^\[\.\.\.(\w+)\]$")
_OPTIONAL_CATCH_ALL_RE = re.compile(r"^\[\[\.\.\.(\w+)\]\]$")


def is_route_file(file: str) -> bool:
    """Whether *file* (relative to the pages root) defines a route.

    Any path component starting with ``_`` or ``.`` is private:
    ``_app.py``, ``_components/card.py``, ``.cache/x.py``.
    """
    parts = PurePosixPath(file.replace("\\", "/")).parts
    return bool(parts) and not any(p.startswith(("_", ".")) for p in parts if p != "/")


def parse_route_file(file: str) -> tuple[Segment, ...]:
    """Parse a page file path into segments.

    Examples::

        "index.py"               -> ()
        "blog.py"                -> (Static("blog"),)
        "blog/index.py"          -> (Static("blog"),)
        "blog/[slug].py"         -> (Static("blog"), Dynamic("slug"))
        "docs/[...path].py"      -> (Static("docs"), CatchAll("path"))
        "shop/[[...path]].py"    -> (Static("shop"), OptionalCatchAll("path"))

    Raises ``ConfigurationError`` for malformed bracket segments or a
    parameter name used twice.
    """
    parts = [p for p in PurePosixPath(file.replace("\\", "/")).parts if p not in ("/", ".")]
    if not parts:
        msg = f"Empty page file path: {file!r}"
        raise ConfigurationError(msg)

    # Strip the file extension; a bare bracket segment has none
    last = PurePosixPath(parts[-1])
    if last.suffix and not last.name.endswith("]"):
        parts[-1] = last.stem
    if parts[-1] == "index":
        parts.pop()

    segments: list[Segment] = []
    seen: set[str] = set()
    for part in parts:
        seg = _parse_segment(part, file)
        if not isinstance(seg, Static):
            if seg.param in seen:
                msg = f"Parameter {seg.param!r} appears twice in {file!r}"
                raise ConfigurationError(msg)
            seen.add(seg.param)
        segments.append(seg)
    return tuple(segments)


def _parse_segment(part: str, file: str) -> Segment:
    if m := _OPTIONAL_CATCH_ALL_RE.match(part):
        return OptionalCatchAll(m.group(1))
    if m := _CATCH_ALL_RE.match(part):
        return CatchAll(m.group(1))
    if m := _DYNAMIC_RE.match(part):
        return Dynamic(m.group(1))
    if "[" in part or "]" in part:
        msg = (
            f"Malformed route segment {part!r} in {file!r}. "
            "Use [name], [...name] or [[...name]]."
        )
        raise ConfigurationError(msg)
    return Static(part)


def compile_patterns(files: Iterable[str]) -> tuple[RoutePattern, ...]:
    """Parse page files into patterns, rejecting conflicts.

    Private files (see :func:`is_route_file`) are skipped. Registration
    order is the order of *files*.

    Raises ``ConflictingRoute`` if two files normalize to the same segment
    sequence (``blog.py`` and ``blog/index.py``) or a catch-all segment is
    not last.
    """
    patterns: list[RoutePattern] = []
    by_segments: dict[tuple[Segment, ...], str] = {}

    for file in files:
        if not is_route_file(file):
            continue
        segments = parse_route_file(file)

        for i, seg in enumerate(segments):
            if isinstance(seg, (CatchAll, OptionalCatchAll)) and i != len(segments) - 1:
                msg = f"Catch-all segment {seg} must be the last segment in {file!r}"
                raise ConflictingRoute(msg, files=(file,))

        existing = by_segments.get(segments)
        if existing is not None:
            pattern_path = "/" + "/".join(str(s) for s in segments)
            msg = f"{existing!r} and {file!r} both define {pattern_path}"
            raise ConflictingRoute(msg, files=(existing, file))
        by_segments[segments] = file
        patterns.append(RoutePattern(segments, file=file, order=len(patterns)))

    return tuple(patterns)


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all", "dynamic", "optional_catch_all", "pattern", "static")

    def __init__(self) -> None:
        # Literal children: "blog" -> node
        self.static: dict[str, _TrieNode] = {}
        # Parameter children in registration order: "slug" -> node
        self.dynamic: dict[str, _TrieNode] = {}
        # Catch-alls terminate here; they consume the rest of the path
        self.catch_all: dict[str, RoutePattern] = {}
        self.optional_catch_all: dict[str, RoutePattern] = {}
        # Pattern ending exactly at this node
        self.pattern: RoutePattern | None = None


class RouteTable:
    """Compiled, immutable route table.

    Usage::

        table = RouteTable.compile(["index.py", "blog.py", "blog/[slug].py"])
        match = table.resolve("/blog/hello")
        match.pattern.path   # "/blog/[slug]"
        match.params         # {"slug": "hello"}
    """

    __slots__ = ("_by_path", "_patterns", "_root")

    def __init__(self, patterns: Iterable[RoutePattern]) -> None:
        self._patterns = tuple(patterns)
        self._by_path = {p.path: p for p in self._patterns}
        self._root = _TrieNode()
        for pattern in self._patterns:
            self._insert(pattern)

    @classmethod
    def compile(cls, files: Iterable[str]) -> RouteTable:
        """Parse *files* and build the table. See :func:`compile_patterns`."""
        return cls(compile_patterns(files))

    @property
    def patterns(self) -> tuple[RoutePattern, ...]:
        """All patterns in registration order."""
        return self._patterns

    def find(self, pattern_path: str) -> RoutePattern | None:
        """Look up a pattern by its canonical string (``/blog/[slug]``)."""
        return self._by_path.get(pattern_path)

    def _insert(self, pattern: RoutePattern) -> None:
        node = self._root
        for seg in pattern.segments:
            match seg:
                case Static(name=name):
                    node = node.static.setdefault(name, _TrieNode())
                case Dynamic(param=name):
                    node = node.dynamic.setdefault(name, _TrieNode())
                case CatchAll(param=name):
                    node.catch_all[name] = pattern
                    return
                case OptionalCatchAll(param=name):
                    node.optional_catch_all[name] = pattern
                    return
        node.pattern = pattern

    def resolve(self, path: str) -> MatchedRoute:
        """Resolve a request path to a pattern and its parameters.

        Pure and side-effect-free.
        Raises ``RouteNotFound`` if nothing matches.
        """
        parts = [unquote(p) for p in path.split("?", 1)[0].split("/") if p]
        result = self._match_node(self._root, parts, 0, {})
        if result is None:
            msg = f"No route matches {path!r}"
            raise RouteNotFound(msg)
        pattern, params = result
        return MatchedRoute(pattern=pattern, params=params)

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, ParamValue],
    ) -> tuple[RoutePattern, dict[str, ParamValue]] | None:
        """Recursively match path parts against the trie."""
        if index == len(parts):
            if node.pattern is not None:
                return node.pattern, params
            return _first_catch_all(node.optional_catch_all, params, ())

        part = parts[index]

        # 1. Static child (exact match)
        child = node.static.get(part)
        if child is not None:
            result = self._match_node(child, parts, index + 1, params)
            if result is not None:
                return result

        # 2. Dynamic children, in registration order
        for name, child in node.dynamic.items():
            result = self._match_node(child, parts, index + 1, {**params, name: part})
            if result is not None:
                return result

        # 3. Catch-alls consume the remaining parts
        remaining = tuple(parts[index:])
        return _first_catch_all(node.catch_all, params, remaining) or _first_catch_all(
            node.optional_catch_all, params, remaining
        )


def _first_catch_all(
    edges: dict[str, RoutePattern],
    params: dict[str, ParamValue],
    remaining: tuple[str, ...],
) -> tuple[RoutePattern, dict[str, ParamValue]] | None:
    """Bind *remaining* to the earliest-registered catch-all edge, if any."""
    if not edges:
        return None
    name, pattern = next(iter(edges.items()))
    return pattern, {**params, name: remaining}
