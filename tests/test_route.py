"""Tests for perch.routing.route and perch.cache.keys — patterns and render keys."""

import pytest

from perch.cache.keys import RenderKey
from perch.routing.route import CatchAll, Dynamic, OptionalCatchAll, RoutePattern, Static
from perch.routing.table import RouteTable


def _pattern(*segments) -> RoutePattern:
    return RoutePattern(tuple(segments))


class TestRoutePattern:
    def test_path(self) -> None:
        pattern = _pattern(Static("docs"), Dynamic("lang"), CatchAll("rest"))
        assert pattern.path == "/docs/[lang]/[...rest]"

    def test_root_path(self) -> None:
        assert _pattern().path == "/"

    def test_is_dynamic(self) -> None:
        assert not _pattern(Static("about")).is_dynamic
        assert _pattern(Static("blog"), Dynamic("slug")).is_dynamic

    def test_param_names(self) -> None:
        pattern = _pattern(Dynamic("org"), Static("x"), OptionalCatchAll("rest"))
        assert pattern.param_names == ("org", "rest")

    def test_equality_ignores_file_and_order(self) -> None:
        a = RoutePattern((Static("a"),), file="a.py", order=0)
        b = RoutePattern((Static("a"),), file="a/index.py", order=3)
        assert a == b
        assert hash(a) == hash(b)


class TestCoerceParams:
    def test_dynamic_to_string(self) -> None:
        pattern = _pattern(Static("posts"), Dynamic("id"))
        assert pattern.coerce_params({"id": 7}) == {"id": "7"}

    def test_catch_all_to_tuple(self) -> None:
        pattern = _pattern(CatchAll("path"))
        assert pattern.coerce_params({"path": ["a", "b"]}) == {"path": ("a", "b")}

    def test_optional_catch_all_defaults_empty(self) -> None:
        pattern = _pattern(Static("shop"), OptionalCatchAll("path"))
        assert pattern.coerce_params({}) == {"path": ()}

    def test_missing(self) -> None:
        with pytest.raises(ValueError, match="missing parameter 'slug'"):
            _pattern(Dynamic("slug")).coerce_params({})

    def test_extra(self) -> None:
        with pytest.raises(ValueError, match="unknown parameters"):
            _pattern(Dynamic("slug")).coerce_params({"slug": "a", "page": "2"})

    def test_dynamic_rejects_list(self) -> None:
        with pytest.raises(TypeError):
            _pattern(Dynamic("slug")).coerce_params({"slug": ["a"]})

    def test_dynamic_rejects_slash(self) -> None:
        with pytest.raises(ValueError):
            _pattern(Dynamic("slug")).coerce_params({"slug": "a/b"})

    def test_catch_all_rejects_string(self) -> None:
        with pytest.raises(TypeError):
            _pattern(CatchAll("path")).coerce_params({"path": "a/b"})

    def test_catch_all_rejects_empty(self) -> None:
        with pytest.raises(ValueError):
            _pattern(CatchAll("path")).coerce_params({"path": []})


class TestBuildPath:
    def test_static(self) -> None:
        assert _pattern(Static("about")).build_path({}) == "/about"

    def test_dynamic(self) -> None:
        pattern = _pattern(Static("blog"), Dynamic("slug"))
        assert pattern.build_path({"slug": "hello"}) == "/blog/hello"

    def test_catch_all(self) -> None:
        pattern = _pattern(Static("docs"), CatchAll("path"))
        assert pattern.build_path({"path": ("a", "b")}) == "/docs/a/b"

    def test_quotes_segments(self) -> None:
        pattern = _pattern(Static("tags"), Dynamic("tag"))
        assert pattern.build_path({"tag": "c++ tips"}) == "/tags/c%2B%2B%20tips"

    def test_round_trips_through_resolve(self) -> None:
        table = RouteTable.compile(["tags/[tag].py", "docs/[...path].py"])
        tag = table.find("/tags/[tag]")
        docs = table.find("/docs/[...path]")
        assert tag is not None and docs is not None
        assert table.resolve(tag.build_path({"tag": "c++ tips"})).params == {"tag": "c++ tips"}
        assert table.resolve(docs.build_path({"path": ["x", "y"]})).params == {"path": ("x", "y")}


class TestRenderKey:
    def test_insertion_order_irrelevant(self) -> None:
        a = RenderKey.of("/[a]/[b]", {"a": "1", "b": "2"})
        b = RenderKey.of("/[a]/[b]", {"b": "2", "a": "1"})
        assert a == b
        assert hash(a) == hash(b)
        assert a.digest == b.digest

    def test_pattern_distinguishes(self) -> None:
        assert RenderKey.of("/blog/[slug]", {"slug": "a"}) != RenderKey.of("/docs/[slug]", {"slug": "a"})

    def test_list_and_tuple_equivalent(self) -> None:
        a = RenderKey.of("/docs/[...path]", {"path": ["a", "b"]})
        b = RenderKey.of("/docs/[...path]", {"path": ("a", "b")})
        assert a == b

    def test_from_pattern(self) -> None:
        pattern = _pattern(Static("blog"), Dynamic("slug"))
        assert RenderKey.of(pattern, {"slug": "x"}).pattern == "/blog/[slug]"

    def test_json_round_trip(self) -> None:
        key = RenderKey.of("/docs/[lang]/[...path]", {"lang": "en", "path": ["a", "b"]})
        assert RenderKey.from_json(key.to_json()) == key

    def test_str(self) -> None:
        key = RenderKey.of("/docs/[...path]", {"path": ["a", "b"]})
        assert str(key) == "/docs/[...path] (path=a/b)"
        assert str(RenderKey.of("/about")) == "/about"

    def test_matched_route_key(self) -> None:
        table = RouteTable.compile(["blog/[slug].py"])
        match = table.resolve("/blog/hello")
        assert match.key == RenderKey.of("/blog/[slug]", {"slug": "hello"})
