"""Tests for perch.render.pipeline — load_data, then render."""

import pytest

from perch.cache.artifact import ALWAYS, NEVER
from perch.errors import ConfigurationError, RenderFailure
from perch.pages.types import Page, PageData
from perch.render.pipeline import RenderPipeline, coerce_page_data
from perch.routing.table import RouteTable


def _render(props: dict) -> str:
    return f"<h1>{props.get('title', '')}</h1>"


def _pipeline(page: Page, *, now: float = 100.0, offload: bool = False) -> tuple[RenderPipeline, RouteTable]:
    table = RouteTable.compile([page.file])
    pipeline = RenderPipeline(
        {table.patterns[0].path: page},
        clock=lambda: now,
        offload_sync_loaders=offload,
    )
    return pipeline, table


class TestCoercePageData:
    def test_page_data_passthrough(self) -> None:
        data = PageData(props={"a": 1})
        assert coerce_page_data(data) is data

    def test_none(self) -> None:
        assert coerce_page_data(None) == PageData()

    def test_mapping(self) -> None:
        data = coerce_page_data({"props": {"a": 1}, "revalidate": 60})
        assert data.props == {"a": 1}
        assert data.revalidate == 60

    def test_unknown_key(self) -> None:
        with pytest.raises(TypeError, match="unknown page data keys"):
            coerce_page_data({"prop": {}})

    def test_wrong_type(self) -> None:
        with pytest.raises(TypeError):
            coerce_page_data("<h1>hi</h1>")


class TestRender:
    @pytest.mark.asyncio
    async def test_static_page_without_loader(self) -> None:
        pipeline, table = _pipeline(Page(file="about.py", render=lambda props: "<p>about</p>"))
        artifact = await pipeline.render(table.patterns[0], {})
        assert artifact.payload == "<p>about</p>"
        assert artifact.revalidate == NEVER
        assert artifact.created_at == 100.0
        assert artifact.kind == "page"

    @pytest.mark.asyncio
    async def test_loader_receives_params(self) -> None:
        seen: list[dict] = []

        def load_data(slug: str) -> PageData:
            seen.append({"slug": slug})
            return PageData(props={"title": slug}, revalidate=60)

        pipeline, table = _pipeline(Page(file="blog/[slug].py", render=_render, load_data=load_data))
        artifact = await pipeline.render(table.patterns[0], {"slug": "hello"})
        assert seen == [{"slug": "hello"}]
        assert artifact.payload == "<h1>hello</h1>"
        assert artifact.props == {"title": "hello"}
        assert artifact.revalidate == 60.0

    @pytest.mark.asyncio
    async def test_async_loader(self) -> None:
        async def load_data(slug: str) -> dict:
            return {"props": {"title": slug.upper()}, "revalidate": "always"}

        pipeline, table = _pipeline(Page(file="blog/[slug].py", render=_render, load_data=load_data))
        artifact = await pipeline.render(table.patterns[0], {"slug": "hi"})
        assert artifact.payload == "<h1>HI</h1>"
        assert artifact.revalidate == ALWAYS

    @pytest.mark.asyncio
    async def test_offloaded_sync_loader(self) -> None:
        def load_data(slug: str) -> PageData:
            return PageData(props={"title": slug})

        page = Page(file="blog/[slug].py", render=_render, load_data=load_data)
        pipeline, table = _pipeline(page, offload=True)
        artifact = await pipeline.render(table.patterns[0], {"slug": "thread"})
        assert artifact.payload == "<h1>thread</h1>"

    @pytest.mark.asyncio
    async def test_loader_kwargs_receives_all(self) -> None:
        def load_data(**params) -> PageData:
            return PageData(props={"title": "/".join(params["path"])})

        pipeline, table = _pipeline(Page(file="docs/[...path].py", render=_render, load_data=load_data))
        artifact = await pipeline.render(table.patterns[0], {"path": ("a", "b")})
        assert artifact.payload == "<h1>a/b</h1>"

    @pytest.mark.asyncio
    async def test_loader_without_params(self) -> None:
        pipeline, table = _pipeline(
            Page(file="blog/[slug].py", render=_render, load_data=lambda: {"props": {"title": "x"}})
        )
        artifact = await pipeline.render(table.patterns[0], {"slug": "ignored"})
        assert artifact.payload == "<h1>x</h1>"

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        pipeline, table = _pipeline(
            Page(file="blog/[slug].py", render=_render, load_data=lambda slug: {"not_found": True, "revalidate": 5})
        )
        artifact = await pipeline.render(table.patterns[0], {"slug": "gone"})
        assert artifact.kind == "not_found"
        assert artifact.revalidate == NEVER
        assert artifact.payload == ""

    @pytest.mark.asyncio
    async def test_redirect(self) -> None:
        pipeline, table = _pipeline(
            Page(
                file="old.py",
                render=_render,
                load_data=lambda: PageData(redirect="/new", permanent=True, revalidate=30),
            )
        )
        artifact = await pipeline.render(table.patterns[0], {})
        assert artifact.kind == "redirect"
        assert artifact.redirect == "/new"
        assert artifact.permanent is True
        assert artifact.revalidate == 30.0

    @pytest.mark.asyncio
    async def test_identical_data_identical_payload(self) -> None:
        pipeline, table = _pipeline(
            Page(file="blog/[slug].py", render=_render, load_data=lambda slug: {"props": {"title": slug}})
        )
        first = await pipeline.render(table.patterns[0], {"slug": "same"})
        second = await pipeline.render(table.patterns[0], {"slug": "same"})
        assert first.payload == second.payload
        assert first.props == second.props

    @pytest.mark.asyncio
    async def test_render_cannot_alter_stored_props(self) -> None:
        def render(props: dict) -> str:
            props["title"] = "changed"
            props["extra"] = True
            return "<h1>page</h1>"

        pipeline, table = _pipeline(
            Page(file="about.py", render=render, load_data=lambda: {"props": {"title": "About"}})
        )
        artifact = await pipeline.render(table.patterns[0], {})
        assert artifact.props == {"title": "About"}


class TestRenderFailure:
    @pytest.mark.asyncio
    async def test_loader_raises(self) -> None:
        def load_data(slug: str) -> PageData:
            raise LookupError("database down")

        pipeline, table = _pipeline(Page(file="blog/[slug].py", render=_render, load_data=load_data))
        with pytest.raises(RenderFailure) as exc_info:
            await pipeline.render(table.patterns[0], {"slug": "x"})
        assert exc_info.value.phase == "load_data"
        assert isinstance(exc_info.value.__cause__, LookupError)
        assert "database down" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_render_raises(self) -> None:
        def render(props: dict) -> str:
            raise KeyError("title")

        pipeline, table = _pipeline(Page(file="about.py", render=render))
        with pytest.raises(RenderFailure) as exc_info:
            await pipeline.render(table.patterns[0], {})
        assert exc_info.value.phase == "render"
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_bad_revalidate(self) -> None:
        pipeline, table = _pipeline(
            Page(file="about.py", render=_render, load_data=lambda: {"revalidate": -5})
        )
        with pytest.raises(RenderFailure) as exc_info:
            await pipeline.render(table.patterns[0], {})
        assert exc_info.value.phase == "load_data"

    @pytest.mark.asyncio
    async def test_render_returns_non_string(self) -> None:
        pipeline, table = _pipeline(Page(file="about.py", render=lambda props: 42))
        with pytest.raises(RenderFailure, match="expected str"):
            await pipeline.render(table.patterns[0], {})

    def test_unknown_pattern(self) -> None:
        pipeline, _ = _pipeline(Page(file="about.py", render=_render))
        other = RouteTable.compile(["contact.py"]).patterns[0]
        with pytest.raises(ConfigurationError):
            pipeline.page_for(other)
