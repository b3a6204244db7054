"""Tests for perch.site — page registration, discovery, and freezing."""

from pathlib import Path

import pytest

from perch.cache.filesystem import FileArtifactStore
from perch.cache.store import MemoryArtifactStore
from perch.config import SiteConfig
from perch.errors import ConfigurationError, ConflictingRoute
from perch.orchestrator.core import Orchestrator
from perch.pages.types import Page
from perch.site import Site


def _render(props: dict) -> str:
    return "page"


class TestRegistration:
    def test_decorator_returns_function(self) -> None:
        site = Site()

        @site.page("about.py")
        def about(props: dict) -> str:
            return "about"

        assert about({}) == "about"
        assert [p.file for p in site.pages] == ["about.py"]

    def test_private_file_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="private"):
            Site().add_page(Page(file="_layout.py", render=_render))

    def test_unknown_fallback_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="fallback"):
            Site().add_page(Page(file="blog/[slug].py", render=_render, fallback="later"))  # type: ignore[arg-type]

    def test_mount_pages(self, tmp_path: Path) -> None:
        (tmp_path / "blog").mkdir()
        (tmp_path / "index.py").write_text("def render(props):\n    return 'home'\n", encoding="utf-8")
        (tmp_path / "blog" / "[slug].py").write_text(
            "def render(props):\n    return 'post'\n", encoding="utf-8"
        )

        site = Site(SiteConfig(pages_dir=tmp_path))
        pages = site.mount_pages()
        assert [p.file for p in pages] == ["index.py", "blog/[slug].py"]
        assert [p.path for p in site.table.patterns] == ["/", "/blog/[slug]"]


class TestFreeze:
    def test_modification_after_freeze(self) -> None:
        site = Site()
        site.page("about.py")(_render)
        site.orchestrator()
        with pytest.raises(RuntimeError, match="Cannot modify"):
            site.page("contact.py")(_render)
        with pytest.raises(RuntimeError):
            site.use_build("out")

    def test_shared_services(self) -> None:
        site = Site()
        site.page("about.py")(_render)
        first = site.orchestrator()
        second = site.orchestrator()
        assert isinstance(first, Orchestrator)
        assert first is not second
        assert first.store is second.store is site.store
        assert site.table is site.table

    def test_conflict_raised_on_freeze(self) -> None:
        site = Site()
        site.page("blog.py")(_render)
        site.page("blog/index.py")(_render)
        with pytest.raises(ConflictingRoute):
            site.orchestrator()


class TestStores:
    def test_default_memory_store(self) -> None:
        assert isinstance(Site().store, MemoryArtifactStore)

    def test_injected_store(self) -> None:
        store = MemoryArtifactStore()
        assert Site(store=store).store is store

    def test_use_build_switches_to_file_store(self, tmp_path: Path) -> None:
        site = Site()
        site.use_build(tmp_path)
        assert isinstance(site.store, FileArtifactStore)
        assert site.store.root == tmp_path / "artifacts"

    @pytest.mark.asyncio
    async def test_build_dir_from_config(self, tmp_path: Path) -> None:
        site = Site(SiteConfig(build_dir=tmp_path / "dist", offload_sync_loaders=False))
        site.page("about.py")(_render)
        await site.build(site.config.build_dir)
        assert (tmp_path / "dist" / "manifest.json").is_file()
