"""Filesystem page discovery for the pages/ directory.

Walks the pages directory tree and loads every public ``.py`` file as a
page module. The file's path decides its route (see
:func:`perch.routing.parse_route_file`); the module supplies the page's
collaborators:

- ``render(props)`` — required, pure
- ``load_data(**params)`` — optional, sync or async
- ``list_params()`` — optional, dynamic routes only
- ``fallback`` — optional, ``"disallow"`` (default), ``"block"`` or ``"allow"``

Files and directories starting with ``_`` or ``.`` are skipped.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

from perch.errors import ConfigurationError
from perch.pages.types import FALLBACK_POLICIES, Page


def discover_pages(pages_dir: str | Path) -> list[Page]:
    """Walk a pages directory and load all page modules.

    Files come before subdirectories at each level, both sorted by name.
    That order is the route table's registration order.

    Args:
        pages_dir: Path to the ``pages/`` directory.

    Returns:
        Discovered :class:`Page` objects.

    Raises:
        FileNotFoundError: If *pages_dir* is not a directory.
        ConfigurationError: If a page module lacks ``render`` or declares
            an unknown fallback policy.
    """
    root = Path(pages_dir).resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Pages directory not found: {root}")

    pages: list[Page] = []
    _walk_directory(root, root, pages)
    return pages


def _walk_directory(directory: Path, root: Path, pages: list[Page]) -> None:
    """Recursively collect page files, files first."""
    entries = sorted(directory.iterdir())

    for item in entries:
        if not item.is_file() or item.suffix != ".py":
            continue
        if item.name.startswith(("_", ".")):
            continue
        pages.append(_load_page(item, root))

    for item in entries:
        if not item.is_dir():
            continue
        if item.name.startswith(("_", ".")) or item.name == "__pycache__":
            continue
        _walk_directory(item, root, pages)


def _load_module(file: Path, relative: str) -> ModuleType:
    module_name = "_perch_page_" + "".join(c if c.isalnum() else "_" for c in relative)
    spec = importlib.util.spec_from_file_location(module_name, file)
    if spec is None or spec.loader is None:
        msg = f"Cannot load page module {relative!r}"
        raise ConfigurationError(msg)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _load_page(file: Path, root: Path) -> Page:
    """Load a page file and pull out its collaborators."""
    relative = file.relative_to(root).as_posix()
    module = _load_module(file, relative)

    render = getattr(module, "render", None)
    if render is None or not callable(render):
        msg = f"Page {relative!r} must define a render(props) function"
        raise ConfigurationError(msg)

    load_data = getattr(module, "load_data", None)
    list_params = getattr(module, "list_params", None)
    fallback = getattr(module, "fallback", "disallow")
    if fallback not in FALLBACK_POLICIES:
        msg = (
            f"Page {relative!r} declares fallback={fallback!r}; "
            f"expected one of {sorted(FALLBACK_POLICIES)}"
        )
        raise ConfigurationError(msg)

    return Page(
        file=relative,
        render=render,
        load_data=load_data if callable(load_data) else None,
        list_params=list_params if callable(list_params) else None,
        fallback=fallback,
    )
