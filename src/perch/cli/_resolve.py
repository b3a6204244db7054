"""Locate the Site a subcommand operates on.

Targets use the ``package.module:attribute`` form. The attribute may be
a dotted path (``mysite.app:factory.site``) and defaults to ``site``.
"""

import pkgutil
import sys

from perch.site import Site

DEFAULT_ATTRIBUTE = "site"


def resolve_site(target: str) -> Site:
    """Import *target* and return the Site it names.

    A callable that is not itself a Site is treated as a factory and
    called with no arguments.

    Raises:
        ValueError: If *target* is not a valid import path.
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist.
        TypeError: If the target (or what its factory returns) is not a Site.
    """
    if ":" not in target:
        target = f"{target}:{DEFAULT_ATTRIBUTE}"
    obj = pkgutil.resolve_name(target)

    if callable(obj) and not isinstance(obj, Site):
        factory = obj
        try:
            obj = factory()
        except Exception as exc:
            msg = f"Site factory {target!r} raised {type(exc).__name__}: {exc}"
            raise TypeError(msg) from exc

    if isinstance(obj, Site):
        return obj
    msg = f"{target!r} is a {type(obj).__name__}, not a perch.Site"
    raise TypeError(msg)


def load_site_or_exit(target: str) -> Site:
    """:func:`resolve_site` for subcommands: report the error and exit 1."""
    try:
        return resolve_site(target)
    except (ValueError, ImportError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
