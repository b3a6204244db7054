"""Perch CLI — build, route listing, and one-off renders.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — static generation and incremental revalidation for file-routed pages.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # -- perch build ------------------------------------------------------
    build_parser = subparsers.add_parser("build", help="Pre-render all static and enumerated pages")
    build_parser.add_argument("site", help="Import string (e.g. mysite:site)")
    build_parser.add_argument(
        "--out",
        default=None,
        help="Build directory (defaults to the site's build_dir)",
    )

    # -- perch routes -----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List compiled routes")
    routes_parser.add_argument("site", help="Import string (e.g. mysite:site)")

    # -- perch render -----------------------------------------------------
    render_parser = subparsers.add_parser("render", help="Resolve and render a single path")
    render_parser.add_argument("site", help="Import string (e.g. mysite:site)")
    render_parser.add_argument("path", help="Request path (e.g. /blog/hello)")
    render_parser.add_argument(
        "--build",
        default=None,
        help="Serve from this build directory instead of rendering from scratch",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from perch.cli._logging import configure_logging

    configure_logging(verbose=args.verbose)

    if args.command == "build":
        from perch.cli._build import run_build

        run_build(args)
    elif args.command == "routes":
        from perch.cli._routes import run_routes

        run_routes(args)
    elif args.command == "render":
        from perch.cli._render import run_render

        run_render(args)
