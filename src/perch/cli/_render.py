"""``perch render`` — resolve and render one path from the command line.

Prints the payload to stdout and the status line plus headers to
stderr. Background renders started by the request finish before exit.
"""

import argparse
import sys

import anyio

from perch.cli._resolve import load_site_or_exit
from perch.orchestrator.response import RenderResponse
from perch.site import Site


async def _render(site: Site, path: str) -> RenderResponse:
    async with site.orchestrator() as orchestrator:
        response = await orchestrator.resolve_and_render(path)
        await orchestrator.drain()
    return response


def run_render(args: argparse.Namespace) -> None:
    """Render ``args.path``; exit 1 for 4xx/5xx responses."""
    site = load_site_or_exit(args.site)
    if args.build is not None:
        site.use_build(args.build)

    response = anyio.run(_render, site, args.path)

    print(f"{response.status} {args.path}", file=sys.stderr)
    for name, value in response.headers():
        print(f"{name}: {value}", file=sys.stderr)
    if response.payload:
        print(response.payload)
    if response.status >= 400:
        raise SystemExit(1)
