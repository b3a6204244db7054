"""``perch build`` — pre-render a site into a build directory.

Resolves an import string to a perch Site, renders every static route
and enumerated tuple, and writes the artifact snapshot and prerender
manifest.
"""

import argparse
import sys

import anyio

from perch.cli._resolve import load_site_or_exit
from perch.errors import PerchError


def run_build(args: argparse.Namespace) -> None:
    """Build ``args.site`` into ``args.out`` (or the site's ``build_dir``)."""
    site = load_site_or_exit(args.site)
    out_dir = args.out if args.out is not None else site.config.build_dir

    try:
        result = anyio.run(site.build, out_dir)
    except PerchError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    kinds = {"page": "", "not_found": " (404)", "redirect": " (redirect)"}
    for page in result.pages:
        print(f"  {page.path}{kinds[page.kind]}  {page.duration_ms:.1f}ms")
    print(f"Built {result.total_pages} pages into {result.output_dir} in {result.duration_ms:.0f}ms")
