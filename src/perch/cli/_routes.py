"""``perch routes`` — list compiled routes.

Resolves an import string to a perch Site and prints every route
pattern with its kind, fallback policy, and source file.
"""

import argparse
import sys

from perch.cli._resolve import load_site_or_exit
from perch.errors import ConfigurationError


def run_routes(args: argparse.Namespace) -> None:
    """Print a table of PATTERN, FALLBACK and FILE, in registration order."""
    site = load_site_or_exit(args.site)
    try:
        table = site.table
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not table.patterns:
        print("No routes registered.")
        return

    rows: list[tuple[str, str, str]] = []
    for pattern in table.patterns:
        fallback = site.pipeline.page_for(pattern).fallback if pattern.is_dynamic else "static"
        rows.append((pattern.path, fallback, pattern.file))

    max_path = max(4, *(len(r[0]) for r in rows))  # "PATH" header
    max_fallback = max(8, *(len(r[1]) for r in rows))  # "FALLBACK" header

    fmt = f"{{:<{max_path}}}  {{:<{max_fallback}}}  {{}}"
    print(fmt.format("PATH", "FALLBACK", "FILE"))
    sep_len = max_path + max_fallback + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for row in rows:
        print(fmt.format(*row))
