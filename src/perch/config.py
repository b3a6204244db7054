"""Site configuration.

SiteConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class SiteConfig:
    """Site configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = SiteConfig(pages_dir="site/pages", render_workers=4)
    """

    # Discovery
    pages_dir: str | Path = "pages"

    # Build output (artifact snapshot + prerender manifest)
    build_dir: str | Path = ".perch"
    build_concurrency: int = 8

    # Worker pool for background and on-demand renders
    render_workers: int = 16

    # Synchronous renders are attempted this many times before failing
    render_attempts: int = 1

    # Run sync load_data() functions in a worker thread
    offload_sync_loaders: bool = True

    # Keep not-found outcomes in the artifact store
    cache_not_found: bool = True

    # Payloads for responses that have no rendered page
    fallback_placeholder: str = '<div data-perch-fallback="true">Loading…</div>'
    not_found_payload: str = "Not Found"
    error_payload: str = "Internal Server Error"

    # Cache-Control values handed to the transport
    cache_control_never: str = "s-maxage=31536000, stale-while-revalidate"
    cache_control_no_store: str = "private, no-cache, no-store, max-age=0, must-revalidate"
