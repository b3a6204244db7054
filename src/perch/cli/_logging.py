"""Console logging for CLI runs."""

import logging
import sys


def configure_logging(*, verbose: bool = False) -> None:
    """Send ``perch.*`` log records to stderr."""
    logger = logging.getLogger("perch")
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
