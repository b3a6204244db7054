"""Perch exception hierarchy.

Shared across the route table, enumerator, pipeline, and orchestrator so
every module raises and catches the same types.
"""


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when site configuration or a page file is invalid.

    Typically raised while compiling the route table at startup.
    """


class ConflictingRoute(ConfigurationError):  # noqa: N818
    """Two page files normalize to the same route, or a catch-all is misplaced.

    Fatal: raised at build/start time, never while serving.
    """

    def __init__(self, detail: str, *, files: tuple[str, ...] = ()) -> None:
        super().__init__(detail)
        self.files = files


class RouteNotFound(PerchError):  # noqa: N818
    """404 — no route matched, or the route rejects these parameters."""

    status = 404

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(detail)
        self.detail = detail


class EnumerationFailure(PerchError):  # noqa: N818
    """A page's ``list_params()`` raised or returned malformed tuples.

    Aborts a build. At request time the orchestrator recovers by treating
    the requested tuple as disallowed.
    """

    def __init__(self, pattern: str, detail: str) -> None:
        super().__init__(f"Enumeration failed for {pattern!r}: {detail}")
        self.pattern = pattern


class RenderFailure(PerchError):  # noqa: N818
    """Data loading or rendering raised.

    The original exception is chained as ``__cause__``.
    """

    status = 500

    def __init__(self, key: str, phase: str, detail: str = "") -> None:
        message = f"Render of {key} failed in {phase}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.key = key
        self.phase = phase
