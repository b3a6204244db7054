"""In-flight registry — at most one render per RenderKey.

A ``Flight`` is the shared completion handle for one render. The first
caller to ``try_acquire`` a key owns the flight and must ``release`` it
when the render finishes; every other caller gets the same flight back
and waits on it instead of rendering again.

Free-threading safety:
    - The key -> flight map is guarded by a Lock
    - A flight's outcome is written once, before its event fires
"""

from __future__ import annotations

import threading

import anyio

from perch.cache.artifact import Artifact
from perch.cache.keys import RenderKey


class Flight:
    """Completion handle for a single render of *key*."""

    __slots__ = ("_artifact", "_done", "_error", "key")

    def __init__(self, key: RenderKey) -> None:
        self.key = key
        self._done = anyio.Event()
        self._artifact: Artifact | None = None
        self._error: BaseException | None = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def set_result(self, artifact: Artifact) -> None:
        if self.done:
            return
        self._artifact = artifact
        self._done.set()

    def set_error(self, error: BaseException) -> None:
        if self.done:
            return
        self._error = error
        self._done.set()

    async def wait_done(self) -> None:
        """Wait for completion without inspecting the outcome."""
        await self._done.wait()

    async def wait(self) -> Artifact:
        """Wait for the render and return its artifact.

        Re-raises the render's error. Cancelling the waiter does not
        cancel the render.
        """
        await self._done.wait()
        if self._error is not None:
            raise self._error
        if self._artifact is None:
            msg = "Flight completed without an artifact or an error."
            raise RuntimeError(msg)
        return self._artifact


class InFlightRegistry:
    """Process-wide map of RenderKey to its running :class:`Flight`.

    Usage::

        flight, owner = registry.try_acquire(key)
        if owner:
            try:
                flight.set_result(await render())
            finally:
                registry.release(key, flight)
        artifact = await flight.wait()
    """

    __slots__ = ("_flights", "_lock")

    def __init__(self) -> None:
        self._flights: dict[RenderKey, Flight] = {}
        self._lock = threading.Lock()

    def try_acquire(self, key: RenderKey) -> tuple[Flight, bool]:
        """Return the flight for *key* and whether the caller now owns it."""
        with self._lock:
            flight = self._flights.get(key)
            if flight is not None:
                return flight, False
            flight = Flight(key)
            self._flights[key] = flight
            return flight, True

    def release(self, key: RenderKey, flight: Flight) -> None:
        """Drop *flight* from the registry. A newer flight for *key* is left alone."""
        with self._lock:
            if self._flights.get(key) is flight:
                del self._flights[key]

    def get(self, key: RenderKey) -> Flight | None:
        with self._lock:
            return self._flights.get(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._flights

    def __len__(self) -> int:
        with self._lock:
            return len(self._flights)

    async def wait_idle(self) -> None:
        """Wait until no flights remain, including ones started meanwhile."""
        while True:
            with self._lock:
                flights = list(self._flights.values())
            if not flights:
                return
            for flight in flights:
                await flight.wait_done()
            # Let owners run their release() before re-checking
            await anyio.sleep(0)
