"""Orchestration — per-request cache decisions with single-flight rendering."""

from perch.orchestrator.core import Orchestrator
from perch.orchestrator.inflight import Flight, InFlightRegistry
from perch.orchestrator.response import CacheState, RenderResponse

__all__ = [
    "CacheState",
    "Flight",
    "InFlightRegistry",
    "Orchestrator",
    "RenderResponse",
]
