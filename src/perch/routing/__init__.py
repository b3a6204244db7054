"""Routing — file-derived route table with O(path-depth) matching.

Page files are parsed into patterns at startup and compiled into an
immutable lookup structure before the first request.
"""

from perch.routing.route import (
    CatchAll,
    Dynamic,
    MatchedRoute,
    OptionalCatchAll,
    RoutePattern,
    Segment,
    Static,
)
from perch.routing.table import RouteTable, compile_patterns, is_route_file, parse_route_file

__all__ = [
    "CatchAll",
    "Dynamic",
    "MatchedRoute",
    "OptionalCatchAll",
    "RoutePattern",
    "RouteTable",
    "Segment",
    "Static",
    "compile_patterns",
    "is_route_file",
    "parse_route_file",
]
