"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, Literal, TypeAlias

# Value bound to a route parameter: one segment, or several for a catch-all
ParamValue: TypeAlias = str | tuple[str, ...]

# Revalidation window: seconds, or one of the two sentinel strings
Revalidate: TypeAlias = float | Literal["always", "never"]

# Page collaborator callables
DataLoader: TypeAlias = Callable[..., Any]
PageRenderer: TypeAlias = Callable[[dict[str, Any]], str]
ParamLister: TypeAlias = Callable[[], Any]

# Monotonic-or-wall clock used for artifact timestamps
Clock: TypeAlias = Callable[[], float]
