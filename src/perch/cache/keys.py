"""RenderKey — the identity an artifact is cached and single-flighted under."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from perch._internal.types import ParamValue

if TYPE_CHECKING:
    from perch.routing.route import RoutePattern


@dataclass(frozen=True, slots=True)
class RenderKey:
    """Pattern identity plus the sorted parameter mapping.

    Parameter insertion order never matters::

        RenderKey.of("/[a]/[b]", {"a": "1", "b": "2"}) == RenderKey.of(
            "/[a]/[b]", {"b": "2", "a": "1"}
        )
    """

    pattern: str
    params: tuple[tuple[str, ParamValue], ...] = ()

    @classmethod
    def of(cls, pattern: RoutePattern | str, params: Mapping[str, Any] | None = None) -> RenderKey:
        path = pattern if isinstance(pattern, str) else pattern.path
        items = tuple(sorted((name, _freeze(value)) for name, value in (params or {}).items()))
        return cls(pattern=path, params=items)

    @property
    def digest(self) -> str:
        """Stable hex digest, safe to use as a file name."""
        raw = json.dumps(self.to_json(), separators=(",", ":"), ensure_ascii=False)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def to_json(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "params": [[name, list(v) if isinstance(v, tuple) else v] for name, v in self.params],
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> RenderKey:
        return cls.of(data["pattern"], {name: value for name, value in data["params"]})

    def __str__(self) -> str:
        if not self.params:
            return self.pattern
        rendered = ", ".join(
            f"{name}={'/'.join(v) if isinstance(v, tuple) else v}" for name, v in self.params
        )
        return f"{self.pattern} ({rendered})"


def _freeze(value: Any) -> ParamValue:
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return str(value)
