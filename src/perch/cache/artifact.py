"""Rendered artifacts and the time-based staleness rule.

An artifact is never mutated. Revalidation produces a new artifact that
replaces the old one in the store; a failed render leaves the old one
where it is.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from perch._internal.types import Revalidate

NEVER: Literal["never"] = "never"
ALWAYS: Literal["always"] = "always"

ArtifactKind: TypeAlias = Literal["page", "not_found", "redirect"]


def normalize_revalidate(value: Any) -> Revalidate:
    """Coerce a loader's revalidation value to ``"never"``, ``"always"`` or seconds.

    ``None`` and ``False`` mean never; ``0`` means always; positive numbers
    are a window in seconds.

    Raises ``ValueError`` for negative, non-finite or unrecognised values.
    """
    if value is None or value is False or value == NEVER:
        return NEVER
    if value == ALWAYS:
        return ALWAYS
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"revalidate must be seconds, 'always' or 'never', got {value!r}"
        raise ValueError(msg)
    if value < 0 or not math.isfinite(value):
        msg = f"revalidate must be a finite, non-negative number, got {value!r}"
        raise ValueError(msg)
    if value == 0:
        return ALWAYS
    return float(value)


@dataclass(frozen=True, slots=True)
class Artifact:
    """A rendered page, its props snapshot, and its revalidation window.

    Attributes:
        payload: Rendered output from the page's ``render()``.
        props: The props the payload was rendered from.
        created_at: Clock reading when the render finished.
        revalidate: ``"never"``, ``"always"``, or a window in seconds.
        kind: ``"page"`` for normal output, ``"not_found"`` for a negative
            cache entry, ``"redirect"`` when the loader asked to redirect.
        redirect: Redirect target for ``kind == "redirect"``.
        permanent: Whether the redirect is permanent (308) or not (307).
    """

    payload: str
    props: Mapping[str, Any] = field(default_factory=dict)
    created_at: float = 0.0
    revalidate: Revalidate = NEVER
    kind: ArtifactKind = "page"
    redirect: str | None = None
    permanent: bool = False

    @property
    def expires_at(self) -> float | None:
        """When the artifact turns stale; ``None`` if it never does."""
        if self.revalidate == NEVER:
            return None
        if self.revalidate == ALWAYS:
            return self.created_at
        return self.created_at + float(self.revalidate)

    def to_json(self) -> dict[str, Any]:
        return {
            "payload": self.payload,
            "props": dict(self.props),
            "created_at": self.created_at,
            "revalidate": self.revalidate,
            "kind": self.kind,
            "redirect": self.redirect,
            "permanent": self.permanent,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Artifact:
        return cls(
            payload=data["payload"],
            props=data.get("props", {}),
            created_at=float(data["created_at"]),
            revalidate=normalize_revalidate(data.get("revalidate", NEVER)),
            kind=data.get("kind", "page"),
            redirect=data.get("redirect"),
            permanent=bool(data.get("permanent", False)),
        )


def is_stale(artifact: Artifact, now: float) -> bool:
    """Time-based staleness.

    ``never`` is never stale, ``always`` is always stale, and a finite
    window ``T`` is stale once ``now - created_at >= T``.
    """
    if artifact.revalidate == NEVER:
        return False
    if artifact.revalidate == ALWAYS:
        return True
    return now - artifact.created_at >= float(artifact.revalidate)
