"""Rendering — path enumeration and the load-then-render pipeline."""

from perch.render.enumerate import Enumeration, PathEnumerator
from perch.render.pipeline import RenderPipeline, coerce_page_data

__all__ = [
    "Enumeration",
    "PathEnumerator",
    "RenderPipeline",
    "coerce_page_data",
]
