"""Spatial clipping of page regions."""
from __future__ import annotations

from .clipper import clip_image, clip_region_to_file, render_page
from .geometry import BoundingBox, PixelRect, bounding_box

__all__ = [
    "BoundingBox",
    "PixelRect",
    "bounding_box",
    "clip_image",
    "clip_region_to_file",
    "render_page",
]
