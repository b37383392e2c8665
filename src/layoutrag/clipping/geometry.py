"""Bounding boxes in document units and their pixel rectangles."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

DEFAULT_SCALE = 2.0
DEFAULT_DPI = 72.0


@dataclass(frozen=True, slots=True)
class PixelRect:
    """Integer crop rectangle; ``right`` and ``bottom`` are exclusive."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box in document units (inches)."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_polygon(cls, polygon: Sequence[float]) -> "BoundingBox":
        """Read a stored ``[minX, minY, maxX, maxY]`` region polygon."""

        if len(polygon) < 4:
            raise ValueError(f"Expected [minX, minY, maxX, maxY], got {list(polygon)!r}")
        return cls(float(polygon[0]), float(polygon[1]), float(polygon[2]), float(polygon[3]))

    def to_pixels(self, *, scale: float = DEFAULT_SCALE, dpi: float = DEFAULT_DPI) -> PixelRect:
        """Convert to pixels, flooring the top-left and ceiling the bottom-right corner."""

        factor = dpi * scale
        return PixelRect(
            left=math.floor(self.left * factor),
            top=math.floor(self.top * factor),
            right=math.ceil(self.right * factor),
            bottom=math.ceil(self.bottom * factor),
        )


def bounding_box(polygons: Iterable[Sequence[float]]) -> BoundingBox:
    """Return the box covering every vertex of every polygon.

    Even indices are x coordinates, odd indices are y coordinates.
    """

    xs = []
    ys = []
    for polygon in polygons:
        xs.extend(polygon[0::2])
        ys.extend(polygon[1::2])
    if not xs or not ys:
        raise ValueError("bounding_box requires at least one coordinate pair")
    return BoundingBox(left=min(xs), top=min(ys), right=max(xs), bottom=max(ys))
