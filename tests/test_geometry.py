from __future__ import annotations

import pytest

from layoutrag.clipping import BoundingBox, bounding_box


def test_bounding_box_of_single_polygon() -> None:
    assert bounding_box([[10, 20, 30, 20, 30, 40, 10, 40]]) == BoundingBox(10, 20, 30, 40)


def test_bounding_box_covers_disjoint_polygons() -> None:
    box = bounding_box([[0, 0, 1, 0, 1, 1, 0, 1], [5, 6, 7, 6, 7, 8, 5, 8]])

    assert (box.left, box.top, box.right, box.bottom) == (0, 0, 7, 8)


def test_bounding_box_requires_coordinates() -> None:
    with pytest.raises(ValueError):
        bounding_box([])


def test_pixels_floor_top_left_and_ceil_bottom_right() -> None:
    rect = BoundingBox(0.51, 1.0, 1.49, 2.001).to_pixels(scale=2.0, dpi=72)

    assert rect.as_tuple() == (73, 144, 215, 289)
    assert (rect.width, rect.height) == (142, 145)


def test_stored_region_polygon_reads_as_box() -> None:
    assert BoundingBox.from_polygon([1, 2, 3, 4]) == BoundingBox(1.0, 2.0, 3.0, 4.0)
    with pytest.raises(ValueError):
        BoundingBox.from_polygon([1, 2])
