"""Align layout paragraphs with heading segments and aggregate page geometry."""
from __future__ import annotations

import logging
import math
import time
from typing import Dict, Iterable, List, Optional, Sequence

from layoutrag.telemetry import emit_align_event

from .headings import HeadingSegment, HeadingSegmenter
from .models import Chunk, LayoutDocument, LayoutParagraph, PageRegion

LOGGER = logging.getLogger(__name__)

POLYGON_MIN_VALUES = 8
PLACEHOLDER_BOX = (0.0, 0.0, 0.0, 0.0)


def _is_admissible_polygon(polygon: Optional[Sequence[float]]) -> bool:
    return polygon is not None and len(polygon) >= POLYGON_MIN_VALUES


def reduce_polygons(polygons: Iterable[Sequence[float]]) -> Optional[List[float]]:
    """Return ``[minX, minY, maxX, maxY]`` over every finite (x, y) pair.

    Pairs with a non-finite coordinate are ignored. ``None`` is returned when
    no finite pair remains.
    """

    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for polygon in polygons:
        for index in range(0, len(polygon) - 1, 2):
            x, y = polygon[index], polygon[index + 1]
            if not (math.isfinite(x) and math.isfinite(y)):
                continue
            min_x = min(min_x, x)
            min_y = min(min_y, y)
            max_x = max(max_x, x)
            max_y = max(max_y, y)
    if min_x == math.inf:
        return None
    return [min_x, min_y, max_x, max_y]


def aggregate_page_regions(paragraphs: Iterable[LayoutParagraph]) -> List[PageRegion]:
    """Group the paragraphs' first region by page and reduce each group to a box.

    Paragraphs without a region, or whose polygon holds fewer than eight
    numbers, are left out. Pages keep the order in which they first appear.
    """

    polygons_by_page: Dict[int, List[Sequence[float]]] = {}
    for paragraph in paragraphs:
        region = paragraph.first_region
        if region is None or not _is_admissible_polygon(region.polygon):
            continue
        polygons_by_page.setdefault(region.page, []).append(region.polygon)

    regions: List[PageRegion] = []
    for page, polygons in polygons_by_page.items():
        box = reduce_polygons(polygons)
        if box is None:
            LOGGER.warning("No finite coordinates on page %s; using placeholder box", page)
            box = list(PLACEHOLDER_BOX)
        regions.append(PageRegion(page=page, polygon=box))
    return regions


def paragraphs_in_segment(
    paragraphs: Iterable[LayoutParagraph], segment: HeadingSegment
) -> List[LayoutParagraph]:
    """Return paragraphs whose first span starts inside the segment span."""

    start = segment.span.offset
    end = segment.span.end
    selected: List[LayoutParagraph] = []
    for paragraph in paragraphs:
        offset = paragraph.first_offset
        if offset is None:
            continue
        if start <= offset < end:
            selected.append(paragraph)
    return selected


def create_chunks_from_layout(
    layout: LayoutDocument,
    segments: Optional[Sequence[HeadingSegment]] = None,
    *,
    segmenter: Optional[HeadingSegmenter] = None,
) -> List[Chunk]:
    """Build heading-scoped chunks with per-page bounding boxes.

    When *segments* is omitted the document content is segmented with
    *segmenter* (or a default :class:`HeadingSegmenter`).
    """

    if not layout.paragraphs:
        LOGGER.info("Layout result has no paragraphs; returning no chunks")
        return []
    if not layout.content:
        LOGGER.warning("Layout result content is missing; returning no chunks")
        return []

    started = time.perf_counter()
    if segments is None:
        segments = (segmenter or HeadingSegmenter()).segment(layout.content)

    paragraphs = list(layout.paragraphs)
    chunks: List[Chunk] = []
    dropped = 0
    for segment in segments:
        if not segment.content.strip():
            dropped += 1
            continue
        regions = aggregate_page_regions(paragraphs_in_segment(paragraphs, segment))
        chunks.append(
            Chunk(
                heading=segment.heading_text,
                text=segment.content,
                start_offset=segment.span.offset,
                end_offset=segment.span.end,
                bounding_regions=regions,
            )
        )

    emit_align_event(
        segments=len(segments),
        paragraphs=len(paragraphs),
        chunks=len(chunks),
        dropped=dropped,
        duration_ms=(time.perf_counter() - started) * 1000.0,
    )
    return chunks
