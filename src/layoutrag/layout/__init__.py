"""Markdown segmentation and layout-to-chunk alignment."""
from __future__ import annotations

from .aligner import aggregate_page_regions, create_chunks_from_layout, reduce_polygons
from .headings import HeadingSegment, HeadingSegmenter, SegmenterConfig, split_markdown_by_heading
from .models import (
    Chunk,
    ChunkMetadata,
    EmbeddedChunk,
    LayoutDocument,
    LayoutParagraph,
    LayoutRegion,
    PageRegion,
    Span,
)

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "EmbeddedChunk",
    "HeadingSegment",
    "HeadingSegmenter",
    "LayoutDocument",
    "LayoutParagraph",
    "LayoutRegion",
    "PageRegion",
    "SegmenterConfig",
    "Span",
    "aggregate_page_regions",
    "create_chunks_from_layout",
    "reduce_polygons",
    "split_markdown_by_heading",
]
