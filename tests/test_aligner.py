from __future__ import annotations

import math

from layoutrag.layout import (
    LayoutDocument,
    LayoutParagraph,
    LayoutRegion,
    Span,
    aggregate_page_regions,
    create_chunks_from_layout,
    reduce_polygons,
    split_markdown_by_heading,
)


def _paragraph(offset: int, page: int, polygon) -> LayoutParagraph:
    return LayoutParagraph(
        content="p",
        spans=(Span(offset=offset, length=1),),
        bounding_regions=(LayoutRegion(page=page, polygon=list(polygon)),),
    )


def test_chunks_follow_segment_order_with_page_boxes(sample_layout) -> None:
    layout = LayoutDocument.from_dict(sample_layout)

    chunks = create_chunks_from_layout(layout)

    assert [chunk.heading for chunk in chunks] == ["Valves", "Cardiology"]
    valves, cardiology = chunks
    assert valves.text == "Mitral valve disease."
    assert (valves.start_offset, valves.end_offset) == (37, 68)
    assert [region.to_dict() for region in valves.bounding_regions] == [
        {"page": 1, "polygon": [1.0, 3.0, 2.0, 3.3]},
        {"page": 2, "polygon": [0.5, 0.5, 4.0, 1.0]},
    ]
    assert cardiology.pages == [1]
    assert cardiology.bounding_regions[0].polygon == [1.0, 1.0, 5.0, 2.0]


def test_explicit_segments_are_used(sample_layout) -> None:
    layout = LayoutDocument.from_dict(sample_layout)
    segments = split_markdown_by_heading(layout.content or "")

    assert create_chunks_from_layout(layout, segments) == create_chunks_from_layout(layout)


def test_four_number_polygon_contributes_no_region() -> None:
    layout = LayoutDocument(content="# A\nbody", paragraphs=[_paragraph(4, 1, [1, 2, 3, 4])])

    chunks = create_chunks_from_layout(layout)

    assert len(chunks) == 1
    assert chunks[0].bounding_regions == []


def test_missing_content_or_paragraphs_yield_no_chunks() -> None:
    paragraph = _paragraph(0, 1, [0, 0, 1, 0, 1, 1, 0, 1])

    assert create_chunks_from_layout(LayoutDocument(content=None, paragraphs=[paragraph])) == []
    assert create_chunks_from_layout(LayoutDocument(content="", paragraphs=[paragraph])) == []
    assert create_chunks_from_layout(LayoutDocument(content="# A\nbody", paragraphs=None)) == []
    assert create_chunks_from_layout(LayoutDocument(content="# A\nbody", paragraphs=[])) == []


def test_empty_chunks_are_dropped() -> None:
    layout = LayoutDocument(
        content="# Empty\n# Full\ntext",
        paragraphs=[_paragraph(15, 1, [0, 0, 1, 0, 1, 1, 0, 1])],
    )

    chunks = create_chunks_from_layout(layout)

    assert [chunk.heading for chunk in chunks] == ["Full"]


def test_paragraphs_without_span_or_region_are_ignored() -> None:
    layout = LayoutDocument(
        content="# A\nbody",
        paragraphs=[
            LayoutParagraph(content="no span", bounding_regions=(LayoutRegion(1, [0] * 8),)),
            LayoutParagraph(content="no region", spans=(Span(4, 4),)),
            _paragraph(4, 3, [1, 1, 2, 1, 2, 2, 1, 2]),
        ],
    )

    chunks = create_chunks_from_layout(layout)

    assert [region.to_dict() for region in chunks[0].bounding_regions] == [
        {"page": 3, "polygon": [1, 1, 2, 2]}
    ]


def test_paragraph_at_segment_end_is_excluded() -> None:
    layout = LayoutDocument(
        content="# A\nx\n# B\ny",
        paragraphs=[_paragraph(6, 2, [0, 0, 1, 0, 1, 1, 0, 1])],
    )

    chunks = create_chunks_from_layout(layout)

    regions = {chunk.heading: chunk.pages for chunk in chunks}
    assert regions == {"A": [], "B": [2]}


def test_non_finite_pairs_are_skipped() -> None:
    box = reduce_polygons([[1.0, math.nan, 2.0, 2.0, 3.0, 3.0, 4.0, math.inf]])

    assert box == [2.0, 2.0, 3.0, 3.0]


def test_all_invalid_coordinates_fall_back_to_placeholder() -> None:
    regions = aggregate_page_regions([_paragraph(0, 5, [math.nan] * 8)])

    assert [region.to_dict() for region in regions] == [{"page": 5, "polygon": [0.0, 0.0, 0.0, 0.0]}]


def test_region_boxes_are_ordered(sample_layout) -> None:
    for chunk in create_chunks_from_layout(LayoutDocument.from_dict(sample_layout)):
        for region in chunk.bounding_regions:
            assert region.polygon[0] <= region.polygon[2]
            assert region.polygon[1] <= region.polygon[3]


def test_from_dict_tolerates_missing_fields() -> None:
    layout = LayoutDocument.from_dict(
        {
            "content": "# A\nbody",
            "paragraphs": [
                {"content": "a"},
                {"spans": [{"offset": 4, "length": 4}], "boundingRegions": [{"pageNumber": 1}]},
                {"spans": [{"offset": 4}], "boundingRegions": [{"page": 2, "polygon": ["x"] * 8}]},
            ],
        }
    )

    assert layout.paragraphs is not None
    assert len(layout.paragraphs) == 3
    assert layout.paragraphs[0].first_offset is None
    assert layout.paragraphs[1].first_region is not None
    assert list(layout.paragraphs[1].first_region.polygon) == []

    chunks = create_chunks_from_layout(layout)
    assert [region.to_dict() for region in chunks[0].bounding_regions] == [
        {"page": 2, "polygon": [0.0, 0.0, 0.0, 0.0]}
    ]
    assert LayoutDocument.from_dict({}).paragraphs is None
