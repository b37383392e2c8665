from __future__ import annotations

import pytest
from PIL import Image

from layoutrag.clipping import BoundingBox, clip_image, clip_region_to_file
from layoutrag.clipping import clipper
from layoutrag.errors import ClipOutOfBoundsError


def _page(width: int = 1224, height: int = 1584) -> Image.Image:
    image = Image.new("RGB", (width, height), "white")
    image.paste((255, 0, 0), (144, 144, 288, 216))
    return image


def test_clip_crops_inches_at_scale_and_dpi() -> None:
    clipped = clip_image(_page(), BoundingBox(1.0, 1.0, 2.0, 1.5), scale=2.0, dpi=72)

    assert clipped.size == (144, 72)
    assert clipped.getpixel((0, 0)) == (255, 0, 0)
    assert clipped.getpixel((143, 71)) == (255, 0, 0)


def test_clip_rounds_outwards() -> None:
    clipped = clip_image(_page(), BoundingBox(0.999, 0.999, 1.001, 1.001), scale=1.0, dpi=72)

    assert clipped.size == (2, 2)


def test_clip_outside_canvas_raises() -> None:
    with pytest.raises(ClipOutOfBoundsError) as excinfo:
        clip_image(_page(100, 100), BoundingBox(0.5, 0.5, 2.0, 2.0), scale=1.0, dpi=72, page=4)

    error = excinfo.value
    assert error.page == 4
    assert error.rect == (36, 36, 144, 144)
    assert error.canvas_size == (100, 100)
    assert error.stage == "clip"


def test_clip_empty_rectangle_raises() -> None:
    with pytest.raises(ClipOutOfBoundsError):
        clip_image(_page(), BoundingBox(1.0, 1.0, 1.0, 2.0), scale=1.0, dpi=72)


def test_clip_region_to_file_writes_png(tmp_path) -> None:
    calls = []

    def renderer(pdf_path, page, *, scale, dpi):
        calls.append((str(pdf_path), page, scale, dpi))
        return _page()

    output = clip_region_to_file(
        tmp_path / "doc.pdf",
        2,
        BoundingBox(1.0, 1.0, 2.0, 1.5),
        tmp_path / "clip.png",
        renderer=renderer,
    )

    assert calls == [(str(tmp_path / "doc.pdf"), 2, 2.0, 72.0)]
    with Image.open(output) as written:
        assert written.format == "PNG"
        assert written.size == (144, 72)


def test_clip_region_to_file_propagates_renderer_errors(tmp_path) -> None:
    def renderer(pdf_path, page, *, scale, dpi):
        raise FileNotFoundError(pdf_path)

    with pytest.raises(FileNotFoundError):
        clip_region_to_file(tmp_path / "missing.pdf", 1, BoundingBox(0, 0, 1, 1), tmp_path / "x.png", renderer=renderer)

    assert not (tmp_path / "x.png").exists()


def test_render_page_uses_unrounded_resolution_for_fractional_scale(tmp_path, monkeypatch) -> None:
    pdf_path = tmp_path / "doc.pdf"
    pdf_path.write_bytes(b"%PDF-1.4\n")
    calls = []

    def fake_convert(path, *, dpi, first_page, last_page):
        calls.append((path, dpi, first_page, last_page))
        return [Image.new("RGB", (int(8.5 * dpi) + 1, int(11 * dpi) + 1), "white")]

    monkeypatch.setattr(clipper, "convert_from_path", fake_convert)

    image = clipper.render_page(pdf_path, 3, scale=1.3, dpi=72)

    assert calls[0][1] == pytest.approx(93.6)
    assert calls[0][2:] == (3, 3)
    # At 93.6 px/in, 8.0 and 9.5 inches end at 748.8 and 889.2.
    clipped = clip_image(image, BoundingBox(1.0, 1.0, 8.0, 9.5), scale=1.3, dpi=72)
    assert clipped.size == (749 - 93, 890 - 93)


def test_render_page_missing_pdf_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        clipper.render_page(tmp_path / "missing.pdf", 1)
