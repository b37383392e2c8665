"""Render PDF pages and crop bounding boxes into PNG files."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from pdf2image import convert_from_path
from PIL import Image

from layoutrag.errors import ClipOutOfBoundsError
from layoutrag.telemetry import emit_clip_event

from .geometry import DEFAULT_DPI, DEFAULT_SCALE, BoundingBox

LOGGER = logging.getLogger(__name__)

PageRenderer = Callable[..., Image.Image]


def render_page(pdf_path: str | Path, page: int, *, scale: float = DEFAULT_SCALE, dpi: float = DEFAULT_DPI) -> Image.Image:
    """Rasterise one 1-based page at ``dpi * scale`` pixels per inch.

    The resolution is passed unrounded so the rendered grid matches the one
    :meth:`BoundingBox.to_pixels` crops on.
    """

    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF not found: {pdf_path}")
    images = convert_from_path(
        pdf_path.as_posix(),
        dpi=dpi * scale,
        first_page=page,
        last_page=page,
    )
    if not images:
        raise ValueError(f"Page {page} could not be rendered from {pdf_path}")
    return images[0]


def clip_image(
    image: Image.Image,
    box: BoundingBox,
    *,
    scale: float = DEFAULT_SCALE,
    dpi: float = DEFAULT_DPI,
    page: Optional[int] = None,
) -> Image.Image:
    """Crop *box* out of a rendered page.

    Raises :class:`ClipOutOfBoundsError` when the pixel rectangle is empty or
    reaches outside the image; the rectangle is never clamped.
    """

    rect = box.to_pixels(scale=scale, dpi=dpi)
    width, height = image.size
    if rect.width <= 0 or rect.height <= 0:
        raise ClipOutOfBoundsError(
            f"Empty clip rectangle {rect.as_tuple()} on page {page}",
            page=page,
            rect=rect.as_tuple(),
            canvas_size=(width, height),
        )
    if rect.left < 0 or rect.top < 0 or rect.right > width or rect.bottom > height:
        raise ClipOutOfBoundsError(
            f"Clip rectangle {rect.as_tuple()} exceeds the {width}x{height} canvas of page {page}",
            page=page,
            rect=rect.as_tuple(),
            canvas_size=(width, height),
        )
    return image.crop(rect.as_tuple())


def clip_region_to_file(
    pdf_path: str | Path,
    page: int,
    box: BoundingBox,
    output_path: str | Path,
    *,
    scale: float = DEFAULT_SCALE,
    dpi: float = DEFAULT_DPI,
    renderer: PageRenderer = render_page,
) -> Path:
    """Render *page* of *pdf_path*, crop *box* and write it as PNG to *output_path*."""

    output_path = Path(output_path)
    rect = box.to_pixels(scale=scale, dpi=dpi)
    try:
        image = renderer(pdf_path, page, scale=scale, dpi=dpi)
        clipped = clip_image(image, box, scale=scale, dpi=dpi, page=page)
        clipped.save(output_path, format="PNG")
    except Exception as exc:
        emit_clip_event(
            source=str(pdf_path),
            page=page,
            rect=rect.as_tuple(),
            output_path=None,
            error=exc,
        )
        raise

    emit_clip_event(source=str(pdf_path), page=page, rect=rect.as_tuple(), output_path=str(output_path))
    return output_path
