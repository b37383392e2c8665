"""Heading-scoped chunking of layout-analysed PDFs with spatial reference clipping."""

__version__ = "0.1.0"
