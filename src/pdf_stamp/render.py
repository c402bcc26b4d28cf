from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pymupdf as fitz  # PyMuPDF

from .errors import InvalidGeometry
from .models import PageGeometry
from .operations import load_page, open_document


@dataclass(frozen=True)
class PageSize:
    width: float
    height: float


@dataclass(frozen=True)
class RenderedPage:
    """PNG bitmap of one page plus the geometry needed to map overlay positions back."""

    png: bytes
    geometry: PageGeometry


def describe_pages(pdf_bytes: bytes) -> List[PageSize]:
    doc = open_document(pdf_bytes)
    try:
        return [PageSize(page.rect.width, page.rect.height) for page in doc]
    finally:
        doc.close()


def render_page(pdf_bytes: bytes, page_index: int, scale_factor: float) -> RenderedPage:
    if scale_factor is None or scale_factor <= 0:
        raise InvalidGeometry(f"Scale factor must be positive, got {scale_factor!r}.")

    doc = open_document(pdf_bytes)
    try:
        page = load_page(doc, page_index)
        rect = page.rect
        pix = page.get_pixmap(matrix=fitz.Matrix(scale_factor, scale_factor), alpha=False)
        geometry = PageGeometry(
            page_index=page_index,
            rendered_width=float(pix.width),
            rendered_height=float(pix.height),
            native_width=rect.width,
            native_height=rect.height,
            scale_factor=float(scale_factor),
        )
        return RenderedPage(png=pix.tobytes("png"), geometry=geometry)
    finally:
        doc.close()
