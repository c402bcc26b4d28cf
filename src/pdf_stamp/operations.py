from __future__ import annotations

import io
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import pymupdf as fitz  # PyMuPDF
from PIL import Image

from .config import DEFAULT_FONT, FONT_ALIASES, UNICODE_FALLBACK_FONT
from .errors import (
    CompositionError,
    MalformedPdf,
    PageOutOfRange,
    SerializationError,
    StampError,
    UnsupportedPayload,
)
from .models import ImagePayload, Payload, PdfCoordinate, TextPayload


logger = logging.getLogger(__name__)

FONT_FILE_SUFFIXES = (".ttf", ".otf")
# Image formats MuPDF embeds as-is; anything else Pillow reads is re-encoded to PNG.
EMBEDDABLE_FORMATS = {"PNG", "JPEG"}


@dataclass(frozen=True)
class FontChoice:
    fontname: str
    fontfile: Optional[str] = None
    fallback: bool = False


def open_document(pdf_bytes: bytes) -> fitz.Document:
    """Parse PDF bytes into a document, raising :class:`MalformedPdf` on failure."""
    if not pdf_bytes:
        raise MalformedPdf("Source PDF is empty.")
    try:
        doc = fitz.open(stream=bytes(pdf_bytes), filetype="pdf")
    except (RuntimeError, ValueError, TypeError) as exc:
        raise MalformedPdf(f"Source bytes are not a readable PDF: {exc}") from exc
    if doc.page_count == 0:
        doc.close()
        raise MalformedPdf("Source PDF has no pages.")
    return doc


def load_page(doc: fitz.Document, page_index: int) -> fitz.Page:
    if not 0 <= page_index < doc.page_count:
        raise PageOutOfRange(page_index, doc.page_count)
    return doc.load_page(page_index)


def _family_key(family: str) -> str:
    # CSS-style stacks such as "Brush Script MT, cursive" resolve by their first entry.
    primary = family.split(",")[0]
    return primary.strip().strip("'\"").strip()


def _find_font_file(family: str, font_dir: Path) -> Optional[Path]:
    if not font_dir.is_dir():
        return None
    wanted = {family.lower(), family.lower().replace(" ", ""), family.lower().replace(" ", "-")}
    for candidate in sorted(font_dir.iterdir()):
        if candidate.suffix.lower() in FONT_FILE_SUFFIXES and candidate.stem.lower() in wanted:
            return candidate
    return None


def _needs_unicode_font(content: str) -> bool:
    # Base-14 fonts are written with a single-byte encoding.
    return any(ord(ch) > 255 for ch in content)


def _missing_glyphs(font: fitz.Font, content: str) -> List[str]:
    return sorted(
        {ch for ch in content if not ch.isspace() and not font.has_glyph(ord(ch))}
    )


def _unicode_fallback(family: str, content: str) -> FontChoice:
    missing = _missing_glyphs(fitz.Font(UNICODE_FALLBACK_FONT), content)
    if missing:
        raise UnsupportedPayload(
            f"No available font can draw the characters {''.join(missing)!r}."
        )
    logger.warning(
        "Font %r cannot draw all characters of the signature; using %s.",
        family,
        UNICODE_FALLBACK_FONT,
    )
    return FontChoice(fontname=UNICODE_FALLBACK_FONT, fallback=True)


def resolve_font(family: str, font_dir: Optional[Path] = None, content: str = "") -> FontChoice:
    """Pick the font used to draw a typed signature.

    A font file named after the family in ``font_dir`` wins, then the base-14
    alias table. Anything else falls back to the default font and is logged.
    When ``content`` has characters the chosen font cannot draw, the built-in
    CJK font is used instead; if that cannot draw them either,
    :class:`UnsupportedPayload` is raised.
    """
    key = _family_key(family or "")
    if key and font_dir is not None:
        font_file = _find_font_file(key, Path(font_dir))
        if font_file is not None:
            fontname = "F-" + re.sub(r"[^A-Za-z0-9]", "", key)
            if content and _needs_unicode_font(content):
                try:
                    font = fitz.Font(fontfile=str(font_file))
                except (RuntimeError, ValueError) as exc:
                    raise UnsupportedPayload(f"Font file {font_file} cannot be read: {exc}") from exc
                if _missing_glyphs(font, content):
                    return _unicode_fallback(family, content)
            return FontChoice(fontname=fontname, fontfile=str(font_file))

    if _needs_unicode_font(content):
        return _unicode_fallback(family, content)

    base14 = FONT_ALIASES.get(key.lower())
    if base14 is None and key.lower() in FONT_ALIASES.values():
        base14 = key.lower()
    if base14 is not None:
        return FontChoice(fontname=base14)

    logger.warning("Font %r is not available; falling back to %s.", family, DEFAULT_FONT)
    return FontChoice(fontname=DEFAULT_FONT, fallback=True)


def _to_page_point(page: fitz.Page, x: float, y: float) -> fitz.Point:
    """Convert a bottom-left origin point on the visible page to unrotated page space."""
    return fitz.Point(x, page.rect.height - y) * page.derotation_matrix


def _image_bytes_and_size(data: bytes) -> Tuple[bytes, Tuple[int, int]]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            size = img.size
            if img.format in EMBEDDABLE_FORMATS:
                return data, size
            buffer = io.BytesIO()
            img.convert("RGBA").save(buffer, format="PNG")
            return buffer.getvalue(), size
    except (OSError, ValueError) as exc:
        raise UnsupportedPayload(f"Signature image could not be decoded: {exc}") from exc


def insert_signature_image(
    page: fitz.Page, coord: PdfCoordinate, payload: ImagePayload
) -> fitz.Rect:
    """Draw the image with its bottom-left corner at ``coord`` and return the page rect used."""
    data, (px_width, px_height) = _image_bytes_and_size(payload.data)
    width = payload.width if payload.width is not None else float(px_width)
    height = payload.height if payload.height is not None else float(px_height)
    if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
        raise UnsupportedPayload(f"Signature image size must be positive, got {width}x{height}.")

    top_left = _to_page_point(page, coord.x, coord.y + height)
    bottom_right = _to_page_point(page, coord.x + width, coord.y)
    rect = fitz.Rect(top_left, bottom_right).normalize()
    page.insert_image(
        rect, stream=data, keep_proportion=False, overlay=True, rotate=page.rotation
    )
    return rect


def insert_signature_text(
    page: fitz.Page,
    coord: PdfCoordinate,
    payload: TextPayload,
    font_dir: Optional[Path] = None,
) -> FontChoice:
    """Draw the text with its baseline starting at ``coord``."""
    if not payload.content.strip():
        raise UnsupportedPayload("Signature text is empty.")
    if not math.isfinite(payload.font_size_px) or payload.font_size_px <= 0:
        raise UnsupportedPayload(f"Font size must be positive, got {payload.font_size_px}.")
    if len(payload.color_rgb) != 3 or any(not 0 <= c <= 255 for c in payload.color_rgb):
        raise UnsupportedPayload(f"Color must be three 0-255 components, got {payload.color_rgb}.")

    font = resolve_font(payload.font_family, font_dir, payload.content)
    page.insert_text(
        _to_page_point(page, coord.x, coord.y),
        payload.content,
        fontsize=payload.font_size_px,
        fontname=font.fontname,
        fontfile=font.fontfile,
        color=tuple(c / 255.0 for c in payload.color_rgb),
        rotate=page.rotation,
        overlay=True,
    )
    return font


def compose(
    source_pdf_bytes: bytes,
    page_index: int,
    pdf_coordinate: PdfCoordinate,
    payload: Payload,
    font_dir: Optional[Path] = None,
) -> bytes:
    """Return a copy of the document with the signature drawn on one page.

    Raises a :class:`~pdf_stamp.errors.CompositionError` subclass on failure;
    the source bytes are never modified.
    """
    if not (math.isfinite(pdf_coordinate.x) and math.isfinite(pdf_coordinate.y)):
        raise CompositionError(
            f"Signature position must be finite, got ({pdf_coordinate.x}, {pdf_coordinate.y})."
        )

    doc = open_document(source_pdf_bytes)
    try:
        page = load_page(doc, page_index)
        try:
            if isinstance(payload, ImagePayload):
                insert_signature_image(page, pdf_coordinate, payload)
            elif isinstance(payload, TextPayload):
                insert_signature_text(page, pdf_coordinate, payload, font_dir)
            else:
                raise UnsupportedPayload(
                    f"Unsupported signature payload {type(payload).__name__}."
                )
        except StampError:
            raise
        except (RuntimeError, ValueError) as exc:
            raise CompositionError(f"Could not draw the signature: {exc}") from exc

        try:
            # Keep the existing /ID so identical inputs serialize identically.
            signed = doc.tobytes(deflate=True, no_new_id=True)
        except (RuntimeError, ValueError) as exc:
            logger.exception("Serializing signed document failed.")
            raise SerializationError(f"Could not serialize signed PDF: {exc}") from exc
    finally:
        doc.close()

    logger.info(
        "Stamped %s signature on page %d at (%.2f, %.2f).",
        payload.kind.value,
        page_index,
        pdf_coordinate.x,
        pdf_coordinate.y,
    )
    return signed
