from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from .config import DEFAULT_TEXT_COLOR
from .errors import InvalidGeometry, UnsupportedPayload


# Rendered bitmaps are whole pixels, so width and height may each be off by one.
RENDER_TOLERANCE_PX = 1.0


class PayloadKind(str, Enum):
    IMAGE = "image"
    TEXT = "text"

    @classmethod
    def parse(cls, value: str) -> "PayloadKind":
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise UnsupportedPayload(
                f"Unsupported signature type {value!r}; expected 'image' or 'text'."
            ) from exc


@dataclass(frozen=True)
class ImagePayload:
    """PNG signature bytes. Size defaults to the image's pixel size in PDF units."""

    data: bytes
    width: Optional[float] = None
    height: Optional[float] = None

    kind = PayloadKind.IMAGE


@dataclass(frozen=True)
class TextPayload:
    content: str
    font_family: str
    font_size_px: float
    color_rgb: Tuple[int, int, int] = DEFAULT_TEXT_COLOR

    kind = PayloadKind.TEXT


Payload = Union[ImagePayload, TextPayload]


@dataclass(frozen=True)
class PageGeometry:
    """Size of a page as rendered on screen and as stored in the PDF."""

    page_index: int
    rendered_width: float
    rendered_height: float
    native_width: float
    native_height: float
    scale_factor: Optional[float]

    @classmethod
    def from_native(
        cls, page_index: int, native_width: float, native_height: float, scale_factor: float
    ) -> "PageGeometry":
        return cls(
            page_index=page_index,
            rendered_width=native_width * scale_factor,
            rendered_height=native_height * scale_factor,
            native_width=native_width,
            native_height=native_height,
            scale_factor=scale_factor,
        )

    @classmethod
    def from_rendered(
        cls,
        page_index: int,
        rendered_width: float,
        rendered_height: float,
        native_width: float,
        native_height: float,
    ) -> "PageGeometry":
        """Derive the scale factor from a bitmap of known size."""
        if native_width <= 0 or native_height <= 0:
            raise InvalidGeometry(
                f"Native page size must be positive, got {native_width}x{native_height}."
            )
        scale = rendered_width / native_width
        if scale <= 0:
            raise InvalidGeometry(f"Rendered width must be positive, got {rendered_width}.")
        if abs(native_height * scale - rendered_height) > RENDER_TOLERANCE_PX:
            raise InvalidGeometry(
                f"Rendered size {rendered_width}x{rendered_height} does not match "
                f"page size {native_width}x{native_height} at a single scale factor."
            )
        return cls(
            page_index=page_index,
            rendered_width=rendered_width,
            rendered_height=rendered_height,
            native_width=native_width,
            native_height=native_height,
            scale_factor=scale,
        )


@dataclass(frozen=True)
class PlacedObject:
    """A signature positioned on the overlay, in rendered pixel space (top-left origin)."""

    kind: PayloadKind
    left: float
    top: float
    width: float
    height: float
    payload: Payload


@dataclass(frozen=True)
class PdfCoordinate:
    x: float
    y: float


@dataclass(frozen=True)
class SigningRequest:
    source_pdf_bytes: bytes
    page_geometry: PageGeometry
    placed_object: PlacedObject
