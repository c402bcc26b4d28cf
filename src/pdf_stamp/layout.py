from __future__ import annotations

import logging
from typing import Optional, Tuple

from .errors import InvalidGeometry
from .models import PageGeometry, PdfCoordinate, PlacedObject


logger = logging.getLogger(__name__)


def _checked_scale(scale_factor: Optional[float]) -> float:
    if scale_factor is None or scale_factor <= 0:
        raise InvalidGeometry(f"Scale factor must be positive, got {scale_factor!r}.")
    return float(scale_factor)


def to_pdf_coordinate(placed: PlacedObject, geometry: PageGeometry) -> PdfCoordinate:
    """Map an overlay bounding box to the PDF point of its bottom-left corner.

    Overlay space has its origin at the top-left and is scaled by
    ``geometry.scale_factor``; PDF space has its origin at the bottom-left of
    the page and is unscaled. A box reaching below the page bottom is clamped
    to ``y == 0`` so the result stays inside the page's coordinate range.
    """
    scale = _checked_scale(geometry.scale_factor)

    top_pdf = placed.top / scale
    height_pdf = placed.height / scale
    x_pdf = placed.left / scale
    y_pdf = geometry.native_height - (top_pdf + height_pdf)

    if y_pdf < 0:
        logger.debug(
            "Clamping y=%.2f to 0 on page %d (box bottom below page).",
            y_pdf,
            geometry.page_index,
        )
        y_pdf = 0.0
    return PdfCoordinate(x=x_pdf, y=y_pdf)


def to_overlay_position(
    coord: PdfCoordinate, height_pdf: float, geometry: PageGeometry
) -> Tuple[float, float]:
    """Return the overlay ``(left, top)`` of a box placed at ``coord``."""
    scale = _checked_scale(geometry.scale_factor)
    left = coord.x * scale
    top = (geometry.native_height - coord.y - height_pdf) * scale
    return left, top


def pdf_size(placed: PlacedObject, geometry: PageGeometry) -> Tuple[float, float]:
    """Width and height of the overlay box in PDF units."""
    scale = _checked_scale(geometry.scale_factor)
    return placed.width / scale, placed.height / scale
