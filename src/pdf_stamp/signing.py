from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Optional

from .errors import UnsupportedPayload
from .layout import pdf_size, to_pdf_coordinate
from .models import ImagePayload, PayloadKind, SigningRequest, TextPayload
from .operations import compose


logger = logging.getLogger(__name__)


def sign(request: SigningRequest, font_dir: Optional[Path] = None) -> bytes:
    """Transform the placed object into PDF space and stamp it on its page."""
    placed = request.placed_object
    geometry = request.page_geometry
    payload = placed.payload

    if placed.kind is PayloadKind.IMAGE and isinstance(payload, ImagePayload):
        if payload.width is None and payload.height is None:
            # Draw the image at the size of the box the user dragged out.
            width, height = pdf_size(placed, geometry)
            payload = dataclasses.replace(payload, width=width, height=height)
    elif not (placed.kind is PayloadKind.TEXT and isinstance(payload, TextPayload)):
        raise UnsupportedPayload(
            f"Payload {type(payload).__name__} does not match kind {placed.kind!r}."
        )

    coord = to_pdf_coordinate(placed, geometry)
    logger.debug("Page %d overlay box maps to %s.", geometry.page_index, coord)
    return compose(
        request.source_pdf_bytes, geometry.page_index, coord, payload, font_dir=font_dir
    )
