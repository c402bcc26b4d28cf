from __future__ import annotations

import fitz  # PyMuPDF
import pytest
from PIL import Image, ImageChops

from pdf_stamp.errors import InvalidGeometry, UnsupportedPayload
from pdf_stamp.models import (
    ImagePayload,
    PageGeometry,
    PayloadKind,
    PlacedObject,
    SigningRequest,
    TextPayload,
)
from pdf_stamp.render import render_page
from pdf_stamp.signing import sign


def test_image_is_stamped_where_the_box_was_drawn(sample_pdf, signature_png):
    geometry = PageGeometry.from_native(0, 612, 792, 1.5)
    placed = PlacedObject(PayloadKind.IMAGE, 150, 600, 60, 30, ImagePayload(signature_png))

    signed = sign(SigningRequest(sample_pdf, geometry, placed))

    doc = fitz.open(stream=signed, filetype="pdf")
    bbox = doc[0].get_image_info()[0]["bbox"]
    # PDF box (100, 372)-(140, 392) seen from the top of a 792pt page.
    assert tuple(bbox) == pytest.approx((100, 400, 140, 420), abs=0.01)
    doc.close()


def test_text_is_stamped_on_the_requested_page(sample_pdf):
    geometry = PageGeometry.from_native(2, 612, 792, 1.0)
    placed = PlacedObject(
        PayloadKind.TEXT, 0, 0, 150, 36, TextPayload("Jane Doe", "Helvetica", 36, (0, 0, 0))
    )

    signed = sign(SigningRequest(sample_pdf, geometry, placed))

    doc = fitz.open(stream=signed, filetype="pdf")
    assert "Jane Doe" in doc[2].get_text()
    assert "Jane Doe" not in doc[0].get_text()
    doc.close()


def test_mismatched_kind_and_payload_is_rejected(sample_pdf):
    geometry = PageGeometry.from_native(0, 612, 792, 1.0)
    placed = PlacedObject(PayloadKind.TEXT, 0, 0, 10, 10, ImagePayload(b""))

    with pytest.raises(UnsupportedPayload):
        sign(SigningRequest(sample_pdf, geometry, placed))


def test_invalid_geometry_stops_before_composition(sample_pdf, signature_png):
    geometry = PageGeometry(0, 612, 792, 612, 792, scale_factor=0)
    placed = PlacedObject(PayloadKind.IMAGE, 0, 0, 10, 10, ImagePayload(signature_png))

    with pytest.raises(InvalidGeometry):
        sign(SigningRequest(sample_pdf, geometry, placed))


def _blue_bbox(pdf_bytes: bytes, page_index: int = 0):
    """Bounding box of strongly blue pixels on the page as a viewer shows it."""
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    pix = doc[page_index].get_pixmap(alpha=False)
    image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
    doc.close()
    red, _, blue = image.split()
    mask = ImageChops.multiply(
        blue.point(lambda v: 255 if v > 150 else 0),
        red.point(lambda v: 255 if v < 80 else 0),
    )
    return mask.getbbox()


@pytest.mark.parametrize("rotation", [0, 90, 180, 270])
def test_image_lands_where_drawn_on_rotated_pages(pdf_factory, signature_png, rotation):
    source = pdf_factory(page_count=1, rotation=rotation)
    geometry = render_page(source, 0, 1.0).geometry
    placed = PlacedObject(PayloadKind.IMAGE, 10, 10, 40, 20, ImagePayload(signature_png))

    signed = sign(SigningRequest(source, geometry, placed))

    assert _blue_bbox(signed) == pytest.approx((10, 10, 50, 30), abs=1)


def test_text_reads_horizontally_on_rotated_page(pdf_factory):
    source = pdf_factory(page_count=1, rotation=90)
    geometry = render_page(source, 0, 1.0).geometry
    assert (geometry.native_width, geometry.native_height) == (792, 612)
    placed = PlacedObject(
        PayloadKind.TEXT, 10, 10, 150, 36, TextPayload("Jane Doe", "Helvetica", 36, (0, 0, 200))
    )

    signed = sign(SigningRequest(source, geometry, placed))

    left, top, right, bottom = _blue_bbox(signed)
    assert left == pytest.approx(10, abs=3)
    assert bottom <= 10 + 36 + 10
    assert right - left > bottom - top
