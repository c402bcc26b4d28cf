from __future__ import annotations

import io

import pytest
from PIL import Image

from pdf_stamp.errors import InvalidGeometry, MalformedPdf, PageOutOfRange
from pdf_stamp.render import PageSize, describe_pages, render_page


def test_render_page_reports_geometry(sample_pdf):
    rendered = render_page(sample_pdf, 1, 1.5)

    geometry = rendered.geometry
    assert geometry.page_index == 1
    assert (geometry.native_width, geometry.native_height) == (612, 792)
    assert geometry.scale_factor == 1.5
    assert geometry.rendered_width == pytest.approx(918, abs=1)
    assert geometry.rendered_height == pytest.approx(1188, abs=1)
    with Image.open(io.BytesIO(rendered.png)) as image:
        assert image.format == "PNG"
        assert image.size == (geometry.rendered_width, geometry.rendered_height)


def test_render_page_rejects_bad_scale(sample_pdf):
    with pytest.raises(InvalidGeometry):
        render_page(sample_pdf, 0, 0)


def test_render_page_rejects_bad_index(sample_pdf):
    with pytest.raises(PageOutOfRange):
        render_page(sample_pdf, 3, 1.0)


def test_describe_pages_lists_native_sizes(pdf_factory):
    pages = describe_pages(pdf_factory(page_count=2, size=(595, 842)))

    assert pages == [PageSize(595, 842), PageSize(595, 842)]


def test_describe_pages_rejects_empty_input():
    with pytest.raises(MalformedPdf):
        describe_pages(b"")
