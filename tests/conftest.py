from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest


# Ensure the src/ directory is importable when running tests without
# installing the package in editable mode.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


LETTER = (612, 792)


def make_pdf(page_count: int = 3, size=LETTER, rotation: int = 0) -> bytes:
    import fitz

    doc = fitz.open()
    for number in range(1, page_count + 1):
        page = doc.new_page(width=size[0], height=size[1])
        page.insert_text((72, 72), f"Page {number} body text", fontsize=12)
        if rotation:
            page.set_rotation(rotation)
    data = doc.tobytes()
    doc.close()
    return data


def make_png(width: int = 40, height: int = 20, color=(0, 0, 200, 255)) -> bytes:
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(scope="session")
def sample_pdf() -> bytes:
    return make_pdf()


@pytest.fixture(scope="session")
def signature_png() -> bytes:
    return make_png()


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def png_factory():
    return make_png
