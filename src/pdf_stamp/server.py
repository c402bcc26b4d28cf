from __future__ import annotations

import base64
import binascii
import io
import logging
import math
import re
from typing import Optional, Tuple

from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest, HTTPException
from werkzeug.utils import secure_filename

from .config import (
    DEFAULT_FONT_SIZE,
    DEFAULT_TEXT_COLOR,
    AppMetadata,
    ServerConfig,
    configure_logging,
)
from .errors import SerializationError, StampError, UnsupportedPayload
from .models import ImagePayload, PayloadKind, PdfCoordinate, TextPayload
from .operations import compose
from .render import describe_pages, render_page


logger = logging.getLogger(__name__)

CONFIG_KEY = "PDF_STAMP_CONFIG"
DEFAULT_TEXT_FONT = "Helvetica"

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]*)(?:;[^;,]*)*?;base64,(?P<data>.*)$", re.DOTALL)
_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

bp = Blueprint("api", __name__, url_prefix="/api")


def decode_data_url(value: str) -> bytes:
    """Return the bytes of a base64 data URL (or of bare base64 text)."""
    value = (value or "").strip()
    match = _DATA_URL.match(value)
    encoded = match.group("data") if match else value
    if not encoded:
        raise UnsupportedPayload("Signature image data is empty.")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise UnsupportedPayload("Signature image data is not valid base64.") from exc


def parse_hex_color(value: Optional[str]) -> Tuple[int, int, int]:
    if not value or not value.strip():
        return DEFAULT_TEXT_COLOR
    match = _HEX_COLOR.match(value.strip())
    if not match:
        raise UnsupportedPayload(f"Color {value!r} is not a #rrggbb value.")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return tuple(int(digits[i : i + 2], 16) for i in (0, 2, 4))


def _config() -> ServerConfig:
    return current_app.config[CONFIG_KEY]


def _pdf_upload() -> Tuple[bytes, str]:
    upload: Optional[FileStorage] = request.files.get("pdfFile")
    if upload is None or not upload.filename:
        raise BadRequest("Missing PDF file in field 'pdfFile'.")
    return upload.read(), secure_filename(upload.filename) or "document.pdf"


def _form_number(name: str, kind=float, default=None):
    raw = request.form.get(name, "").strip()
    if not raw:
        if default is None:
            raise BadRequest(f"Missing form field {name!r}.")
        return default
    try:
        value = kind(raw)
    except ValueError as exc:
        raise BadRequest(f"Form field {name!r} must be a number, got {raw!r}.") from exc
    if not math.isfinite(value):
        raise BadRequest(f"Form field {name!r} must be a finite number, got {raw!r}.")
    return value


def _page_index() -> int:
    # Callers count pages from 1.
    return _form_number("pageNumber", int) - 1


def _signature_payload(kind: PayloadKind):
    data = request.form.get("signatureData", "")
    if kind is PayloadKind.IMAGE:
        return ImagePayload(data=decode_data_url(data))
    return TextPayload(
        content=data,
        font_family=request.form.get("font", "").strip() or DEFAULT_TEXT_FONT,
        font_size_px=_form_number("fontSize", float, DEFAULT_FONT_SIZE),
        color_rgb=parse_hex_color(request.form.get("color")),
    )


@bp.post("/upload-pdf")
def upload_pdf():
    pdf_bytes, filename = _pdf_upload()
    pages = describe_pages(pdf_bytes)
    logger.info("Accepted %s (%d page(s)).", filename, len(pages))
    return jsonify(
        message="PDF uploaded successfully.",
        filename=filename,
        pageCount=len(pages),
        pages=[{"width": page.width, "height": page.height} for page in pages],
    )


@bp.post("/sign-pdf")
def sign_pdf():
    pdf_bytes, filename = _pdf_upload()
    kind = PayloadKind.parse(request.form.get("signatureType", ""))
    coord = PdfCoordinate(x=_form_number("x"), y=_form_number("y"))
    page_index = _page_index()
    payload = _signature_payload(kind)

    signed = compose(pdf_bytes, page_index, coord, payload, font_dir=_config().font_dir)
    return send_file(
        io.BytesIO(signed),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"signed_{filename}",
    )


@bp.post("/render-page")
def render_page_preview():
    pdf_bytes, _ = _pdf_upload()
    scale = _form_number("scale", float, _config().render_scale)
    rendered = render_page(pdf_bytes, _page_index(), scale)
    geometry = rendered.geometry
    response = send_file(io.BytesIO(rendered.png), mimetype="image/png")
    response.headers["X-Page-Width"] = f"{geometry.native_width:g}"
    response.headers["X-Page-Height"] = f"{geometry.native_height:g}"
    response.headers["X-Rendered-Width"] = f"{geometry.rendered_width:g}"
    response.headers["X-Rendered-Height"] = f"{geometry.rendered_height:g}"
    response.headers["X-Scale-Factor"] = f"{geometry.scale_factor:g}"
    return response


def _handle_stamp_error(exc: StampError):
    status = 500 if isinstance(exc, SerializationError) else 400
    logger.warning("Request failed with %s: %s", type(exc).__name__, exc)
    return str(exc), status, {"Content-Type": "text/plain; charset=utf-8"}


def _handle_http_error(exc: HTTPException):
    if exc.code is None or exc.code < 400:
        return exc
    return exc.description, exc.code, {"Content-Type": "text/plain; charset=utf-8"}


def create_app(config: Optional[ServerConfig] = None) -> Flask:
    config = config or ServerConfig()
    metadata = AppMetadata()

    app = Flask(__name__)
    app.config[CONFIG_KEY] = config
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    app.register_blueprint(bp)
    app.register_error_handler(StampError, _handle_stamp_error)
    app.register_error_handler(HTTPException, _handle_http_error)

    @app.get("/")
    def index():
        return jsonify(name=metadata.name, version=metadata.version)

    return app


def main() -> None:
    config = ServerConfig.from_env()
    configure_logging(config.log_level)
    app = create_app(config)
    logger.info("Serving %s on %s:%d", AppMetadata().name, config.host, config.port)
    app.run(host=config.host, port=config.port)


if __name__ == "__main__":
    main()
