from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from .errors import ConfigError


APP_NAME = "PDF Stamp"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = (
    "Upload a PDF, place a drawn or typed signature on a page, "
    "and get the signed PDF back."
)


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000
DEFAULT_MAX_UPLOAD_MB = 32
DEFAULT_RENDER_SCALE = 1.5
DEFAULT_LOG_LEVEL = "INFO"

DEFAULT_FONT = "helv"
DEFAULT_FONT_SIZE = 36.0
DEFAULT_TEXT_COLOR = (0, 0, 0)
# Built-in MuPDF font used when text has characters outside the base-14 encoding.
UNICODE_FALLBACK_FONT = "china-s"

# Requested family (lower-cased) -> PDF base-14 font name understood by PyMuPDF.
FONT_ALIASES: Dict[str, str] = {
    "helvetica": "helv",
    "arial": "helv",
    "sans-serif": "helv",
    "helvetica bold": "hebo",
    "arial bold": "hebo",
    "helvetica oblique": "heit",
    "times": "tiro",
    "times new roman": "tiro",
    "times-roman": "tiro",
    "serif": "tiro",
    "times italic": "tiit",
    "georgia": "tiro",
    "courier": "cour",
    "courier new": "cour",
    "monospace": "cour",
}

ENV_HOST = "PDF_STAMP_HOST"
ENV_PORT = "PDF_STAMP_PORT"
ENV_MAX_UPLOAD_MB = "PDF_STAMP_MAX_UPLOAD_MB"
ENV_FONT_DIR = "PDF_STAMP_FONT_DIR"
ENV_RENDER_SCALE = "PDF_STAMP_RENDER_SCALE"
ENV_LOG_LEVEL = "PDF_STAMP_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class AppMetadata:
    name: str = APP_NAME
    version: str = APP_VERSION
    description: str = APP_DESCRIPTION


@dataclass(frozen=True)
class ServerConfig:
    """Runtime settings for the HTTP service."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB
    font_dir: Optional[Path] = None
    render_scale: float = DEFAULT_RENDER_SCALE
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def max_content_length(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """Build a config from ``PDF_STAMP_*`` environment variables.

        Unset or empty variables keep their defaults; values that do not
        parse raise :class:`ConfigError`.
        """
        env = os.environ if environ is None else environ

        port = _env_number(env, ENV_PORT, int, DEFAULT_PORT)
        if not 0 < port < 65536:
            raise ConfigError(f"{ENV_PORT} must be between 1 and 65535, got {port}.")

        max_upload_mb = _env_number(env, ENV_MAX_UPLOAD_MB, int, DEFAULT_MAX_UPLOAD_MB)
        if max_upload_mb <= 0:
            raise ConfigError(f"{ENV_MAX_UPLOAD_MB} must be positive, got {max_upload_mb}.")

        render_scale = _env_number(env, ENV_RENDER_SCALE, float, DEFAULT_RENDER_SCALE)
        if render_scale <= 0:
            raise ConfigError(f"{ENV_RENDER_SCALE} must be positive, got {render_scale}.")

        font_dir_raw = env.get(ENV_FONT_DIR, "").strip()
        log_level = env.get(ENV_LOG_LEVEL, "").strip().upper() or DEFAULT_LOG_LEVEL
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"{ENV_LOG_LEVEL} has unknown level {log_level!r}.")

        return cls(
            host=env.get(ENV_HOST, "").strip() or DEFAULT_HOST,
            port=port,
            max_upload_mb=max_upload_mb,
            font_dir=Path(font_dir_raw) if font_dir_raw else None,
            render_scale=render_scale,
            log_level=log_level,
        )


def _env_number(env: Mapping[str, str], name: str, kind, default):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}.") from exc


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
