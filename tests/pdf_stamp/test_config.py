from __future__ import annotations

from pathlib import Path

import pytest

from pdf_stamp.config import DEFAULT_RENDER_SCALE, ServerConfig
from pdf_stamp.errors import ConfigError


def test_from_env_defaults():
    config = ServerConfig.from_env({})

    assert config == ServerConfig()
    assert config.render_scale == DEFAULT_RENDER_SCALE
    assert config.max_content_length == 32 * 1024 * 1024


def test_from_env_reads_values():
    config = ServerConfig.from_env(
        {
            "PDF_STAMP_HOST": "0.0.0.0",
            "PDF_STAMP_PORT": "8080",
            "PDF_STAMP_MAX_UPLOAD_MB": "5",
            "PDF_STAMP_FONT_DIR": "/srv/fonts",
            "PDF_STAMP_RENDER_SCALE": "2",
            "PDF_STAMP_LOG_LEVEL": "debug",
        }
    )

    assert config.host == "0.0.0.0"
    assert config.port == 8080
    assert config.max_upload_mb == 5
    assert config.font_dir == Path("/srv/fonts")
    assert config.render_scale == 2.0
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [
        {"PDF_STAMP_PORT": "eighty"},
        {"PDF_STAMP_PORT": "70000"},
        {"PDF_STAMP_MAX_UPLOAD_MB": "0"},
        {"PDF_STAMP_RENDER_SCALE": "-1"},
        {"PDF_STAMP_LOG_LEVEL": "LOUD"},
    ],
)
def test_from_env_rejects_bad_values(env):
    with pytest.raises(ConfigError):
        ServerConfig.from_env(env)
