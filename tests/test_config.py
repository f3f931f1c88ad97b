# tests/test_config.py - unit tests for access engine settings

import logging
import os
import pytest
from unittest.mock import patch
from config import DEFAULTS, configure_logging, load_config


class TestConfig:
    """Test configuration loading and validation."""

    def test_defaults(self):
        """No environment overrides yields the documented defaults."""
        with patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg == DEFAULTS
        assert cfg["ACCESS_CATALOG_PATH"] == "catalogs/access_catalog.yaml"
        assert cfg["ACCESS_STRICT_ALIASES"] is False
        assert cfg["ACCESS_ADMIN_OVERRIDE"] is True

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("1", True),
        ("Yes", True),
        ("ON", True),
        ("false", False),
        ("0", False),
        ("no", False),
        ("", False),
    ])
    def test_boolean_parsing(self, raw, expected):
        with patch.dict(os.environ, {"ACCESS_STRICT_ALIASES": raw}, clear=True):
            assert load_config()["ACCESS_STRICT_ALIASES"] is expected

    def test_invalid_boolean_raises(self):
        with patch.dict(os.environ, {"ACCESS_ADMIN_OVERRIDE": "maybe"}, clear=True):
            with pytest.raises(RuntimeError) as exc_info:
                load_config()
        assert "ACCESS_ADMIN_OVERRIDE must be a boolean" in str(exc_info.value)

    def test_log_level_normalized(self):
        with patch.dict(os.environ, {"ACCESS_LOG_LEVEL": " debug "}, clear=True):
            assert load_config()["ACCESS_LOG_LEVEL"] == "DEBUG"

    def test_invalid_log_level_raises(self):
        with patch.dict(os.environ, {"ACCESS_LOG_LEVEL": "chatty"}, clear=True):
            with pytest.raises(RuntimeError) as exc_info:
                load_config()
        assert "ACCESS_LOG_LEVEL must be one of" in str(exc_info.value)

    def test_empty_catalog_path_raises(self):
        with patch.dict(os.environ, {"ACCESS_CATALOG_PATH": "  "}, clear=True):
            with pytest.raises(RuntimeError, match="ACCESS_CATALOG_PATH must not be empty"):
                load_config()

    def test_catalog_path_override(self):
        with patch.dict(os.environ, {"ACCESS_CATALOG_PATH": "/etc/access/catalog.json"}, clear=True):
            assert load_config()["ACCESS_CATALOG_PATH"] == "/etc/access/catalog.json"

    def test_configure_logging_uses_level(self):
        cfg = {**DEFAULTS, "ACCESS_LOG_LEVEL": "WARNING"}
        with patch("config.logging.basicConfig") as basic_config:
            configure_logging(cfg)
        assert basic_config.call_args.kwargs["level"] == logging.WARNING
