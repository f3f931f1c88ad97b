# config.py - access engine settings with loud failures

import logging
import os

# Optional knobs with defaults that work out of the box.
DEFAULTS = {
    "ACCESS_CATALOG_PATH": "catalogs/access_catalog.yaml",
    "ACCESS_STRICT_ALIASES": False,   # reject catalogs where two memberships share an alias
    "ACCESS_ADMIN_OVERRIDE": True,    # grant-all memberships pass any check by default
    "ACCESS_LOG_LEVEL": "INFO",
    "ACCESS_METRICS_ENABLED": True,
}

BOOLEAN_KEYS = ("ACCESS_STRICT_ALIASES", "ACCESS_ADMIN_OVERRIDE", "ACCESS_METRICS_ENABLED")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_TRUE = ('true', '1', 'yes', 'on')
_FALSE = ('false', '0', 'no', 'off', '')


def _parse_bool(key, val):
    if isinstance(val, bool):
        return val
    text = str(val).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise RuntimeError(f"{key} must be a boolean (true/false), got: {val}")


def load_config():
    """
    Load env config, erroring clearly if a value is unusable.
    Returns a dict of settings with types normalized.
    """
    cfg = {}

    for k, v in DEFAULTS.items():
        val = os.getenv(k, v)

        if k in BOOLEAN_KEYS:
            val = _parse_bool(k, val)
        elif k == "ACCESS_LOG_LEVEL":
            val = str(val).strip().upper()
            if val not in LOG_LEVELS:
                raise RuntimeError(f"ACCESS_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got: {val}")
        elif k == "ACCESS_CATALOG_PATH":
            val = str(val).strip()
            if not val:
                raise RuntimeError("ACCESS_CATALOG_PATH must not be empty")

        cfg[k] = val

    return cfg


def configure_logging(cfg=None):
    """Apply ACCESS_LOG_LEVEL to the root logger."""
    cfg = cfg or load_config()
    logging.basicConfig(
        level=getattr(logging, cfg["ACCESS_LOG_LEVEL"]),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
