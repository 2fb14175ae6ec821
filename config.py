"""
Configuration for Mediastore.

Resolution order (later wins):
1. DEFAULT_CONFIG below
2. config.json next to the server (optional)
3. Environment variables:
     MEDIASTORE_DB_PATH                 -> paths.db_path
     MEDIASTORE_AUTO_APPLY_MIGRATIONS   -> migrations.auto_apply (0/1)
     MEDIASTORE_LOG_LEVEL               -> logging.level
"""

import copy
import json
import os
from pathlib import Path
from typing import Optional

CONFIG_PATH = Path(__file__).parent / "config.json"

DEFAULT_CONFIG = {
    "paths": {
        "db_path": "~/.mediastore/mediastore.db",
    },
    "migrations": {
        # Apply pending migrations at server startup. With 0 the server
        # refuses to start while anything is pending (good for CI).
        "auto_apply": True,
    },
    "logging": {
        "level": "INFO",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into a copy of base, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None, environ: Optional[dict] = None) -> dict:
    """
    Load configuration.

    Args:
        path: JSON config file (defaults to CONFIG_PATH; missing file is fine)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Config dict with the same shape as DEFAULT_CONFIG
    """
    if path is None:
        path = CONFIG_PATH
    if environ is None:
        environ = os.environ

    config = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(path)
    if path.exists():
        with open(path, encoding="utf-8") as f:
            config = _deep_merge(config, json.load(f))

    if environ.get("MEDIASTORE_DB_PATH"):
        config["paths"]["db_path"] = environ["MEDIASTORE_DB_PATH"]
    if "MEDIASTORE_AUTO_APPLY_MIGRATIONS" in environ:
        config["migrations"]["auto_apply"] = environ["MEDIASTORE_AUTO_APPLY_MIGRATIONS"] == "1"
    if environ.get("MEDIASTORE_LOG_LEVEL"):
        config["logging"]["level"] = environ["MEDIASTORE_LOG_LEVEL"]

    return config


def resolve_db_path(config: dict) -> Path:
    """Expand ~ in the configured database path."""
    return Path(os.path.expanduser(config["paths"]["db_path"]))
