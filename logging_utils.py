"""
Logging helpers for Mediastore.

Everything logs to stderr: stdout is owned by the MCP stdio transport when
the server is running.
"""

import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def get_log_level(level_name) -> int:
    """
    Map a level name ("DEBUG", "info", ...) to its numeric value.

    Unknown names fall back to INFO.
    """
    if isinstance(level_name, int):
        return level_name
    level = logging.getLevelName(str(level_name).upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(level="INFO") -> None:
    """Install a single stderr handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(get_log_level(level))

    for handler in root.handlers:
        if getattr(handler, "_mediastore", False):
            return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    handler._mediastore = True
    root.addHandler(handler)
