"""
Logging configuration for notion-local.

stdout carries the MCP protocol, so nothing here ever logs to it: debug
output goes to stderr and the operations log goes to a file in the
config directory.
"""

import logging
import os
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

APP_LOGGER = "notion_local"
OPS_LOG_FILENAME = "notion-local-ops.log"

# Third-party loggers that are chatty at INFO during stdio serving
_LIBRARY_LOGGERS = ("mcp", "httpx")


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose library output.

    Args:
        quiet: If True, suppress verbose output. If False, show everything.
    """
    warnings.filterwarnings("ignore" if quiet else "default")
    level = logging.WARNING if quiet else logging.NOTSET
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def _has_stderr_handler(logger: logging.Logger) -> bool:
    return any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in logger.handlers
    )


def enable_debug_mode():
    """Send DEBUG records from notion-local and the MCP SDK to stderr."""
    configure_quiet_mode(quiet=False)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    if not _has_stderr_handler(root_logger):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))
        root_logger.addHandler(handler)

    for name in (APP_LOGGER, "mcp"):
        logging.getLogger(name).setLevel(logging.DEBUG)


def configure_ops_log(log_dir) -> Optional[RotatingFileHandler]:
    """Attach the rotating operations log (1MB, 3 backups) to notion-local.

    Records which cache was opened, truncated pages, parent cycles and
    tool failures. Calling it again for the same directory is a no-op
    and returns None.
    """
    log_file = Path(log_dir) / OPS_LOG_FILENAME
    app_logger = logging.getLogger(APP_LOGGER)
    for existing in app_logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == os.path.abspath(log_file):
            return None

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(str(log_file), maxBytes=1_000_000, backupCount=3)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    app_logger.addHandler(handler)

    # INFO must reach the file even while quiet mode holds the console at WARNING
    if app_logger.level == logging.NOTSET or app_logger.level > logging.INFO:
        app_logger.setLevel(logging.INFO)
    return handler
