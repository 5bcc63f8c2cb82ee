"""
Error types and error logging for notion-local.

Operations raise the typed errors below; the tool boundary converts them
into ``{"error": ...}`` results. Full stack traces go to a log file while
users see a clean message.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional


class NotionLocalError(Exception):
    """Base class for all notion-local errors."""


class InvalidArgumentError(NotionLocalError, ValueError):
    """A required identifier or query string was empty or malformed."""


class NotFoundError(NotionLocalError, LookupError):
    """An identifier did not resolve to a live block."""


class StorageError(NotionLocalError):
    """The cache database is missing, locked too long, or returned garbage."""


class UnknownToolError(NotionLocalError):
    """A tool call named an operation that does not exist."""


ERROR_LOG_FILENAME = "notion-local-errors.log"


def _error_log_path() -> Path:
    """Error log lives next to the config file."""
    config_dir = os.environ.get("NOTION_LOCAL_CONFIG_DIR")
    base = Path(config_dir) if config_dir else Path.home() / ".notion-local"
    return base / ERROR_LOG_FILENAME


def _format_entry(exc: BaseException, context: str, details: Mapping[str, object]) -> str:
    stamp = datetime.now(timezone.utc).isoformat()
    header = f"[{stamp}] {context}".rstrip()
    lines = ["=" * 60, header]
    # Cache path first, from details or else the environment
    cache = details.get("cache") or os.environ.get("NOTION_DB_PATH")
    if cache:
        lines.append(f"cache: {cache}")
    lines.extend(f"{key}: {value}" for key, value in details.items() if key != "cache")
    lines.append("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return "\n".join(lines)


def log_exception(
    exc: BaseException,
    context: str = "",
    details: Optional[Mapping[str, object]] = None,
) -> Path:
    """
    Append an unexpected failure, with traceback, to the error log.

    Args:
        exc: The exception that occurred
        context: Where it happened, e.g. ``"notion-local CLI"`` or
            ``"tool notion_local_get_page"``
        details: Extra ``key: value`` lines, e.g. the cache path or the
            tool arguments

    Returns:
        Path to the error log file (returned even if it could not be written)
    """
    log_path = _error_log_path()
    entry = _format_entry(exc, context, details or {})
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write("\n" + entry)
    except OSError:
        pass  # The caller still reports the error to the user
    return log_path
