"""
Configuration for notion-local.

Settings live in an optional TOML file in the config directory
(``~/.notion-local/notion-local.toml`` unless NOTION_LOCAL_CONFIG_DIR is
set). Everything has a default, so the file is only needed to move the
cache path or tune the retrieval limits. NOTION_DB_PATH always wins for
the cache location.
"""

import os
import platform
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomli_w


CONFIG_FILENAME = "notion-local.toml"
CONFIG_VERSION = 1

DEFAULT_BUSY_TIMEOUT_MS = 5000


def get_config_dir() -> Path:
    """Directory holding the config file and logs."""
    env_dir = os.environ.get("NOTION_LOCAL_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".notion-local"


def default_db_path(system: Optional[str] = None) -> Path:
    """
    Location of the Notion desktop app's cache for a platform.

    Args:
        system: ``platform.system()`` value; detected when omitted

    Linux has no official Notion app; the path matches community builds.
    """
    system = system or platform.system()
    home = Path.home()
    if system == "Darwin":
        return home / "Library" / "Application Support" / "Notion" / "notion.db"
    if system == "Windows":
        app_data = os.environ.get("APPDATA")
        base = Path(app_data) if app_data else home / "AppData" / "Roaming"
        return base / "Notion" / "notion.db"
    return home / ".config" / "Notion" / "notion.db"


@dataclass
class LimitsConfig:
    """Block and text caps for page retrieval."""
    summary_max_blocks: int = 10
    full_max_blocks: int = 100
    summary_text_length: int = 200
    full_text_length: int = 500


@dataclass
class ReaderConfig:
    """Complete notion-local configuration."""
    path: Path
    version: int = CONFIG_VERSION
    db_path: Optional[Path] = None
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    ops_log: bool = True

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def resolve_db_path(self) -> Path:
        """Cache location: NOTION_DB_PATH, then the config file, then the OS default."""
        env_path = os.environ.get("NOTION_DB_PATH")
        if env_path:
            return Path(env_path).expanduser()
        if self.db_path is not None:
            return self.db_path.expanduser()
        return default_db_path()


def load_config(config_dir: Path) -> ReaderConfig:
    """
    Load configuration from a config directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = config_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid config {config_path}: {e}") from e

    version = data.get("config", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    cache = data.get("cache", {})
    limits = data.get("limits", {})
    defaults = LimitsConfig()

    db_path = cache.get("path")
    return ReaderConfig(
        path=config_dir,
        version=version,
        db_path=Path(db_path) if db_path else None,
        busy_timeout_ms=int(cache.get("busy_timeout_ms", DEFAULT_BUSY_TIMEOUT_MS)),
        limits=LimitsConfig(
            summary_max_blocks=int(limits.get("summary_max_blocks", defaults.summary_max_blocks)),
            full_max_blocks=int(limits.get("full_max_blocks", defaults.full_max_blocks)),
            summary_text_length=int(limits.get("summary_text_length", defaults.summary_text_length)),
            full_text_length=int(limits.get("full_text_length", defaults.full_text_length)),
        ),
        ops_log=bool(data.get("logging", {}).get("ops_log", True)),
    )


def save_config(config: ReaderConfig) -> None:
    """
    Save configuration to the config directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    cache: dict = {"busy_timeout_ms": config.busy_timeout_ms}
    if config.db_path is not None:
        cache["path"] = str(config.db_path)

    data = {
        "config": {"version": config.version},
        "cache": cache,
        "limits": {
            "summary_max_blocks": config.limits.summary_max_blocks,
            "full_max_blocks": config.limits.full_max_blocks,
            "summary_text_length": config.limits.summary_text_length,
            "full_text_length": config.limits.full_text_length,
        },
        "logging": {"ops_log": config.ops_log},
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_default_config(config_dir: Optional[Path] = None) -> ReaderConfig:
    """
    Load the config file if present, else return defaults.

    Unlike a writable store, a read-only cache reader never creates
    files on startup; use ``notion-local config --init`` for that.
    """
    config_dir = config_dir or get_config_dir()
    if (config_dir / CONFIG_FILENAME).exists():
        return load_config(config_dir)
    return ReaderConfig(path=config_dir)
