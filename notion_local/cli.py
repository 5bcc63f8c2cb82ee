"""
CLI interface for the local Notion cache.

Usage:
    notion-local                       # start the MCP stdio server
    notion-local search "meeting notes"
    notion-local page 1a2b3c4d...
    notion-local parents 1a2b3c4d...
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from .api import Reader, open_reader
from .config import get_config_dir, load_or_default_config, save_config
from .errors import NotionLocalError
from .logging_config import configure_quiet_mode, enable_debug_mode

# Set NOTION_LOCAL_VERBOSE=1 to enable debug mode via environment
if os.environ.get("NOTION_LOCAL_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"notion-local {version('notion-local-mcp')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


def _db_callback(value: Optional[Path]):
    # Picked up by ReaderConfig.resolve_db_path()
    if value is not None:
        os.environ["NOTION_DB_PATH"] = str(value)


app = typer.Typer(
    name="notion-local",
    help="Offline, read-only access to the Notion desktop cache.",
    no_args_is_help=False,
    invoke_without_command=True,
    rich_markup_mode=None,
)


def _get_reader() -> Reader:
    """Open the cache, turning failures into a clean CLI error."""
    try:
        return open_reader(load_or_default_config())
    except (NotionLocalError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _emit(result: Any) -> None:
    if isinstance(result, list):
        data = [r.to_dict() for r in result]
    else:
        data = result.to_dict()
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _run(operation) -> None:
    """Run an operation against the cache and print its JSON."""
    reader = _get_reader()
    try:
        _emit(operation(reader))
    except NotionLocalError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        reader.store.close()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    db: Annotated[Optional[Path], typer.Option(
        "--db",
        envvar="NOTION_DB_PATH",
        help="Path to the Notion cache (notion.db)",
        callback=_db_callback,
        is_eager=True,
    )] = None,
):
    """Offline, read-only access to the Notion desktop cache."""
    # No subcommand: behave as the MCP server
    if ctx.invoked_subcommand is None:
        from .mcp import main as mcp_main
        mcp_main()


# -----------------------------------------------------------------------------
# Query commands
# -----------------------------------------------------------------------------

@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Keyword to search for")],
    type: Annotated[str, typer.Option(
        "--type", "-t",
        help="Search 'page' blocks only or 'all' block types",
    )] = "page",
    limit: Annotated[int, typer.Option(
        "--limit", "-n",
        help="Maximum results",
        min=1,
    )] = 20,
):
    """Search pages and blocks by keyword."""
    _run(lambda reader: reader.search(query, scope=type, limit=limit))


@app.command()
def recent(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum pages", min=1)] = 20,
    days: Annotated[int, typer.Option("--days", "-d", help="Look-back window in days", min=0)] = 30,
):
    """List recently edited pages."""
    _run(lambda reader: reader.list_recent(limit=limit, days=days))


@app.command()
def page(
    page_id: Annotated[str, typer.Argument(help="Page id, with or without dashes")],
    depth: Annotated[int, typer.Option("--depth", "-d", help="Levels of nested blocks", min=0)] = 2,
    full: Annotated[bool, typer.Option(
        "--full", "-F",
        help="Full content instead of the summary view",
    )] = False,
    max_blocks: Annotated[Optional[int], typer.Option(
        "--max-blocks",
        help="Maximum blocks in the whole tree",
        min=1,
    )] = None,
):
    """Show a page and its content."""
    _run(lambda reader: reader.get_page(page_id, depth=depth, summary=not full, max_blocks=max_blocks))


@app.command()
def parents(
    page_id: Annotated[str, typer.Argument(help="Page or block id")],
):
    """List ancestors of a page, nearest first."""
    _run(lambda reader: reader.get_parents(page_id))


@app.command()
def children(
    page_id: Annotated[str, typer.Argument(help="Parent page id")],
    depth: Annotated[int, typer.Option("--depth", "-d", help="Levels to traverse", min=0)] = 2,
):
    """List sub-pages of a page as a tree."""
    _run(lambda reader: reader.get_children(page_id, depth=depth))


# -----------------------------------------------------------------------------
# Server and configuration
# -----------------------------------------------------------------------------

@app.command()
def mcp():
    """Start MCP stdio server for AI agent integration."""
    from .mcp import main as mcp_main
    mcp_main()


@app.command()
def config(
    init: Annotated[bool, typer.Option(
        "--init",
        help="Write a config file with the default settings",
    )] = False,
):
    """Show the resolved configuration."""
    cfg = load_or_default_config(get_config_dir())
    if init:
        if cfg.exists():
            typer.echo(f"Config already exists: {cfg.config_path}", err=True)
            raise typer.Exit(1)
        save_config(cfg)
        typer.echo(f"Wrote {cfg.config_path}")
        return

    db_path = cfg.resolve_db_path()
    info = {
        "config": str(cfg.config_path) if cfg.exists() else None,
        "db_path": str(db_path),
        "db_exists": db_path.exists(),
        "busy_timeout_ms": cfg.busy_timeout_ms,
        "limits": {
            "summary_max_blocks": cfg.limits.summary_max_blocks,
            "full_max_blocks": cfg.limits.full_max_blocks,
            "summary_text_length": cfg.limits.summary_text_length,
            "full_text_length": cfg.limits.full_text_length,
        },
    }
    typer.echo(json.dumps(info, indent=2))


# -----------------------------------------------------------------------------

def _cache_path_for_log() -> str:
    try:
        return str(load_or_default_config().resolve_db_path())
    except (OSError, ValueError) as e:
        return f"<unresolved: {e}>"


def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="notion-local CLI", details={
            "cache": _cache_path_for_log(),
            "argv": " ".join(sys.argv[1:]),
        })
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
