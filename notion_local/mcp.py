"""
MCP stdio server for notion-local: offline read access to Notion.

Exposes the Reader operations as MCP tools so local AI agents (Claude
Desktop, Claude Code, etc.) can search and read Notion pages from the
desktop app's cache, with no API calls or rate limits.

Usage:
    notion-local mcp                          # stdio server (via CLI)
    claude mcp add notion-local -- notion-local mcp

The cache handle is opened once in the server lifespan and handed to
every tool through the request context. Each tool returns the JSON of
its result, or ``{"error": ...}`` with ``isError`` set.
"""

import json
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, Any, AsyncIterator, Callable, Literal, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent, ToolAnnotations
from pydantic import Field

from .api import Reader, open_reader
from .config import load_or_default_config
from .errors import NotionLocalError, UnknownToolError, log_exception
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool routing
# ---------------------------------------------------------------------------

def _to_jsonable(result: Any) -> Any:
    if isinstance(result, list):
        return [_to_jsonable(r) for r in result]
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


def _json_result(result: Any) -> CallToolResult:
    text = json.dumps(_to_jsonable(result), indent=2, ensure_ascii=False)
    return CallToolResult(content=[TextContent(type="text", text=text)])


def _error_result(message: str) -> CallToolResult:
    text = json.dumps({"error": message}, ensure_ascii=False)
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=True)


_OPERATIONS: dict[str, Callable[[Reader, dict], Any]] = {
    "notion_local_search": lambda reader, args: reader.search(
        args.get("query", ""),
        scope=args.get("type", "page"),
        limit=args.get("limit", 20),
    ),
    "notion_local_recent": lambda reader, args: reader.list_recent(
        limit=args.get("limit", 20),
        days=args.get("days", 30),
    ),
    "notion_local_get_page": lambda reader, args: reader.get_page(
        args.get("pageId", ""),
        depth=args.get("depth", 2),
        summary=args.get("summary", True),
        max_blocks=args.get("maxBlocks"),
    ),
    "notion_local_parent": lambda reader, args: reader.get_parents(
        args.get("pageId", ""),
    ),
    "notion_local_children": lambda reader, args: reader.get_children(
        args.get("pageId", ""),
        depth=args.get("depth", 2),
    ),
}

TOOL_NAMES = tuple(_OPERATIONS)


def call_tool(reader: Reader, name: str, arguments: Optional[dict] = None) -> CallToolResult:
    """
    Run a tool by name with wire-format arguments.

    Every failure, including an unknown tool name, comes back as an
    error result rather than an exception.
    """
    try:
        operation = _OPERATIONS.get(name)
        if operation is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        result = operation(reader, arguments or {})
    except NotionLocalError as e:
        logger.debug("Tool %s failed: %s", name, e)
        return _error_result(str(e))
    except Exception as e:
        logger.exception("Tool %s failed unexpectedly", name)
        log_exception(e, context=f"tool {name}", details={
            "cache": reader.store.db_path,
            "arguments": json.dumps(arguments or {}, default=str),
        })
        return _error_result(str(e))
    return _json_result(result)


# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

@dataclass
class ServerState:
    """Lifespan state: the shared Reader, or why it could not be opened."""
    reader: Optional[Reader] = None
    error: Optional[str] = None


@asynccontextmanager
async def _lifespan(server: FastMCP) -> AsyncIterator[ServerState]:
    config = load_or_default_config()
    if config.ops_log:
        try:
            configure_ops_log(config.path)
        except OSError as e:
            logger.warning("Ops log disabled: %s", e)

    try:
        state = ServerState(reader=open_reader(config))
    except NotionLocalError as e:
        # Keep serving so tool calls can report the problem
        logger.error("Notion cache unavailable: %s", e)
        state = ServerState(error=str(e))

    try:
        yield state
    finally:
        if state.reader is not None:
            state.reader.store.close()


mcp = FastMCP(
    "notion-local",
    instructions=(
        "Offline, read-only access to Notion pages from the desktop app's local cache. "
        "Search, list recent pages, read page content and database properties, "
        "and navigate the page hierarchy without API limits."
    ),
    lifespan=_lifespan,
)


def _run(ctx: Context, name: str, arguments: dict) -> CallToolResult:
    state: ServerState = ctx.request_context.lifespan_context
    if state.reader is None:
        return _error_result(state.error or "Notion cache unavailable")
    return call_tool(state.reader, name, arguments)


_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "PREFERRED for searching Notion. Search pages and blocks from the local cache by keyword. "
        "Fast, offline, no API limits. Use this instead of the Notion API for search."
    ),
    annotations=_READ_ONLY,
)
async def notion_local_search(
    ctx: Context,
    query: Annotated[str, Field(
        description="Search keyword to find in page titles and content.",
    )],
    type: Annotated[Literal["page", "all"], Field(
        description="Search only pages or all block types (default: page).",
    )] = "page",
    limit: Annotated[int, Field(
        description="Maximum number of results to return (default: 20).",
        ge=1,
    )] = 20,
) -> CallToolResult:
    """Search the local cache."""
    return _run(ctx, "notion_local_search", {"query": query, "type": type, "limit": limit})


@mcp.tool(
    description=(
        "PREFERRED for listing recent Notion pages. Get recently modified pages from the local cache. "
        "Fast, offline, no API limits."
    ),
    annotations=_READ_ONLY,
)
async def notion_local_recent(
    ctx: Context,
    limit: Annotated[int, Field(
        description="Maximum number of pages to return (default: 20).",
        ge=1,
    )] = 20,
    days: Annotated[int, Field(
        description="Only include pages modified within this many days (default: 30).",
        ge=0,
    )] = 30,
) -> CallToolResult:
    """List recently edited pages."""
    return _run(ctx, "notion_local_recent", {"limit": limit, "days": days})


@mcp.tool(
    description=(
        "PREFERRED for reading Notion pages. Get a page and its blocks. "
        "Summary mode (default) returns a short overview with the total block count; "
        "set summary=false for full content. Database pages also return schema and properties."
    ),
    annotations=_READ_ONLY,
)
async def notion_local_get_page(
    ctx: Context,
    pageId: Annotated[str, Field(
        description="The UUID of the page to retrieve (with or without dashes).",
    )],
    depth: Annotated[int, Field(
        description="How many levels of nested blocks to include (default: 2).",
        ge=0,
    )] = 2,
    summary: Annotated[bool, Field(
        description="Summary mode: at most 10 blocks, text cut to 200 chars (default: true).",
    )] = True,
    maxBlocks: Annotated[Optional[int], Field(
        description="Maximum blocks in the whole tree (default: 10 in summary mode, else 100).",
        ge=1,
    )] = None,
) -> CallToolResult:
    """Retrieve a page with bounded content."""
    return _run(ctx, "notion_local_get_page", {
        "pageId": pageId, "depth": depth, "summary": summary, "maxBlocks": maxBlocks,
    })


@mcp.tool(
    description="Get all ancestor pages of a Notion page up to the root, nearest first.",
    annotations=_READ_ONLY,
)
async def notion_local_parent(
    ctx: Context,
    pageId: Annotated[str, Field(description="The UUID of the page.")],
) -> CallToolResult:
    """List ancestors."""
    return _run(ctx, "notion_local_parent", {"pageId": pageId})


@mcp.tool(
    description="Get all child pages under a Notion page as a nested tree.",
    annotations=_READ_ONLY,
)
async def notion_local_children(
    ctx: Context,
    pageId: Annotated[str, Field(description="The UUID of the parent page.")],
    depth: Annotated[int, Field(
        description="How many levels deep to traverse (default: 2).",
        ge=0,
    )] = 2,
) -> CallToolResult:
    """List sub-pages."""
    return _run(ctx, "notion_local_children", {"pageId": pageId, "depth": depth})


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP stdio server."""
    import signal
    # anyio's stdin reader shields the blocking readline from cancellation,
    # so a plain KeyboardInterrupt never lands; exit directly instead.
    signal.signal(signal.SIGINT, lambda *_: os._exit(130))

    if os.environ.get("NOTION_LOCAL_VERBOSE") == "1":
        enable_debug_mode()
    else:
        configure_quiet_mode(quiet=True)

    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
