"""
Core read API over the local Notion cache.

- search(): substring match over block properties
- list_recent(): recently edited pages
- get_page(): a page with a bounded tree of its content
- get_parents() / get_children(): walk the page hierarchy
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .block_store import BlockStore
from .config import LimitsConfig, ReaderConfig, load_or_default_config
from .errors import InvalidArgumentError, NotFoundError
from .properties import format_schema_for_display, parse_schema, project_properties
from .richtext import extract_all_text, extract_rich_text_json, extract_title, format_timestamp, truncate
from .types import (
    BlockContent,
    BlockRecord,
    DatabaseInfo,
    HierarchyNode,
    PageContent,
    RecentPage,
    SearchResult,
    page_url,
    strip_id,
)

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000

SEARCH_SCOPES = ("page", "all")


def _require(value: Optional[str], name: str) -> str:
    """Reject missing or blank string arguments."""
    if not value or not value.strip():
        raise InvalidArgumentError(f"{name} is required")
    return value


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _BlockBudget:
    """Block count shared across one page's whole content tree."""
    limit: int
    used: int = 0

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    def take(self) -> None:
        self.used += 1


class Reader:
    """
    Read-only query engine over a BlockStore.

    Holds no state between calls besides the store handle, so calls can
    interleave freely.
    """

    def __init__(self, store: BlockStore, limits: Optional[LimitsConfig] = None):
        """
        Args:
            store: Open cache handle, shared for the process lifetime
            limits: Block/text caps for get_page (defaults if omitted)
        """
        self._store = store
        self._limits = limits or LimitsConfig()

    @property
    def store(self) -> BlockStore:
        return self._store

    # -------------------------------------------------------------------------
    # Search and recency
    # -------------------------------------------------------------------------

    def search(self, query: str, scope: str = "page", limit: int = 20) -> list[SearchResult]:
        """
        Find blocks whose properties contain the query text.

        Args:
            query: Keyword; matched anywhere in the stored properties JSON
            scope: "page" for pages only, "all" for every block type
                (pages still sort first)
            limit: Maximum results

        Returns:
            Results ordered by most recent edit. Blocks without a title
            are labelled with their type, e.g. ``[text]``.
        """
        _require(query, "query")
        if scope not in SEARCH_SCOPES:
            raise InvalidArgumentError(f"scope must be one of {', '.join(SEARCH_SCOPES)}: {scope!r}")

        rows = self._store.search(query, pages_only=(scope == "page"), limit=limit)
        logger.debug("search %r scope=%s limit=%d: %d rows", query, scope, limit, len(rows))

        return [
            SearchResult(
                id=row.id,
                title=extract_title(row.properties) or f"[{row.type}]",
                type=row.type,
                last_edited=format_timestamp(row.last_edited_time),
                url=page_url(row.id) if row.is_page else "",
            )
            for row in rows
        ]

    def list_recent(self, limit: int = 20, days: int = 30) -> list[RecentPage]:
        """
        Pages edited within the last ``days`` days, newest first.

        Untitled pages are dropped after the limit is applied, so fewer
        than ``limit`` pages may come back even when more exist.
        """
        cutoff = _now_ms() - days * DAY_MS
        rows = self._store.recent_pages(cutoff, limit)
        logger.debug("recent limit=%d days=%d: %d rows", limit, days, len(rows))

        pages = []
        for row in rows:
            title = extract_title(row.properties)
            if not title:
                continue
            pages.append(RecentPage(
                id=row.id,
                title=title,
                last_edited=format_timestamp(row.last_edited_time),
                url=page_url(row.id),
            ))
        return pages

    # -------------------------------------------------------------------------
    # Page content
    # -------------------------------------------------------------------------

    def _collect_blocks(
        self,
        parent_id: str,
        level: int,
        max_depth: int,
        budget: _BlockBudget,
        text_length: int,
    ) -> list[BlockContent]:
        """Depth-first content tree under parent_id, bounded by depth and budget."""
        if level >= max_depth or budget.exhausted:
            return []

        blocks = []
        for row in self._store.children(parent_id):
            if budget.exhausted:
                break
            budget.take()
            block = BlockContent(
                id=row.id,
                type=row.type,
                text=truncate(extract_all_text(row.properties), text_length),
            )
            block.children = self._collect_blocks(row.id, level + 1, max_depth, budget, text_length)
            blocks.append(block)
        return blocks

    def _database_info(self, page: BlockRecord, result: PageContent) -> None:
        """Attach collection schema and decoded properties for database pages."""
        collection_id = page.database_id
        if not collection_id:
            return
        collection = self._store.get_collection(collection_id)
        if collection is None:
            logger.debug("Collection %s for page %s not in cache", collection_id, page.id)
            return

        schema = parse_schema(collection.schema)
        result.database = DatabaseInfo(
            collection_id=collection.id,
            collection_name=extract_rich_text_json(collection.name),
            schema=format_schema_for_display(schema),
        )
        result.properties = project_properties(page.properties, schema)

    def get_page(
        self,
        page_id: str,
        depth: int = 2,
        summary: bool = True,
        max_blocks: Optional[int] = None,
    ) -> PageContent:
        """
        Retrieve a page and a bounded tree of its blocks.

        Args:
            page_id: Page id, with or without dashes
            depth: Levels of nested blocks to include
            summary: Summary mode: small block cap, short text, and a
                count of all blocks so callers know what was left out
            max_blocks: Override the block cap for the whole tree

        Raises:
            InvalidArgumentError: If page_id is empty
            NotFoundError: If no live block has this id
        """
        _require(page_id, "pageId")

        page = self._store.get_block(page_id)
        if page is None:
            raise NotFoundError(f"Page not found: {page_id}")

        limits = self._limits
        if max_blocks is None:
            max_blocks = limits.summary_max_blocks if summary else limits.full_max_blocks
        text_length = limits.summary_text_length if summary else limits.full_text_length

        budget = _BlockBudget(limit=max_blocks)
        content = self._collect_blocks(page.id, 0, depth, budget, text_length)

        result = PageContent(
            id=page.id,
            title=extract_title(page.properties),
            type=page.type,
            last_edited=format_timestamp(page.last_edited_time),
            url=page_url(page.id),
            content=content,
            shown_blocks=budget.used,
        )

        if summary:
            total = self._store.count_descendants(page.id)
            result.summary = True
            result.total_blocks = total
            if budget.used < total:
                result.hint = (
                    f"Showing {budget.used} of {total} blocks. "
                    "Set summary=false or raise maxBlocks/depth to see more."
                )
                logger.info("Page %s truncated: %d of %d blocks", page.id, budget.used, total)

        self._database_info(page, result)
        return result

    # -------------------------------------------------------------------------
    # Hierarchy
    # -------------------------------------------------------------------------

    def get_parents(self, page_id: str) -> list[HierarchyNode]:
        """
        Ancestors of a block, immediate parent first and root last.

        Stops at a root, at a parent missing from the cache, or at the
        first id seen twice (a corrupted, cyclic parent chain).
        """
        _require(page_id, "pageId")

        ancestors: list[HierarchyNode] = []
        visited: set[str] = set()
        current_id: Optional[str] = page_id
        is_start = True

        while current_id:
            key = strip_id(current_id)
            if key in visited:
                logger.warning("Parent cycle at %s while walking up from %s", current_id, page_id)
                break
            visited.add(key)

            block = self._store.get_block(current_id)
            if block is None:
                break

            if not is_start:
                ancestors.append(HierarchyNode(
                    id=block.id,
                    title=extract_title(block.properties),
                    type=block.type,
                    url=page_url(block.id) if block.is_page else "",
                ))
            is_start = False
            current_id = block.parent_id

        return ancestors

    def _child_pages(self, parent_id: str, level: int, max_depth: int) -> list[HierarchyNode]:
        if level >= max_depth:
            return []
        nodes = []
        for row in self._store.child_pages(parent_id):
            node = HierarchyNode(
                id=row.id,
                title=extract_title(row.properties),
                type=row.type,
                url=page_url(row.id),
            )
            node.children = self._child_pages(row.id, level + 1, max_depth)
            nodes.append(node)
        return nodes

    def get_children(self, page_id: str, depth: int = 2) -> list[HierarchyNode]:
        """
        Sub-pages of a page as a nested forest, ``depth`` levels deep.

        Only page blocks are listed; text and other content blocks are
        skipped along with anything beneath them.
        """
        _require(page_id, "pageId")

        page = self._store.get_block(page_id)
        if page is None:
            return []
        return self._child_pages(page.id, 0, depth)


def open_reader(config: Optional[ReaderConfig] = None) -> Reader:
    """
    Open the cache named by config (or the default config) for reading.

    Raises:
        StorageError: If the cache file is missing or unreadable
    """
    config = config or load_or_default_config()
    db_path = config.resolve_db_path()
    logger.info("Reading Notion cache at %s", db_path)
    store = BlockStore(db_path, busy_timeout_ms=config.busy_timeout_ms)
    return Reader(store, limits=config.limits)
