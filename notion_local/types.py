"""
Data types for the local Notion cache.

Row records mirror the ``block`` and ``collection`` tables; result types
are the read-only snapshots returned by the Reader. Every result type
serializes to the camelCase wire form with ``to_dict()``.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


NOTION_URL_PREFIX = "notion://www.notion.so/"

# Offsets where a 32-hex-digit id gets its dashes (8-4-4-4-12)
_DASH_OFFSETS = (8, 12, 16, 20)


def strip_id(id: str) -> str:
    """Remove all dashes from an identifier."""
    return id.replace("-", "")


def canonicalize_id(id: str) -> str:
    """Return the dashed (UUID-style) form of an identifier.

    Dashes are re-inserted from the stripped form, so an id that is
    already in 8-4-4-4-12 form comes back unchanged and
    ``canonicalize_id(strip_id(x)) == canonicalize_id(x)`` for any x.
    """
    bare = strip_id(id)
    bounds = (0, *(o for o in _DASH_OFFSETS if o < len(bare)), len(bare))
    return "-".join(bare[start:end] for start, end in zip(bounds, bounds[1:]))


def page_url(id: str) -> str:
    """Build the desktop-app URL for a page id."""
    return f"{NOTION_URL_PREFIX}{strip_id(id)}"


# ---------------------------------------------------------------------------
# Storage rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlockRecord:
    """
    A row from the ``block`` table.

    ``collection_id`` and ``parent_table`` are only selected by the
    queries that need them (page resolution); they default to None.
    """
    id: str
    type: str
    properties: Optional[str] = None
    parent_id: Optional[str] = None
    created_time: Optional[int] = None
    last_edited_time: Optional[int] = None
    collection_id: Optional[str] = None
    parent_table: Optional[str] = None

    @property
    def is_page(self) -> bool:
        return self.type == "page"

    @property
    def database_id(self) -> Optional[str]:
        """Collection this block belongs to, if any."""
        if self.collection_id:
            return self.collection_id
        if self.parent_table == "collection":
            return self.parent_id
        return None


@dataclass(frozen=True)
class CollectionRecord:
    """A row from the ``collection`` table (a Notion database)."""
    id: str
    name: Optional[str] = None
    schema: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchResult:
    id: str
    title: str
    type: str
    last_edited: str
    url: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "lastEdited": self.last_edited,
            "url": self.url,
        }


@dataclass(frozen=True)
class RecentPage:
    id: str
    title: str
    last_edited: str
    url: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "lastEdited": self.last_edited,
            "url": self.url,
        }


@dataclass
class BlockContent:
    """One block of page content; ``children`` is empty at the depth limit."""
    id: str
    type: str
    text: str
    children: list["BlockContent"] = field(default_factory=list)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"id": self.id, "type": self.type, "text": self.text}
        if self.children:
            d["children"] = [c.to_dict() for c in self.children]
        return d


@dataclass(frozen=True)
class DatabaseInfo:
    """Collection metadata attached to pages that live in a database."""
    collection_id: str
    collection_name: str
    schema: Optional[dict[str, dict]]

    def to_dict(self) -> dict:
        return {
            "collectionId": self.collection_id,
            "collectionName": self.collection_name,
            "schema": self.schema,
        }


@dataclass
class PageContent:
    """
    A page with its bounded content tree.

    Attributes:
        summary: True when built in summary mode
        total_blocks: True descendant count (summary mode only)
        shown_blocks: Blocks actually included in ``content``
        hint: Set when ``content`` omits blocks that exist
        database: Collection info for database pages
        properties: Schema-decoded properties for database pages
    """
    id: str
    title: str
    type: str
    last_edited: str
    url: str
    content: list[BlockContent] = field(default_factory=list)
    summary: bool = False
    total_blocks: Optional[int] = None
    shown_blocks: int = 0
    hint: Optional[str] = None
    database: Optional[DatabaseInfo] = None
    properties: Optional[dict[str, dict]] = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "lastEdited": self.last_edited,
            "url": self.url,
            "content": [c.to_dict() for c in self.content],
        }
        if self.summary:
            d["summary"] = True
            d["totalBlocks"] = self.total_blocks
            d["shownBlocks"] = self.shown_blocks
            if self.hint:
                d["hint"] = self.hint
        if self.database is not None:
            d["database"] = self.database.to_dict()
            d["properties"] = self.properties
        return d


@dataclass
class HierarchyNode:
    """An ancestor or descendant page in a hierarchy listing."""
    id: str
    title: str
    type: str
    url: str
    children: list["HierarchyNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "url": self.url,
        }
        if self.children:
            d["children"] = [c.to_dict() for c in self.children]
        return d
