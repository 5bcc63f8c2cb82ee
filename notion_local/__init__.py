"""
notion-local

Offline, read-only access to the Notion desktop app's local cache
(``notion.db``): keyword search, recent pages, page content with
database properties, and page-hierarchy navigation.

Quick Start:
    from notion_local import open_reader

    reader = open_reader()
    for hit in reader.search("meeting", limit=5):
        print(hit.title, hit.url)

CLI Usage:
    notion-local search "meeting"
    notion-local page <page-id> --full
    notion-local mcp

Environment Variables:
    NOTION_DB_PATH           - Override the cache location
    NOTION_LOCAL_CONFIG_DIR  - Override the config directory (~/.notion-local)
    NOTION_LOCAL_VERBOSE     - Set to 1 for debug logging
"""

from .api import Reader, open_reader
from .block_store import BlockStore
from .errors import InvalidArgumentError, NotFoundError, NotionLocalError, StorageError
from .types import canonicalize_id, page_url, strip_id

__version__ = "0.1.0"
__all__ = [
    "Reader",
    "open_reader",
    "BlockStore",
    "NotionLocalError",
    "InvalidArgumentError",
    "NotFoundError",
    "StorageError",
    "canonicalize_id",
    "strip_id",
    "page_url",
]
