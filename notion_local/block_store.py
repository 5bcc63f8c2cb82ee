"""
Read-only access to the Notion desktop cache (SQLite).

The cache is owned by the Notion app, which may hold write locks while it
syncs. This store never writes: the connection is opened with
``mode=ro`` and waits out lock contention via ``busy_timeout``.

Every query filters on ``alive = 1``; deleted blocks are invisible.
Identifier lookups accept both dashed and undashed forms.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional, Sequence

from .config import DEFAULT_BUSY_TIMEOUT_MS
from .errors import StorageError
from .types import BlockRecord, CollectionRecord, strip_id

logger = logging.getLogger(__name__)


class BlockStore:
    """
    Read-only handle on the ``block`` and ``collection`` tables.

    Opened once per process and shared by all operations. Safe to call
    from any thread since nothing is ever written.
    """

    def __init__(self, db_path: Path, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS):
        """
        Args:
            db_path: Path to the Notion ``notion.db`` file
            busy_timeout_ms: How long to wait on a locked database

        Raises:
            StorageError: If the file is missing or cannot be opened
        """
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._busy_timeout_ms = busy_timeout_ms
        self._open()

    def _open(self) -> None:
        """Open the read-only connection."""
        if not self._db_path.exists():
            raise StorageError(f"Notion cache not found: {self._db_path}")
        uri = self._db_path.resolve().as_uri() + "?mode=ro"
        try:
            self._conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            # Wait for the Notion app's locks instead of failing immediately
            self._conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open Notion cache {self._db_path}: {e}") from e
        logger.debug("Opened Notion cache %s (read-only)", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        if self._conn is None:
            raise StorageError("Notion cache is closed")
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Query failed: {e}") from e

    def _query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        rows = self._query(sql, params)
        return rows[0] if rows else None

    @staticmethod
    def _to_block(row: sqlite3.Row) -> BlockRecord:
        keys = row.keys()
        return BlockRecord(
            id=row["id"],
            type=row["type"],
            properties=row["properties"] if "properties" in keys else None,
            parent_id=row["parent_id"] if "parent_id" in keys else None,
            created_time=row["created_time"] if "created_time" in keys else None,
            last_edited_time=row["last_edited_time"] if "last_edited_time" in keys else None,
            collection_id=row["collection_id"] if "collection_id" in keys else None,
            parent_table=row["parent_table"] if "parent_table" in keys else None,
        )

    # -------------------------------------------------------------------------
    # Blocks
    # -------------------------------------------------------------------------

    def get_block(self, id: str) -> Optional[BlockRecord]:
        """
        Resolve a block by id, dashed or not.

        Returns:
            BlockRecord with collection fields populated, or None if no
            live block matches
        """
        row = self._query_one("""
            SELECT id, type, properties, parent_id, created_time,
                   last_edited_time, collection_id, parent_table
            FROM block
            WHERE (id = ? OR REPLACE(id, '-', '') = ?)
              AND alive = 1
            LIMIT 1
        """, (id, strip_id(id)))
        return self._to_block(row) if row is not None else None

    def children(self, parent_id: str) -> list[BlockRecord]:
        """Live direct children of a block, oldest first."""
        rows = self._query("""
            SELECT id, type, properties, parent_id, created_time, last_edited_time
            FROM block
            WHERE parent_id = ?
              AND alive = 1
            ORDER BY created_time ASC
        """, (parent_id,))
        return [self._to_block(row) for row in rows]

    def child_pages(self, parent_id: str) -> list[BlockRecord]:
        """Live direct children of type page, oldest first."""
        rows = self._query("""
            SELECT id, type, properties, parent_id, created_time, last_edited_time
            FROM block
            WHERE parent_id = ?
              AND type = 'page'
              AND alive = 1
            ORDER BY created_time ASC
        """, (parent_id,))
        return [self._to_block(row) for row in rows]

    def count_descendants(self, root_id: str) -> int:
        """Count every live block below root_id.

        UNION (not UNION ALL) drops revisited ids, so a cyclic parent
        chain still terminates. The root itself is never counted, even
        when a cycle leads back to it.
        """
        row = self._query_one("""
            WITH RECURSIVE descendants(id) AS (
                SELECT id FROM block
                WHERE parent_id = ? AND alive = 1 AND id != ?
                UNION
                SELECT b.id FROM block b
                JOIN descendants d ON b.parent_id = d.id
                WHERE b.alive = 1
                  AND b.id != ?
            )
            SELECT COUNT(*) FROM descendants
        """, (root_id, root_id, root_id))
        return row[0] if row is not None else 0

    def search(self, query: str, pages_only: bool, limit: int) -> list[BlockRecord]:
        """
        Substring-match the raw properties JSON.

        Args:
            query: Text to look for (LIKE pattern ``%query%``)
            pages_only: Restrict to page blocks
            limit: Maximum rows

        Returns:
            Matches by most recent edit; with pages_only=False pages
            sort ahead of other block types.
        """
        pattern = f"%{query}%"
        if pages_only:
            rows = self._query("""
                SELECT id, type, properties, parent_id, created_time, last_edited_time
                FROM block
                WHERE alive = 1
                  AND type = 'page'
                  AND properties LIKE ?
                ORDER BY last_edited_time DESC
                LIMIT ?
            """, (pattern, limit))
        else:
            rows = self._query("""
                SELECT id, type, properties, parent_id, created_time, last_edited_time
                FROM block
                WHERE alive = 1
                  AND properties LIKE ?
                ORDER BY
                  CASE WHEN type = 'page' THEN 0 ELSE 1 END,
                  last_edited_time DESC
                LIMIT ?
            """, (pattern, limit))
        return [self._to_block(row) for row in rows]

    def recent_pages(self, since_ms: int, limit: int) -> list[BlockRecord]:
        """Live pages edited strictly after since_ms, newest first."""
        rows = self._query("""
            SELECT id, type, properties, parent_id, created_time, last_edited_time
            FROM block
            WHERE type = 'page'
              AND alive = 1
              AND last_edited_time > ?
            ORDER BY last_edited_time DESC
            LIMIT ?
        """, (since_ms, limit))
        return [self._to_block(row) for row in rows]

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def get_collection(self, id: str) -> Optional[CollectionRecord]:
        """Resolve a live collection by id, dashed or not."""
        row = self._query_one("""
            SELECT id, name, schema, description, parent_id
            FROM collection
            WHERE (id = ? OR REPLACE(id, '-', '') = ?)
              AND alive = 1
            LIMIT 1
        """, (id, strip_id(id)))
        if row is None:
            return None
        return CollectionRecord(
            id=row["id"],
            name=row["name"],
            schema=row["schema"],
            description=row["description"],
            parent_id=row["parent_id"],
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()
