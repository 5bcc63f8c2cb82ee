"""
Shared pytest fixtures for notion-local tests.

Builds small SQLite files shaped like the Notion desktop cache, so the
real BlockStore and Reader run against real SQL.
"""

import json
import sqlite3
import time
from pathlib import Path
from typing import Any, Optional

import pytest

DAY_MS = 24 * 60 * 60 * 1000


def make_id(n: int) -> str:
    """Deterministic dashed UUID for test block n."""
    return f"{n:08x}-0000-4000-8000-{n:012x}"


def title(text: str, **extra: Any) -> str:
    """Properties JSON with a plain title."""
    props: dict[str, Any] = {"title": [[text]]}
    props.update(extra)
    return json.dumps(props)


class NotionDbBuilder:
    """Writes a minimal ``block``/``collection`` schema and rows."""

    def __init__(self, path: Path):
        self.path = path
        self.now_ms = int(time.time() * 1000)
        self._conn = sqlite3.connect(str(path))
        self._conn.executescript("""
            CREATE TABLE block (
                id TEXT PRIMARY KEY,
                type TEXT,
                properties TEXT,
                parent_id TEXT,
                parent_table TEXT,
                collection_id TEXT,
                created_time INTEGER,
                last_edited_time INTEGER,
                alive INTEGER DEFAULT 1
            );
            CREATE TABLE collection (
                id TEXT PRIMARY KEY,
                name TEXT,
                schema TEXT,
                description TEXT,
                parent_id TEXT,
                alive INTEGER DEFAULT 1
            );
        """)
        self._created = 0

    def block(
        self,
        id: str,
        type: str = "text",
        properties: Optional[str] = None,
        parent_id: Optional[str] = None,
        parent_table: Optional[str] = "block",
        collection_id: Optional[str] = None,
        edited_days_ago: Optional[float] = 1,
        alive: bool = True,
    ) -> str:
        # Insertion order doubles as creation order
        self._created += 1
        edited = None if edited_days_ago is None else int(self.now_ms - edited_days_ago * DAY_MS)
        self._conn.execute(
            "INSERT INTO block VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (id, type, properties, parent_id, parent_table, collection_id,
             1_600_000_000_000 + self._created, edited, 1 if alive else 0),
        )
        return id

    def page(self, id: str, text: str, parent_id: Optional[str] = None, **kwargs) -> str:
        return self.block(id, "page", title(text), parent_id, **kwargs)

    def text(self, id: str, text: str, parent_id: str, **kwargs) -> str:
        return self.block(id, "text", title(text), parent_id, **kwargs)

    def collection(
        self,
        id: str,
        name: str,
        schema: dict,
        parent_id: Optional[str] = None,
        alive: bool = True,
    ) -> str:
        self._conn.execute(
            "INSERT INTO collection VALUES (?, ?, ?, ?, ?, ?)",
            (id, json.dumps([[name]]), json.dumps(schema), None, parent_id, 1 if alive else 0),
        )
        return id

    def commit(self) -> Path:
        self._conn.commit()
        return self.path

    def close(self) -> None:
        self._conn.close()


# Ids of the standard fixture tree
ROOT = make_id(1)
MEETINGS = make_id(2)
AGENDA = make_id(3)
DISCUSS = make_id(4)
NESTED = make_id(5)
SUB_PAGE = make_id(6)
OLD_PLAN = make_id(7)
DELETED = make_id(8)
UNTITLED = make_id(9)
COLLECTION = make_id(20)
DB_PAGE = make_id(21)
RELATED = make_id(22)

DB_SCHEMA = {
    "title": {"name": "Name", "type": "title"},
    "d0ne": {"name": "Done", "type": "checkbox"},
    "pr1c": {"name": "Price", "type": "number"},
    "t4gs": {"name": "Tags", "type": "multi_select", "options": [
        {"id": "o1", "color": "red", "value": "urgent"},
        {"id": "o2", "color": "blue", "value": "later"},
    ]},
    "r3l8": {"name": "Related", "type": "relation"},
    "due1": {"name": "Due", "type": "date"},
}


@pytest.fixture
def db_builder(tmp_path):
    """A fresh, empty cache file to populate."""
    builder = NotionDbBuilder(tmp_path / "notion.db")
    yield builder
    builder.close()


@pytest.fixture
def notion_db(db_builder) -> Path:
    """
    Standard cache:

        ROOT "Workspace Home"
        ├── MEETINGS "Meeting notes"
        │   ├── AGENDA text
        │   ├── DISCUSS text
        │   │   └── NESTED text
        │   └── SUB_PAGE "Sub page"
        ├── OLD_PLAN "Project plan" (edited 40 days ago)
        ├── DELETED "Meeting archive" (not alive)
        └── UNTITLED page without properties
        COLLECTION "Tasks" ── DB_PAGE "Write tests"
    """
    b = db_builder
    b.page(ROOT, "Workspace Home", parent_id=None, parent_table="space", edited_days_ago=5)
    b.page(MEETINGS, "Meeting notes", ROOT, edited_days_ago=1)
    b.text(AGENDA, "Agenda for the meeting", MEETINGS)
    b.text(DISCUSS, "Discussion points", MEETINGS)
    b.text(NESTED, "Nested detail", DISCUSS)
    b.page(SUB_PAGE, "Sub page", MEETINGS, edited_days_ago=2)
    b.page(OLD_PLAN, "Project plan", ROOT, edited_days_ago=40)
    b.page(DELETED, "Meeting archive", ROOT, alive=False, edited_days_ago=0.5)
    b.block(UNTITLED, "page", None, ROOT, edited_days_ago=0.1)

    b.collection(COLLECTION, "Tasks", DB_SCHEMA, parent_id=ROOT)
    b.block(
        DB_PAGE, "page",
        json.dumps({
            "title": [["Write tests"]],
            "d0ne": [["Yes"]],
            "pr1c": [["12.5"]],
            "t4gs": [["urgent, later"]],
            "r3l8": [["‣", [["p", RELATED]]]],
            "due1": [["‣", [["d", {"type": "date", "start_date": "2024-05-01"}]]]],
        }),
        COLLECTION,
        parent_table="collection",
        edited_days_ago=3,
    )
    b.page(RELATED, "Related page", ROOT, edited_days_ago=60)
    return b.commit()


@pytest.fixture
def store(notion_db):
    """BlockStore over the standard cache."""
    from notion_local.block_store import BlockStore
    s = BlockStore(notion_db)
    yield s
    s.close()


@pytest.fixture
def reader(store):
    """Reader over the standard cache."""
    from notion_local.api import Reader
    return Reader(store)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep config, logs and cache lookups inside the test directory."""
    monkeypatch.setenv("NOTION_LOCAL_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("NOTION_DB_PATH", raising=False)
    monkeypatch.delenv("NOTION_LOCAL_VERBOSE", raising=False)
