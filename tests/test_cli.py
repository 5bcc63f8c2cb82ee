"""Tests for the notion-local command line."""

import json
import os

import pytest
from typer.testing import CliRunner

from notion_local import cli
from notion_local.cli import app
from notion_local.types import strip_id

from conftest import DB_PAGE, DISCUSS, MEETINGS, NESTED, ROOT, SUB_PAGE, make_id

runner = CliRunner()


@pytest.fixture(autouse=True)
def forget_db_option():
    """--db exports NOTION_DB_PATH for the process; drop it after each test."""
    yield
    os.environ.pop("NOTION_DB_PATH", None)


@pytest.fixture
def db_env(notion_db, monkeypatch):
    monkeypatch.setenv("NOTION_DB_PATH", str(notion_db))
    return notion_db


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestQueryCommands:
    def test_search(self, db_env):
        hits = _json(runner.invoke(app, ["search", "meeting"]))
        assert [h["id"] for h in hits] == [MEETINGS]

    def test_search_all_with_limit(self, db_env):
        hits = _json(runner.invoke(app, ["search", "meeting", "--type", "all", "-n", "1"]))
        assert len(hits) == 1

    def test_search_bad_scope(self, db_env):
        result = runner.invoke(app, ["search", "meeting", "--type", "blocks"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_db_option(self, notion_db):
        pages = _json(runner.invoke(app, ["--db", str(notion_db), "recent", "--days", "3"]))
        assert [p["id"] for p in pages] == [MEETINGS, SUB_PAGE]

    def test_page_summary(self, db_env):
        page = _json(runner.invoke(app, ["page", strip_id(MEETINGS)]))
        assert page["id"] == MEETINGS
        assert page["totalBlocks"] == 4

    def test_page_full(self, db_env):
        page = _json(runner.invoke(app, ["page", MEETINGS, "--full", "--depth", "1"]))
        assert "summary" not in page
        assert len(page["content"]) == 3

    def test_page_database(self, db_env):
        page = _json(runner.invoke(app, ["page", DB_PAGE]))
        assert page["properties"]["Price"]["value"] == 12.5

    def test_page_not_found(self, db_env):
        missing = make_id(999)
        result = runner.invoke(app, ["page", missing])
        assert result.exit_code == 1
        assert f"Page not found: {missing}" in result.output

    def test_parents(self, db_env):
        ancestors = _json(runner.invoke(app, ["parents", NESTED]))
        assert [a["id"] for a in ancestors] == [DISCUSS, MEETINGS, ROOT]

    def test_children(self, db_env):
        forest = _json(runner.invoke(app, ["children", MEETINGS]))
        assert [n["id"] for n in forest] == [SUB_PAGE]

    def test_missing_cache(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NOTION_DB_PATH", str(tmp_path / "absent.db"))
        result = runner.invoke(app, ["recent"])
        assert result.exit_code == 1
        assert "Notion cache not found" in result.output


class TestServerEntry:
    def test_no_subcommand_starts_server(self, monkeypatch):
        calls = []
        monkeypatch.setattr("notion_local.mcp.main", lambda: calls.append("mcp"))
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert calls == ["mcp"]

    def test_mcp_command(self, monkeypatch):
        calls = []
        monkeypatch.setattr("notion_local.mcp.main", lambda: calls.append("mcp"))
        assert runner.invoke(app, ["mcp"]).exit_code == 0
        assert calls == ["mcp"]


class TestConfigCommand:
    def test_show_defaults(self, db_env):
        info = _json(runner.invoke(app, ["config"]))
        assert info["config"] is None
        assert info["db_path"] == str(db_env)
        assert info["db_exists"] is True
        assert info["limits"]["summary_max_blocks"] == 10

    def test_init_writes_once(self, tmp_path):
        result = runner.invoke(app, ["config", "--init"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "config" / "notion-local.toml").exists()

        again = runner.invoke(app, ["config", "--init"])
        assert again.exit_code == 1
        assert "already exists" in again.output


class TestMain:
    def test_unexpected_error_is_logged(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("NOTION_DB_PATH", str(tmp_path / "cache.db"))
        monkeypatch.setattr("sys.argv", ["notion-local", "recent", "-n", "3"])
        def boom():
            raise RuntimeError("kaboom")
        monkeypatch.setattr(cli, "app", boom)

        with pytest.raises(SystemExit) as excinfo:
            cli.main()
        assert excinfo.value.code == 1

        err = capsys.readouterr().err
        assert "Error: kaboom" in err
        log_file = tmp_path / "config" / "notion-local-errors.log"
        entry = log_file.read_text()
        assert "RuntimeError: kaboom" in entry
        assert f"cache: {tmp_path / 'cache.db'}" in entry
        assert "argv: recent -n 3" in entry
