"""
Tests for CLI functionality.
"""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from click.testing import CliRunner

from mdserver.cli import cli, format_tree
from mdserver.settings import get_settings


@pytest.fixture
def docs(tmp_path):
    (tmp_path / "guide").mkdir()
    (tmp_path / "guide" / "intro.md").write_text("# Intro\n\n## Usage\n", encoding="utf-8")
    (tmp_path / "README.md").write_text("# Readme\n", encoding="utf-8")
    (tmp_path / "empty").mkdir()
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestHelp:
    """Tests for CLI help output."""

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        assert 'mdserver CLI' in result.output
        for command in ('serve', 'tree', 'search', 'render', 'clear-cache'):
            assert command in result.output

    def test_clear_cache_help(self, runner):
        result = runner.invoke(cli, ['clear-cache', '--help'])

        assert result.exit_code == 0
        assert 'Clear all caches of a running server' in result.output
        assert '--force' in result.output
        assert '--url' in result.output


class TestTreeCommand:
    """Tests for the tree command."""

    def test_text_output(self, runner, docs):
        result = runner.invoke(cli, ['tree', '--root', str(docs)])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[1:] == [
            "  empty/ (empty)",
            "  guide/",
            f"    intro.md ({(docs / 'guide' / 'intro.md').stat().st_size} B)",
            f"  README.md ({(docs / 'README.md').stat().st_size} B)",
        ]

    def test_json_output(self, runner, docs):
        result = runner.invoke(cli, ['tree', '--root', str(docs), '--json'])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [node["name"] for node in data] == ["empty", "guide", "README.md"]
        assert data[1]["hasMarkdown"] is True

    def test_missing_root(self, runner, tmp_path):
        result = runner.invoke(cli, ['tree', '--root', str(tmp_path / "missing")])
        assert result.exit_code != 0


class TestSearchCommand:
    """Tests for the search command."""

    def test_matches(self, runner, docs):
        result = runner.invoke(cli, ['search', 'GUI', '--root', str(docs)])

        assert result.exit_code == 0
        assert "guide/" in result.output
        assert "1 match(es)" in result.output

    def test_no_matches(self, runner, docs):
        result = runner.invoke(cli, ['search', 'zzz', '--root', str(docs)])

        assert result.exit_code == 0
        assert "No matches." in result.output

    def test_json(self, runner, docs):
        result = runner.invoke(cli, ['search', 'intro', '--root', str(docs), '--json'])

        assert json.loads(result.output) == [
            {"type": "file", "name": "intro.md", "path": "guide/intro.md"},
        ]

    def test_short_query(self, runner, docs):
        result = runner.invoke(cli, ['search', 'a', '--root', str(docs)])

        assert result.exit_code == 2
        assert "at least 2 characters" in result.output


class TestRenderCommand:
    """Tests for the render command."""

    def test_render_html(self, runner, docs):
        result = runner.invoke(cli, ['render', 'guide/intro.md', '--root', str(docs)])

        assert result.exit_code == 0
        assert 'data-file-path="guide/intro.md"' in result.output

    def test_render_toc(self, runner, docs):
        result = runner.invoke(cli, ['render', 'guide/intro.md', '--root', str(docs), '--toc'])

        assert result.exit_code == 0
        assert result.output.splitlines() == ["- Intro (#intro)", "  - Usage (#usage)"]

    def test_missing_file(self, runner, docs):
        result = runner.invoke(cli, ['render', 'nope.md', '--root', str(docs)])

        assert result.exit_code == 1
        assert "Error: File not found" in result.output

    def test_traversal(self, runner, docs):
        result = runner.invoke(cli, ['render', '../secret.md', '--root', str(docs)])

        assert result.exit_code == 1
        assert "Access denied" in result.output


class TestClearCacheCommand:
    """Tests for the clear-cache command."""

    @patch('mdserver.cli.httpx.post')
    def test_clear_cache_force(self, mock_post, runner):
        response = MagicMock()
        response.json.return_value = {
            "success": True,
            "data": {"cleared": {"scanner": 1, "renderer": 2}},
        }
        mock_post.return_value = response

        result = runner.invoke(cli, ['clear-cache', '--force', '--url', 'http://localhost:9999/'])

        assert result.exit_code == 0
        mock_post.assert_called_once_with('http://localhost:9999/api/cache/clear', timeout=10)
        assert 'Cache cleared successfully' in result.output
        assert 'renderer: 2 entries' in result.output

    @patch('mdserver.cli.httpx.post')
    def test_clear_cache_abort(self, mock_post, runner):
        result = runner.invoke(cli, ['clear-cache'], input='n\n')

        assert result.exit_code == 1
        mock_post.assert_not_called()

    @patch('mdserver.cli.httpx.post')
    def test_clear_cache_server_unreachable(self, mock_post, runner):
        mock_post.side_effect = httpx.ConnectError("Connection refused")

        result = runner.invoke(cli, ['clear-cache', '--force'])

        assert result.exit_code == 1
        assert 'Error clearing cache' in result.output

    @patch('mdserver.cli.httpx.post')
    def test_default_url_uses_configured_port(self, mock_post, runner, monkeypatch):
        monkeypatch.setenv("PORT", "7777")
        mock_post.return_value.json.return_value = {"data": {"cleared": {}}}

        runner.invoke(cli, ['clear-cache', '--force'])

        assert mock_post.call_args[0][0] == 'http://localhost:7777/api/cache/clear'


class TestServeCommand:
    """Tests for the serve command."""

    @patch('uvicorn.run')
    def test_serve_passes_options(self, mock_run, runner, docs, monkeypatch):
        # Registered so monkeypatch restores them after the command writes os.environ
        monkeypatch.setenv("ROOT_PATH", ".")
        monkeypatch.setenv("WATCH_ENABLED", "false")

        result = runner.invoke(cli, ['serve', '--root', str(docs), '--port', '6000', '--watch'])

        assert result.exit_code == 0
        mock_run.assert_called_once_with("mdserver.main:app", host="0.0.0.0", port=6000, reload=False)
        assert get_settings().watch_enabled is True
        assert get_settings().root == docs.resolve()


class TestFormatTree:
    def test_empty(self):
        assert format_tree([]) == []
