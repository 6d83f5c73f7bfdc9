"""Tests for the notescribe command line."""

import json

from notescribe import __version__
from notescribe.cli import app


def test_extract_json(runner, write_page):
    page = write_page("<lang>Latin</lang>\n[[vocabulary: sal, aqua]]\nBody")
    result = runner.invoke(app, ["extract", str(page), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["language"] == "Latin"
    assert data["vocabulary"] == ["sal", "aqua"]


def test_extract_panel_and_clean_text(runner, write_page):
    page = write_page("<lang>Latin</lang>\nBody text")
    result = runner.invoke(app, ["extract", str(page)])
    assert result.exit_code == 0
    assert "Latin" in result.stdout
    assert "Body text" in result.stdout
    assert "<lang>" not in result.stdout


def test_render_text_without_notes(runner, write_page):
    page = write_page("Body [[note: aside]] end [[term: opus → work]]")
    result = runner.invoke(
        app, ["render", str(page), "--no-notes", "--no-metadata", "--format", "text"]
    )
    assert result.exit_code == 0
    assert "Body  end opus (work)" in result.stdout
    assert "aside" not in result.stdout


def test_render_json(runner, write_page):
    page = write_page("<lang>Latin</lang>\n->## Title<-")
    result = runner.invoke(app, ["render", str(page), "--format", "json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["metadata"]["language"] == "Latin"
    assert data["spans"][0]["kind"] == "heading"


def test_render_rejects_unknown_format(runner, write_page):
    page = write_page("Body")
    result = runner.invoke(app, ["render", str(page), "--format", "pdf"])
    assert result.exit_code == 1
    assert "Unknown format" in result.stdout


class TestValidate:
    def test_valid_page(self, runner, write_page):
        page = write_page("Body [[note: aside]]")
        result = runner.invoke(app, ["validate", str(page)])
        assert result.exit_code == 0
        assert "OK" in result.stdout

    def test_issues_exit_nonzero(self, runner, write_page):
        page = write_page("Body [[note: aside")
        result = runner.invoke(app, ["validate", str(page)])
        assert result.exit_code == 1
        assert "1 issue(s)" in result.stdout
        assert page.read_text(encoding="utf-8") == "Body [[note: aside"

    def test_fix_writes_file(self, runner, write_page):
        page = write_page("<note>x")
        result = runner.invoke(app, ["validate", str(page), "--fix"])
        assert result.exit_code == 0
        assert page.read_text(encoding="utf-8") == "<note>x</note>"

    def test_cleanup_empty(self, runner, write_page):
        page = write_page("A [[unclear: ]] B")
        result = runner.invoke(app, ["validate", str(page), "--cleanup-empty"])
        assert result.exit_code == 0
        assert page.read_text(encoding="utf-8") == "A B"


class TestMigrate:
    def test_dry_run_leaves_file(self, runner, write_page):
        page = write_page("[[language: Latin]] Body")
        result = runner.invoke(app, ["migrate", str(page)])
        assert result.exit_code == 0
        assert "bracket" in result.stdout
        assert page.read_text(encoding="utf-8") == "[[language: Latin]] Body"

    def test_write(self, runner, write_page):
        page = write_page("[[language: Latin]] Body")
        result = runner.invoke(app, ["migrate", str(page), "--write"])
        assert result.exit_code == 0
        assert page.read_text(encoding="utf-8") == "<lang>Latin</lang> Body"


def test_version(runner):
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout
