"""Tests for man page rendering."""

from __future__ import annotations

import click
import pytest
from typer.testing import CliRunner

from slinky import __version__
from slinky.app import app
from slinky.plugins.manpage import render_manpage
from slinky.plugins.manpage.renderer import describe_command, troff_escape


runner = CliRunner()


class TestTroffEscape:
    def test_hyphens(self):
        assert troff_escape("--dry-run") == "\\-\\-dry\\-run"

    def test_backslash(self):
        assert troff_escape("a\\1") == "a\\e1"

    def test_leading_control_characters(self):
        assert troff_escape(".hidden\n'quoted\nplain") == "\\&.hidden\n\\&'quoted\nplain"

    def test_empty(self):
        assert troff_escape(None) == ""
        assert troff_escape("") == ""


class TestDescribeCommand:
    def test_group(self):
        @click.group(help="Top level.")
        @click.option("--flag", is_flag=True, help="A flag.")
        def cli(flag):
            pass

        @cli.command(help="Visible one.\n\nLonger text.")
        @click.argument("path")
        def visible(path):
            pass

        @cli.command(hidden=True)
        def secret():
            pass

        @cli.group()
        def generate():
            pass

        @generate.command()
        def man():
            pass

        doc = describe_command(cli, "tool")
        assert doc.summary == "Top level."
        assert [o.names for o in doc.options] == ["--flag", "--help"]
        assert [c.name for c in doc.commands] == ["visible"]
        assert doc.commands[0].summary == "Visible one."
        assert doc.commands[0].arguments[0].metavar == "PATH"


class TestRenderManpage:
    def test_slinky_page(self, monkeypatch):
        monkeypatch.setenv("SOURCE_DATE_EPOCH", "0")
        page = render_manpage("slinky")
        assert page.startswith('.TH SLINKY 1 "1970-01-01"')
        assert ".SH NAME" in page
        assert "slinky \\- Wrangle symbolic links." in page
        assert ".SH SYNOPSIS" in page
        assert ".SH OPTIONS" in page
        assert "\\-\\-only\\-dangling" in page
        assert ".SH COMMANDS" in page
        assert "to\\-relative" in page
        assert "edit\\-target" in page
        assert "\\-\\-replace\\-all" in page
        assert f".SH VERSION\n{troff_escape(__version__)}" in page

    def test_hidden_aliases_left_out(self):
        page = render_manpage("slinky")
        assert "to\\-hardlink\\-tree" not in page
        assert "\\fBremove\\fR" not in page
        assert "\\fBls\\fR" not in page

    def test_generate_group_left_out(self):
        page = render_manpage("slinky")
        assert "\\fBgenerate\\fR" not in page
        assert "generate completions" not in page
        assert "\\fBtidy\\fR" in page

    def test_slinky_ln_page(self):
        page = render_manpage("slinky-ln")
        assert page.startswith(".TH SLINKY\\-LN 1")
        assert "\\-\\-allow\\-dangling" in page
        assert ".SH ARGUMENTS" in page
        assert "TARGET" in page
        assert ".SH COMMANDS" not in page

    def test_no_line_starts_with_unescaped_text_request(self):
        for line in render_manpage("slinky").splitlines():
            if line.startswith("."):
                assert line.split(" ", 1)[0] in {
                    ".TH", ".SH", ".B", ".TP", ".RS", ".RE",
                }, line

    def test_generate_man_command(self, isolated_config):
        result = runner.invoke(app, ["generate", "man", "--command", "slinky-ln"])
        assert result.exit_code == 0
        assert ".TH SLINKY\\-LN 1" in result.output

    def test_generate_man_unknown_command(self, isolated_config):
        result = runner.invoke(app, ["generate", "man", "--command", "nope"])
        assert result.exit_code == 2
