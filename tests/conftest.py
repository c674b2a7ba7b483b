"""Shared test fixtures for slinky.

Provides isolated config environments, a populated link tree and output
state management. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from slinky.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config, disables colour, clears
    all SLINKY_* environment variables and changes the working directory
    to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("NO_COLOR", "1")

    for var in ["SLINKY_COLOR", "SLINKY_EXEC_SHELL", "SLINKY_DESTDIR"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Link tree fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def link_tree(isolated_config: Path) -> Path:
    """A small tree with one link of every kind, rooted at ``tmp_path/tree``.

    Layout::

        tree/
            real.txt                 file
            data/inner.txt           file
            sub/
                rel -> ../real.txt        relative, attached
                abs -> <tree>/real.txt    absolute, attached
                dangling -> missing.txt   relative, dangling
                dir -> ../data            relative, directory
    """
    root = isolated_config / "tree"
    (root / "data").mkdir(parents=True)
    (root / "sub").mkdir()
    (root / "real.txt").write_text("real\n")
    (root / "data" / "inner.txt").write_text("inner\n")

    os.symlink("../real.txt", root / "sub" / "rel")
    os.symlink(str(root / "real.txt"), root / "sub" / "abs")
    os.symlink("missing.txt", root / "sub" / "dangling")
    os.symlink("../data", root / "sub" / "dir")
    return root

