"""End-to-end tests for the ``slinky-ln`` command line."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from slinky import __version__
from slinky.exceptions import InvalidUsageError, NotFoundError
from slinky.ln import LinkRequest, check_conflicts, create_link, ln_app


runner = CliRunner()


@pytest.fixture
def workdir(isolated_config: Path) -> Path:
    (isolated_config / "target.txt").write_text("content")
    return isolated_config


class TestCreateSymlink:
    def test_create_to_file(self, workdir):
        result = runner.invoke(ln_app, [str(workdir / "target.txt"), str(workdir / "link.txt")])
        assert result.exit_code == 0
        assert Path(os.readlink(workdir / "link.txt")) == workdir / "target.txt"

    def test_target_string_kept_as_given(self, workdir):
        runner.invoke(ln_app, ["target.txt", "link.txt"])
        assert os.readlink(workdir / "link.txt") == "target.txt"

    def test_create_in_directory(self, workdir):
        (workdir / "dest").mkdir()
        result = runner.invoke(ln_app, [str(workdir / "target.txt"), "dest"])
        assert result.exit_code == 0
        assert (workdir / "dest" / "target.txt").is_symlink()

    def test_directory_origin_named_after_canonical_target(self, workdir):
        os.symlink("target.txt", workdir / "alias")
        (workdir / "dest").mkdir()
        result = runner.invoke(ln_app, ["alias", "dest"])
        assert result.exit_code == 0
        assert sorted(os.listdir(workdir / "dest")) == ["target.txt"]
        assert os.readlink(workdir / "dest" / "target.txt") == "alias"

    def test_directory_origin_dangling_target_keeps_name(self, workdir):
        (workdir / "dest").mkdir()
        result = runner.invoke(ln_app, ["gone.txt", "dest", "--allow-dangling"])
        assert result.exit_code == 0
        assert os.readlink(workdir / "dest" / "gone.txt") == "gone.txt"

    def test_implicit_origin_is_current_directory(self, workdir):
        (workdir / "subdir").mkdir()
        (workdir / "subdir" / "file.txt").write_text("x")
        result = runner.invoke(ln_app, ["subdir/file.txt"])
        assert result.exit_code == 0
        assert os.readlink(workdir / "file.txt") == "subdir/file.txt"

    def test_missing_target(self, workdir):
        result = runner.invoke(ln_app, ["missing.txt", "link.txt"])
        assert result.exit_code == 4
        assert "refusing to create dangling symlink without --allow-dangling" in result.output
        assert not os.path.lexists(workdir / "link.txt")

    def test_allow_dangling(self, workdir):
        result = runner.invoke(ln_app, ["some_target", "link", "--allow-dangling"])
        assert result.exit_code == 0
        assert os.readlink(workdir / "link") == "some_target"

    def test_parent_dir_non_existent(self, workdir):
        result = runner.invoke(ln_app, ["target.txt", "nope/link.txt"])
        assert result.exit_code == 1
        assert "No such file or directory" in result.output

    def test_verbose(self, workdir):
        result = runner.invoke(ln_app, ["target.txt", "link.txt", "--verbose"])
        assert result.exit_code == 0
        assert "create symlink: link.txt -> target.txt" in result.output


class TestTransformations:
    def test_absolute(self, workdir):
        runner.invoke(ln_app, ["target.txt", "link.txt", "--absolute"])
        assert Path(os.readlink(workdir / "link.txt")) == (workdir / "target.txt").resolve()

    def test_relative(self, workdir):
        (workdir / "subdir").mkdir()
        (workdir / "subdir" / "target.txt").write_text("x")
        (workdir / "a" / "b" / "c").mkdir(parents=True)

        runner.invoke(ln_app, ["subdir/target.txt", "link.txt", "--relative"])
        assert os.readlink(workdir / "link.txt") == "subdir/target.txt"

        runner.invoke(ln_app, ["subdir/target.txt", "a/b/c/link.txt", "--relative"])
        assert os.readlink(workdir / "a" / "b" / "c" / "link.txt") == "../../../subdir/target.txt"

    def test_dereference(self, workdir):
        os.symlink("target.txt", workdir / "link1.txt")
        runner.invoke(ln_app, ["link1.txt", "link2.txt", "--dereference"])
        assert Path(os.readlink(workdir / "link2.txt")) == (workdir / "target.txt").resolve()

    def test_dereference_relative(self, workdir):
        (workdir / "subdir").mkdir()
        (workdir / "subdir" / "target.txt").write_text("x")
        os.symlink("subdir/target.txt", workdir / "link1.txt")
        runner.invoke(ln_app, ["link1.txt", "link2.txt", "--dereference", "--relative"])
        assert os.readlink(workdir / "link2.txt") == "subdir/target.txt"

    def test_dereference_dangling(self, workdir):
        os.symlink("missing.txt", workdir / "link1.txt")
        result = runner.invoke(
            ln_app, ["link1.txt", "link2.txt", "--dereference", "--allow-dangling"]
        )
        assert result.exit_code == 0
        assert os.readlink(workdir / "link2.txt").endswith("missing.txt")


class TestForce:
    def test_existing_file_without_force(self, workdir):
        (workdir / "existing.txt").write_text("old content")
        result = runner.invoke(ln_app, ["target.txt", "existing.txt"])
        assert result.exit_code == 1
        assert "File exists" in result.output
        assert (workdir / "existing.txt").read_text() == "old content"

    def test_existing_symlink_without_force(self, workdir):
        os.symlink("old_target.txt", workdir / "existing_link.txt")
        result = runner.invoke(ln_app, ["target.txt", "existing_link.txt"])
        assert "File exists" in result.output
        assert os.readlink(workdir / "existing_link.txt") == "old_target.txt"

    def test_force_overwrites_file(self, workdir):
        (workdir / "existing.txt").write_text("old content")
        result = runner.invoke(ln_app, ["target.txt", "existing.txt", "--force"])
        assert result.exit_code == 0
        assert os.readlink(workdir / "existing.txt") == "target.txt"

    def test_force_overwrites_dangling_symlink(self, workdir):
        (workdir / "target2.txt").write_text("two")
        os.symlink("gone.txt", workdir / "existing_link.txt")
        runner.invoke(ln_app, ["target2.txt", "existing_link.txt", "-f"])
        assert os.readlink(workdir / "existing_link.txt") == "target2.txt"

    def test_force_does_not_remove_directory(self, workdir):
        (workdir / "existing_dir" / "target.txt").mkdir(parents=True)
        result = runner.invoke(ln_app, ["target.txt", "existing_dir", "--force"])
        assert result.exit_code == 1
        assert "Is a directory" in result.output
        assert (workdir / "existing_dir" / "target.txt").is_dir()


class TestHardAndTree:
    def test_hardlink(self, workdir):
        result = runner.invoke(ln_app, ["target.txt", "hard.txt", "--hard"])
        assert result.exit_code == 0
        assert not (workdir / "hard.txt").is_symlink()
        assert os.path.samefile(workdir / "hard.txt", workdir / "target.txt")

    def test_hardlink_missing_target(self, workdir):
        result = runner.invoke(ln_app, ["missing.txt", "hard.txt", "--hard"])
        assert result.exit_code == 4
        assert "cannot create hardlink" in result.output

    def test_symlink_tree(self, workdir):
        (workdir / "source" / "sub").mkdir(parents=True)
        (workdir / "source" / "file1.txt").write_text("1")
        (workdir / "source" / "sub" / "file2.txt").write_text("2")

        result = runner.invoke(ln_app, ["source", "dest", "--tree"])
        assert result.exit_code == 0
        dest = workdir / "dest"
        assert dest.is_dir() and not dest.is_symlink()
        assert (dest / "file1.txt").is_symlink()
        assert (dest / "sub" / "file2.txt").is_symlink()

    def test_hardlink_tree(self, workdir):
        (workdir / "source" / "sub").mkdir(parents=True)
        (workdir / "source" / "file1.txt").write_text("1")
        (workdir / "source" / "sub" / "file2.txt").write_text("22")

        result = runner.invoke(ln_app, ["source", "dest", "--tree", "--hard"])
        assert result.exit_code == 0
        copy = workdir / "dest" / "sub" / "file2.txt"
        assert not copy.is_symlink()
        assert os.path.samefile(copy, workdir / "source" / "sub" / "file2.txt")

    def test_tree_missing_target(self, workdir):
        result = runner.invoke(ln_app, ["nope", "dest", "--tree"])
        assert result.exit_code == 4
        assert "cannot create tree" in result.output


class TestConflicts:
    @pytest.mark.parametrize(
        "flags",
        [
            ["--absolute", "--allow-dangling"],
            ["--relative", "--allow-dangling"],
            ["--absolute", "--relative"],
            ["--tree", "--absolute"],
            ["--tree", "--relative"],
            ["--tree", "--allow-dangling"],
            ["--hard", "--relative"],
        ],
    )
    def test_conflicting_flags(self, workdir, flags):
        result = runner.invoke(ln_app, ["target", *flags])
        assert result.exit_code == 2
        assert "cannot be used with" in result.output

    def test_hard_and_tree_are_compatible(self):
        check_conflicts(LinkRequest(target="t", hard=True, tree=True))

    def test_check_conflicts_names_both_flags(self):
        with pytest.raises(InvalidUsageError, match="'--absolute' cannot be used with '--relative'"):
            check_conflicts(LinkRequest(target="t", absolute=True, relative=True))


class TestDryRun:
    def test_dry_run(self, workdir):
        result = runner.invoke(ln_app, [str(workdir / "target.txt"), str(workdir / "link.txt"), "--dry-run"])
        assert result.exit_code == 0
        assert not os.path.lexists(workdir / "link.txt")

    def test_dry_run_force_keeps_existing(self, workdir):
        (workdir / "existing.txt").write_text("old content")
        result = runner.invoke(ln_app, ["target.txt", "existing.txt", "--force", "--dry-run"])
        assert result.exit_code == 0
        assert not (workdir / "existing.txt").is_symlink()
        assert (workdir / "existing.txt").read_text() == "old content"

    def test_create_link_returns_origin(self, workdir):
        origin = create_link(LinkRequest(target="target.txt", origin=".", dry_run=True))
        assert origin == Path("target.txt")

    def test_create_link_missing_target_raises(self, workdir):
        with pytest.raises(NotFoundError):
            create_link(LinkRequest(target="missing.txt", origin="x"))


def test_version():
    result = runner.invoke(ln_app, ["--version"])
    assert result.exit_code == 0
    assert f"slinky-ln {__version__}" in result.output
