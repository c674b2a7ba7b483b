"""Typer application and CLI entry point for ``slinky-ln``.

``slinky-ln`` creates one link per invocation with ``TARGET`` always first,
so there is no guessing which argument is which::

    slinky-ln ../shared/config.toml              # ./config.toml -> ../shared/config.toml
    slinky-ln data/ backup --tree --hard         # hardlink mirror of data/ at backup/
    slinky-ln build/app ~/bin --relative         # ~/bin/app -> ../project/build/app

The decision logic lives in :func:`create_link` so it can be exercised
without the command line; :func:`link_command` only validates flag
combinations and reports errors.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from slinky import __version__
from slinky import links as fs
from slinky.exceptions import InvalidUsageError, LinkError, NotFoundError, SlinkyError
from slinky.exit_codes import EXIT_GENERIC_FAILURE
from slinky.models import ColorChoice
from slinky.output import OutputManager, error, link, set_output


ln_app = typer.Typer(
    name="slinky-ln",
    help="Create symbolic links without confusion.",
    add_completion=True,
    rich_markup_mode="rich",
)

_CONFLICTS: dict[str, tuple[str, ...]] = {
    "absolute": ("relative", "allow_dangling", "hard", "tree"),
    "relative": ("absolute", "allow_dangling", "hard", "tree"),
    "allow_dangling": ("absolute", "relative", "hard", "tree"),
    "hard": ("absolute", "relative", "allow_dangling"),
    "tree": ("absolute", "relative", "allow_dangling"),
}


@dataclass(frozen=True)
class LinkRequest:
    """Everything ``slinky-ln`` needs to know to create one link."""

    target: str
    origin: Optional[str] = None
    force: bool = False
    absolute: bool = False
    relative: bool = False
    dereference: bool = False
    allow_dangling: bool = False
    hard: bool = False
    tree: bool = False
    verbose: bool = False
    dry_run: bool = False


def _flag(name: str) -> str:
    return "--" + name.replace("_", "-")


def check_conflicts(request: LinkRequest) -> None:
    """Reject mutually exclusive flags.

    Raises:
        InvalidUsageError: Naming the first conflicting pair found.
    """
    for name, others in _CONFLICTS.items():
        if not getattr(request, name):
            continue
        for other in others:
            if getattr(request, other):
                raise InvalidUsageError(
                    f"the argument '{_flag(name)}' cannot be used with '{_flag(other)}'"
                )


def _resolve_origin(origin_input: Path, target_path: Path) -> Path:
    """Where the link goes: *origin_input*, or inside it when it is a directory.

    Inside a directory the link is named after the canonical target, so a
    target reached through another link keeps the final file's name. A
    dangling target keeps its own final component.
    """
    if not origin_input.is_dir():
        return origin_input
    name = target_path.resolve().name if target_path.exists() else target_path.name
    if name in ("", ".", ".."):
        raise LinkError("Could not get basename; target path terminates in ..")
    return origin_input / name


def create_link(request: LinkRequest) -> Path:
    """Create the link described by *request* and return its path.

    Raises:
        NotFoundError: If the target is required to exist and does not.
        LinkError: If no link name can be derived from the target.
        OSError: For filesystem failures (existing origin, missing parent).
    """
    if request.dereference:
        target_path = fs.dereference(Path(request.target))
        target_string = str(target_path)
    else:
        target_path = Path(request.target)
        target_string = request.target

    origin_path = _resolve_origin(Path(request.origin or "."), target_path)

    if request.force and os.path.lexists(origin_path) and not request.dry_run:
        os.remove(origin_path)

    target_exists = target_path.exists()

    if request.tree:
        if not target_exists:
            raise NotFoundError("Target does not exist; cannot create tree")
        label = "create hardlink tree" if request.hard else "create symlink tree"
        if request.verbose:
            link(str(origin_path), request.target, label)
        if not request.dry_run:
            if request.hard:
                fs.create_hard_link_tree(target_path, origin_path)
            else:
                fs.create_symlink_tree(target_path, origin_path)
        return origin_path

    if request.hard:
        if not target_exists:
            raise NotFoundError("Target does not exist; cannot create hardlink")
        if request.verbose:
            link(str(origin_path), request.target, "create hardlink")
        if not request.dry_run:
            fs.create_hard_link(target_path, origin_path)
        return origin_path

    if not target_exists and not request.allow_dangling:
        raise NotFoundError(
            "Target does not exist; refusing to create dangling symlink without --allow-dangling"
        )

    if request.absolute:
        contents = str(fs.absolute_target(target_path))
    elif request.relative:
        contents = fs.relative_target(target_path, origin_path.parent)
    else:
        contents = target_string

    if request.verbose:
        link(str(origin_path), contents, "create symlink")
    if not request.dry_run:
        os.symlink(contents, origin_path)
    return origin_path


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"slinky-ln {__version__}")
        raise typer.Exit()


@ln_app.command()
def link_command(
    target: str = typer.Argument(..., help="The file that the link will point to."),
    origin: Optional[str] = typer.Argument(
        None,
        help=(
            "The path at which to create the link. If the path is a directory, "
            "the link will be created inside that directory with the same name "
            "as the target. Default is the current directory."
        ),
        show_default=False,
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force creation of the link by overwriting existing files."
    ),
    absolute: bool = typer.Option(
        False, "--absolute", "-b",
        help="Transform the target string into an absolute path to the target, if it exists.",
    ),
    relative: bool = typer.Option(
        False, "--relative", "-r",
        help="Transform the target string into a relative path to the target, if it exists.",
    ),
    dereference: bool = typer.Option(
        False, "--dereference", "-L", help="Dereference the target file if it is a symbolic link."
    ),
    allow_dangling: bool = typer.Option(
        False, "--allow-dangling", help="Allow creation of dangling symlinks."
    ),
    hard: bool = typer.Option(
        False, "--hard", "-H", help="Create a hardlink instead of a symlink."
    ),
    tree: bool = typer.Option(
        False, "--tree", "-T",
        help="Create a tree of directories and symlinks (or hardlinks if --hard is passed) to mirror a target.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Describe any changes to be made to the filesystem."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Don't modify the filesystem."
    ),
    color: Optional[ColorChoice] = typer.Option(
        None, "--color", case_sensitive=False, help="Control color output."
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Create symbolic links without confusion."""
    from slinky.config import resolve_config

    set_output(OutputManager(color=color or ColorChoice.AUTO, verbose=verbose))

    request = LinkRequest(
        target=target,
        origin=origin,
        force=force,
        absolute=absolute,
        relative=relative,
        dereference=dereference,
        allow_dangling=allow_dangling,
        hard=hard,
        tree=tree,
        verbose=verbose,
        dry_run=dry_run,
    )
    try:
        config = resolve_config(color)
        set_output(OutputManager(color=config.color, verbose=verbose))
        check_conflicts(request)
        create_link(request)
    except SlinkyError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)
    except OSError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)


def main() -> None:
    """CLI entry point invoked by the ``slinky-ln`` console script."""
    from slinky.app import run_app

    run_app(ln_app, "slinky-ln")
