"""Per-link actions behind the ``slinky`` sub-commands.

Each public function applies one sub-command to one :class:`~slinky.links.Link`.
They share an :class:`ActionContext` carrying the invoked command name (used
as the prefix of every message) and the ``--verbose`` / ``--dry-run`` flags.

Conventions:

* Links the action does not apply to (dangling links, files for ``to-tree``,
  directories for ``to-hardlink``) are reported on stderr and left alone.
* ``--verbose`` describes each change on stdout before it is made.
* ``--dry-run`` never touches the filesystem.
* Failures raise; :func:`run_each` reports them per link and carries on.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Iterable

from slinky import links as fs
from slinky.exceptions import InvalidUsageError, SlinkyError
from slinky.links import Link
from slinky.output import error, link as print_link, link_problem, origin as print_origin
from slinky.output import transformation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionContext:
    """Flags shared by every action in a single ``slinky`` run."""

    command: str
    verbose: bool = False
    dry_run: bool = False


def run_each(links: Iterable[Link], action: Callable[[Link], None]) -> int:
    """Apply *action* to every link, reporting failures without stopping.

    Returns:
        The number of links whose action raised.
    """
    failures = 0
    for item in links:
        try:
            action(item)
        except (SlinkyError, OSError) as exc:
            failures += 1
            logger.debug("Action failed on %s: %r", item.origin, exc)
            error(str(exc))
    return failures


def _skip_dangling(ctx: ActionContext, item: Link) -> None:
    link_problem(str(item.origin), item.target, ctx.command, "skipping dangling symlink")


# --- Listing ---


def list_link(item: Link, status: bool = False, origin_only: bool = False) -> None:
    """Print a link as ``origin -> target``, optionally prefixed with its status."""
    if origin_only:
        print_origin(str(item.origin))
        return
    if status:
        if item.is_dangling:
            print_link(str(item.origin), item.target, "dangling", "red")
        else:
            print_link(str(item.origin), item.target, "attached", "green")
    else:
        print_link(str(item.origin), item.target)


# --- Target rewrites ---


def _rewrite(ctx: ActionContext, item: Link, new_target: str) -> None:
    if ctx.verbose:
        transformation(ctx.command, str(item.origin), item.target, new_target)
    if not ctx.dry_run:
        fs.retarget(item.origin, new_target)


def tidy(ctx: ActionContext, item: Link) -> None:
    """Lexically tidy the target string. Applies to dangling links too."""
    new_target = fs.tidy_target(item.target)
    if new_target == item.target:
        link_problem(
            str(item.origin), item.target, ctx.command, "target is already tidy", "green"
        )
        return
    _rewrite(ctx, item, new_target)


def edit_target(
    ctx: ActionContext,
    item: Link,
    pattern: re.Pattern[str],
    replacement: str,
    replace_all: bool = False,
) -> None:
    """Replace the first (or every) match of *pattern* in the target string.

    Links whose target does not match are ignored silently.
    """
    if not pattern.search(item.target):
        return
    try:
        new_target = pattern.sub(replacement, item.target, count=0 if replace_all else 1)
    except (re.error, IndexError) as exc:
        raise InvalidUsageError(f"Invalid replacement '{replacement}': {exc}") from exc
    if new_target == item.target:
        link_problem(
            str(item.origin), item.target, ctx.command, "new target is identical to old target"
        )
        return
    _rewrite(ctx, item, new_target)


def to_absolute(ctx: ActionContext, item: Link) -> None:
    """Make a relative link point at the canonical absolute path of its target."""
    if item.is_dangling:
        _skip_dangling(ctx, item)
        return
    if item.is_absolute:
        return
    try:
        new_target = str(fs.absolute_target(item.resolved))
    except OSError as exc:
        raise SlinkyError(f"Failed to resolve absolute path for {item.origin}: {exc}") from exc
    _rewrite(ctx, item, new_target)


def to_relative(ctx: ActionContext, item: Link) -> None:
    """Make an absolute link point at its target relative to the link's directory."""
    if item.is_dangling:
        _skip_dangling(ctx, item)
        return
    if not item.is_absolute:
        return
    _rewrite(ctx, item, fs.relative_target(item.resolved, item.directory))


# --- Replacements ---


def _announce(ctx: ActionContext, item: Link, style: str = "bold") -> None:
    if ctx.verbose:
        print_link(str(item.origin), str(item.resolved), ctx.command, style)


def to_hardlink(ctx: ActionContext, item: Link) -> None:
    """Replace a link to a file with a hardlink to that file."""
    if item.is_dangling:
        _skip_dangling(ctx, item)
        return
    if item.resolved.is_dir():
        link_problem(str(item.origin), item.target, ctx.command, "skipping directory")
        return
    _announce(ctx, item)
    if not ctx.dry_run:
        # Resolve before removing the link so relative chains still work.
        source = fs.absolute_target(item.resolved)
        item.origin.unlink()
        fs.create_hard_link(source, item.origin)


def to_tree(ctx: ActionContext, item: Link, hard: bool = False) -> None:
    """Replace a link to a directory with a mirrored tree of links.

    Files in the tree become symlinks to their canonical paths, or hardlinks
    when *hard* is set.
    """
    if item.is_dangling:
        _skip_dangling(ctx, item)
        return
    if not item.resolved.is_dir():
        link_problem(str(item.origin), item.target, ctx.command, "skipping file")
        return
    _announce(ctx, item)
    if not ctx.dry_run:
        source = fs.absolute_target(item.resolved)
        item.origin.unlink()
        if hard:
            fs.create_hard_link_tree(source, item.origin)
        else:
            fs.create_symlink_tree(source, item.origin)


def replace_with_target(ctx: ActionContext, item: Link) -> None:
    """Move the link's target to the link's location."""
    if item.is_dangling:
        _skip_dangling(ctx, item)
        return
    _announce(ctx, item)
    if not ctx.dry_run:
        actual = fs.absolute_target(item.resolved)
        item.origin.unlink()
        shutil.move(str(actual), str(item.origin))


def delete(ctx: ActionContext, item: Link) -> None:
    """Remove the link."""
    if ctx.verbose:
        print_link(str(item.origin), item.target, ctx.command, "bold red")
    if not ctx.dry_run:
        item.origin.unlink()


def exec_command(ctx: ActionContext, item: Link, command: str, shell: str) -> None:
    """Run *command* with *shell*, binding ``$1`` to the origin and ``$2`` to the target.

    The command's exit status is not inspected; only a shell that cannot be
    started counts as a failure.
    """
    if ctx.verbose:
        print_link(str(item.origin), item.target, f"{ctx.command}: {command}")
    if ctx.dry_run:
        return
    result = subprocess.run([shell, "-c", command, "--", str(item.origin), item.target])
    logger.debug("%s exited with status %d for %s", shell, result.returncode, item.origin)
