"""Symlink discovery, classification and filesystem primitives.

This module is the core of ``slinky`` and ``slinky-ln``. It knows nothing
about the command line or about output formatting; the functions here
either return values or raise (:class:`~slinky.exceptions.SlinkyError`
subclasses for domain failures, :class:`OSError` for filesystem failures).

Discovery:
    :func:`iter_symlinks` walks a tree without following links and yields
    every symlink it meets. :func:`scan` turns those paths into
    :class:`Link` records and applies a :class:`LinkFilter`.

Primitives:
    :func:`tidy_target`, :func:`retarget`, :func:`relative_target`,
    :func:`absolute_target`, :func:`create_hard_link`,
    :func:`create_hard_link_tree`, :func:`create_symlink_tree` and
    :func:`dereference`.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from slinky.exceptions import InvalidUsageError, LinkError, NotFoundError

logger = logging.getLogger(__name__)


# --- Link records ---


@dataclass(frozen=True)
class Link:
    """A symlink as found on disk.

    Attributes:
        origin: Path of the symlink itself, as discovered by the walk.
        target: The raw link contents, exactly as stored.
    """

    origin: Path
    target: str

    @property
    def directory(self) -> Path:
        """Directory containing the link; relative targets resolve against it."""
        return self.origin.parent

    @property
    def is_absolute(self) -> bool:
        return os.path.isabs(self.target)

    @property
    def resolved(self) -> Path:
        """The target as a path usable from the current working directory."""
        if self.is_absolute:
            return Path(self.target)
        return self.directory / self.target

    @property
    def is_dangling(self) -> bool:
        """True when the target (following any further links) does not exist."""
        return not os.path.exists(self.resolved)

    @classmethod
    def read(cls, path: Path) -> Link:
        """Read the symlink at *path*. Raises :class:`OSError` if it is not one."""
        return cls(origin=path, target=os.readlink(path))


def compile_pattern(pattern: Optional[str], option: str) -> Optional[re.Pattern[str]]:
    """Compile a user-supplied regex, turning syntax errors into usage errors."""
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidUsageError(f"Invalid regex for {option} '{pattern}': {exc}") from exc


def check_replacement(pattern: re.Pattern[str], replacement: str) -> None:
    """Reject a replacement template that *pattern* cannot expand.

    Catches bad escapes (``\\q``) and references to groups the pattern does
    not define (``\\1``, ``\\g<name>``).
    """
    try:
        pattern.sub(replacement, "")
    except (re.error, IndexError) as exc:
        raise InvalidUsageError(f"Invalid replacement '{replacement}': {exc}") from exc


@dataclass
class LinkFilter:
    """Conditions a link must satisfy to be acted upon. All must hold."""

    only_dangling: bool = False
    only_attached: bool = False
    only_absolute: bool = False
    only_relative: bool = False
    origin_pattern: Optional[re.Pattern[str]] = field(default=None)
    target_pattern: Optional[re.Pattern[str]] = field(default=None)

    def matches(self, link: Link) -> bool:
        if self.only_dangling or self.only_attached:
            dangling = link.is_dangling
            if self.only_dangling and not dangling:
                return False
            if self.only_attached and dangling:
                return False
        if self.only_absolute and not link.is_absolute:
            return False
        if self.only_relative and link.is_absolute:
            return False
        if self.origin_pattern is not None and not self.origin_pattern.search(str(link.origin)):
            return False
        if self.target_pattern is not None and not self.target_pattern.search(link.target):
            return False
        return True


# --- Discovery ---


def iter_symlinks(root: Path, max_depth: Optional[int] = None) -> Iterator[Path]:
    """Yield every symlink under *root* without following links.

    The root itself has depth 0 and is yielded first when it is a symlink;
    a root that is (or points to) a directory is descended. Symlinks to
    directories below the root are yielded but never descended. Entries are
    yielded in sorted order per directory; unreadable directories are
    skipped.

    Args:
        root: Where to start.
        max_depth: Only yield entries at most this many levels below *root*.
    """
    if root.is_symlink():
        yield root
    if max_depth is not None and max_depth < 1:
        return
    if not root.is_dir():
        return

    root_str = str(root)
    for dirpath, dirnames, filenames in os.walk(root_str, followlinks=False):
        rel = os.path.relpath(dirpath, root_str)
        depth = 0 if rel == os.curdir else rel.count(os.sep) + 1
        dirnames.sort()
        for name in sorted(dirnames + filenames):
            entry = os.path.join(dirpath, name)
            if os.path.islink(entry):
                yield Path(entry)
        if max_depth is not None and depth + 1 >= max_depth:
            dirnames.clear()


def scan(
    root: Path,
    link_filter: Optional[LinkFilter] = None,
    max_depth: Optional[int] = None,
) -> list[Link]:
    """Collect the links under *root* that pass *link_filter*.

    The walk completes before the list is returned, so callers may modify
    the tree while iterating over the result.

    Raises:
        NotFoundError: If *root* does not exist.
    """
    if not os.path.lexists(root):
        raise NotFoundError(f"{root}: No such file or directory")

    links: list[Link] = []
    for path in iter_symlinks(root, max_depth):
        try:
            link = Link.read(path)
        except OSError as exc:
            logger.debug("Cannot read link %s: %s", path, exc)
            continue
        if link_filter is None or link_filter.matches(link):
            links.append(link)
    logger.debug("Found %d matching links under %s", len(links), root)
    return links


# --- Primitives ---


def tidy_target(target: str) -> str:
    """Lexically normalise a link target.

    Empty and ``.`` components are dropped. ``..`` removes the preceding
    normal component; in a relative path with nothing to remove it is kept,
    and at the root of an absolute path it is dropped. The filesystem is
    never consulted.

    Example::

        >>> tidy_target("foo/bar/../baz/./qux")
        'foo/baz/qux'
        >>> tidy_target("/usr/bin/../bin/slinky")
        '/usr/bin/slinky'
        >>> tidy_target("../../foo/bar")
        '../../foo/bar'
    """
    absolute = target.startswith("/")
    parts: list[str] = []
    for part in target.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not absolute:
                parts.append(part)
            continue
        parts.append(part)

    joined = "/".join(parts)
    if absolute:
        return "/" + joined
    return joined or "."


def retarget(path: Path, new_target: str | Path) -> None:
    """Point the existing symlink at *path* to *new_target*."""
    os.remove(path)
    os.symlink(new_target, path)


def absolute_target(target: Path) -> Path:
    """Canonical absolute path of *target*, which must exist."""
    return target.resolve(strict=True)


def relative_target(target: Path, directory: Path) -> str:
    """Path of *target* relative to *directory*, both canonicalised first."""
    abs_target = target.resolve(strict=True)
    abs_dir = directory.resolve(strict=True)
    return os.path.relpath(abs_target, abs_dir)


def create_hard_link(target: Path, origin: Path) -> None:
    """Create a hardlink at *origin* to the file *target*.

    Raises:
        LinkError: If *target* is a directory.
    """
    if target.is_dir():
        raise LinkError("cannot hard link a directory")
    os.link(target, origin)


def _mirror_tree(target: Path, origin: Path, make_leaf) -> None:
    origin.mkdir(parents=True, exist_ok=True)
    target_str = str(target)
    for dirpath, dirnames, filenames in os.walk(target_str, followlinks=False):
        rel = os.path.relpath(dirpath, target_str)
        dest_dir = origin if rel == os.curdir else origin / rel
        for name in sorted(dirnames + filenames):
            source = Path(dirpath) / name
            dest = dest_dir / name
            if source.is_dir():
                dest.mkdir(parents=True, exist_ok=True)
            else:
                make_leaf(source, dest)


def create_hard_link_tree(target: Path, origin: Path) -> None:
    """Mirror *target* at *origin* with real directories and hardlinked files.

    A file target is hardlinked directly.
    """
    if target.is_dir():
        _mirror_tree(target, origin, lambda src, dest: os.link(src, dest))
    else:
        os.link(target, origin)


def create_symlink_tree(target: Path, origin: Path) -> None:
    """Mirror *target* at *origin* with real directories and symlinked files.

    Every created symlink points at the canonical absolute path of its file.
    A file target becomes a single symlink.
    """
    if target.is_dir():
        _mirror_tree(
            target, origin, lambda src, dest: os.symlink(src.resolve(strict=True), dest)
        )
    else:
        os.symlink(target.resolve(strict=True), origin)


def dereference(path: Path) -> Path:
    """Follow *path* through any chain of symlinks.

    A path that is not a symlink is returned unchanged. When the chain
    resolves, the canonical path is returned. When it dangles, links are
    followed one by one until a non-link (or a cycle) is reached and the
    last path is returned.
    """
    if not path.is_symlink():
        return path
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError):
        pass

    current = path
    seen: set[str] = set()
    while current.is_symlink() and str(current) not in seen:
        seen.add(str(current))
        try:
            contents = Path(os.readlink(current))
        except OSError:
            break
        current = contents if contents.is_absolute() else current.parent / contents
    return current
