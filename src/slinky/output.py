"""Output formatting system with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (link listings, descriptions of changes
  requested with ``--verbose``, generated scripts). This is what downstream
  tools pipe and parse.
* **stderr** -- all diagnostics (skipped links, per-link errors and
  suggestions). Never contaminates the data stream.
* **TTY detection** -- Rich colour when stdout is an interactive terminal,
  plain text when piped to another process.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and the
  ``--color`` CLI flag.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding colour preferences,
   Rich consoles and the verbose flag. Created once per invocation and
   installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`link`, etc.) that delegate to the global ``OutputManager``
   instance so callers do not need to pass the manager around.
"""

from __future__ import annotations

import os
import sys
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from slinky.models import ColorChoice


class OutputFormat(str, Enum):
    """Enumeration of supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Maintains two Rich :class:`~rich.console.Console` instances -- one for
    stdout (data) and one for stderr (diagnostics) -- and routes every
    output call to the correct stream with appropriate formatting.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        color: Colour policy. ``ALWAYS`` forces Rich output even when piped,
            ``NEVER`` disables all colour.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        color: ColorChoice = ColorChoice.AUTO,
        verbose: bool = False,
    ) -> None:
        if color == ColorChoice.ALWAYS:
            self._no_color = False
        else:
            self._no_color = color == ColorChoice.NEVER or _should_disable_color()
        self._verbose = verbose

        if color == ColorChoice.ALWAYS and format == OutputFormat.AUTO:
            self._format = OutputFormat.RICH
        elif format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        force = self._format == OutputFormat.RICH and not self._no_color
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=force,
            highlight=False,
            soft_wrap=True,
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            force_terminal=force if color == ColorChoice.ALWAYS else None,
            stderr=True,
            highlight=False,
            soft_wrap=True,
        )

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def _plain(self) -> bool:
        return self._no_color or self._format == OutputFormat.PLAIN

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout, without markup interpretation."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format.

        * **Rich mode** -- styled :class:`~rich.table.Table` with column
          headers.
        * **Plain mode** -- tab-separated values, one row per line.
        """
        if self._plain:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for h in headers:
            table.add_column(h)
        for row in rows:
            table.add_row(*(escape(cell) for cell in row))
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Link descriptions
    # ------------------------------------------------------------------ #

    def link(
        self,
        origin: str,
        target: str,
        prefix: Optional[str] = None,
        prefix_style: str = "bold",
    ) -> None:
        """Print ``[prefix: ]origin -> target`` to stdout.

        Args:
            origin: Path of the symlink (cyan).
            target: Link contents or resolved target (yellow).
            prefix: Optional label such as a command name or link status.
            prefix_style: Rich style applied to *prefix*.
        """
        if self._plain:
            head = f"{prefix}: " if prefix else ""
            self.print_data(f"{head}{origin} -> {target}")
            return
        head = f"[{prefix_style}]{escape(prefix)}[/{prefix_style}]: " if prefix else ""
        self._stdout.print(f"{head}[cyan]{escape(origin)}[/cyan] -> [yellow]{escape(target)}[/yellow]")

    def origin(self, origin: str) -> None:
        """Print just the origin path of a link to stdout."""
        if self._plain:
            self.print_data(origin)
        else:
            self._stdout.print(f"[cyan]{escape(origin)}[/cyan]")

    def transformation(self, command: str, origin: str, old: str, new: str) -> None:
        """Print ``command: origin -> (old => new)`` to stdout."""
        if self._plain:
            self.print_data(f"{command}: {origin} -> ({old} => {new})")
            return
        self._stdout.print(
            f"[bold]{escape(command)}[/bold]: [cyan]{escape(origin)}[/cyan] -> "
            f"([dim]{escape(old)}[/dim] [bright_white]=>[/bright_white] "
            f"[yellow]{escape(new)}[/yellow])"
        )

    def link_problem(
        self,
        origin: str,
        target: str,
        command: Optional[str] = None,
        message: Optional[str] = None,
        message_style: str = "red",
    ) -> None:
        """Print ``[command: ][message: ]origin -> target`` to stderr.

        Used when a link is skipped or left unchanged.
        """
        if self._plain:
            parts = [p for p in (command, message) if p]
            head = "".join(f"{p}: " for p in parts)
            print(f"{head}{origin} -> {target}", file=sys.stderr, flush=True)
            return
        head = ""
        if command:
            head += f"[bold]{escape(command)}[/bold]: "
        if message:
            head += f"[{message_style}]{escape(message)}[/{message_style}]: "
        self._stderr.print(f"{head}[cyan]{escape(origin)}[/cyan] -> [yellow]{escape(target)}[/yellow]")

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr."""
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(escape(message))

    def success(self, message: str) -> None:
        """Print a green success message to stderr."""
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[green]{escape(message)}[/green]")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def suggest(self, message: str) -> None:
        """Print a dimmed next-step suggestion to stderr."""
        formatted = f"→ {message}"
        if self._no_color:
            print(formatted, file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[dim]{escape(formatted)}[/dim]")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when ``--verbose`` is active."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]\\[debug] {escape(message)}[/dim]")


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def print_data(text: str) -> None:
    """Print raw data to stdout via the global OutputManager."""
    get_output().print_data(text)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    """Print tabular data to stdout via the global :class:`OutputManager`."""
    get_output().print_table(headers, rows, title)


def link(
    origin: str,
    target: str,
    prefix: Optional[str] = None,
    prefix_style: str = "bold",
) -> None:
    """Print a link description to stdout via the global OutputManager."""
    get_output().link(origin, target, prefix, prefix_style)


def origin(path: str) -> None:
    """Print a link origin to stdout via the global OutputManager."""
    get_output().origin(path)


def transformation(command: str, origin: str, old: str, new: str) -> None:
    """Print a target rewrite to stdout via the global OutputManager."""
    get_output().transformation(command, origin, old, new)


def link_problem(
    origin: str,
    target: str,
    command: Optional[str] = None,
    message: Optional[str] = None,
    message_style: str = "red",
) -> None:
    """Print a skipped or unchanged link to stderr via the global OutputManager."""
    get_output().link_problem(origin, target, command, message, message_style)


def info(message: str) -> None:
    """Print info message to stderr via the global OutputManager."""
    get_output().info(message)


def error(message: str) -> None:
    """Print error to stderr via the global OutputManager."""
    get_output().error(message)


def success(message: str) -> None:
    """Print success message to stderr via the global OutputManager."""
    get_output().success(message)


def suggest(message: str) -> None:
    """Print next-step suggestion to stderr via the global OutputManager."""
    get_output().suggest(message)


def debug(message: str) -> None:
    """Print debug message to stderr via the global OutputManager."""
    get_output().debug(message)
