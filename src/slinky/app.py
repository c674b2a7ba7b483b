"""Typer application factory and CLI entry point for ``slinky``.

``slinky`` finds every symlink under a path and applies one sub-command to
each of them. Filters and run-wide flags live on the root callback, so
they come before the sub-command::

    slinky -x list --status              # dangling links under .
    slinky -t '^/opt' to-relative ./etc  # rewrite absolute links into /opt
    slinky --dry-run -v tidy             # show what tidy would change

The root callback resolves configuration, installs the global
:class:`~slinky.output.OutputManager`, compiles the filters and stores a
:class:`RunOptions` in ``ctx.obj``. Each sub-command then calls
:func:`_for_each_link` with the action it wants applied.

The ``generate`` group (completion scripts and man pages) is registered
from :mod:`slinky.plugins.completion`.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import signal
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional

import typer

from slinky import __version__
from slinky import actions
from slinky.exit_codes import EXIT_GENERIC_FAILURE
from slinky.models import ColorChoice


app = typer.Typer(
    name="slinky",
    help="Wrangle symbolic links.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Plugins
# ------------------------------------------------------------------ #

from slinky.plugins.completion import generate_app  # noqa: E402

app.add_typer(generate_app, name="generate", help="Generate shell completions or man pages.")


_PATH_HELP = "The path in which to search for symlinks."


@dataclass
class RunOptions:
    """Run-wide settings collected by the root callback."""

    link_filter: Any
    max_depth: Optional[int]
    verbose: bool
    dry_run: bool
    exec_shell: str


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"slinky {__version__}")
        raise typer.Exit()


def _fail(exc: Exception) -> NoReturn:
    """Report *exc* on stderr and exit with its exit code."""
    from slinky.exceptions import SlinkyError
    from slinky.output import error

    error(str(exc))
    code = exc.exit_code if isinstance(exc, SlinkyError) else EXIT_GENERIC_FAILURE
    raise typer.Exit(code=code)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    only_dangling: bool = typer.Option(
        False, "--only-dangling", "-x", help="Only act on dangling symlinks."
    ),
    only_attached: bool = typer.Option(
        False, "--only-attached", "-a", help="Only act on 'attached' (non-dangling) symlinks."
    ),
    only_absolute: bool = typer.Option(
        False, "--only-absolute", "-b", help="Only act on absolute symlinks."
    ),
    only_relative: bool = typer.Option(
        False, "--only-relative", "-r", help="Only act on relative symlinks."
    ),
    filter_origin: Optional[str] = typer.Option(
        None, "--filter-origin", "-o", metavar="FILTER",
        help="Only act on symlinks whose origin path matches the given regex.",
    ),
    filter_target: Optional[str] = typer.Option(
        None, "--filter-target", "-t", metavar="FILTER",
        help="Only act on symlinks whose target string matches the given regex.",
    ),
    max_depth: Optional[int] = typer.Option(
        None, "--max-depth", "-d", metavar="NUM", min=0,
        help="Descend at most NUM directories.",
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
) -> None:
    """Wrangle symbolic links.

    Initialises the global :class:`~slinky.output.OutputManager`, compiles
    the link filters and stores a :class:`RunOptions` in ``ctx.obj`` for the
    sub-commands.
    """
    from slinky.config import resolve_config, resolve_exec_shell
    from slinky.exceptions import ConfigError, InvalidUsageError
    from slinky.links import LinkFilter, compile_pattern
    from slinky.output import OutputManager, set_output

    try:
        config = resolve_config(color)
    except ConfigError as exc:
        set_output(OutputManager(color=color or ColorChoice.AUTO))
        _fail(exc)

    set_output(OutputManager(color=config.color, verbose=verbose))

    try:
        link_filter = LinkFilter(
            only_dangling=only_dangling,
            only_attached=only_attached,
            only_absolute=only_absolute,
            only_relative=only_relative,
            origin_pattern=compile_pattern(filter_origin, "--filter-origin"),
            target_pattern=compile_pattern(filter_target, "--filter-target"),
        )
    except InvalidUsageError as exc:
        _fail(exc)

    ctx.ensure_object(dict)
    ctx.obj["run"] = RunOptions(
        link_filter=link_filter,
        max_depth=max_depth,
        verbose=verbose,
        dry_run=dry_run,
        exec_shell=resolve_exec_shell(config),
    )


def _run_options(ctx: typer.Context) -> RunOptions:
    obj = ctx.find_root().obj or {}
    return obj["run"]


def _for_each_link(
    ctx: typer.Context,
    path: Path,
    action: Callable[[actions.ActionContext, Any], None],
) -> None:
    """Scan *path* and apply *action* to every link that passes the filters."""
    from slinky.exceptions import SlinkyError
    from slinky.links import scan

    opts = _run_options(ctx)
    action_ctx = actions.ActionContext(
        command=ctx.info_name or "slinky",
        verbose=opts.verbose,
        dry_run=opts.dry_run,
    )
    try:
        found = scan(path, opts.link_filter, opts.max_depth)
    except SlinkyError as exc:
        _fail(exc)
    actions.run_each(found, lambda item: action(action_ctx, item))


# ------------------------------------------------------------------ #
# Sub-commands
# ------------------------------------------------------------------ #


def list_links(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
    status: bool = typer.Option(
        False, "--status", "-s",
        help="Prefix the link description with its (attached/dangling) status.",
    ),
    origin_only: bool = typer.Option(
        False, "--origin-only", help="Print only the origin path of each link."
    ),
) -> None:
    """List symlinks, formatted as `origin -> target`."""
    _for_each_link(
        ctx, path, lambda _, item: actions.list_link(item, status, origin_only)
    )


app.command("list")(list_links)
app.command("ls", hidden=True)(list_links)


@app.command("to-relative")
def to_relative(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Convert absolute symlinks to relative symlinks. Fails on dangling symlinks."""
    _for_each_link(ctx, path, actions.to_relative)


@app.command("to-absolute")
def to_absolute(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Convert relative symlinks to absolute symlinks. Fails on dangling symlinks."""
    _for_each_link(ctx, path, actions.to_absolute)


@app.command("tidy")
def tidy(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Lexically tidy the target path (e.g., remove redundant `..` or `.`)."""
    _for_each_link(ctx, path, actions.tidy)


@app.command("edit-target")
def edit_target(
    ctx: typer.Context,
    pattern: str = typer.Argument(..., help="Regex to search for in each target."),
    replace: str = typer.Argument(
        ..., help="Replacement text. Use \\1 or \\g<name> for groups."
    ),
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
    replace_all: bool = typer.Option(
        False, "--replace-all", "-g",
        help="Replace all occurrences of the pattern ('global' replace).",
    ),
) -> None:
    """Edit the target string of symlinks by replacing regex matches."""
    from slinky.exceptions import InvalidUsageError
    from slinky.links import check_replacement, compile_pattern

    try:
        regex = compile_pattern(pattern, "PATTERN")
        check_replacement(regex, replace)
    except InvalidUsageError as exc:
        _fail(exc)
    _for_each_link(
        ctx,
        path,
        lambda action_ctx, item: actions.edit_target(
            action_ctx, item, regex, replace, replace_all
        ),
    )


@app.command("to-hardlink")
def to_hardlink(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Convert symlinks to hardlinks. Fails on dangling symlinks, symlinks to directories, and cross-device symlinks."""
    _for_each_link(ctx, path, actions.to_hardlink)


@app.command("to-tree")
def to_tree(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
    hard: bool = typer.Option(
        False, "--hard", "-H", help="Mirror the directory with hardlinks instead of symlinks."
    ),
) -> None:
    """Convert a directory symlink into a directory tree of symlinks to files. Fails on dangling symlinks."""
    _for_each_link(
        ctx, path, lambda action_ctx, item: actions.to_tree(action_ctx, item, hard)
    )


@app.command("to-hardlink-tree", hidden=True)
def to_hardlink_tree(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Recursively mirror target directories with hardlinks. Same as `to-tree --hard`."""
    _for_each_link(
        ctx, path, lambda action_ctx, item: actions.to_tree(action_ctx, item, True)
    )


@app.command("replace-with-target")
def replace_with_target(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Move the target to the symlink's location. Fails on dangling symlinks."""
    _for_each_link(ctx, path, actions.replace_with_target)


def delete(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Delete symlinks."""
    _for_each_link(ctx, path, actions.delete)


app.command("delete")(delete)
app.command("remove", hidden=True)(delete)


@app.command("exec")
def exec_(
    ctx: typer.Context,
    cmd_string: str = typer.Argument(..., metavar="CMD", help="Shell command to run."),
    path: Path = typer.Argument(Path("."), help=_PATH_HELP),
) -> None:
    """Run a shell command against symlinks.

    The command must be passed as a single string. It will be run using
    $SHELL, with $1 bound to the link origin and $2 bound to the link target.
    """
    shell = _run_options(ctx).exec_shell
    _for_each_link(
        ctx,
        path,
        lambda action_ctx, item: actions.exec_command(action_ctx, item, cmd_string, shell),
    )


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from slinky.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def run_app(typer_app: typer.Typer, prog_name: str) -> None:
    """Invoke *typer_app* with signal handling and crash logging.

    Shared by the ``slinky``, ``slinky-ln`` and ``slinky-package`` entry
    points. :class:`~slinky.exceptions.SlinkyError` instances escaping a
    command exit with their ``exit_code``; anything else produces a crash
    log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        typer_app(prog_name=prog_name)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from slinky.exceptions import SlinkyError
        from slinky.output import error

        if isinstance(exc, SlinkyError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)


def main() -> None:
    """CLI entry point invoked by the ``slinky`` console script."""
    run_app(app, "slinky")
